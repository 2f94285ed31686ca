"""Property records owned by landowners."""
from __future__ import annotations

import math
from typing import Any, Dict, List, Optional

from core.exceptions import InvalidArgumentError, NotFoundError, PermissionDeniedError
from core.logging_config import get_logger
from core.models import Collection
from core.store import SERVER_TIMESTAMP, DocumentStore, Write
from core.types import Property
from core.utils import to_float

LOGGER = get_logger(__name__)


class PropertyService:
    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    def create_property(
        self,
        owner_id: str,
        name: str,
        acreage: Any,
        county: str = "",
        state: str = "",
        description: str = "",
        boundary: Optional[Dict[str, Any]] = None,
    ) -> Property:
        """
        Register a tract for a landowner.

        ``acreage`` is the authoritative size used by Entire Tract cruises;
        ``boundary`` is stored as given (GeoJSON) and never interpreted.
        """
        name = (name or "").strip()
        if not name:
            raise InvalidArgumentError("Property name is required.")
        size = to_float(acreage, default=float("nan"))
        if math.isnan(size) or size < 0:
            raise InvalidArgumentError("Acreage must be a non-negative number.")

        property_id = self.store.new_id()
        data: Dict[str, Any] = {
            "ownerId": owner_id,
            "name": name,
            "acreage": size,
            "county": county,
            "state": state,
            "description": description,
            "authorizedUsers": [],
            "createdAt": SERVER_TIMESTAMP,
        }
        if boundary is not None:
            data["boundary"] = boundary
        self.store.run_atomic_batch([Write.set(Collection.PROPERTIES, property_id, data, expected_version=0)])

        LOGGER.info(
            f"Created property {property_id}",
            extra={"extra_data": {"owner_id": owner_id, "acreage": size}},
        )
        return Property(
            id=property_id,
            owner_id=owner_id,
            name=name,
            acreage=size,
            county=county,
            state=state,
        )

    def get_property(self, property_id: str, caller_id: str) -> Property:
        """A property, visible to its owner and every authorized professional."""
        snapshot = self.store.get(Collection.PROPERTIES, property_id)
        if snapshot is None:
            raise NotFoundError("Property not found.")
        prop = Property.from_document(snapshot.id, snapshot.data)
        if caller_id != prop.owner_id and caller_id not in prop.authorized_users:
            raise PermissionDeniedError("You do not have access to this property.")
        return prop

    def list_properties(self, caller_id: str) -> List[Property]:
        owned = self.store.query(Collection.PROPERTIES, [("ownerId", "==", caller_id)])
        shared = self.store.query(Collection.PROPERTIES, [("authorizedUsers", "array-contains", caller_id)])
        result = {}
        for snapshot in owned + shared:
            result.setdefault(snapshot.id, Property.from_document(snapshot.id, snapshot.data))
        return list(result.values())


__all__ = ["PropertyService"]
