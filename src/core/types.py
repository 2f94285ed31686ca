"""Shared dataclasses for persisted entities.

Documents are stored with camelCase field names; these types translate
between that wire shape and snake_case attributes. Numeric cruise fields are
coerced on the way in so malformed entries read as zero instead of raising.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from core.models import InquiryStatus, ProjectStatus, QuoteStatus
from core.utils import to_float, to_int

UNITS_TONS = "Tons"
UNITS_MBF = "MBF"


# =============================================================================
# Cruise inventory
# =============================================================================


@dataclass(slots=True)
class DBHRow:
    """One diameter-class line of a product breakdown."""

    dbh: str
    trees: int = 0
    volume: float = 0.0
    units: str = UNITS_TONS

    @property
    def is_tons(self) -> bool:
        return self.units.strip().lower() == UNITS_TONS.lower()

    @property
    def is_mbf(self) -> bool:
        return self.units.strip().lower() == UNITS_MBF.lower()

    @property
    def is_empty(self) -> bool:
        return self.trees <= 0 and self.volume <= 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DBHRow":
        return cls(
            dbh=str(data.get("dbh") or ""),
            trees=max(to_int(data.get("trees")), 0),
            volume=max(to_float(data.get("volume")), 0.0),
            units=str(data.get("units") or UNITS_TONS),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"dbh": self.dbh, "trees": self.trees, "volume": self.volume, "units": self.units}


@dataclass(slots=True)
class ProductEntry:
    """A timber product within a stand and its DBH breakdown."""

    product: str
    breakdown: List[DBHRow] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProductEntry":
        return cls(
            product=str(data.get("product") or ""),
            breakdown=[DBHRow.from_dict(row) for row in data.get("breakdown") or []],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"product": self.product, "breakdown": [row.to_dict() for row in self.breakdown]}


@dataclass(slots=True)
class Stand:
    """A named cruise unit; ``gross_acres`` is the drawn harvest-area size."""

    name: str
    net_acres: float = 0.0
    products: List[ProductEntry] = field(default_factory=list)
    gross_acres: float = 0.0

    @property
    def effective_acres(self) -> float:
        """Net acres when entered, otherwise the gross area, otherwise zero."""
        if self.net_acres > 0:
            return self.net_acres
        if self.gross_acres > 0:
            return self.gross_acres
        return 0.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Stand":
        return cls(
            name=str(data.get("name") or ""),
            net_acres=max(to_float(data.get("netAcres")), 0.0),
            products=[ProductEntry.from_dict(p) for p in data.get("products") or []],
            gross_acres=max(to_float(data.get("grossAcres")), 0.0),
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "name": self.name,
            "netAcres": self.net_acres,
            "products": [p.to_dict() for p in self.products],
        }
        if self.gross_acres:
            result["grossAcres"] = self.gross_acres
        return result


# Known sale-term fields; anything else entered on the cruise form is kept in ``extra``
_DETAIL_FIELDS = {
    "saleName": "sale_name",
    "county": "county",
    "state": "state",
    "acreage": "acreage",
    "bidMethod": "bid_method",
    "bidDeadline": "bid_deadline",
    "legalDesc": "legal_desc",
    "harvestDescription": "harvest_description",
}


@dataclass(slots=True)
class CruiseDetails:
    """Free-text sale terms attached to a cruise."""

    sale_name: str = ""
    county: str = ""
    state: str = ""
    acreage: float = 0.0
    bid_method: str = ""
    bid_deadline: str = ""
    legal_desc: str = ""
    harvest_description: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "CruiseDetails":
        data = dict(data or {})
        known = {attr: data.pop(key, None) for key, attr in _DETAIL_FIELDS.items()}
        return cls(
            sale_name=str(known["sale_name"] or ""),
            county=str(known["county"] or ""),
            state=str(known["state"] or ""),
            acreage=to_float(known["acreage"]),
            bid_method=str(known["bid_method"] or ""),
            bid_deadline=str(known["bid_deadline"] or ""),
            legal_desc=str(known["legal_desc"] or ""),
            harvest_description=str(known["harvest_description"] or ""),
            extra=data,
        )

    def to_dict(self) -> Dict[str, Any]:
        result = dict(self.extra)
        for key, attr in _DETAIL_FIELDS.items():
            result[key] = getattr(self, attr)
        return result


@dataclass(slots=True)
class CruiseData:
    """Inventory plus sale terms, embedded in the owning project."""

    details: CruiseDetails = field(default_factory=CruiseDetails)
    inventory: List[Stand] = field(default_factory=list)
    annotations: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "CruiseData":
        data = data or {}
        return cls(
            details=CruiseDetails.from_dict(data.get("details")),
            inventory=[Stand.from_dict(s) for s in data.get("inventory") or []],
            annotations=data.get("annotations"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "details": self.details.to_dict(),
            "inventory": [s.to_dict() for s in self.inventory],
            "annotations": self.annotations,
        }


# =============================================================================
# Marketplace entities
# =============================================================================


@dataclass(slots=True)
class Property:
    id: str
    owner_id: str
    name: str = ""
    acreage: float = 0.0
    authorized_users: List[str] = field(default_factory=list)
    county: str = ""
    state: str = ""

    @classmethod
    def from_document(cls, doc_id: str, data: Dict[str, Any]) -> "Property":
        return cls(
            id=doc_id,
            owner_id=str(data.get("ownerId") or ""),
            name=str(data.get("name") or ""),
            acreage=max(to_float(data.get("acreage")), 0.0),
            authorized_users=list(data.get("authorizedUsers") or []),
            county=str(data.get("county") or ""),
            state=str(data.get("state") or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "ownerId": self.owner_id,
            "name": self.name,
            "acreage": self.acreage,
            "county": self.county,
            "state": self.state,
            "authorizedUsers": self.authorized_users,
        }


@dataclass(slots=True)
class Project:
    """The unit of work tying a property to one professional engagement."""

    id: str
    owner_id: str
    property_id: str
    status: ProjectStatus
    forester_id: Optional[str] = None
    supplier_id: Optional[str] = None
    quote_accepted_at: Optional[str] = None
    accepted_quote_id: Optional[str] = None
    cruise_data: Optional[CruiseData] = None
    rate_sets: List[Dict[str, Any]] = field(default_factory=list)
    involved_users: List[str] = field(default_factory=list)
    property_name: str = ""
    owner_name: str = ""
    version: int = 0

    @property
    def assigned_professional_id(self) -> Optional[str]:
        return self.forester_id or self.supplier_id

    @property
    def has_assignment(self) -> bool:
        return bool(self.forester_id or self.supplier_id)

    @classmethod
    def from_document(cls, doc_id: str, data: Dict[str, Any], version: int = 0) -> "Project":
        cruise = data.get("cruiseData")
        return cls(
            id=doc_id,
            owner_id=str(data.get("ownerId") or ""),
            property_id=str(data.get("propertyId") or ""),
            status=ProjectStatus(data.get("status") or ProjectStatus.INQUIRY.value),
            forester_id=data.get("foresterId") or None,
            supplier_id=data.get("supplierId") or None,
            quote_accepted_at=data.get("quoteAcceptedAt") or None,
            accepted_quote_id=data.get("acceptedQuoteId") or None,
            cruise_data=CruiseData.from_dict(cruise) if cruise else None,
            rate_sets=list(data.get("rateSets") or []),
            involved_users=list(data.get("involvedUsers") or []),
            property_name=str(data.get("propertyName") or ""),
            owner_name=str(data.get("ownerName") or ""),
            version=version,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "ownerId": self.owner_id,
            "ownerName": self.owner_name,
            "propertyId": self.property_id,
            "propertyName": self.property_name,
            "status": self.status.value,
            "foresterId": self.forester_id,
            "supplierId": self.supplier_id,
            "quoteAcceptedAt": self.quote_accepted_at,
            "acceptedQuoteId": self.accepted_quote_id,
            "cruiseData": self.cruise_data.to_dict() if self.cruise_data else None,
            "rateSets": self.rate_sets,
            "involvedUsers": self.involved_users,
        }


@dataclass(slots=True)
class Inquiry:
    id: str
    project_id: str
    from_user_id: str
    to_user_id: str
    status: InquiryStatus
    property_id: str = ""
    property_name: str = ""
    message: str = ""
    version: int = 0

    @classmethod
    def from_document(cls, doc_id: str, data: Dict[str, Any], version: int = 0) -> "Inquiry":
        return cls(
            id=doc_id,
            project_id=str(data.get("projectId") or ""),
            from_user_id=str(data.get("fromUserId") or ""),
            to_user_id=str(data.get("toUserId") or ""),
            status=InquiryStatus(data.get("status") or InquiryStatus.PENDING.value),
            property_id=str(data.get("propertyId") or ""),
            property_name=str(data.get("propertyName") or ""),
            message=str(data.get("message") or ""),
            version=version,
        )

    @property
    def is_resolved(self) -> bool:
        """Withdrawn or declined inquiries no longer keep their project alive."""
        return self.status in (InquiryStatus.WITHDRAWN, InquiryStatus.DECLINED)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "projectId": self.project_id,
            "fromUserId": self.from_user_id,
            "toUserId": self.to_user_id,
            "status": self.status.value,
            "propertyId": self.property_id,
            "propertyName": self.property_name,
            "message": self.message,
        }


@dataclass(slots=True)
class Quote:
    """A professional's priced response to an inquiry. Immutable once written."""

    id: str
    inquiry_id: str
    project_id: str
    property_id: str
    landowner_id: str
    professional_id: str
    professional_role: str
    amount: float
    message: str = ""
    status: QuoteStatus = QuoteStatus.PENDING
    created_at: Optional[str] = None

    @classmethod
    def from_document(cls, doc_id: str, data: Dict[str, Any]) -> "Quote":
        return cls(
            id=doc_id,
            inquiry_id=str(data.get("inquiryId") or ""),
            project_id=str(data.get("projectId") or ""),
            property_id=str(data.get("propertyId") or ""),
            landowner_id=str(data.get("landownerId") or ""),
            professional_id=str(data.get("professionalId") or ""),
            professional_role=str(data.get("professionalRole") or ""),
            amount=to_float(data.get("amount")),
            message=str(data.get("message") or ""),
            status=QuoteStatus(data.get("status") or QuoteStatus.PENDING.value),
            created_at=data.get("createdAt"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "inquiryId": self.inquiry_id,
            "projectId": self.project_id,
            "propertyId": self.property_id,
            "landownerId": self.landowner_id,
            "professionalId": self.professional_id,
            "professionalRole": self.professional_role,
            "amount": self.amount,
            "message": self.message,
            "status": self.status.value,
            "createdAt": self.created_at,
        }


__all__ = [
    "UNITS_TONS",
    "UNITS_MBF",
    "DBHRow",
    "ProductEntry",
    "Stand",
    "CruiseDetails",
    "CruiseData",
    "Property",
    "Project",
    "Inquiry",
    "Quote",
]
