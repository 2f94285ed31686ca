"""Property routes."""
from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Depends

from api.auth_deps import Caller, get_caller, require_landowner
from api.deps import get_store
from api.routes.schemas import PropertyCreate
from core.store import DocumentStore
from domain.properties import PropertyService

router = APIRouter()


def _service(store: DocumentStore = Depends(get_store)) -> PropertyService:
    return PropertyService(store)


@router.get("")
async def list_properties(
    caller: Caller = Depends(get_caller),
    service: PropertyService = Depends(_service),
) -> List[Dict[str, Any]]:
    return [p.to_dict() for p in service.list_properties(caller.user_id)]


@router.post("", status_code=201)
async def create_property(
    body: PropertyCreate,
    caller: Caller = Depends(require_landowner),
    service: PropertyService = Depends(_service),
) -> Dict[str, Any]:
    prop = service.create_property(
        owner_id=caller.user_id,
        name=body.name,
        acreage=body.acreage,
        county=body.county,
        state=body.state,
        description=body.description,
        boundary=body.boundary,
    )
    return prop.to_dict()


@router.get("/{property_id}")
async def get_property(
    property_id: str,
    caller: Caller = Depends(get_caller),
    service: PropertyService = Depends(_service),
) -> Dict[str, Any]:
    return service.get_property(property_id, caller.user_id).to_dict()
