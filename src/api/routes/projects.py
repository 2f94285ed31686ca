"""Project lifecycle routes."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query

from api.auth_deps import Caller, get_caller
from api.deps import get_store
from api.routes.schemas import CruiseSubmission, RateSheet
from core.config import get_settings
from core.logging_config import get_logger
from core.store import DocumentStore
from domain.activity import list_activity
from domain.inquiries import InquiryService
from domain.projects import ProjectService, allowed_transitions

router = APIRouter()
LOGGER = get_logger(__name__)


def _service(store: DocumentStore = Depends(get_store)) -> ProjectService:
    return ProjectService(store)


def _status(service: ProjectService, project_id: str) -> Dict[str, Any]:
    project = service.load(project_id)
    return {"id": project.id, "status": project.status.value}


# =============================================================================
# Reads
# =============================================================================


@router.get("")
async def list_projects(
    caller: Caller = Depends(get_caller),
    service: ProjectService = Depends(_service),
) -> List[Dict[str, Any]]:
    """Projects the caller owns or works on."""
    return [p.to_dict() for p in service.list_projects(caller.user_id)]


@router.get("/{project_id}")
async def get_project(
    project_id: str,
    caller: Caller = Depends(get_caller),
    service: ProjectService = Depends(_service),
) -> Dict[str, Any]:
    project = service.get_project(project_id, caller.user_id)
    return {
        **project.to_dict(),
        "allowedTransitions": allowed_transitions(project, caller.user_id),
    }


@router.get("/{project_id}/inventory")
async def project_inventory(
    project_id: str,
    caller: Caller = Depends(get_caller),
    service: ProjectService = Depends(_service),
) -> Dict[str, Any]:
    """Totals recomputed from the stored cruise."""
    return service.inventory_totals(project_id, caller.user_id).to_dict()


@router.get("/{project_id}/report")
async def project_report(
    project_id: str,
    caller: Caller = Depends(get_caller),
    service: ProjectService = Depends(_service),
) -> Dict[str, Any]:
    return service.report(project_id, caller.user_id)


@router.get("/{project_id}/quotes")
async def project_quotes(
    project_id: str,
    caller: Caller = Depends(get_caller),
    store: DocumentStore = Depends(get_store),
) -> List[Dict[str, Any]]:
    return [q.to_dict() for q in InquiryService(store).list_quotes(project_id, caller.user_id)]


@router.get("/{project_id}/activity")
async def project_activity(
    project_id: str,
    limit: Optional[int] = Query(None, ge=1),
    caller: Caller = Depends(get_caller),
    store: DocumentStore = Depends(get_store),
) -> List[Dict[str, Any]]:
    ProjectService(store).get_project(project_id, caller.user_id)
    max_entries = get_settings().activity_feed_limit
    limit = min(limit, max_entries) if limit else max_entries
    return list_activity(store, caller.user_id, project_id=project_id, limit=limit)


# =============================================================================
# Transitions
# =============================================================================


@router.post("/{project_id}/cruise")
async def submit_cruise(
    project_id: str,
    body: CruiseSubmission,
    caller: Caller = Depends(get_caller),
    service: ProjectService = Depends(_service),
) -> Dict[str, Any]:
    """Assigned forester submits the cruise for the owner's approval."""
    totals = service.submit_cruise(project_id, caller.user_id, body.to_cruise_data())
    return {**_status(service, project_id), "totals": totals.to_dict()}


@router.post("/{project_id}/retract")
async def retract_cruise(
    project_id: str,
    caller: Caller = Depends(get_caller),
    service: ProjectService = Depends(_service),
) -> Dict[str, Any]:
    service.retract_cruise(project_id, caller.user_id)
    return _status(service, project_id)


@router.post("/{project_id}/decline")
async def decline_project(
    project_id: str,
    caller: Caller = Depends(get_caller),
    service: ProjectService = Depends(_service),
) -> Dict[str, Any]:
    service.decline(project_id, caller.user_id)
    return _status(service, project_id)


@router.post("/{project_id}/complete")
async def complete_project(
    project_id: str,
    caller: Caller = Depends(get_caller),
    service: ProjectService = Depends(_service),
) -> Dict[str, Any]:
    service.complete(project_id, caller.user_id)
    return _status(service, project_id)


@router.post("/{project_id}/post-sale")
async def post_sale(
    project_id: str,
    caller: Caller = Depends(get_caller),
    service: ProjectService = Depends(_service),
) -> Dict[str, Any]:
    """Owner approves the cruise and publishes it as a timber sale."""
    sale_id = service.post_for_bids(project_id, caller.user_id)
    return {**_status(service, project_id), "saleId": sale_id}


@router.put("/{project_id}/rates")
async def save_rates(
    project_id: str,
    body: RateSheet,
    caller: Caller = Depends(get_caller),
    service: ProjectService = Depends(_service),
) -> Dict[str, Any]:
    rate_sets = [s.model_dump(by_alias=True) for s in body.rate_sets]
    return {"rateSets": service.save_rate_sets(project_id, caller.user_id, rate_sets)}
