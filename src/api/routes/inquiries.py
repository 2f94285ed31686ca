"""Inquiry and quote routes."""
from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Query

from api.auth_deps import Caller, get_caller, require_landowner
from api.deps import get_store
from api.routes.schemas import InquiryCreate, QuoteCreate
from core.store import DocumentStore
from domain.inquiries import INBOX_RECEIVED, InquiryService

router = APIRouter()


def _service(store: DocumentStore = Depends(get_store)) -> InquiryService:
    return InquiryService(store)


@router.get("")
async def list_inquiries(
    box: str = Query(INBOX_RECEIVED, description="received or sent"),
    caller: Caller = Depends(get_caller),
    service: InquiryService = Depends(_service),
) -> List[Dict[str, Any]]:
    return [i.to_dict() for i in service.list_inquiries(caller.user_id, box)]


@router.post("", status_code=201)
async def send_inquiries(
    body: InquiryCreate,
    caller: Caller = Depends(require_landowner),
    service: InquiryService = Depends(_service),
) -> Dict[str, Any]:
    """Open a project and send it to the chosen professionals."""
    return service.send_inquiries(
        owner_id=caller.user_id,
        property_id=body.property_id,
        professional_ids=body.professional_ids,
        services=body.services,
        goal=body.goal,
        message=body.message,
        owner_name=body.owner_name,
    )


@router.post("/{inquiry_id}/quote", status_code=201)
async def submit_quote(
    inquiry_id: str,
    body: QuoteCreate,
    caller: Caller = Depends(get_caller),
    service: InquiryService = Depends(_service),
) -> Dict[str, Any]:
    quote = service.submit_quote(
        inquiry_id,
        professional_id=caller.user_id,
        professional_role=caller.role.value,
        amount=body.amount,
        message=body.message,
    )
    return quote.to_dict()


@router.post("/{inquiry_id}/decline")
async def decline_inquiry(
    inquiry_id: str,
    caller: Caller = Depends(get_caller),
    service: InquiryService = Depends(_service),
) -> Dict[str, Any]:
    deleted = service.decline(inquiry_id, caller.user_id)
    return {"id": inquiry_id, "status": "declined", "projectDeleted": deleted}


@router.post("/{inquiry_id}/withdraw")
async def withdraw_inquiry(
    inquiry_id: str,
    caller: Caller = Depends(get_caller),
    service: InquiryService = Depends(_service),
) -> Dict[str, Any]:
    deleted = service.withdraw(inquiry_id, caller.user_id)
    return {"id": inquiry_id, "status": "withdrawn", "projectDeleted": deleted}


@router.post("/{inquiry_id}/archive")
async def archive_inquiry(
    inquiry_id: str,
    caller: Caller = Depends(get_caller),
    service: InquiryService = Depends(_service),
) -> Dict[str, Any]:
    service.archive(inquiry_id, caller.user_id)
    return {"id": inquiry_id, "status": "archived"}
