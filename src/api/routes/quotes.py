"""Quote acceptance callable."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from api.auth_deps import Caller, get_optional_caller
from api.deps import get_store
from api.routes.schemas import AcceptQuoteBody
from core.exceptions import status_for_kind
from core.store import DocumentStore
from domain.acceptance import call_accept_quote

router = APIRouter()


@router.post("/accept")
async def accept_quote(
    body: AcceptQuoteBody,
    caller: Optional[Caller] = Depends(get_optional_caller),
    store: DocumentStore = Depends(get_store),
) -> JSONResponse:
    """
    Accept a quote on the caller's project.

    Answers ``{"success": true, ...}`` or ``{"success": false, "error": {...}}``
    with the HTTP status matching the error kind.
    """
    result = call_accept_quote(
        store,
        body.model_dump(by_alias=True),
        caller.user_id if caller else None,
    )
    status_code = 200 if result["success"] else status_for_kind(result["error"]["kind"])
    return JSONResponse(status_code=status_code, content=result)
