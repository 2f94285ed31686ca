"""Liveness and document store health."""
from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from api.deps import get_readonly_db
from core.config import get_settings
from core.logging_config import get_logger
from core.models import DocumentRecord
from core.utils import utcnow

router = APIRouter()
LOGGER = get_logger(__name__)


@router.get("/")
async def health_check() -> Dict[str, Any]:
    """Process is up. Does not touch the database."""
    return {
        "status": "healthy",
        "timestamp": utcnow().isoformat(),
        "environment": get_settings().environment,
    }


@router.get("/detailed")
async def detailed_health_check(
    db: Session = Depends(get_readonly_db),
) -> Dict[str, Any]:
    """Store reachability plus document counts per collection."""
    try:
        rows = db.execute(
            select(DocumentRecord.collection, func.count())
            .group_by(DocumentRecord.collection)
        ).all()
    except SQLAlchemyError as e:
        LOGGER.error(f"Document store unreachable: {e}")
        database: Dict[str, Any] = {"status": "unhealthy", "error": str(e)}
    else:
        collections = {name: count for name, count in rows}
        database = {
            "status": "healthy",
            "connected": True,
            "documents": sum(collections.values()),
            "collections": collections,
        }

    return {
        "status": database["status"],
        "timestamp": utcnow().isoformat(),
        "checks": {"database": database},
    }
