"""SQLAlchemy ORM models and shared enums for the timber marketplace."""
from __future__ import annotations

import enum
from datetime import datetime
from typing import Any, Dict

from sqlalchemy import (
    JSON,
    DateTime,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from core.db import Base


# =============================================================================
# Enums
# =============================================================================


class Collection(str, enum.Enum):
    """Document collections held by the store."""
    PROJECTS = "projects"
    PROPERTIES = "properties"
    INQUIRIES = "inquiries"
    QUOTES = "quotes"
    ACTIVITY = "activity"
    TIMBER_SALES = "timberSales"


class ProjectStatus(str, enum.Enum):
    """Project lifecycle states."""
    INQUIRY = "inquiry"
    CRUISE_IN_PROGRESS = "cruise_in_progress"
    PENDING_APPROVAL = "pending_approval"
    HARVEST_IN_PROGRESS = "harvest_in_progress"
    OPEN_FOR_BIDS = "open_for_bids"
    COMPLETED = "completed"
    CANCELLED = "cancelled"  # never stored; cancelled projects are deleted


class InquiryStatus(str, enum.Enum):
    """Inquiry statuses."""
    PENDING = "pending"
    QUOTED = "quoted"
    DECLINED = "declined"
    WITHDRAWN = "withdrawn"
    ARCHIVED = "archived"


class QuoteStatus(str, enum.Enum):
    """Quote statuses. ACCEPTED is derived from the project, never written."""
    PENDING = "pending"
    ACCEPTED = "accepted"


class ActivityType(str, enum.Enum):
    """Activity feed event types."""
    INQUIRY_SENT = "inquiry_sent"
    QUOTE_SUBMITTED = "quote_submitted"
    QUOTE_ACCEPTED = "quote_accepted"
    CRUISE_SUBMITTED = "cruise_submitted"
    CRUISE_RETRACTED = "cruise_retracted"
    PROJECT_COMPLETED = "project_completed"
    SALE_POSTED = "sale_posted"
    PROJECT_DECLINED = "project_declined"
    PROJECT_CANCELLED = "project_cancelled"


# =============================================================================
# Document Model
# =============================================================================


class DocumentRecord(Base):
    """
    One stored document.

    Every entity (project, property, inquiry, quote, activity entry, timber
    sale) lives here as a JSON payload keyed by (collection, doc_id). The
    ``version`` column is bumped on every write and is what atomic batches
    compare against.
    """
    __tablename__ = "document"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    collection: Mapped[str] = mapped_column(String(64), nullable=False)
    doc_id: Mapped[str] = mapped_column(String(64), nullable=False)
    data: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        UniqueConstraint("collection", "doc_id", name="uq_document_collection_doc_id"),
        Index("ix_document_collection", "collection"),
    )

    def __repr__(self) -> str:
        return f"<DocumentRecord {self.collection}/{self.doc_id} v{self.version}>"
