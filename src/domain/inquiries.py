"""Inquiry and quote handling.

A landowner fans one project out to several professionals as inquiries; each
addressee may quote or decline. When every inquiry of a project that never
got a professional is withdrawn or declined, the project is deleted.
"""
from __future__ import annotations

import math
from typing import Any, Callable, Dict, List, Optional, Sequence

from core.exceptions import (
    ConcurrentModificationError,
    FailedPreconditionError,
    InvalidArgumentError,
    NotFoundError,
    PermissionDeniedError,
)
from core.logging_config import get_logger, log_state_change
from core.models import ActivityType, Collection, InquiryStatus, ProjectStatus, QuoteStatus
from core.store import SERVER_TIMESTAMP, ArrayUnion, DocumentStore, Write, WriteOp
from core.types import Inquiry, Project, Property, Quote
from core.utils import to_float, union_preserving_order
from domain.activity import activity_write
from domain.roles import is_professional, participant_from_claims

LOGGER = get_logger(__name__)

INBOX_RECEIVED = "received"
INBOX_SENT = "sent"

# One retry after losing a race with a sibling resolution
RESOLVE_ATTEMPTS = 2


def _check_decline(inquiry: Inquiry, caller_id: str) -> None:
    if inquiry.to_user_id != caller_id:
        raise PermissionDeniedError("This inquiry was not sent to you.")
    if inquiry.status is not InquiryStatus.PENDING:
        raise FailedPreconditionError("Only pending inquiries can be declined.")


def _check_withdraw(inquiry: Inquiry, caller_id: str) -> None:
    if inquiry.from_user_id != caller_id:
        raise PermissionDeniedError("Only the sender can withdraw an inquiry.")
    if inquiry.status not in (InquiryStatus.PENDING, InquiryStatus.QUOTED):
        raise FailedPreconditionError(f"Inquiry is already {inquiry.status.value}.")


class InquiryService:
    """Inquiry fan-out, quoting, and inquiry resolution."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    def _load_inquiry(self, inquiry_id: str) -> Inquiry:
        snapshot = self.store.get(Collection.INQUIRIES, inquiry_id)
        if snapshot is None:
            raise NotFoundError("Inquiry not found.")
        return Inquiry.from_document(snapshot.id, snapshot.data, snapshot.version)

    def _load_project(self, project_id: str) -> Optional[Project]:
        snapshot = self.store.get(Collection.PROJECTS, project_id)
        if snapshot is None:
            return None
        return Project.from_document(snapshot.id, snapshot.data, snapshot.version)

    def list_inquiries(self, caller_id: str, box: str = INBOX_RECEIVED) -> List[Inquiry]:
        if box not in (INBOX_RECEIVED, INBOX_SENT):
            raise InvalidArgumentError(f"Unknown inbox: {box!r}")
        field_name = "toUserId" if box == INBOX_RECEIVED else "fromUserId"
        snapshots = self.store.query(Collection.INQUIRIES, [(field_name, "==", caller_id)])
        return [Inquiry.from_document(s.id, s.data, s.version) for s in snapshots]

    # -------------------------------------------------------------------------
    # Sending
    # -------------------------------------------------------------------------

    def send_inquiries(
        self,
        owner_id: str,
        property_id: str,
        professional_ids: Sequence[str],
        services: Sequence[str],
        goal: str = "",
        message: str = "",
        owner_name: str = "",
    ) -> Dict[str, Any]:
        """
        Open a project for a property and send it to each chosen professional.

        Creates the project, one inquiry per professional, and grants each
        professional visibility of the property, all in one batch.

        Returns:
            {"projectId": ..., "inquiryIds": [...]}
        """
        snapshot = self.store.get(Collection.PROPERTIES, property_id)
        if snapshot is None:
            raise NotFoundError("Property not found.")
        prop = Property.from_document(snapshot.id, snapshot.data)
        if prop.owner_id != owner_id:
            raise PermissionDeniedError("You can only send inquiries for your own property.")

        recipients = union_preserving_order([], [p for p in professional_ids if p and p != owner_id])
        if not recipients:
            raise InvalidArgumentError("Select at least one professional.")
        services = [s for s in services if s]
        if not services:
            raise InvalidArgumentError("Select at least one service.")

        project_id = self.store.new_id()
        writes = [
            Write.set(
                Collection.PROJECTS,
                project_id,
                {
                    "ownerId": owner_id,
                    "ownerName": owner_name,
                    "propertyId": prop.id,
                    "propertyName": prop.name,
                    "status": ProjectStatus.INQUIRY.value,
                    "services": services,
                    "goal": goal,
                    "involvedUsers": [],
                    "createdAt": SERVER_TIMESTAMP,
                },
                expected_version=0,
            ),
            Write.update(
                Collection.PROPERTIES,
                prop.id,
                {"authorizedUsers": ArrayUnion(*recipients)},
                expected_version=snapshot.version,
            ),
        ]

        inquiry_ids = []
        for professional_id in recipients:
            inquiry_id = self.store.new_id()
            inquiry_ids.append(inquiry_id)
            writes.append(
                Write.set(
                    Collection.INQUIRIES,
                    inquiry_id,
                    {
                        "projectId": project_id,
                        "propertyId": prop.id,
                        "propertyName": prop.name,
                        "fromUserId": owner_id,
                        "toUserId": professional_id,
                        "status": InquiryStatus.PENDING.value,
                        "services": services,
                        "goal": goal,
                        "message": message,
                        "createdAt": SERVER_TIMESTAMP,
                    },
                    expected_version=0,
                )
            )

        writes.append(
            activity_write(
                self.store,
                ActivityType.INQUIRY_SENT,
                actor_id=owner_id,
                project_id=project_id,
                property_id=prop.id,
                message=f"Inquiry sent to {len(recipients)} professional(s) for {prop.name or 'property'}.",
                visible_to=recipients,
            )
        )
        self.store.run_atomic_batch(writes)

        LOGGER.info(
            f"Sent {len(recipients)} inquiries for property {prop.id}",
            extra={"extra_data": {"project_id": project_id, "owner_id": owner_id}},
        )
        return {"projectId": project_id, "inquiryIds": inquiry_ids}

    # -------------------------------------------------------------------------
    # Quoting
    # -------------------------------------------------------------------------

    def submit_quote(
        self,
        inquiry_id: str,
        professional_id: str,
        professional_role: str,
        amount: Any,
        message: str = "",
    ) -> Quote:
        """Answer a pending inquiry with a price. The quote carries the professional's role."""
        inquiry = self._load_inquiry(inquiry_id)
        if inquiry.to_user_id != professional_id:
            raise PermissionDeniedError("This inquiry was not sent to you.")
        if not is_professional(participant_from_claims(professional_id, professional_role)):
            raise PermissionDeniedError("Only professionals can submit quotes.")
        if inquiry.status is not InquiryStatus.PENDING:
            raise FailedPreconditionError(
                f"Inquiry is already {inquiry.status.value}; only pending inquiries can be quoted."
            )

        price = to_float(amount, default=float("nan"))
        if math.isnan(price) or price < 0:
            raise InvalidArgumentError("Quote amount must be a non-negative number.")

        project = self._load_project(inquiry.project_id)
        if project is None:
            raise NotFoundError("Project not found.")

        quote_id = self.store.new_id()
        quote = Quote(
            id=quote_id,
            inquiry_id=inquiry.id,
            project_id=project.id,
            property_id=inquiry.property_id or project.property_id,
            landowner_id=inquiry.from_user_id,
            professional_id=professional_id,
            professional_role=str(professional_role),
            amount=price,
            message=message,
            status=QuoteStatus.PENDING,
        )
        quote_data = quote.to_dict()
        quote_data.pop("id")
        quote_data["createdAt"] = SERVER_TIMESTAMP

        self.store.run_atomic_batch([
            Write.set(Collection.QUOTES, quote_id, quote_data, expected_version=0),
            Write.update(
                Collection.INQUIRIES,
                inquiry.id,
                {"status": InquiryStatus.QUOTED.value, "quoteId": quote_id},
                expected_version=inquiry.version,
            ),
            activity_write(
                self.store,
                ActivityType.QUOTE_SUBMITTED,
                actor_id=professional_id,
                project_id=project.id,
                property_id=quote.property_id,
                message=f"Quote of {price:,.2f} submitted for {inquiry.property_name or 'property'}.",
                visible_to=[project.owner_id],
            ),
        ])

        LOGGER.info(
            f"Quote {quote_id} submitted on inquiry {inquiry.id}",
            extra={"extra_data": {"project_id": project.id, "professional_id": professional_id}},
        )
        return quote

    def list_quotes(self, project_id: str, caller_id: str) -> List[Quote]:
        """Quotes on a project, for its owner. The accepted one reports status accepted."""
        project = self._load_project(project_id)
        if project is None:
            raise NotFoundError("Project not found.")
        if caller_id != project.owner_id:
            raise PermissionDeniedError("Only the project owner can view its quotes.")

        quotes = []
        for snapshot in self.store.query(Collection.QUOTES, [("projectId", "==", project_id)]):
            quote = Quote.from_document(snapshot.id, snapshot.data)
            if quote.id == project.accepted_quote_id:
                quote.status = QuoteStatus.ACCEPTED
            quotes.append(quote)
        return quotes

    # -------------------------------------------------------------------------
    # Resolution
    # -------------------------------------------------------------------------

    def decline(self, inquiry_id: str, caller_id: str) -> bool:
        """Addressee turns the inquiry down. Returns True when the project was deleted."""
        return self._resolve(inquiry_id, InquiryStatus.DECLINED, caller_id, _check_decline)

    def withdraw(self, inquiry_id: str, caller_id: str) -> bool:
        """Sender takes the inquiry back. Returns True when the project was deleted."""
        return self._resolve(inquiry_id, InquiryStatus.WITHDRAWN, caller_id, _check_withdraw)

    def archive(self, inquiry_id: str, caller_id: str) -> None:
        inquiry = self._load_inquiry(inquiry_id)
        if inquiry.to_user_id != caller_id:
            raise PermissionDeniedError("This inquiry was not sent to you.")
        if inquiry.status is InquiryStatus.PENDING:
            raise FailedPreconditionError("Respond to the inquiry before archiving it.")
        self.store.run_atomic_batch([
            Write.update(
                Collection.INQUIRIES,
                inquiry.id,
                {"status": InquiryStatus.ARCHIVED.value},
                expected_version=inquiry.version,
            )
        ])

    def _resolve(
        self,
        inquiry_id: str,
        status: InquiryStatus,
        caller_id: str,
        check: Callable[[Inquiry, str], None],
    ) -> bool:
        """
        Move an inquiry to ``status``, deleting its project if nothing is left open.

        While the project could still be cancelled, every resolution also
        writes the project at the version it read, so two inquiries resolved
        at once conflict instead of each seeing the other as open. The loser
        reloads and tries once more.
        """
        for attempt in range(RESOLVE_ATTEMPTS):
            inquiry = self._load_inquiry(inquiry_id)
            check(inquiry, caller_id)
            writes = [
                Write.update(
                    Collection.INQUIRIES,
                    inquiry.id,
                    {"status": status.value, "resolvedAt": SERVER_TIMESTAMP},
                    expected_version=inquiry.version,
                )
            ]
            project_writes = self._project_writes(inquiry, caller_id)
            writes.extend(project_writes)
            try:
                self.store.run_atomic_batch(writes)
                break
            except ConcurrentModificationError:
                if attempt + 1 == RESOLVE_ATTEMPTS:
                    raise
                LOGGER.info(
                    f"Inquiry {inquiry.id} raced another change; retrying",
                    extra={"extra_data": {"project_id": inquiry.project_id}},
                )

        deleted = any(w.op is WriteOp.DELETE for w in project_writes)
        log_state_change(
            LOGGER, "inquiry", inquiry.id, inquiry.status.value, status.value,
            project_id=inquiry.project_id, caller_id=caller_id,
        )
        if deleted:
            log_state_change(
                LOGGER, "project", inquiry.project_id, ProjectStatus.INQUIRY.value, None,
                reason="no open inquiries remain",
            )
        return deleted

    def _project_writes(self, resolving: Inquiry, caller_id: str) -> List[Write]:
        """
        Project side of a resolution.

        Deletes the project when ``resolving`` is its last open inquiry, and
        otherwise touches it at the read version while it is still cancellable.
        """
        project = self._load_project(resolving.project_id)
        if project is None:
            return []
        if project.status is not ProjectStatus.INQUIRY or project.has_assignment:
            return []

        siblings = self.store.query(Collection.INQUIRIES, [("projectId", "==", project.id)])
        for snapshot in siblings:
            if snapshot.id == resolving.id:
                continue
            if not Inquiry.from_document(snapshot.id, snapshot.data).is_resolved:
                return [
                    Write.update(
                        Collection.PROJECTS,
                        project.id,
                        {"updatedAt": SERVER_TIMESTAMP},
                        expected_version=project.version,
                    )
                ]

        return [
            Write.delete(Collection.PROJECTS, project.id, expected_version=project.version),
            activity_write(
                self.store,
                ActivityType.PROJECT_CANCELLED,
                actor_id=caller_id,
                project_id=project.id,
                property_id=project.property_id,
                message=f"Project for {project.property_name or 'property'} cancelled.",
                visible_to=[project.owner_id, resolving.to_user_id],
            ),
        ]


__all__ = ["InquiryService", "INBOX_RECEIVED", "INBOX_SENT"]
