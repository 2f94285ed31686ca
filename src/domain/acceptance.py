"""Quote acceptance.

Accepting a quote assigns the quoting professional to the project, grants
them access to the property, and records the event in the activity feed.
All guards run before anything is written. The writes then commit as one
batch with the project and the quoted inquiry pinned to the versions the
guards saw, so two owners racing on one project cannot both assign a
professional and a withdrawn inquiry never turns into an assignment.
"""
from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from core.exceptions import (
    ConcurrentModificationError,
    FailedPreconditionError,
    InternalError,
    InvalidArgumentError,
    NotFoundError,
    PermissionDeniedError,
    TimberMarketError,
    UnauthenticatedError,
)
from core.logging_config import get_logger, log_state_change
from core.models import ActivityType, Collection, InquiryStatus, ProjectStatus
from core.store import SERVER_TIMESTAMP, ArrayUnion, DocumentStore, Write
from core.types import Inquiry, Project, Quote
from domain.activity import activity_write
from domain.roles import Engagement, resolve_engagement

LOGGER = get_logger(__name__)

ALREADY_ASSIGNED = "This project already has an assigned professional."


class QuoteAcceptanceService:
    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    def accept_quote(self, quote_id: str, project_id: str, caller_id: str) -> Engagement:
        """
        Accept ``quote_id`` on behalf of the project's owner.

        Returns:
            The engagement applied (destination status and assignment field).

        Raises:
            NotFoundError: project, quote, inquiry or property missing.
            PermissionDeniedError: caller does not own the project.
            InvalidArgumentError: quote belongs to another project.
            FailedPreconditionError: a professional is already assigned, the
                project has left the inquiry stage, the quote's inquiry is no
                longer quoted, the quoting role cannot be engaged, or another
                acceptance won the race.
        """
        project_snap = self.store.get(Collection.PROJECTS, project_id)
        if project_snap is None:
            raise NotFoundError("Project not found.")
        project = Project.from_document(project_snap.id, project_snap.data, project_snap.version)

        if project.owner_id != caller_id:
            raise PermissionDeniedError("You do not have permission to modify this project.")

        quote_snap = self.store.get(Collection.QUOTES, quote_id)
        if quote_snap is None:
            raise NotFoundError("Quote not found.")
        quote = Quote.from_document(quote_snap.id, quote_snap.data)

        if quote.project_id and quote.project_id != project.id:
            raise InvalidArgumentError("This quote was not made for this project.")
        if project.has_assignment:
            raise FailedPreconditionError(ALREADY_ASSIGNED)
        if project.status is not ProjectStatus.INQUIRY:
            raise FailedPreconditionError(
                f"Quotes can only be accepted while the project is in inquiry "
                f"(current status: {project.status.value})."
            )

        engagement = resolve_engagement(quote.professional_role)
        inquiry = self._load_open_inquiry(quote)

        property_id = quote.property_id or project.property_id
        if self.store.get(Collection.PROPERTIES, property_id) is None:
            raise NotFoundError("Property not found.")

        professional_id = quote.professional_id
        writes = [
            Write.update(
                Collection.PROJECTS,
                project.id,
                {
                    "status": engagement.status.value,
                    engagement.assignment_field: professional_id,
                    "quoteAcceptedAt": SERVER_TIMESTAMP,
                    "acceptedQuoteId": quote.id,
                    "involvedUsers": ArrayUnion(professional_id),
                    "updatedAt": SERVER_TIMESTAMP,
                },
                expected_version=project.version,
            ),
            Write.update(
                Collection.INQUIRIES,
                inquiry.id,
                {"acceptedAt": SERVER_TIMESTAMP},
                expected_version=inquiry.version,
            ),
            Write.update(
                Collection.PROPERTIES,
                property_id,
                {"authorizedUsers": ArrayUnion(professional_id)},
            ),
            activity_write(
                self.store,
                ActivityType.QUOTE_ACCEPTED,
                actor_id=caller_id,
                project_id=project.id,
                property_id=property_id,
                message=f"Quote accepted for {project.property_name or 'property'}.",
                visible_to=[professional_id, *project.involved_users],
                details={"quoteId": quote.id, "amount": quote.amount},
            ),
        ]

        try:
            self.store.run_atomic_batch(writes)
        except ConcurrentModificationError as e:
            current = self.store.get(Collection.PROJECTS, project.id)
            if current is not None and (current.get("foresterId") or current.get("supplierId")):
                LOGGER.warning(
                    f"Lost acceptance race on project {project.id}",
                    extra={"extra_data": {"project_id": project.id, "quote_id": quote.id}},
                )
                raise FailedPreconditionError(ALREADY_ASSIGNED) from e
            self._load_open_inquiry(quote)
            raise

        log_state_change(
            LOGGER,
            "project",
            project.id,
            project.status.value,
            engagement.status.value,
            transition="accept_quote",
            quote_id=quote.id,
            professional_id=professional_id,
            assignment_field=engagement.assignment_field,
        )
        return engagement

    def _load_open_inquiry(self, quote: Quote) -> Inquiry:
        """The inquiry ``quote`` answered, which must still be quoted to be accepted."""
        snapshot = self.store.get(Collection.INQUIRIES, quote.inquiry_id) if quote.inquiry_id else None
        if snapshot is None:
            raise NotFoundError("Inquiry for this quote not found.")
        inquiry = Inquiry.from_document(snapshot.id, snapshot.data, snapshot.version)
        if inquiry.status is not InquiryStatus.QUOTED:
            raise FailedPreconditionError(
                f"The inquiry for this quote is {inquiry.status.value}; it can no longer be accepted."
            )
        return inquiry


def call_accept_quote(
    store: DocumentStore,
    payload: Mapping[str, Any],
    caller_id: Optional[str],
) -> Dict[str, Any]:
    """
    Remote-callable wrapper around :meth:`QuoteAcceptanceService.accept_quote`.

    Never raises: returns ``{"success": True, "message": ...}`` or
    ``{"success": False, "error": {"kind": ..., "message": ...}}``. Internal
    failures are logged with detail and reported generically.
    """
    try:
        if not caller_id:
            raise UnauthenticatedError("You must be logged in to accept a quote.")
        quote_id = payload.get("quoteId")
        project_id = payload.get("projectId")
        if not quote_id or not project_id:
            raise InvalidArgumentError("The function must be called with 'quoteId' and 'projectId'.")

        QuoteAcceptanceService(store).accept_quote(str(quote_id), str(project_id), caller_id)
    except TimberMarketError as e:
        if isinstance(e, InternalError):
            LOGGER.exception("Error in accept_quote")
            return {"success": False, "error": InternalError().to_dict()}
        LOGGER.warning(
            f"accept_quote rejected: {e.kind}: {e.message}",
            extra={"extra_data": {"caller_id": caller_id, "payload": dict(payload)}},
        )
        return {"success": False, "error": e.to_dict()}
    except Exception:
        LOGGER.exception("Unexpected error in accept_quote")
        return {"success": False, "error": InternalError().to_dict()}

    return {"success": True, "message": "Quote accepted successfully!"}


__all__ = ["QuoteAcceptanceService", "call_accept_quote", "ALREADY_ASSIGNED"]
