"""Project lifecycle service.

Every status change goes through :data:`TRANSITIONS`: the table names who may
trigger it and from which states. A transition commits as one atomic batch
(project update pinned to the version that was read, plus one activity
entry), so a stale caller fails instead of overwriting a concurrent change.
"""
from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, FrozenSet, List, Optional, Sequence

from core.exceptions import (
    FailedPreconditionError,
    InvalidArgumentError,
    NotFoundError,
    PermissionDeniedError,
)
from core.logging_config import get_logger, log_state_change
from core.models import ActivityType, Collection, InquiryStatus, ProjectStatus
from core.store import DELETE_FIELD, SERVER_TIMESTAMP, ArrayRemove, DocumentStore, Write
from core.types import CruiseData, Project, Property
from core.utils import parse_date, to_float
from domain.activity import activity_write
from domain.inventory import (
    InventoryTotals,
    aggregate_inventory,
    apply_entire_tract_acreage,
    is_entire_tract,
    normalize_inventory,
    validate_inventory_layout,
)
from domain.report import build_sale_report

LOGGER = get_logger(__name__)

RATE_CATEGORIES = ("mill", "stumpage", "logging")


class Actor(str, enum.Enum):
    """Who may trigger a transition."""

    OWNER = "owner"
    FORESTER = "forester"


@dataclass(frozen=True)
class Transition:
    name: str
    sources: FrozenSet[ProjectStatus]
    target: Optional[ProjectStatus]
    actor: Actor


TRANSITIONS: Dict[str, Transition] = {
    # Target depends on the quoting professional's role
    "accept_quote": Transition(
        "accept_quote",
        frozenset({ProjectStatus.INQUIRY}),
        None,
        Actor.OWNER,
    ),
    "submit_cruise": Transition(
        "submit_cruise",
        frozenset({ProjectStatus.CRUISE_IN_PROGRESS}),
        ProjectStatus.PENDING_APPROVAL,
        Actor.FORESTER,
    ),
    "retract_cruise": Transition(
        "retract_cruise",
        frozenset({ProjectStatus.PENDING_APPROVAL}),
        ProjectStatus.CRUISE_IN_PROGRESS,
        Actor.FORESTER,
    ),
    "complete": Transition(
        "complete",
        frozenset({ProjectStatus.PENDING_APPROVAL, ProjectStatus.HARVEST_IN_PROGRESS}),
        ProjectStatus.COMPLETED,
        Actor.OWNER,
    ),
    "post_for_bids": Transition(
        "post_for_bids",
        frozenset({ProjectStatus.PENDING_APPROVAL}),
        ProjectStatus.OPEN_FOR_BIDS,
        Actor.OWNER,
    ),
    "decline": Transition(
        "decline",
        frozenset({ProjectStatus.CRUISE_IN_PROGRESS, ProjectStatus.PENDING_APPROVAL}),
        ProjectStatus.INQUIRY,
        Actor.FORESTER,
    ),
}

TERMINAL_STATES = frozenset({ProjectStatus.COMPLETED, ProjectStatus.CANCELLED})


def check_transition(project: Project, name: str, caller_id: str) -> Transition:
    """
    Guard a transition: caller identity first, then source state.

    Raises:
        PermissionDeniedError: caller is not the party the transition belongs to.
        FailedPreconditionError: project is not in a source state.
    """
    transition = TRANSITIONS[name]

    if transition.actor is Actor.OWNER:
        if caller_id != project.owner_id:
            raise PermissionDeniedError("Only the project owner can do this.")
    elif caller_id != project.forester_id:
        raise PermissionDeniedError("Only the assigned forester can do this.")

    if project.status not in transition.sources:
        allowed = ", ".join(sorted(s.value for s in transition.sources))
        raise FailedPreconditionError(
            f"Cannot {name.replace('_', ' ')} a project in status "
            f"'{project.status.value}' (allowed: {allowed})."
        )
    return transition


def allowed_transitions(project: Project, caller_id: str) -> List[str]:
    """Transition names the caller could trigger right now."""
    names = []
    for name in TRANSITIONS:
        try:
            check_transition(project, name, caller_id)
        except (PermissionDeniedError, FailedPreconditionError):
            continue
        names.append(name)
    return names


# =============================================================================
# Rate sets
# =============================================================================


def normalize_rate_sets(rate_sets: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Clean a pricing schedule for storage.

    Every set needs an effective date; rows without a product or a numeric
    price are dropped. Sets come back ordered by effective date.
    """
    cleaned = []
    for index, rate_set in enumerate(rate_sets):
        effective = parse_date(rate_set.get("effectiveDate"))
        if effective is None:
            raise InvalidArgumentError(
                f"Rate set {index + 1} needs an effective date (YYYY-MM-DD)."
            )
        entry: Dict[str, Any] = {"effectiveDate": effective.isoformat()}
        for category in RATE_CATEGORIES:
            rows = []
            for row in rate_set.get(category) or []:
                product = str(row.get("product") or "").strip()
                price = to_float(row.get("price"), default=float("nan"))
                if product and not math.isnan(price):
                    rows.append({"product": product, "price": price})
            entry[category] = rows
        cleaned.append(entry)
    cleaned.sort(key=lambda entry: entry["effectiveDate"])
    return cleaned


def rate_set_in_effect(rate_sets: Sequence[Dict[str, Any]], day: date) -> Optional[Dict[str, Any]]:
    """The latest rate set whose effective date is on or before ``day``."""
    current = None
    current_date = None
    for rate_set in rate_sets:
        effective = parse_date(rate_set.get("effectiveDate"))
        if effective is None or effective > day:
            continue
        if current_date is None or effective >= current_date:
            current, current_date = rate_set, effective
    return current


# =============================================================================
# Service
# =============================================================================


class ProjectService:
    """Reads and lifecycle transitions for projects."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def load(self, project_id: str) -> Project:
        snapshot = self.store.get(Collection.PROJECTS, project_id)
        if snapshot is None:
            raise NotFoundError("Project not found.")
        return Project.from_document(snapshot.id, snapshot.data, snapshot.version)

    def load_property(self, property_id: str) -> Property:
        snapshot = self.store.get(Collection.PROPERTIES, property_id)
        if snapshot is None:
            raise NotFoundError("Property not found.")
        return Property.from_document(snapshot.id, snapshot.data)

    def get_project(self, project_id: str, caller_id: str) -> Project:
        """A project, visible to its owner and to every involved professional."""
        project = self.load(project_id)
        if caller_id != project.owner_id and caller_id not in project.involved_users:
            raise PermissionDeniedError("You do not have access to this project.")
        return project

    def list_projects(self, caller_id: str) -> List[Project]:
        owned = self.store.query(Collection.PROJECTS, [("ownerId", "==", caller_id)])
        involved = self.store.query(Collection.PROJECTS, [("involvedUsers", "array-contains", caller_id)])
        seen = set()
        projects = []
        for snapshot in owned + involved:
            if snapshot.id in seen:
                continue
            seen.add(snapshot.id)
            projects.append(Project.from_document(snapshot.id, snapshot.data, snapshot.version))
        return projects

    def inventory_totals(self, project_id: str, caller_id: str) -> InventoryTotals:
        project = self.get_project(project_id, caller_id)
        stands = project.cruise_data.inventory if project.cruise_data else []
        acreage = None
        if is_entire_tract(stands):
            acreage = self.load_property(project.property_id).acreage
        return aggregate_inventory(stands, property_acreage=acreage)

    def report(self, project_id: str, caller_id: str) -> Dict[str, Any]:
        project = self.get_project(project_id, caller_id)
        if project.cruise_data is None:
            raise FailedPreconditionError("No cruise has been submitted for this project.")
        return build_sale_report(project.cruise_data, owner_name=project.owner_name)

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def _commit(
        self,
        project: Project,
        transition: Transition,
        caller_id: str,
        activity_type: ActivityType,
        message: str,
        changes: Optional[Dict[str, Any]] = None,
        extra_writes: Sequence[Write] = (),
    ) -> None:
        update: Dict[str, Any] = {"updatedAt": SERVER_TIMESTAMP}
        if transition.target is not None:
            update["status"] = transition.target.value
        update.update(changes or {})

        writes = [
            Write.update(Collection.PROJECTS, project.id, update, expected_version=project.version),
            *extra_writes,
            activity_write(
                self.store,
                activity_type,
                actor_id=caller_id,
                project_id=project.id,
                property_id=project.property_id,
                message=message,
                visible_to=[project.owner_id, *project.involved_users],
            ),
        ]
        self.store.run_atomic_batch(writes)

        log_state_change(
            LOGGER,
            "project",
            project.id,
            project.status.value,
            update.get("status", project.status.value),
            transition=transition.name,
            caller_id=caller_id,
        )

    def submit_cruise(self, project_id: str, caller_id: str, cruise_data: CruiseData) -> InventoryTotals:
        """
        Attach the cruise and send the project to the owner for approval.

        In Entire Tract mode the single stand takes the property's acreage.
        Returns the totals computed from exactly what was stored.
        """
        project = self.load(project_id)
        transition = check_transition(project, "submit_cruise", caller_id)

        validate_inventory_layout(cruise_data.inventory)
        stands = normalize_inventory(cruise_data.inventory)
        acreage = None
        if is_entire_tract(stands):
            acreage = self.load_property(project.property_id).acreage
            stands = apply_entire_tract_acreage(stands, acreage)

        stored = CruiseData(
            details=cruise_data.details,
            inventory=stands,
            annotations=cruise_data.annotations,
        )
        self._commit(
            project,
            transition,
            caller_id,
            ActivityType.CRUISE_SUBMITTED,
            f"Cruise submitted for {project.property_name or 'property'}.",
            changes={"cruiseData": stored.to_dict()},
        )
        return aggregate_inventory(stands, property_acreage=acreage)

    def retract_cruise(self, project_id: str, caller_id: str) -> None:
        """Return a submitted cruise to the forester for editing. cruiseData is untouched."""
        project = self.load(project_id)
        transition = check_transition(project, "retract_cruise", caller_id)
        self._commit(
            project,
            transition,
            caller_id,
            ActivityType.CRUISE_RETRACTED,
            "Cruise retracted for edits.",
        )

    def decline(self, project_id: str, caller_id: str) -> None:
        """
        The assigned forester steps away; the owner may engage someone else.

        The forester leaves the project's involved users, their accepted
        inquiry is marked declined so the same quote cannot be accepted
        again, and their property access is revoked unless another project
        or open inquiry on the property still needs it.
        """
        project = self.load(project_id)
        transition = check_transition(project, "decline", caller_id)
        self._commit(
            project,
            transition,
            caller_id,
            ActivityType.PROJECT_DECLINED,
            "The forester declined the project.",
            changes={
                "foresterId": DELETE_FIELD,
                "quoteAcceptedAt": DELETE_FIELD,
                "acceptedQuoteId": DELETE_FIELD,
                "involvedUsers": ArrayRemove(caller_id),
            },
            extra_writes=self._release_writes(project, caller_id),
        )

    def _release_writes(self, project: Project, forester_id: str) -> List[Write]:
        writes = []
        quote = self.store.get(Collection.QUOTES, project.accepted_quote_id) if project.accepted_quote_id else None
        declined_inquiry_id = quote.get("inquiryId") if quote is not None else None
        if declined_inquiry_id:
            inquiry = self.store.get(Collection.INQUIRIES, declined_inquiry_id)
            if inquiry is not None and inquiry.get("status") == InquiryStatus.QUOTED.value:
                writes.append(
                    Write.update(
                        Collection.INQUIRIES,
                        inquiry.id,
                        {"status": InquiryStatus.DECLINED.value, "resolvedAt": SERVER_TIMESTAMP},
                        expected_version=inquiry.version,
                    )
                )

        other_projects = [
            snap
            for snap in self.store.query(Collection.PROJECTS, [("involvedUsers", "array-contains", forester_id)])
            if snap.id != project.id and snap.get("propertyId") == project.property_id
        ]
        open_inquiries = [
            snap
            for snap in self.store.query(Collection.INQUIRIES, [("toUserId", "==", forester_id)])
            if snap.id != declined_inquiry_id
            and snap.get("propertyId") == project.property_id
            and snap.get("status") in (InquiryStatus.PENDING.value, InquiryStatus.QUOTED.value)
        ]
        if not other_projects and not open_inquiries:
            writes.append(
                Write.update(
                    Collection.PROPERTIES,
                    project.property_id,
                    {"authorizedUsers": ArrayRemove(forester_id)},
                )
            )
        return writes

    def complete(self, project_id: str, caller_id: str) -> None:
        project = self.load(project_id)
        transition = check_transition(project, "complete", caller_id)
        self._commit(
            project,
            transition,
            caller_id,
            ActivityType.PROJECT_COMPLETED,
            f"{project.property_name or 'Project'} marked complete.",
            changes={"completedAt": SERVER_TIMESTAMP},
        )

    def post_for_bids(self, project_id: str, caller_id: str) -> str:
        """Approve the cruise and publish a timber sale built from it. Returns the sale id."""
        project = self.load(project_id)
        transition = check_transition(project, "post_for_bids", caller_id)
        if project.cruise_data is None:
            raise FailedPreconditionError("A cruise must be submitted before posting a sale.")

        cruise = project.cruise_data.to_dict()
        sale_id = self.store.new_id()
        sale = {
            **cruise["details"],
            "ownerId": project.owner_id,
            "ownerName": project.owner_name,
            "projectId": project.id,
            "propertyId": project.property_id,
            "propertyName": project.property_name,
            "foresterId": project.forester_id,
            "cruiseData": cruise,
            "status": "open",
            "createdAt": SERVER_TIMESTAMP,
        }
        self._commit(
            project,
            transition,
            caller_id,
            ActivityType.SALE_POSTED,
            f"Timber sale posted for {project.property_name or 'property'}.",
            changes={"saleId": sale_id},
            extra_writes=[Write.set(Collection.TIMBER_SALES, sale_id, sale, expected_version=0)],
        )
        return sale_id

    # -------------------------------------------------------------------------
    # Pricing
    # -------------------------------------------------------------------------

    def save_rate_sets(
        self,
        project_id: str,
        caller_id: str,
        rate_sets: Sequence[Dict[str, Any]],
    ) -> List[Dict[str, Any]]:
        project = self.load(project_id)
        if caller_id not in (project.owner_id, project.assigned_professional_id):
            raise PermissionDeniedError("Only the owner or assigned professional can set rates.")
        if project.status in TERMINAL_STATES:
            raise FailedPreconditionError("Rates cannot change on a closed project.")

        cleaned = normalize_rate_sets(rate_sets)
        self.store.run_atomic_batch([
            Write.update(
                Collection.PROJECTS,
                project.id,
                {"rateSets": cleaned, "updatedAt": SERVER_TIMESTAMP},
                expected_version=project.version,
            )
        ])
        LOGGER.info(
            f"Saved {len(cleaned)} rate set(s) for project {project.id}",
            extra={"extra_data": {"project_id": project.id, "caller_id": caller_id}},
        )
        return cleaned


__all__ = [
    "Actor",
    "Transition",
    "TRANSITIONS",
    "TERMINAL_STATES",
    "RATE_CATEGORIES",
    "check_transition",
    "allowed_transitions",
    "normalize_rate_sets",
    "rate_set_in_effect",
    "ProjectService",
]
