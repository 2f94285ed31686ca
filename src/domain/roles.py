"""Marketplace participants and the engagement each professional role opens."""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, ClassVar, Tuple, Union, assert_never

from core.exceptions import FailedPreconditionError, InvalidArgumentError
from core.models import ProjectStatus


class UserRole(str, enum.Enum):
    LANDOWNER = "landowner"
    FORESTER = "forester"
    TIMBER_BUYER = "timber-buyer"
    LOGGING_CONTRACTOR = "logging-contractor"
    SERVICE_PROVIDER = "service-provider"


ROLE_LABELS = {
    UserRole.LANDOWNER: "Landowner",
    UserRole.FORESTER: "Forester",
    UserRole.TIMBER_BUYER: "Timber Buyer",
    UserRole.LOGGING_CONTRACTOR: "Logging Contractor",
    UserRole.SERVICE_PROVIDER: "Service Provider",
}


@dataclass(frozen=True, slots=True)
class Landowner:
    user_id: str
    role: ClassVar[UserRole] = UserRole.LANDOWNER


@dataclass(frozen=True, slots=True)
class Forester:
    user_id: str
    specialties: Tuple[str, ...] = ()
    role: ClassVar[UserRole] = UserRole.FORESTER


@dataclass(frozen=True, slots=True)
class TimberBuyer:
    user_id: str
    mills: str = ""
    products: Tuple[str, ...] = ()
    role: ClassVar[UserRole] = UserRole.TIMBER_BUYER


@dataclass(frozen=True, slots=True)
class LoggingContractor:
    user_id: str
    services: Tuple[str, ...] = ()
    equipment: str = ""
    insured: bool = False
    role: ClassVar[UserRole] = UserRole.LOGGING_CONTRACTOR


@dataclass(frozen=True, slots=True)
class ServiceProvider:
    user_id: str
    services: Tuple[str, ...] = ()
    insured: bool = False
    role: ClassVar[UserRole] = UserRole.SERVICE_PROVIDER


Participant = Union[Landowner, Forester, TimberBuyer, LoggingContractor, ServiceProvider]


def parse_role(value: Any) -> UserRole:
    try:
        return UserRole(value)
    except ValueError as e:
        raise InvalidArgumentError(f"Unknown role: {value!r}") from e


def participant_from_claims(user_id: str, role: Any, **fields: Any) -> Participant:
    """Build the participant variant for a role, keeping only that role's fields."""
    parsed = parse_role(role)
    if parsed is UserRole.LANDOWNER:
        return Landowner(user_id)
    if parsed is UserRole.FORESTER:
        return Forester(user_id, specialties=tuple(fields.get("specialties") or ()))
    if parsed is UserRole.TIMBER_BUYER:
        return TimberBuyer(
            user_id,
            mills=str(fields.get("mills") or ""),
            products=tuple(fields.get("products") or ()),
        )
    if parsed is UserRole.LOGGING_CONTRACTOR:
        return LoggingContractor(
            user_id,
            services=tuple(fields.get("services") or ()),
            equipment=str(fields.get("equipment") or ""),
            insured=bool(fields.get("insurance")),
        )
    if parsed is UserRole.SERVICE_PROVIDER:
        return ServiceProvider(
            user_id,
            services=tuple(fields.get("services") or ()),
            insured=bool(fields.get("insurance")),
        )
    assert_never(parsed)


@dataclass(frozen=True, slots=True)
class Engagement:
    """Where an accepted quote sends the project, and which field records the professional."""

    status: ProjectStatus
    assignment_field: str


FORESTER_ENGAGEMENT = Engagement(ProjectStatus.CRUISE_IN_PROGRESS, "foresterId")
SUPPLIER_ENGAGEMENT = Engagement(ProjectStatus.HARVEST_IN_PROGRESS, "supplierId")


def resolve_engagement(role: Any) -> Engagement:
    """
    Map a quoting professional's role to its engagement.

    Raises:
        FailedPreconditionError: the role cannot be engaged through a quote.
    """
    try:
        parsed = UserRole(role)
    except ValueError as e:
        raise FailedPreconditionError("Invalid professional role for this action.") from e

    if parsed is UserRole.FORESTER:
        return FORESTER_ENGAGEMENT
    if parsed is UserRole.TIMBER_BUYER or parsed is UserRole.LOGGING_CONTRACTOR:
        return SUPPLIER_ENGAGEMENT
    if parsed is UserRole.SERVICE_PROVIDER or parsed is UserRole.LANDOWNER:
        raise FailedPreconditionError("Invalid professional role for this action.")
    assert_never(parsed)


def is_professional(participant: Participant) -> bool:
    return not isinstance(participant, Landowner)


__all__ = [
    "UserRole",
    "ROLE_LABELS",
    "Landowner",
    "Forester",
    "TimberBuyer",
    "LoggingContractor",
    "ServiceProvider",
    "Participant",
    "Engagement",
    "parse_role",
    "participant_from_claims",
    "resolve_engagement",
    "is_professional",
]
