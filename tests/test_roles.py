"""Tests for participant roles and engagements."""
from __future__ import annotations

import pytest

from core.exceptions import FailedPreconditionError, InvalidArgumentError
from core.models import ProjectStatus
from domain.roles import (
    Forester,
    Landowner,
    LoggingContractor,
    ServiceProvider,
    TimberBuyer,
    UserRole,
    is_professional,
    parse_role,
    participant_from_claims,
    resolve_engagement,
)


class TestResolveEngagement:
    def test_forester_opens_cruise(self):
        engagement = resolve_engagement("forester")

        assert engagement.status is ProjectStatus.CRUISE_IN_PROGRESS
        assert engagement.assignment_field == "foresterId"

    @pytest.mark.parametrize("role", ["timber-buyer", "logging-contractor", UserRole.TIMBER_BUYER])
    def test_suppliers_open_harvest(self, role):
        engagement = resolve_engagement(role)

        assert engagement.status is ProjectStatus.HARVEST_IN_PROGRESS
        assert engagement.assignment_field == "supplierId"

    @pytest.mark.parametrize("role", ["service-provider", "landowner", "wizard", "", None])
    def test_other_roles_cannot_be_engaged(self, role):
        with pytest.raises(FailedPreconditionError):
            resolve_engagement(role)


class TestParticipants:
    def test_each_role_builds_its_variant(self):
        assert isinstance(participant_from_claims("u", "landowner"), Landowner)
        assert isinstance(participant_from_claims("u", "forester"), Forester)
        assert isinstance(participant_from_claims("u", "timber-buyer"), TimberBuyer)
        assert isinstance(participant_from_claims("u", "logging-contractor"), LoggingContractor)
        assert isinstance(participant_from_claims("u", "service-provider"), ServiceProvider)

    def test_role_specific_fields(self):
        contractor = participant_from_claims(
            "u", "logging-contractor", services=["Thinning"], equipment="Feller buncher", insurance="yes"
        )

        assert contractor.services == ("Thinning",)
        assert contractor.equipment == "Feller buncher"
        assert contractor.insured is True
        assert contractor.role is UserRole.LOGGING_CONTRACTOR

    def test_unknown_role_rejected(self):
        with pytest.raises(InvalidArgumentError):
            parse_role("ranger")

    def test_only_landowners_are_not_professionals(self):
        assert not is_professional(Landowner("u"))
        assert is_professional(Forester("u"))
        assert is_professional(ServiceProvider("u"))
