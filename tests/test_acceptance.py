"""Tests for quote acceptance."""
from __future__ import annotations

import threading

import pytest
from sqlalchemy.orm import sessionmaker

from conftest import BUYER_ID, FORESTER_ID, OWNER_ID, STRANGER_ID, InterceptingStore, Seeder
from core.db import create_db_engine, init_db
from core.exceptions import (
    FailedPreconditionError,
    InvalidArgumentError,
    NotFoundError,
    PermissionDeniedError,
)
from core.models import Collection, ProjectStatus
from core.store import SqlDocumentStore
from domain.acceptance import ALREADY_ASSIGNED, QuoteAcceptanceService, call_accept_quote
from domain.inquiries import InquiryService


class BrokenStore:
    def get(self, collection, doc_id):
        raise RuntimeError("database is on fire")


@pytest.fixture
def service(store) -> QuoteAcceptanceService:
    return QuoteAcceptanceService(store)


@pytest.fixture
def property_id(seed) -> str:
    return seed.property()


@pytest.fixture
def project_id(seed, property_id) -> str:
    return seed.project(property_id)


def project_doc(store, project_id):
    return store.get(Collection.PROJECTS, project_id).data


class TestEngagement:
    def test_forester_quote_starts_cruise(self, service, store, seed, property_id, project_id):
        quote_id = seed.quote(project_id, property_id, FORESTER_ID, "forester", amount=2500.0)

        engagement = service.accept_quote(quote_id, project_id, OWNER_ID)

        assert engagement.status is ProjectStatus.CRUISE_IN_PROGRESS
        doc = project_doc(store, project_id)
        assert doc["status"] == "cruise_in_progress"
        assert doc["foresterId"] == FORESTER_ID
        assert doc["acceptedQuoteId"] == quote_id
        assert doc["involvedUsers"] == [FORESTER_ID]
        assert "quoteAcceptedAt" in doc
        assert "supplierId" not in doc

    @pytest.mark.parametrize("role", ["timber-buyer", "logging-contractor"])
    def test_supplier_quote_starts_harvest(self, service, store, seed, property_id, project_id, role):
        quote_id = seed.quote(project_id, property_id, BUYER_ID, role)

        service.accept_quote(quote_id, project_id, OWNER_ID)

        doc = project_doc(store, project_id)
        assert doc["status"] == "harvest_in_progress"
        assert doc["supplierId"] == BUYER_ID
        assert "foresterId" not in doc

    def test_service_provider_cannot_be_engaged(self, service, store, seed, property_id, project_id):
        quote_id = seed.quote(project_id, property_id, "provider-1", "service-provider")

        with pytest.raises(FailedPreconditionError, match="Invalid professional role"):
            service.accept_quote(quote_id, project_id, OWNER_ID)
        assert project_doc(store, project_id)["status"] == "inquiry"

    def test_property_access_and_activity_recorded(self, service, store, seed, property_id, project_id):
        quote_id = seed.quote(project_id, property_id, FORESTER_ID, "forester", amount=1800.0)

        service.accept_quote(quote_id, project_id, OWNER_ID)

        assert store.get(Collection.PROPERTIES, property_id).data["authorizedUsers"] == [FORESTER_ID]
        (entry,) = store.query(Collection.ACTIVITY, [("projectId", "==", project_id)])
        assert entry.get("type") == "quote_accepted"
        assert entry.get("details") == {"quoteId": quote_id, "amount": 1800.0}
        assert FORESTER_ID in entry.get("visibleTo")
        assert OWNER_ID in entry.get("visibleTo")


class TestGuards:
    def test_only_owner(self, service, store, seed, property_id, project_id):
        quote_id = seed.quote(project_id, property_id)

        with pytest.raises(PermissionDeniedError):
            service.accept_quote(quote_id, project_id, STRANGER_ID)
        assert project_doc(store, project_id)["status"] == "inquiry"

    def test_missing_project(self, service, seed, property_id):
        quote_id = seed.quote("ghost", property_id)

        with pytest.raises(NotFoundError):
            service.accept_quote(quote_id, "ghost", OWNER_ID)

    def test_missing_quote(self, service, project_id):
        with pytest.raises(NotFoundError):
            service.accept_quote("ghost", project_id, OWNER_ID)

    def test_owner_checked_before_quote_lookup(self, service, project_id):
        with pytest.raises(PermissionDeniedError):
            service.accept_quote("ghost", project_id, STRANGER_ID)

    def test_quote_for_another_project(self, service, seed, property_id, project_id):
        other_project = seed.project(property_id)
        quote_id = seed.quote(other_project, property_id)

        with pytest.raises(InvalidArgumentError):
            service.accept_quote(quote_id, project_id, OWNER_ID)

    def test_already_assigned(self, service, seed, property_id):
        project_id = seed.project(property_id, ProjectStatus.CRUISE_IN_PROGRESS, forester_id=FORESTER_ID)
        quote_id = seed.quote(project_id, property_id, BUYER_ID, "timber-buyer")

        with pytest.raises(FailedPreconditionError, match=ALREADY_ASSIGNED):
            service.accept_quote(quote_id, project_id, OWNER_ID)

    def test_unassigned_but_past_inquiry(self, service, seed, property_id):
        project_id = seed.project(property_id, ProjectStatus.COMPLETED)
        quote_id = seed.quote(project_id, property_id)

        with pytest.raises(FailedPreconditionError, match="inquiry"):
            service.accept_quote(quote_id, project_id, OWNER_ID)

    def test_second_acceptance_fails(self, service, store, seed, property_id, project_id):
        first = seed.quote(project_id, property_id, FORESTER_ID, "forester")
        second = seed.quote(project_id, property_id, "forester-2", "forester")

        service.accept_quote(first, project_id, OWNER_ID)
        with pytest.raises(FailedPreconditionError, match=ALREADY_ASSIGNED):
            service.accept_quote(second, project_id, OWNER_ID)

        doc = project_doc(store, project_id)
        assert doc["foresterId"] == FORESTER_ID
        assert doc["acceptedQuoteId"] == first

    @pytest.mark.parametrize("inquiry_status", ["withdrawn", "archived", "declined"])
    def test_quote_on_closed_inquiry_cannot_be_accepted(
        self, service, store, seed, property_id, project_id, inquiry_status
    ):
        quote_id = seed.quote(project_id, property_id, inquiry_status=inquiry_status)

        with pytest.raises(FailedPreconditionError, match=inquiry_status):
            service.accept_quote(quote_id, project_id, OWNER_ID)

        doc = project_doc(store, project_id)
        assert doc["status"] == "inquiry"
        assert "foresterId" not in doc

    def test_quote_without_inquiry(self, service, store, seed, property_id, project_id):
        quote_id = seed.quote(project_id, property_id)
        store.update(Collection.QUOTES, quote_id, {"inquiryId": "ghost"})

        with pytest.raises(NotFoundError):
            service.accept_quote(quote_id, project_id, OWNER_ID)

    def test_accepted_inquiry_stays_quoted(self, service, store, seed, property_id, project_id):
        quote_id = seed.quote(project_id, property_id)

        service.accept_quote(quote_id, project_id, OWNER_ID)

        inquiry = store.get(Collection.INQUIRIES, store.get(Collection.QUOTES, quote_id).data["inquiryId"])
        assert inquiry.data["status"] == "quoted"
        assert "acceptedAt" in inquiry.data

    def test_missing_property(self, service, store, seed, property_id, project_id):
        quote_id = seed.quote(project_id, property_id)
        store.delete(Collection.PROPERTIES, property_id)

        with pytest.raises(NotFoundError):
            service.accept_quote(quote_id, project_id, OWNER_ID)
        assert project_doc(store, project_id)["status"] == "inquiry"


class TestAtomicity:
    def test_concurrent_acceptance_leaves_one_assignment(self, store, seed, property_id, project_id):
        mine = seed.quote(project_id, property_id, FORESTER_ID, "forester")
        theirs = seed.quote(project_id, property_id, "forester-2", "forester")

        def competing_accept():
            QuoteAcceptanceService(store).accept_quote(theirs, project_id, OWNER_ID)

        racing = QuoteAcceptanceService(InterceptingStore(store, competing_accept))
        with pytest.raises(FailedPreconditionError, match=ALREADY_ASSIGNED):
            racing.accept_quote(mine, project_id, OWNER_ID)

        doc = project_doc(store, project_id)
        assert doc["foresterId"] == "forester-2"
        assert doc["acceptedQuoteId"] == theirs
        assert doc["involvedUsers"] == ["forester-2"]
        assert store.get(Collection.PROPERTIES, property_id).data["authorizedUsers"] == ["forester-2"]
        assert seed.activity_types(project_id) == ["quote_accepted"]

    def test_withdrawal_during_acceptance_wins(self, store, seed, property_id, project_id):
        seed.inquiry(project_id, property_id, BUYER_ID)
        quote_id = seed.quote(project_id, property_id, FORESTER_ID, "forester")
        inquiry_id = store.get(Collection.QUOTES, quote_id).data["inquiryId"]

        def owner_withdraws():
            InquiryService(store).withdraw(inquiry_id, OWNER_ID)

        racing = QuoteAcceptanceService(InterceptingStore(store, owner_withdraws))
        with pytest.raises(FailedPreconditionError, match="withdrawn"):
            racing.accept_quote(quote_id, project_id, OWNER_ID)

        doc = project_doc(store, project_id)
        assert doc["status"] == "inquiry"
        assert "foresterId" not in doc
        assert seed.activity_types(project_id) == []

    def test_threads_racing_on_a_database_file_assign_once(self, tmp_path):
        engine = create_db_engine(f"sqlite:///{(tmp_path / 'market.db').as_posix()}")
        init_db(bind=engine)
        file_store = SqlDocumentStore(sessionmaker(autocommit=False, autoflush=False, bind=engine))
        seeder = Seeder(file_store)
        property_id = seeder.property()
        project_id = seeder.project(property_id)
        quotes = [seeder.quote(project_id, property_id, f"forester-{n}", "forester") for n in (1, 2)]

        # Both callers pass every guard before either batch runs
        lined_up = threading.Barrier(2, timeout=10)
        outcomes = []

        def accept(quote_id):
            store = InterceptingStore(file_store, lined_up.wait)
            outcomes.append(call_accept_quote(store, {"quoteId": quote_id, "projectId": project_id}, OWNER_ID))

        threads = [threading.Thread(target=accept, args=(quote_id,)) for quote_id in quotes]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        try:
            assert sorted(outcome["success"] for outcome in outcomes) == [False, True]
            (failure,) = [outcome for outcome in outcomes if not outcome["success"]]
            assert failure["error"]["kind"] == "failed-precondition"

            doc = project_doc(file_store, project_id)
            assert doc["foresterId"] in ("forester-1", "forester-2")
            assert doc["involvedUsers"] == [doc["foresterId"]]
            assert file_store.get(Collection.PROPERTIES, property_id).data["authorizedUsers"] == [doc["foresterId"]]
            assert seeder.activity_types(project_id) == ["quote_accepted"]
        finally:
            engine.dispose()

    def test_failed_property_write_leaves_project_untouched(self, store, seed, property_id, project_id):
        quote_id = seed.quote(project_id, property_id)

        def drop_property():
            store.delete(Collection.PROPERTIES, property_id)

        service = QuoteAcceptanceService(InterceptingStore(store, drop_property))
        with pytest.raises(NotFoundError):
            service.accept_quote(quote_id, project_id, OWNER_ID)

        doc = project_doc(store, project_id)
        assert doc["status"] == "inquiry"
        assert "foresterId" not in doc
        assert seed.activity_types(project_id) == []


class TestCallable:
    def test_success(self, store, seed, property_id, project_id):
        quote_id = seed.quote(project_id, property_id)

        result = call_accept_quote(store, {"quoteId": quote_id, "projectId": project_id}, OWNER_ID)

        assert result == {"success": True, "message": "Quote accepted successfully!"}

    def test_unauthenticated(self, store):
        result = call_accept_quote(store, {"quoteId": "q", "projectId": "p"}, None)

        assert result["success"] is False
        assert result["error"]["kind"] == "unauthenticated"

    @pytest.mark.parametrize("payload", [{}, {"quoteId": "q"}, {"projectId": "p"}, {"quoteId": "", "projectId": "p"}])
    def test_missing_identifiers(self, store, payload):
        result = call_accept_quote(store, payload, OWNER_ID)

        assert result["error"] == {
            "kind": "invalid-argument",
            "message": "The function must be called with 'quoteId' and 'projectId'.",
        }

    def test_domain_error_reported_with_kind(self, store, seed, property_id, project_id):
        quote_id = seed.quote(project_id, property_id)

        result = call_accept_quote(store, {"quoteId": quote_id, "projectId": project_id}, STRANGER_ID)

        assert result["error"]["kind"] == "permission-denied"

    def test_unexpected_failure_reported_generically(self):
        result = call_accept_quote(BrokenStore(), {"quoteId": "q", "projectId": "p"}, OWNER_ID)

        assert result == {
            "success": False,
            "error": {"kind": "internal", "message": "An internal error occurred."},
        }
