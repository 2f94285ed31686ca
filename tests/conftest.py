"""Pytest configuration and fixtures."""
from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

# Set test environment
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-for-ci")
os.environ.setdefault("ALLOWED_ORIGINS", "http://localhost:3000")

from core.db import Base, init_db
from core.models import Collection, ProjectStatus
from core.store import SqlDocumentStore


OWNER_ID = "owner-1"
FORESTER_ID = "forester-1"
BUYER_ID = "buyer-1"
STRANGER_ID = "stranger-1"


@pytest.fixture
def engine():
    """A fresh in-memory database per test."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def store(session_factory) -> SqlDocumentStore:
    return SqlDocumentStore(session_factory)


def pine_stand(name: str = "Stand A", net_acres: float = 20.0, tons: float = 200.0, trees: int = 100) -> Dict[str, Any]:
    return {
        "name": name,
        "netAcres": net_acres,
        "products": [
            {
                "product": "Pine Sawtimber",
                "breakdown": [{"dbh": '14"', "trees": trees, "volume": tons, "units": "Tons"}],
            }
        ],
    }


@pytest.fixture
def sample_cruise() -> Dict[str, Any]:
    """cruiseData as the cruise form submits it."""
    return {
        "details": {
            "saleName": "North Tract Sale",
            "county": "Washington",
            "state": "LA",
            "acreage": 40,
            "bidMethod": "lump-sum",
            "bidDeadline": "2026-12-01",
            "legalDesc": "S12 T1S R10E",
        },
        "inventory": [
            pine_stand("Stand A", net_acres=20.0, tons=160.0, trees=80),
            {
                "name": "Stand B",
                "netAcres": 10.0,
                "products": [
                    {
                        "product": "Red Oak Sawtimber",
                        "breakdown": [{"dbh": '16"', "trees": 30, "volume": 90, "units": "Tons"}],
                    },
                    {
                        "product": "Pine Pulpwood",
                        "breakdown": [
                            {"dbh": '8"', "trees": 200, "volume": 120, "units": "Tons"},
                            {"dbh": '10"', "trees": 0, "volume": 0, "units": "Tons"},
                        ],
                    },
                ],
            },
        ],
        "annotations": None,
    }


class Seeder:
    """Writes fixture documents straight into the store."""

    def __init__(self, store: SqlDocumentStore) -> None:
        self.store = store

    def property(self, owner_id: str = OWNER_ID, acreage: float = 40.0, name: str = "North Tract") -> str:
        property_id = self.store.new_id()
        self.store.set(
            Collection.PROPERTIES,
            property_id,
            {"ownerId": owner_id, "name": name, "acreage": acreage, "authorizedUsers": []},
        )
        return property_id

    def project(
        self,
        property_id: str,
        status: ProjectStatus = ProjectStatus.INQUIRY,
        owner_id: str = OWNER_ID,
        forester_id: Optional[str] = None,
        supplier_id: Optional[str] = None,
        cruise_data: Optional[Dict[str, Any]] = None,
    ) -> str:
        project_id = self.store.new_id()
        data: Dict[str, Any] = {
            "ownerId": owner_id,
            "ownerName": "Pat Owner",
            "propertyId": property_id,
            "propertyName": "North Tract",
            "status": status.value,
            "involvedUsers": [],
        }
        if forester_id:
            data["foresterId"] = forester_id
            data["quoteAcceptedAt"] = "2026-01-01T00:00:00+00:00"
            data["involvedUsers"] = [forester_id]
        if supplier_id:
            data["supplierId"] = supplier_id
            data["involvedUsers"] = [supplier_id]
        if cruise_data is not None:
            data["cruiseData"] = cruise_data
        self.store.set(Collection.PROJECTS, project_id, data)
        return project_id

    def inquiry(
        self,
        project_id: str,
        property_id: str,
        to_user_id: str,
        status: str = "pending",
        from_user_id: str = OWNER_ID,
    ) -> str:
        inquiry_id = self.store.new_id()
        self.store.set(
            Collection.INQUIRIES,
            inquiry_id,
            {
                "projectId": project_id,
                "propertyId": property_id,
                "propertyName": "North Tract",
                "fromUserId": from_user_id,
                "toUserId": to_user_id,
                "status": status,
            },
        )
        return inquiry_id

    def quote(
        self,
        project_id: str,
        property_id: str,
        professional_id: str = FORESTER_ID,
        role: str = "forester",
        amount: float = 1500.0,
        landowner_id: str = OWNER_ID,
        inquiry_status: str = "quoted",
    ) -> str:
        """A quote answering its own inquiry, which is left in ``inquiry_status``."""
        inquiry_id = self.inquiry(project_id, property_id, professional_id, inquiry_status, landowner_id)
        quote_id = self.store.new_id()
        self.store.update(Collection.INQUIRIES, inquiry_id, {"quoteId": quote_id})
        self.store.set(
            Collection.QUOTES,
            quote_id,
            {
                "inquiryId": inquiry_id,
                "projectId": project_id,
                "propertyId": property_id,
                "landownerId": landowner_id,
                "professionalId": professional_id,
                "professionalRole": role,
                "amount": amount,
                "message": "Happy to help",
                "status": "pending",
            },
        )
        return quote_id

    def activity_types(self, project_id: str) -> List[str]:
        entries = self.store.query(Collection.ACTIVITY, [("projectId", "==", project_id)])
        return [entry.get("type") for entry in entries]


@pytest.fixture
def seed(store) -> Seeder:
    return Seeder(store)


class InterceptingStore:
    """Delegates to a real store, running ``before_batch`` ahead of the first batch."""

    def __init__(self, inner, before_batch: Optional[Callable[[], None]] = None) -> None:
        self.inner = inner
        self.before_batch = before_batch

    def __getattr__(self, name):
        return getattr(self.inner, name)

    def run_atomic_batch(self, writes):
        hook, self.before_batch = self.before_batch, None
        if hook is not None:
            hook()
        self.inner.run_atomic_batch(writes)
