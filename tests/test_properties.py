"""Tests for property records."""
from __future__ import annotations

import pytest

from conftest import FORESTER_ID, OWNER_ID, STRANGER_ID
from core.exceptions import InvalidArgumentError, NotFoundError, PermissionDeniedError
from core.models import Collection
from domain.properties import PropertyService


@pytest.fixture
def service(store) -> PropertyService:
    return PropertyService(store)


def test_create_property(service, store):
    prop = service.create_property(OWNER_ID, "  Creek Forty ", "40.5", county="Tangipahoa", state="LA")

    assert prop.name == "Creek Forty"
    assert prop.acreage == 40.5
    stored = store.get(Collection.PROPERTIES, prop.id).data
    assert stored["authorizedUsers"] == []
    assert "boundary" not in stored


@pytest.mark.parametrize("name, acreage", [("", 10), ("Tract", -1), ("Tract", "big")])
def test_create_property_validation(service, name, acreage):
    with pytest.raises(InvalidArgumentError):
        service.create_property(OWNER_ID, name, acreage)


def test_visibility(service, store, seed):
    property_id = seed.property()
    store.update(Collection.PROPERTIES, property_id, {"authorizedUsers": [FORESTER_ID]})

    assert service.get_property(property_id, OWNER_ID).id == property_id
    assert service.get_property(property_id, FORESTER_ID).id == property_id
    with pytest.raises(PermissionDeniedError):
        service.get_property(property_id, STRANGER_ID)
    with pytest.raises(NotFoundError):
        service.get_property("ghost", OWNER_ID)


def test_list_properties_owned_and_shared(service, store, seed):
    mine = seed.property()
    shared = seed.property(owner_id=STRANGER_ID, name="Neighbor")
    store.update(Collection.PROPERTIES, shared, {"authorizedUsers": [OWNER_ID]})
    seed.property(owner_id=STRANGER_ID, name="Private")

    assert [p.id for p in service.list_properties(OWNER_ID)] == [mine, shared]
