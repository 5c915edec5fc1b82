# Overview: Pytest coverage for the location registry.

import pytest
from stockhub.errors import LocationInUse, LocationNotFound
from stockhub.models import Location
from stockhub.services.location_service import (
    create_location,
    delete_location,
    get_location,
    get_primary_location,
    initialize_default_locations,
    list_locations,
    location_in_use,
    update_location,
)
from stockhub.validation import ValidationError


def _primary_count(db_session):
    return db_session.query(Location).filter(Location.is_primary.is_(True)).count()


class TestPrimaryLocation:
    """At most one location is primary after any create/update sequence."""

    def test_new_primary_replaces_old(self, db_session):
        first = create_location(name="North", type="warehouse", is_primary=True)
        second = create_location(name="South", type="warehouse", is_primary=True)

        assert _primary_count(db_session) == 1
        assert get_primary_location().id == second.id
        assert get_location(first.id).is_primary is False

    def test_update_to_primary_clears_others(self, db_session):
        first = create_location(name="North", type="warehouse", is_primary=True)
        second = create_location(name="South", type="retail")

        update_location(second.id, is_primary=True)

        assert _primary_count(db_session) == 1
        assert get_location(first.id).is_primary is False
        assert get_location(second.id).is_primary is True

    def test_mixed_sequence_keeps_single_primary(self, db_session):
        a = create_location(name="A", type="warehouse", is_primary=True)
        b = create_location(name="B", type="retail", is_primary=True)
        c = create_location(name="C", type="other")
        update_location(a.id, is_primary=True)
        update_location(c.id, is_primary=True)
        update_location(b.id, name="B2")
        update_location(c.id, is_primary=False)

        assert _primary_count(db_session) <= 1

    def test_inactive_primary_is_not_returned(self, db_session):
        location = create_location(name="Dormant", type="warehouse", is_primary=True)
        update_location(location.id, is_active=False)

        assert get_primary_location() is None


class TestLocationCrud:
    def test_create_validates_type_and_name(self, db_session):
        with pytest.raises(ValidationError):
            create_location(name="Dock", type="garage")
        with pytest.raises(ValidationError):
            create_location(name="   ", type="other")

    def test_update_unknown_location(self, db_session):
        with pytest.raises(LocationNotFound):
            update_location(4040, name="Nowhere")

    def test_update_rejects_unknown_fields(self, db_session, warehouse):
        with pytest.raises(ValidationError):
            update_location(warehouse.id, capacity=100)

    def test_list_sorted_by_name_and_filters_active(self, db_session):
        create_location(name="Zeta", type="other")
        create_location(name="Alpha", type="retail")
        inactive = create_location(name="Mid", type="other", is_active=False)

        assert [l.name for l in list_locations()] == ["Alpha", "Mid", "Zeta"]
        assert inactive.id not in [l.id for l in list_locations(active_only=True)]


class TestDeleteGuard:
    def test_delete_unused_location(self, db_session, annex):
        delete_location(annex.id)

        assert get_location(annex.id) is None

    def test_delete_in_use_location_fails_even_at_zero_quantity(self, db_session, warehouse, annex, make_product):
        """Any stock row blocks deletion, regardless of its quantity."""
        make_product({warehouse: 4, annex: 0})

        assert location_in_use(annex.id) is True
        with pytest.raises(LocationInUse):
            delete_location(annex.id)

        assert get_location(annex.id) is not None

    def test_delete_unknown_location(self, db_session):
        with pytest.raises(LocationNotFound):
            delete_location(777)


class TestDefaultLocations:
    def test_initialize_creates_defaults_once(self, db_session):
        created = initialize_default_locations()

        assert [l.name for l in created] == ["Warehouse", "Retail Store", "Fulfillment Center", "Other"]
        assert get_primary_location().name == "Warehouse"
        assert initialize_default_locations() == []
        assert len(list_locations()) == 4

    def test_initialize_is_noop_when_registry_not_empty(self, db_session, store):
        assert initialize_default_locations() == []
        assert [l.name for l in list_locations()] == ["Retail Store"]
