# Overview: Pytest coverage for the inventory ledger engine.

"""
Inventory Engine Tests

Covers the stock invariants every mutation must keep:
1. total_quantity == sum of per-location quantities after every write
2. no location ever goes negative; overdrawing is rejected with no effect
3. transfers conserve the total
4. every non-zero change writes exactly one ledger record, zero-delta adjusts none
5. validation failures write nothing
"""

from datetime import date

import pytest
from stockhub.errors import (
    InsufficientStock,
    InvalidQuantity,
    LocationNotFound,
    ProductNotFound,
    SameLocation,
    StorageFault,
)
from stockhub.models import InventoryTransaction, Product, compute_total_quantity
from stockhub.services import inventory_service
from stockhub.services.inventory_service import (
    add_production,
    adjust_inventory,
    get_product_inventory_status,
    record_sale,
    set_min_stock_level,
    transfer_inventory,
)
from stockhub.validation import ValidationError


def _latest_tx(db_session, product_id):
    return (
        db_session.query(InventoryTransaction)
        .filter_by(product_id=product_id)
        .order_by(InventoryTransaction.id.desc())
        .first()
    )


def _assert_consistent(product):
    assert product.total_quantity == compute_total_quantity(product.stock_rows)
    assert all(row.quantity >= 0 for row in product.stock_rows)


class TestTransfer:
    """transfer_inventory moves stock without changing the total."""

    def test_transfer_moves_units_and_conserves_total(self, db_session, warehouse, store, make_product, tx_count):
        """A:10, B:0, transfer 4 -> A:6, B:4, total stays 10, one transfer record."""
        product = make_product({warehouse: 10, store: 0})

        result = transfer_inventory(
            product_id=product.id,
            from_location_id=warehouse.id,
            to_location_id=store.id,
            quantity=4,
        )

        assert result["success"] is True
        assert result["message"] == "Successfully transferred 4 units"
        assert product.quantity_at(warehouse.id) == 6
        assert product.quantity_at(store.id) == 4
        assert product.total_quantity == 10
        _assert_consistent(product)

        assert tx_count(product.id) == 1
        tx = _latest_tx(db_session, product.id)
        assert tx.type == "transfer"
        assert tx.quantity == 4
        assert tx.from_location_id == warehouse.id
        assert tx.to_location_id == store.id
        assert tx.from_location_name == "Warehouse"
        assert tx.to_location_name == "Retail Store"

    def test_transfer_creates_destination_row(self, db_session, warehouse, annex, make_product):
        product = make_product({warehouse: 5})

        transfer_inventory(
            product_id=product.id,
            from_location_id=warehouse.id,
            to_location_id=annex.id,
            quantity=5,
        )

        assert product.quantity_at(warehouse.id) == 0
        assert product.quantity_at(annex.id) == 5
        assert product.total_quantity == 5

    def test_transfer_bumps_product_version(self, db_session, warehouse, store, make_product):
        """Total is unchanged, but the product row is still rewritten (optimistic lock)."""
        product = make_product({warehouse: 3})
        version_before = product.version_id

        transfer_inventory(
            product_id=product.id,
            from_location_id=warehouse.id,
            to_location_id=store.id,
            quantity=1,
        )

        assert product.version_id > version_before

    def test_transfer_to_same_location_rejected(self, db_session, warehouse, make_product, tx_count):
        product = make_product({warehouse: 10})

        with pytest.raises(SameLocation):
            transfer_inventory(
                product_id=product.id,
                from_location_id=warehouse.id,
                to_location_id=warehouse.id,
                quantity=1,
            )

        assert product.quantity_at(warehouse.id) == 10
        assert tx_count() == 0

    def test_transfer_more_than_available_rejected(self, db_session, warehouse, store, make_product, tx_count):
        product = make_product({warehouse: 3, store: 1})

        with pytest.raises(InsufficientStock) as excinfo:
            transfer_inventory(
                product_id=product.id,
                from_location_id=warehouse.id,
                to_location_id=store.id,
                quantity=4,
            )

        assert excinfo.value.available == 3
        assert excinfo.value.requested == 4
        assert product.quantity_at(warehouse.id) == 3
        assert product.quantity_at(store.id) == 1
        assert product.total_quantity == 4
        assert tx_count() == 0

    def test_transfer_from_location_without_row_counts_as_zero(self, db_session, warehouse, store, make_product):
        product = make_product({store: 2})

        with pytest.raises(InsufficientStock) as excinfo:
            transfer_inventory(
                product_id=product.id,
                from_location_id=warehouse.id,
                to_location_id=store.id,
                quantity=1,
            )

        assert excinfo.value.available == 0

    @pytest.mark.parametrize("quantity", [0, -3])
    def test_transfer_non_positive_quantity_rejected(self, db_session, warehouse, store, make_product, quantity):
        product = make_product({warehouse: 10})

        with pytest.raises(InvalidQuantity):
            transfer_inventory(
                product_id=product.id,
                from_location_id=warehouse.id,
                to_location_id=store.id,
                quantity=quantity,
            )

    def test_transfer_unknown_location_rejected(self, db_session, warehouse, make_product, tx_count):
        product = make_product({warehouse: 10})

        with pytest.raises(LocationNotFound):
            transfer_inventory(
                product_id=product.id,
                from_location_id=warehouse.id,
                to_location_id=99999,
                quantity=1,
            )

        assert product.quantity_at(warehouse.id) == 10
        assert tx_count() == 0

    def test_transfer_total_mismatch_discards_changes(self, db_session, warehouse, store, make_product, tx_count, monkeypatch):
        product = make_product({warehouse: 10})
        product_id, warehouse_id, store_id = product.id, warehouse.id, store.id
        monkeypatch.setattr(inventory_service, "_recompute", lambda p: -1)

        with pytest.raises(StorageFault):
            transfer_inventory(
                product_id=product_id,
                from_location_id=warehouse_id,
                to_location_id=store_id,
                quantity=4,
            )

        assert not db_session.new
        assert not db_session.dirty
        reloaded = db_session.get(Product, product_id)
        assert reloaded.quantity_at(warehouse_id) == 10
        assert reloaded.quantity_at(store_id) == 0
        assert tx_count() == 0


class TestSale:
    """record_sale deducts stock and never overdraws."""

    def test_sale_deducts_and_records_negative_quantity(self, db_session, warehouse, make_product, tx_count):
        product = make_product({warehouse: 10})

        result = record_sale(
            product_id=product.id,
            location_id=warehouse.id,
            quantity=3,
            source="shopify",
            order_id="ORDER-1001",
        )

        assert result["message"] == "Successfully recorded sale of 3 units"
        assert product.quantity_at(warehouse.id) == 7
        assert product.total_quantity == 7

        assert tx_count(product.id) == 1
        tx = _latest_tx(db_session, product.id)
        assert tx.type == "sale"
        assert tx.quantity == -3
        assert tx.source == "shopify"
        assert tx.order_id == "ORDER-1001"
        assert tx.from_location_id == warehouse.id
        assert tx.to_location_id is None
        assert tx.product_sku == product.sku

    def test_sale_exceeding_stock_fails_without_effect(self, db_session, warehouse, make_product, tx_count):
        """locations={A:5}, sale of 7 -> InsufficientStock, state unchanged, no record."""
        product = make_product({warehouse: 5})

        with pytest.raises(InsufficientStock):
            record_sale(product_id=product.id, location_id=warehouse.id, quantity=7, source="manual")

        assert product.quantity_at(warehouse.id) == 5
        assert product.total_quantity == 5
        assert tx_count() == 0

    def test_sale_of_exact_stock_leaves_zero(self, db_session, warehouse, make_product):
        product = make_product({warehouse: 4})

        record_sale(product_id=product.id, location_id=warehouse.id, quantity=4, source="square")

        assert product.quantity_at(warehouse.id) == 0
        assert product.total_quantity == 0

    def test_sale_unknown_source_rejected(self, db_session, warehouse, make_product, tx_count):
        product = make_product({warehouse: 4})

        with pytest.raises(ValidationError):
            record_sale(product_id=product.id, location_id=warehouse.id, quantity=1, source="ebay")

        assert product.quantity_at(warehouse.id) == 4
        assert tx_count() == 0

    def test_sale_unknown_product_rejected(self, db_session, warehouse):
        with pytest.raises(ProductNotFound):
            record_sale(product_id=424242, location_id=warehouse.id, quantity=1, source="manual")

    def test_quantity_checked_before_product_lookup(self, db_session, warehouse):
        with pytest.raises(InvalidQuantity):
            record_sale(product_id=424242, location_id=warehouse.id, quantity=0, source="manual")


class TestProduction:
    def test_production_into_new_location(self, db_session, warehouse, annex, make_product, tx_count):
        """No prior row at locC, +50 with batch LOT-1 -> row of 50, total +50, one record."""
        product = make_product({warehouse: 10})

        result = add_production(
            product_id=product.id,
            to_location_id=annex.id,
            quantity=50,
            batch_number="LOT-1",
            production_date=date(2026, 10, 1),
            expiration_date=date(2027, 10, 1),
            user_id="baker-7",
        )

        assert result["message"] == "Successfully added 50 units to inventory"
        assert product.quantity_at(annex.id) == 50
        assert product.total_quantity == 60

        assert tx_count(product.id) == 1
        tx = _latest_tx(db_session, product.id)
        assert tx.type == "production"
        assert tx.quantity == 50
        assert tx.to_location_id == annex.id
        assert tx.from_location_id is None
        assert tx.batch_number == "LOT-1"
        assert tx.production_date == date(2026, 10, 1)
        assert tx.expiration_date == date(2027, 10, 1)
        assert tx.user_id == "baker-7"
        assert tx.source == "manual"

    def test_production_non_positive_rejected(self, db_session, warehouse, make_product):
        product = make_product({warehouse: 1})

        with pytest.raises(InvalidQuantity):
            add_production(product_id=product.id, to_location_id=warehouse.id, quantity=0)

    def test_production_unknown_product(self, db_session, warehouse):
        with pytest.raises(ProductNotFound):
            add_production(product_id=999, to_location_id=warehouse.id, quantity=5)


class TestAdjust:
    def test_adjust_up_records_positive_delta(self, db_session, warehouse, make_product, tx_count):
        product = make_product({warehouse: 10})

        result = adjust_inventory(product_id=product.id, location_id=warehouse.id, new_quantity=14)

        assert result["message"] == "Successfully adjusted inventory to 14 units"
        assert product.quantity_at(warehouse.id) == 14
        assert product.total_quantity == 14

        tx = _latest_tx(db_session, product.id)
        assert tx.type == "adjustment"
        assert tx.quantity == 4
        assert tx.to_location_id == warehouse.id
        assert tx.from_location_id is None
        assert tx.notes == "Adjusted from 10 to 14"
        assert tx_count(product.id) == 1

    def test_adjust_down_records_negative_delta_on_from_side(self, db_session, warehouse, make_product):
        product = make_product({warehouse: 10})

        adjust_inventory(
            product_id=product.id,
            location_id=warehouse.id,
            new_quantity=2,
            user_id="auditor",
            notes="Cycle count",
        )

        tx = _latest_tx(db_session, product.id)
        assert tx.quantity == -8
        assert tx.from_location_id == warehouse.id
        assert tx.to_location_id is None
        assert tx.notes == "Cycle count"
        assert tx.user_id == "auditor"

    def test_adjust_to_current_quantity_writes_no_record(self, db_session, warehouse, make_product, tx_count):
        product = make_product({warehouse: 10})

        result = adjust_inventory(product_id=product.id, location_id=warehouse.id, new_quantity=10)

        assert result["success"] is True
        assert result["transaction"] is None
        assert product.quantity_at(warehouse.id) == 10
        assert tx_count() == 0

    def test_adjust_creates_missing_row(self, db_session, warehouse, store, make_product):
        product = make_product({warehouse: 3})

        adjust_inventory(product_id=product.id, location_id=store.id, new_quantity=5)

        assert product.quantity_at(store.id) == 5
        assert product.total_quantity == 8

    def test_adjust_negative_rejected(self, db_session, warehouse, make_product, tx_count):
        product = make_product({warehouse: 3})

        with pytest.raises(InvalidQuantity):
            adjust_inventory(product_id=product.id, location_id=warehouse.id, new_quantity=-1)

        assert product.quantity_at(warehouse.id) == 3
        assert tx_count() == 0

    def test_adjust_to_zero_allowed(self, db_session, warehouse, make_product):
        product = make_product({warehouse: 3})

        adjust_inventory(product_id=product.id, location_id=warehouse.id, new_quantity=0)

        assert product.quantity_at(warehouse.id) == 0
        assert product.total_quantity == 0

    def test_adjust_unknown_product(self, db_session, warehouse):
        with pytest.raises(ProductNotFound):
            adjust_inventory(product_id=31337, location_id=warehouse.id, new_quantity=1)


class TestAggregateConsistency:
    def test_total_matches_rows_after_mixed_operations(self, db_session, warehouse, store, annex, make_product, tx_count):
        product = make_product({warehouse: 20})

        add_production(product_id=product.id, to_location_id=store.id, quantity=7)
        transfer_inventory(product_id=product.id, from_location_id=warehouse.id, to_location_id=annex.id, quantity=5)
        record_sale(product_id=product.id, location_id=store.id, quantity=2, source="manual")
        adjust_inventory(product_id=product.id, location_id=annex.id, new_quantity=4)
        with pytest.raises(InsufficientStock):
            record_sale(product_id=product.id, location_id=annex.id, quantity=9, source="manual")

        db_session.expire_all()
        fresh = db_session.get(Product, product.id)
        _assert_consistent(fresh)
        assert fresh.quantity_at(warehouse.id) == 15
        assert fresh.quantity_at(store.id) == 5
        assert fresh.quantity_at(annex.id) == 4
        assert fresh.total_quantity == 24
        assert tx_count(product.id) == 4


class TestStatusAndThresholds:
    def test_status_lists_locations_with_low_stock_flag(self, db_session, warehouse, store, make_product):
        product = make_product({warehouse: 3, store: 20})
        set_min_stock_level(product_id=product.id, location_id=warehouse.id, min_stock_level=5)
        set_min_stock_level(product_id=product.id, location_id=store.id, min_stock_level=5)

        status = get_product_inventory_status(product.id)

        assert status["product_id"] == product.id
        assert status["total_quantity"] == 23
        by_location = {row["location_id"]: row for row in status["locations"]}
        assert by_location[warehouse.id]["is_low_stock"] is True
        assert by_location[warehouse.id]["location_name"] == "Warehouse"
        assert by_location[store.id]["is_low_stock"] is False

    def test_threshold_of_zero_is_not_tracked(self, db_session, warehouse, make_product):
        product = make_product({warehouse: 0})
        set_min_stock_level(product_id=product.id, location_id=warehouse.id, min_stock_level=0)

        status = get_product_inventory_status(product.id)

        assert status["locations"][0]["is_low_stock"] is False

    def test_quantity_equal_to_threshold_is_low(self, db_session, warehouse, make_product):
        product = make_product({warehouse: 5})
        set_min_stock_level(product_id=product.id, location_id=warehouse.id, min_stock_level=5)

        status = get_product_inventory_status(product.id)

        assert status["locations"][0]["is_low_stock"] is True

    def test_set_threshold_creates_row_without_ledger_record(self, db_session, warehouse, store, make_product, tx_count):
        product = make_product({warehouse: 5})

        set_min_stock_level(product_id=product.id, location_id=store.id, min_stock_level=2)

        row = product.stock_row(store.id)
        assert row is not None
        assert row.quantity == 0
        assert row.min_stock_level == 2
        assert product.total_quantity == 5
        assert tx_count() == 0

    def test_negative_threshold_rejected(self, db_session, warehouse, make_product):
        product = make_product({warehouse: 5})

        with pytest.raises(InvalidQuantity):
            set_min_stock_level(product_id=product.id, location_id=warehouse.id, min_stock_level=-1)

    def test_status_unknown_product(self, db_session):
        with pytest.raises(ProductNotFound):
            get_product_inventory_status(1234)
