# Overview: HTTP-level tests for the JSON API (status codes, error kinds, response shapes).

import pytest
from stockhub.services.bundle_service import create_bundle
from stockhub.services.channel_service import upsert_mapping


class TestHealth:
    def test_healthy_with_primary(self, client, db_session, warehouse):
        resp = client.get("/api/health")

        assert resp.status_code == 200
        assert resp.get_json()["status"] == "healthy"
        assert resp.get_json()["checks"]["database"]["details"]["primary_location_id"] == warehouse.id

    def test_degraded_without_primary(self, client, db_session):
        resp = client.get("/api/health")

        assert resp.status_code == 200
        assert resp.get_json()["status"] == "degraded"


class TestInventoryRoutes:
    def test_sale_and_status(self, client, db_session, warehouse, make_product):
        product = make_product({warehouse: 10})
        product_id, warehouse_id = product.id, warehouse.id

        resp = client.post("/api/inventory/sale", json={
            "product_id": product_id,
            "location_id": warehouse_id,
            "quantity": 3,
            "source": "square",
            "order_id": "SQ-77",
        })

        assert resp.status_code == 201
        body = resp.get_json()
        assert body["success"] is True
        assert body["message"] == "Successfully recorded sale of 3 units"
        assert body["total_quantity"] == 7
        assert body["transaction"]["quantity"] == -3
        assert body["transaction"]["source"] == "square"

        status = client.get(f"/api/inventory/status/{product_id}").get_json()
        assert status["total_quantity"] == 7
        assert status["locations"][0]["quantity"] == 7

    def test_insufficient_stock_is_409(self, client, db_session, warehouse, make_product):
        product = make_product({warehouse: 2})

        resp = client.post("/api/inventory/sale", json={
            "product_id": product.id,
            "location_id": warehouse.id,
            "quantity": 5,
            "source": "manual",
        })

        assert resp.status_code == 409
        body = resp.get_json()
        assert body["success"] is False
        assert body["error_kind"] == "InsufficientStock"
        assert (body["available"], body["requested"]) == (2, 5)

    def test_transfer(self, client, db_session, warehouse, store, make_product):
        product = make_product({warehouse: 10})

        resp = client.post("/api/inventory/transfer", json={
            "product_id": product.id,
            "from_location_id": warehouse.id,
            "to_location_id": store.id,
            "quantity": 4,
        })

        assert resp.status_code == 200
        assert resp.get_json()["message"] == "Successfully transferred 4 units"
        assert resp.get_json()["total_quantity"] == 10

    def test_same_location_transfer_is_400(self, client, db_session, warehouse, make_product):
        product = make_product({warehouse: 10})

        resp = client.post("/api/inventory/transfer", json={
            "product_id": product.id,
            "from_location_id": warehouse.id,
            "to_location_id": warehouse.id,
            "quantity": 1,
        })

        assert resp.status_code == 400
        assert resp.get_json()["error_kind"] == "SameLocation"

    def test_adjust_and_production(self, client, db_session, warehouse, make_product):
        product = make_product({warehouse: 10})

        adjust = client.post("/api/inventory/adjust", json={
            "product_id": product.id, "location_id": warehouse.id, "new_quantity": 4,
        })
        produce = client.post("/api/inventory/production", json={
            "product_id": product.id,
            "to_location_id": warehouse.id,
            "quantity": 6,
            "batch_number": "B-12",
            "production_date": "2026-10-01",
        })

        assert adjust.status_code == 200
        assert adjust.get_json()["transaction"]["quantity"] == -6
        assert produce.status_code == 201
        assert produce.get_json()["total_quantity"] == 10
        assert produce.get_json()["transaction"]["batch_number"] == "B-12"

    def test_unknown_product_is_404(self, client, db_session, warehouse):
        resp = client.post("/api/inventory/adjust", json={
            "product_id": 999, "location_id": warehouse.id, "new_quantity": 1,
        })

        assert resp.status_code == 404
        assert resp.get_json()["error_kind"] == "ProductNotFound"

    @pytest.mark.parametrize("payload", [
        {"location_id": 1, "quantity": 1, "source": "manual"},
        {"product_id": 1, "location_id": 1, "quantity": 1.5, "source": "manual"},
        {"product_id": 1, "location_id": 1, "quantity": 1, "source": "manual", "price": 3},
    ])
    def test_malformed_sale_is_400(self, client, db_session, payload):
        resp = client.post("/api/inventory/sale", json=payload)

        assert resp.status_code == 400
        assert resp.get_json()["error_kind"] == "ValidationError"


class TestLocationRoutes:
    def test_init_then_already_initialized(self, client, db_session):
        first = client.post("/api/locations/init")
        second = client.post("/api/locations/init")

        assert first.status_code == 201
        assert len(first.get_json()["created"]) == 4
        assert second.status_code == 200
        assert second.get_json()["created"] == []
        assert client.get("/api/locations/primary").get_json()["name"] == "Warehouse"

    def test_delete_in_use_is_409(self, client, db_session, warehouse, make_product):
        make_product({warehouse: 0})

        resp = client.delete(f"/api/locations/{warehouse.id}")

        assert resp.status_code == 409
        assert resp.get_json()["error_kind"] == "LocationInUse"


class TestProductRoutes:
    def test_create_with_initial_stock(self, client, db_session, warehouse):
        resp = client.post("/api/products", json={
            "sku": "CANDLE-01",
            "name": "Candle",
            "price_cents": 1800,
            "quantity": 20,
            "location_id": warehouse.id,
        })

        assert resp.status_code == 201
        product = resp.get_json()["product"]
        assert product["total_quantity"] == 20

        txs = client.get(f"/api/transactions?product_id={product['id']}").get_json()
        assert txs["count"] == 1
        assert txs["items"][0]["type"] == "production"

    def test_duplicate_sku_is_409(self, client, db_session, make_product):
        make_product(sku="DUP-1")

        resp = client.post("/api/products", json={"sku": "DUP-1", "name": "Again"})

        assert resp.status_code == 409
        assert resp.get_json()["error_kind"] == "DuplicateSku"

    def test_list_filters_bundles(self, client, db_session, make_product):
        x = make_product()
        b = make_product()
        create_bundle(bundle_product_id=b.id, components=[{"product_id": x.id, "quantity": 1}])

        body = client.get("/api/products?bundles=true").get_json()

        assert body["count"] == 1
        assert body["items"][0]["id"] == b.id
        assert client.get("/api/products?bundles=maybe").status_code == 400


class TestTransactionRoutes:
    def test_stats(self, client, db_session, warehouse, make_product):
        product = make_product({warehouse: 10})
        client.post("/api/inventory/sale", json={
            "product_id": product.id, "location_id": warehouse.id, "quantity": 2, "source": "amazon",
        })

        body = client.get("/api/transactions/stats").get_json()

        assert body["success"] is True
        assert body["total_sales"] == 2

    def test_bad_date_filter_is_400(self, client, db_session):
        resp = client.get("/api/transactions?start_date=yesterday")

        assert resp.status_code == 400

    @pytest.mark.parametrize("query", [
        "/api/transactions?product_id=abc",
        "/api/transactions?location_id=1.5",
        "/api/transactions?limit=ten",
        "/api/transactions/stats?product_id=abc",
    ])
    def test_malformed_id_filter_is_400(self, client, db_session, query):
        resp = client.get(query)

        assert resp.status_code == 400
        assert resp.get_json()["error_kind"] == "ValidationError"

    def test_id_filter_applies(self, client, db_session, warehouse, make_product):
        kept_id = make_product({warehouse: 5}).id
        other_id = make_product({warehouse: 5}).id
        warehouse_id = warehouse.id
        for product_id in (kept_id, other_id):
            client.post("/api/inventory/sale", json={
                "product_id": product_id, "location_id": warehouse_id, "quantity": 1, "source": "manual",
            })

        body = client.get(f"/api/transactions?product_id={kept_id}").get_json()

        assert body["count"] == 1
        assert body["items"][0]["product_id"] == kept_id


class TestBundleRoutes:
    def test_partial_failure_is_409_with_completed(self, client, db_session, warehouse, make_product):
        x = make_product({warehouse: 10})
        y = make_product({warehouse: 3})
        b = make_product()
        create_bundle(
            bundle_product_id=b.id,
            components=[{"product_id": x.id, "quantity": 2}, {"product_id": y.id, "quantity": 1}],
        )

        resp = client.post("/api/bundles/process-sale", json={
            "bundle_product_id": b.id, "quantity": 4, "location_id": warehouse.id, "source": "manual",
        })

        assert resp.status_code == 409
        body = resp.get_json()
        assert body["error_kind"] == "BundleSalePartialFailure"
        assert body["partial"] is True
        assert body["failed_product_id"] == y.id
        assert body["cause_kind"] == "InsufficientStock"
        assert [c["product_id"] for c in body["completed"]] == [x.id]

    def test_status_requires_params(self, client, db_session):
        resp = client.get("/api/bundles/status")

        assert resp.status_code == 400

    def test_status_malformed_quantity_is_400(self, client, db_session, warehouse, make_product):
        x = make_product({warehouse: 10})
        b = make_product()
        create_bundle(bundle_product_id=b.id, components=[{"product_id": x.id, "quantity": 2}])
        base = f"/api/bundles/status?bundle_product_id={b.id}&location_id={warehouse.id}"

        resp = client.get(base + "&quantity=abc")

        assert resp.status_code == 400
        assert resp.get_json()["error_kind"] == "ValidationError"

        ok = client.get(base + "&quantity=3")
        assert ok.status_code == 200
        assert ok.get_json()["quantity"] == 3
        assert ok.get_json()["max_bundles"] == 5


class TestChannelRoutes:
    def test_order_intake_reports_lines(self, client, db_session, warehouse, make_product):
        product = make_product({warehouse: 5})
        upsert_mapping(local_product_id=product.id, patch={"shopify_variant_id": "v-100"})

        resp = client.post("/api/channels/shopify/orders", json={
            "order_id": "5001",
            "line_items": [
                {"external_id": "v-100", "quantity": 1},
                {"external_id": "v-404", "quantity": 1},
            ],
        })

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["counts"]["recorded"] == 1
        assert body["counts"]["unmapped"] == 1

    def test_order_without_primary_location_is_409(self, client, db_session):
        resp = client.post("/api/channels/square/orders", json={"line_items": []})

        assert resp.status_code == 409
        assert resp.get_json()["error_kind"] == "NoPrimaryLocation"

    def test_unknown_platform_is_400(self, client, db_session, warehouse):
        resp = client.post("/api/channels/etsy/orders", json={"line_items": []})

        assert resp.status_code == 400

    def test_discrepancies_report(self, client, db_session, warehouse, make_product):
        product = make_product({warehouse: 4}, sku="DISC")
        product_id = product.id
        upsert_mapping(local_product_id=product_id, patch={"shopify_variant_id": "v-7"})

        resp = client.post("/api/channels/shopify/discrepancies", json={
            "levels": [{"external_id": "v-7", "available": 1}],
        })

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["count"] == 1
        assert body["items"][0]["product_id"] == product_id
        assert body["items"][0]["difference"] == 3

    def test_discrepancies_need_levels(self, client, db_session, warehouse):
        resp = client.post("/api/channels/shopify/discrepancies", json={})

        assert resp.status_code == 400

    def test_sync_then_logs(self, client, db_session, warehouse, make_product):
        product = make_product({warehouse: 4})
        upsert_mapping(local_product_id=product.id, patch={"square_item_variation_id": "sq-1"})

        resp = client.post("/api/channels/square/sync", json={
            "levels": [{"external_id": "sq-1", "available": 6}, {"external_id": "sq-2", "available": "x"}],
        })

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["success"] is False
        assert body["log"]["status"] == "partial"

        logs = client.get("/api/channels/sync-logs?platform=square").get_json()
        assert logs["count"] == 1
        assert logs["items"][0]["items_processed"] == 1
        assert logs["items"][0]["items_failed"] == 1

    def test_sync_without_primary_location_is_409(self, client, db_session):
        resp = client.post("/api/channels/amazon/sync", json={"levels": []})

        assert resp.status_code == 409
        assert resp.get_json()["error_kind"] == "NoPrimaryLocation"
        assert client.get("/api/channels/sync-logs").get_json()["items"][0]["status"] == "failed"

    def test_sync_logs_bad_limit_is_400(self, client, db_session):
        assert client.get("/api/channels/sync-logs?limit=many").status_code == 400
