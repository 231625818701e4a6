"""Integration tests for the order, sub-order, settlement and seller endpoints via TestClient."""

from datetime import date

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from protean import current_domain

from marketplace.api.errors import register_error_handlers
from marketplace.api.routes import order_router, seller_router, settlement_router, sub_order_router
from marketplace.earning.earning import Earning, EarningStatus
from marketplace.order.order import Order
from marketplace.realtime.websocket import tracking_router
from marketplace.suborder.suborder import SubOrder
from marketplace.utils.repository import fetch_all

ADMIN = {"X-User-Id": "admin-1", "X-User-Role": "admin"}
BUYER = {"X-User-Id": "cust-001", "X-User-Role": "customer"}
OTHER_BUYER = {"X-User-Id": "cust-999", "X-User-Role": "customer"}
SELLER_A = {"X-User-Id": "seller-a", "X-User-Role": "seller"}
SELLER_Z = {"X-User-Id": "seller-z", "X-User-Role": "seller"}


def _build_app():
    app = FastAPI()
    app.include_router(order_router)
    app.include_router(sub_order_router)
    app.include_router(settlement_router)
    app.include_router(seller_router)
    app.include_router(tracking_router)
    register_error_handlers(app)
    return app


@pytest.fixture()
def client():
    return TestClient(_build_app())


def _place_order(client, headers=BUYER, customer_id="cust-001"):
    response = client.post(
        "/orders",
        json={
            "customer_id": customer_id,
            "items": [
                {"product_id": "p-1", "seller_id": "seller-a", "title": "Mug", "quantity": 1, "unit_price": 7500},
                {"product_id": "p-2", "seller_id": "seller-b", "title": "Towel", "quantity": 1, "unit_price": 7500},
            ],
            "shipping_address": {"street": "1 Main St"},
            "shipping_method": "express",
        },
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()["order_id"]


def _pay(client, order_id):
    response = client.put(f"/orders/{order_id}/payment", json={"payment_id": "pay-001"}, headers=ADMIN)
    assert response.status_code == 200
    return response


class TestPlaceOrderEndpoint:
    def test_customer_places_order(self, client):
        order_id = _place_order(client)
        order = current_domain.repository_for(Order).get(order_id)
        assert order.amount == 15000
        assert order.shipping_method == "express"

    def test_customer_cannot_place_for_someone_else(self, client):
        response = client.post(
            "/orders",
            json={"customer_id": "cust-002", "items": [{"product_id": "p", "quantity": 1, "unit_price": 1}]},
            headers=BUYER,
        )
        assert response.status_code == 403

    def test_missing_identity_is_forbidden(self, client):
        response = client.get("/orders")
        assert response.status_code == 403


class TestGetOrderEndpoint:
    def test_buyer_reads_own_order(self, client):
        order_id = _place_order(client)
        response = client.get(f"/orders/{order_id}", headers=BUYER)

        assert response.status_code == 200
        body = response.json()
        assert body["source"] == "orders"
        assert body["shipping_address"] == {"street": "1 Main St"}

    def test_other_buyer_is_forbidden(self, client):
        order_id = _place_order(client)
        assert client.get(f"/orders/{order_id}", headers=OTHER_BUYER).status_code == 403

    def test_unknown_order_is_404(self, client):
        response = client.get("/orders/nope", headers=ADMIN)
        assert response.status_code == 404
        assert response.json() == {"error": "Not found"}

    def test_sub_order_id_resolves_through_orders_route(self, client):
        order_id = _place_order(client)
        _pay(client, order_id)
        sub_order_id = str(fetch_all(SubOrder, parent_order_id=order_id, seller_id="seller-a")[0].id)

        response = client.get(f"/orders/{sub_order_id}", headers=SELLER_A)

        assert response.status_code == 200
        body = response.json()
        assert body["source"] == "sub_orders"
        assert body["parent_order_id"] == order_id
        assert body["amount"] == 7500

    def test_list_orders(self, client):
        _place_order(client)
        response = client.get("/orders", params={"status": "pending", "limit": 5}, headers=BUYER)

        assert response.status_code == 200
        body = response.json()
        assert body["pagination"]["total"] == 1
        assert body["pagination"]["limit"] == 5


class TestStatusEndpoints:
    def test_admin_updates_status(self, client):
        order_id = _place_order(client)
        response = client.patch(
            f"/orders/{order_id}/status",
            json={"status": "confirmed", "notes": "Stock checked"},
            headers=ADMIN,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "confirmed"
        assert body["timeline"][0]["status"] == "confirmed"
        assert body["timeline"][0]["changed_by"] == "admin-1"

    def test_buyer_cannot_update_status(self, client):
        order_id = _place_order(client)
        response = client.patch(f"/orders/{order_id}/status", json={"status": "cancelled"}, headers=BUYER)
        assert response.status_code == 403

    def test_unrelated_seller_cannot_update_status(self, client):
        order_id = _place_order(client)
        response = client.patch(f"/orders/{order_id}/status", json={"status": "shipped"}, headers=SELLER_Z)
        assert response.status_code == 403

    def test_bogus_status_is_400(self, client):
        order_id = _place_order(client)
        response = client.patch(f"/orders/{order_id}/status", json={"status": "bogus"}, headers=ADMIN)

        assert response.status_code == 400
        assert current_domain.repository_for(Order).get(order_id).status == "pending"

    def test_missing_status_is_400(self, client):
        order_id = _place_order(client)
        response = client.patch(f"/orders/{order_id}/status", json={}, headers=ADMIN)
        assert response.status_code == 400

    def test_tracking_accepts_camel_case(self, client):
        order_id = _place_order(client)
        response = client.patch(
            f"/orders/{order_id}/tracking",
            json={"trackingNumber": "1Z999", "carrier": "UPS"},
            headers=ADMIN,
        )

        assert response.status_code == 200
        assert response.json()["tracking_info"]["tracking_number"] == "1Z999"

    def test_tracking_without_carrier_is_400(self, client):
        order_id = _place_order(client)
        response = client.patch(f"/orders/{order_id}/tracking", json={"tracking_number": "1Z999"}, headers=ADMIN)
        assert response.status_code == 400

    def test_seller_updates_sub_order(self, client):
        order_id = _place_order(client)
        _pay(client, order_id)
        sub_order_id = str(fetch_all(SubOrder, parent_order_id=order_id, seller_id="seller-a")[0].id)

        response = client.patch(f"/sub-orders/{sub_order_id}/status", json={"status": "shipped"}, headers=SELLER_A)

        assert response.status_code == 200
        assert response.json()["status"] == "shipped"
        assert current_domain.repository_for(Order).get(order_id).status == "pending"

    def test_sub_order_routes_reject_parent_order_ids(self, client):
        order_id = _place_order(client)

        status = client.patch(f"/sub-orders/{order_id}/status", json={"status": "shipped"}, headers=ADMIN)
        tracking = client.patch(
            f"/sub-orders/{order_id}/tracking",
            json={"tracking_number": "1Z999", "carrier": "UPS"},
            headers=ADMIN,
        )

        assert status.status_code == 404
        assert tracking.status_code == 404
        order = current_domain.repository_for(Order).get(order_id)
        assert order.status == "pending"
        assert not order.tracking_number

    def test_timeline_endpoint(self, client):
        order_id = _place_order(client)
        client.patch(f"/orders/{order_id}/status", json={"status": "confirmed"}, headers=ADMIN)

        response = client.get(f"/orders/{order_id}/timeline", headers=BUYER)

        assert response.status_code == 200
        assert [entry["status"] for entry in response.json()["timeline"]] == ["confirmed"]


class TestPaymentAndSplitEndpoints:
    def test_payment_splits_order(self, client):
        order_id = _place_order(client)
        _pay(client, order_id)

        earnings = fetch_all(Earning, order_id=order_id)
        assert len(earnings) == 2
        assert all(e.commission_amount == 1125 for e in earnings)

    def test_double_payment_is_400(self, client):
        order_id = _place_order(client)
        _pay(client, order_id)
        response = client.put(f"/orders/{order_id}/payment", json={"payment_id": "pay-002"}, headers=ADMIN)
        assert response.status_code == 400

    def test_payment_is_admin_only(self, client):
        order_id = _place_order(client)
        response = client.put(f"/orders/{order_id}/payment", json={"payment_id": "pay-001"}, headers=BUYER)
        assert response.status_code == 403

    def test_resplit_is_idempotent(self, client):
        order_id = _place_order(client)
        _pay(client, order_id)

        response = client.post(f"/orders/{order_id}/split", headers=ADMIN)

        assert response.status_code == 200
        assert response.json()["earning_ids"] == []
        assert len(response.json()["sub_order_ids"]) == 2


class TestSettlementEndpoints:
    def test_commission_rate_then_settlement(self, client):
        response = client.put("/settlements/commission-rate", json={"rate_percent": 10}, headers=ADMIN)
        assert response.status_code == 200

        order_id = _place_order(client)
        _pay(client, order_id)
        earnings = fetch_all(Earning, order_id=order_id)
        assert {e.net_amount for e in earnings} == {6750}

        settle_on = earnings[0].available_date
        response = client.post(
            "/settlements/run",
            json={"as_of": f"{settle_on.isoformat()}T12:00:00"},
            headers=ADMIN,
        )
        assert response.status_code == 200
        assert response.json()["promoted_count"] == 2
        assert response.json()["total_amount_promoted"] == 13500

        again = client.post("/settlements/run", json={"as_of": f"{settle_on.isoformat()}T12:00:00"}, headers=ADMIN)
        assert again.json()["promoted_count"] == 0

    def test_run_before_holding_period_promotes_nothing(self, client):
        order_id = _place_order(client)
        _pay(client, order_id)

        response = client.post("/settlements/run", json={"as_of": f"{date.today().isoformat()}T12:00:00"}, headers=ADMIN)

        assert response.json()["promoted_count"] == 0
        assert {e.status for e in fetch_all(Earning, order_id=order_id)} == {EarningStatus.PENDING.value}

    def test_commission_rate_out_of_range_is_422(self, client):
        response = client.put("/settlements/commission-rate", json={"rate_percent": 150}, headers=ADMIN)
        assert response.status_code == 422

    def test_settlement_is_admin_only(self, client):
        assert client.post("/settlements/run", headers=SELLER_A).status_code == 403


class TestSellerEarningsEndpoint:
    def test_seller_reads_own_earnings(self, client):
        order_id = _place_order(client)
        _pay(client, order_id)

        response = client.get("/sellers/seller-a/earnings", headers=SELLER_A)

        assert response.status_code == 200
        body = response.json()
        assert body["pending_amount"] == 7500 - 1125
        assert len(body["earnings"]) == 1

    def test_seller_cannot_read_other_sellers_earnings(self, client):
        assert client.get("/sellers/seller-a/earnings", headers=SELLER_Z).status_code == 403

    def test_mark_earning_paid(self, client):
        order_id = _place_order(client)
        _pay(client, order_id)
        earning = fetch_all(Earning, order_id=order_id, seller_id="seller-a")[0]
        client.post(
            "/settlements/run",
            json={"as_of": f"{earning.available_date.isoformat()}T12:00:00"},
            headers=ADMIN,
        )

        response = client.post(
            f"/settlements/earnings/{earning.id}/paid",
            json={"payout_id": "po-1"},
            headers=ADMIN,
        )

        assert response.status_code == 200
        assert current_domain.repository_for(Earning).get(earning.id).status == EarningStatus.PAID.value


class TestUnexpectedErrors:
    def test_unexpected_error_is_generic_500(self, monkeypatch):
        from marketplace.api import routes

        def explode(*args, **kwargs):
            raise RuntimeError("secret internals")

        monkeypatch.setattr(routes, "list_orders", explode)
        client = TestClient(_build_app(), raise_server_exceptions=False)

        response = client.get("/orders", headers=ADMIN)

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}
