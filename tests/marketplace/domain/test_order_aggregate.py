"""Tests for the Order aggregate — placement, status changes, tracking and payment."""

import re

import pytest
from protean.exceptions import ValidationError

from marketplace.order.events import OrderPaid, OrderPlaced, OrderStatusChanged, TrackingAdded
from marketplace.order.order import Order, OrderStatus, PaymentStatus


def _make_order(**overrides):
    defaults = {
        "customer_id": "cust-001",
        "items_data": [
            {
                "product_id": "prod-001",
                "seller_id": "seller-a",
                "title": "Ceramic Mug",
                "quantity": 2,
                "unit_price": 1250,
            },
            {
                "product_id": "prod-002",
                "seller_id": "seller-b",
                "title": "Tea Towel",
                "quantity": 1,
                "unit_price": 800,
            },
        ],
        "shipping_address": {"street": "1 Main St", "city": "Springfield"},
    }
    defaults.update(overrides)
    order = Order.place(**defaults)
    order._events.clear()
    return order


class TestOrderPlacement:
    def test_new_order_is_pending_and_unpaid(self):
        order = _make_order()
        assert order.status == OrderStatus.PENDING.value
        assert order.payment_status == PaymentStatus.UNPAID.value

    def test_amount_is_sum_of_line_totals(self):
        order = _make_order()
        assert order.amount == 2 * 1250 + 800

    def test_generated_order_number_format(self):
        order = _make_order()
        assert re.fullmatch(r"ORD-\d{8}-[0-9A-F]{6}", order.order_number)

    def test_explicit_order_number_is_kept(self):
        order = _make_order(order_number="ORD-CUSTOM-1")
        assert order.order_number == "ORD-CUSTOM-1"

    def test_order_needs_items(self):
        with pytest.raises(ValidationError) as exc:
            Order.place(customer_id="cust-001", items_data=[])
        assert "An order needs at least one item" in str(exc.value)

    def test_place_raises_order_placed(self):
        order = Order.place(
            customer_id="cust-001",
            items_data=[{"product_id": "p", "seller_id": "s", "quantity": 1, "unit_price": 100}],
        )
        assert len(order._events) == 1
        assert isinstance(order._events[0], OrderPlaced)
        assert order._events[0].amount == 100

    def test_seller_ids(self):
        order = _make_order()
        assert order.seller_ids() == {"seller-a", "seller-b"}

    def test_address_round_trips_as_dict(self):
        order = _make_order()
        assert order.address() == {"street": "1 Main St", "city": "Springfield"}


class TestOrderStatusUpdate:
    def test_update_returns_previous_status(self):
        order = _make_order()
        previous = order.update_status("confirmed")
        assert previous == OrderStatus.PENDING
        assert order.status == OrderStatus.CONFIRMED.value

    def test_update_raises_one_status_changed_event(self):
        order = _make_order()
        order.update_status("confirmed", actor_id="admin-1", reason="checked", notes="ok")

        assert len(order._events) == 1
        event = order._events[0]
        assert isinstance(event, OrderStatusChanged)
        assert event.previous_status == "pending"
        assert event.new_status == "confirmed"
        assert event.reason == "checked"
        assert event.notes == "ok"

    def test_status_input_is_normalised(self):
        order = _make_order()
        order.update_status("  SHIPPED ")
        assert order.status == OrderStatus.SHIPPED.value

    def test_shipping_stamps_shipped_at(self):
        order = _make_order()
        order.update_status("shipped")
        assert order.shipped_at is not None

    def test_delivery_stamps_delivered_at(self):
        order = _make_order()
        order.update_status("delivered")
        assert order.delivered_at is not None

    def test_unknown_status_is_rejected_without_change(self):
        order = _make_order()
        with pytest.raises(ValidationError) as exc:
            order.update_status("bogus")

        assert "Invalid status 'bogus'" in str(exc.value)
        assert order.status == OrderStatus.PENDING.value
        assert order._events == []

    def test_missing_status_is_rejected(self):
        order = _make_order()
        with pytest.raises(ValidationError) as exc:
            order.update_status(None)
        assert "Status is required" in str(exc.value)


class TestTransitionPolicy:
    def test_lenient_policy_allows_backwards_moves(self):
        order = _make_order()
        order.update_status("delivered")
        order.update_status("pending")
        assert order.status == OrderStatus.PENDING.value

    def test_strict_policy_allows_forward_edges(self, monkeypatch):
        monkeypatch.setenv("ORDER_TRANSITION_POLICY", "strict")
        order = _make_order()
        for status in ("confirmed", "processing", "shipped", "out_for_delivery", "delivered", "refunded"):
            order.update_status(status)
        assert order.status == OrderStatus.REFUNDED.value

    def test_strict_policy_rejects_skipping_ahead(self, monkeypatch):
        monkeypatch.setenv("ORDER_TRANSITION_POLICY", "strict")
        order = _make_order()
        with pytest.raises(ValidationError) as exc:
            order.update_status("delivered")
        assert "Cannot transition from pending to delivered" in str(exc.value)
        assert order._events == []

    def test_strict_policy_refunded_is_terminal(self, monkeypatch):
        monkeypatch.setenv("ORDER_TRANSITION_POLICY", "strict")
        order = _make_order()
        order.update_status("cancelled")
        order.update_status("refunded")
        with pytest.raises(ValidationError):
            order.update_status("pending")


class TestOrderTracking:
    def test_add_tracking_keeps_status(self):
        order = _make_order()
        order.update_status("processing")
        order._events.clear()

        order.add_tracking("1Z999", "UPS")

        assert order.tracking_number == "1Z999"
        assert order.carrier == "UPS"
        assert order.status == OrderStatus.PROCESSING.value
        assert isinstance(order._events[0], TrackingAdded)

    @pytest.mark.parametrize("tracking_number,carrier", [("", "UPS"), ("1Z999", None), (None, None)])
    def test_tracking_needs_number_and_carrier(self, tracking_number, carrier):
        order = _make_order()
        with pytest.raises(ValidationError) as exc:
            order.add_tracking(tracking_number, carrier)
        assert "Tracking number and carrier are required" in str(exc.value)
        assert order._events == []


class TestOrderPayment:
    def test_record_payment_marks_paid(self):
        order = _make_order()
        order.record_payment("pay-001", payment_method="card")

        assert order.payment_status == PaymentStatus.PAID.value
        assert order.payment_id == "pay-001"
        assert order.payment_method == "card"
        assert order.paid_at is not None
        assert isinstance(order._events[0], OrderPaid)

    def test_payment_leaves_status_alone(self):
        order = _make_order()
        order.record_payment("pay-001")
        assert order.status == OrderStatus.PENDING.value

    def test_cannot_pay_twice(self):
        order = _make_order()
        order.record_payment("pay-001")
        with pytest.raises(ValidationError) as exc:
            order.record_payment("pay-002")
        assert "already paid" in str(exc.value)

    def test_cannot_pay_cancelled_order(self):
        order = _make_order()
        order.update_status("cancelled")
        with pytest.raises(ValidationError):
            order.record_payment("pay-001")
