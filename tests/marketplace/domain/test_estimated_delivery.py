"""Tests for the delivery estimate shown on order pages."""

from datetime import UTC, date, datetime

from marketplace.queries.detail import estimated_delivery

PLACED = datetime(2026, 5, 1, 12, 0, tzinfo=UTC)
SHIPPED = datetime(2026, 5, 4, 9, 0, tzinfo=UTC)


class TestEstimatedDelivery:
    def test_unshipped_adds_processing_and_transit(self):
        assert estimated_delivery("confirmed", PLACED, None, "standard") == date(2026, 5, 10)

    def test_shipped_counts_from_ship_date(self):
        assert estimated_delivery("shipped", PLACED, SHIPPED, "express") == date(2026, 5, 7)

    def test_overnight(self):
        assert estimated_delivery("shipped", PLACED, SHIPPED, "overnight") == date(2026, 5, 5)

    def test_unknown_method_uses_standard(self):
        assert estimated_delivery("pending", PLACED, None, None) == date(2026, 5, 10)

    def test_delivered_has_no_estimate(self):
        assert estimated_delivery("delivered", PLACED, SHIPPED, "standard") is None

    def test_no_dates_no_estimate(self):
        assert estimated_delivery("pending", None, None, "standard") is None
