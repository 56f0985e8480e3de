"""Tests for Order placement and its monetary invariants."""

import json
from datetime import UTC, datetime

import pytest
from delivery.errors import InvalidPrice, InvalidQuantity
from delivery.order.events import OrderPlaced
from delivery.order.order import Order, OrderStatus
from protean.exceptions import ValidationError

LINES = [
    {"product_id": "prod-apples", "unit_price": 1000, "quantity": 3},
    {"product_id": "prod-bread", "unit_price": 2000, "quantity": 2},
]


def _place(**overrides):
    kwargs = {"customer_id": "cust-001", "lines": LINES, "service_fee": 500}
    kwargs.update(overrides)
    return Order.place(**kwargs)


class TestOrderPlacement:
    def test_starts_pending(self):
        assert _place().status == OrderStatus.PENDING.value

    def test_computes_totals(self):
        order = _place()
        assert order.subtotal == 7000
        assert order.service_fee == 500
        assert order.total == 7500
        assert order.adjusted_total == 7500
        assert order.refund_amount == 0
        assert order.refund_status is None

    def test_snapshots_lines(self):
        order = _place()
        assert len(order.lines) == 2
        line = next(li for li in order.lines if li.product_id == "prod-bread")
        assert line.unit_price == 2000
        assert line.quantity == 2

    def test_delivery_date_defaults_to_placement_date(self):
        order = _place(placed_at=datetime(2025, 3, 10, 9, 30, tzinfo=UTC))
        assert order.delivery_date == "2025-03-10"
        assert order.created_at == datetime(2025, 3, 10, 9, 30, tzinfo=UTC)

    def test_explicit_delivery_date(self):
        assert _place(delivery_date="2025-04-01").delivery_date == "2025-04-01"

    def test_raises_order_placed(self):
        order = _place()
        assert len(order._events) == 1
        event = order._events[0]
        assert isinstance(event, OrderPlaced)
        assert event.total == 7500
        assert {line["product_id"] for line in json.loads(event.lines)} == {"prod-apples", "prod-bread"}


class TestOrderPlacementValidation:
    def test_requires_a_line(self):
        with pytest.raises(ValidationError) as exc:
            _place(lines=[])
        assert "lines" in exc.value.messages

    def test_rejects_duplicate_products(self):
        with pytest.raises(ValidationError):
            _place(lines=[LINES[0], LINES[0]])

    def test_rejects_zero_quantity(self):
        with pytest.raises(InvalidQuantity):
            _place(lines=[{"product_id": "p1", "unit_price": 100, "quantity": 0}])

    def test_rejects_negative_price(self):
        with pytest.raises(InvalidPrice):
            _place(lines=[{"product_id": "p1", "unit_price": -1, "quantity": 1}])

    def test_rejects_negative_service_fee(self):
        with pytest.raises(InvalidPrice):
            _place(service_fee=-100)

    def test_rejects_malformed_delivery_date(self):
        with pytest.raises(ValidationError) as exc:
            _place(delivery_date="10/03/2025")
        assert "delivery_date" in exc.value.messages


class TestOrderInvariants:
    def test_total_cannot_drift_from_subtotal_and_fee(self):
        order = _place()
        with pytest.raises(ValidationError):
            order.total = 1

    def test_adjusted_total_cannot_drift_from_refund(self):
        order = _place()
        with pytest.raises(ValidationError):
            order.adjusted_total = order.total - 100

    def test_refund_must_match_missing_items(self):
        order = _place()
        with pytest.raises(ValidationError):
            order.refund_amount = 100
