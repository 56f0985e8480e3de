"""Shared BDD fixtures and step definitions for the delivery domain."""

import pytest
from delivery.errors import StateConflict
from delivery.order.events import (
    DriverAssigned,
    ItemsReconciled,
    OrderPlaced,
    OrderStatusChanged,
    RefundSettled,
)
from delivery.order.order import Order
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then

_ORDER_EVENT_CLASSES = {
    "OrderPlaced": OrderPlaced,
    "OrderStatusChanged": OrderStatusChanged,
    "DriverAssigned": DriverAssigned,
    "ItemsReconciled": ItemsReconciled,
    "RefundSettled": RefundSettled,
}

_DEFAULT_LINES = [
    {"product_id": "prod-apples", "unit_price": 1000, "quantity": 3},
    {"product_id": "prod-bread", "unit_price": 2000, "quantity": 2},
]


@pytest.fixture()
def error():
    """Container for captured domain errors."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("a pending order", target_fixture="order")
def pending_order():
    order = Order.place(customer_id="cust-bdd", lines=_DEFAULT_LINES)
    order._events.clear()
    return order


@given("a cancelled order", target_fixture="order")
def cancelled_order():
    order = Order.place(customer_id="cust-bdd", lines=_DEFAULT_LINES)
    order.transition("cancelled")
    order._events.clear()
    return order


@given("an in-transit order whose driver was unassigned", target_fixture="order")
def in_transit_order_without_driver():
    order = Order.place(customer_id="cust-bdd", lines=_DEFAULT_LINES)
    order.assign_driver("drv-bdd")
    order.transition("processing")
    order.verify_collection(
        "drv-bdd",
        [{"product_id": line["product_id"], "available_quantity": line["quantity"]} for line in _DEFAULT_LINES],
    )
    order.assign_driver(None)
    order._events.clear()
    return order


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def order_status_is(order, status):
    assert order.status == status


@then(parsers.cfparse("the {subject} action fails with a validation error"))
def action_fails_with_validation_error(error, subject):
    assert error["exc"] is not None, f"Expected the {subject} action to fail but it succeeded"
    assert isinstance(error["exc"], ValidationError)


@then(parsers.cfparse("the {subject} action fails with a state conflict"))
def action_fails_with_state_conflict(error, subject):
    assert error["exc"] is not None, f"Expected the {subject} action to fail but it succeeded"
    assert isinstance(error["exc"], StateConflict)


@then(parsers.cfparse("a {event_type} event is raised"))
def order_event_raised(order, event_type):
    event_cls = _ORDER_EVENT_CLASSES[event_type]
    assert any(
        isinstance(e, event_cls) for e in order._events
    ), f"No {event_type} event found. Events: {[type(e).__name__ for e in order._events]}"
