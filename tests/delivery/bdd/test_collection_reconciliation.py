"""BDD tests for collection reconciliation."""

from delivery.errors import StateConflict
from delivery.order.order import Order
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, scenarios, then, when

scenarios("features/collection_reconciliation.feature")


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(
    parsers.cfparse(
        'a processing order with {qty_a:d} "{product_a}" at {price_a:d} '
        'and {qty_b:d} "{product_b}" at {price_b:d} for driver "{driver_id}"'
    ),
    target_fixture="order",
)
def processing_order(qty_a, product_a, price_a, qty_b, product_b, price_b, driver_id):
    order = Order.place(
        customer_id="cust-bdd-rc",
        lines=[
            {"product_id": product_a, "unit_price": price_a, "quantity": qty_a},
            {"product_id": product_b, "unit_price": price_b, "quantity": qty_b},
        ],
    )
    order.assign_driver(driver_id)
    order.transition("processing")
    order._events.clear()
    return order


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
def _report(order, driver_id, reports, error):
    try:
        order.verify_collection(driver_id, reports)
    except (ValidationError, StateConflict) as exc:
        error["exc"] = exc
    return order


@when(
    parsers.cfparse(
        'driver "{driver_id}" reports {avail_a:d} "{product_a}" and {avail_b:d} "{product_b}" '
        'available because "{reason}"'
    ),
    target_fixture="order",
)
def report_with_reason(order, error, driver_id, avail_a, product_a, avail_b, product_b, reason):
    reports = [
        {"product_id": product_a, "available_quantity": avail_a, "reason": reason},
        {"product_id": product_b, "available_quantity": avail_b, "reason": reason},
    ]
    return _report(order, driver_id, reports, error)


@when(
    parsers.cfparse(
        'driver "{driver_id}" reports {avail_a:d} "{product_a}" and {avail_b:d} "{product_b}" '
        "available without a reason"
    ),
    target_fixture="order",
)
def report_without_reason(order, error, driver_id, avail_a, product_a, avail_b, product_b):
    reports = [
        {"product_id": product_a, "available_quantity": avail_a},
        {"product_id": product_b, "available_quantity": avail_b},
    ]
    return _report(order, driver_id, reports, error)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(
    parsers.cfparse(
        'the order has {count:d} missing item for "{product_id}" with {missing:d} missing at {unit_price:d}'
    )
)
def order_has_missing_item(order, count, product_id, missing, unit_price):
    assert len(order.missing_items) == count
    item = order.missing_items[0]
    assert item.product_id == product_id
    assert item.missing_quantity == missing
    assert item.unit_price == unit_price


@then(parsers.cfparse("the refund amount is {amount:d}"))
def refund_amount_is(order, amount):
    assert order.refund_amount == amount


@then(parsers.cfparse("the adjusted total is {amount:d}"))
def adjusted_total_is(order, amount):
    assert order.adjusted_total == amount


@then(parsers.cfparse('the refund status is "{status}"'))
def refund_status_is(order, status):
    assert order.refund_status == status
