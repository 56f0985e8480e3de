"""BDD tests for procurement discounts."""

from delivery.errors import AlreadyRecorded, InvalidPrice
from delivery.procurement.discount import ProcurementDiscount
from protean import current_domain
from pytest_bdd import given, parsers, scenarios, then, when

scenarios("features/procurement_discount.feature")


@given(parsers.cfparse('processing orders for {quantity:d} "{product_id}" at {price:d} delivered on "{date}"'))
def processing_orders(flows, quantity, product_id, price, date):
    first = quantity // 2
    for customer_id, qty in (("cust-bdd-p1", first), ("cust-bdd-p2", quantity - first)):
        order_id = flows.place_order(
            customer_id=customer_id,
            lines=[{"product_id": product_id, "unit_price": price, "quantity": qty}],
            delivery_date=date,
        )
        flows.transition(order_id, "processing")


@when(parsers.cfparse('"{product_id}" on "{date}" is recorded as bought at {price:d}'), target_fixture="discount_id")
def record_discount(flows, product_id, date, price):
    return flows.save_discount(date, product_id, paid_unit_price=price)


@when(parsers.cfparse('recording "{product_id}" on "{date}" at {price:d} is attempted'))
def attempt_discount(flows, error, product_id, date, price):
    try:
        flows.save_discount(date, product_id, paid_unit_price=price)
    except (AlreadyRecorded, InvalidPrice) as exc:
        error["exc"] = exc


@then(
    parsers.cfparse(
        "the discount totals {total:d} with customer share {customer_share:d} and business share {business_share:d}"
    )
)
def discount_totals(discount_id, total, customer_share, business_share):
    discount = current_domain.repository_for(ProcurementDiscount).get(discount_id)
    assert discount.total_discount == total
    assert discount.customer_share == customer_share
    assert discount.business_share == business_share
