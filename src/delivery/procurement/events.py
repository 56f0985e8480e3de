"""Procurement events."""

from protean.fields import DateTime, Identifier, Integer, String, Text

from delivery.domain import delivery


@delivery.event(part_of="ProcurementDiscount")
class DiscountCommitted:
    """Stock was bought below list price and the savings were split.

    `allocations` lists the orders whose demand made up the aggregated
    quantity, so their customers can be credited their share.
    """

    __version__ = 1

    discount_id = Identifier(required=True)
    date = String(required=True, max_length=10)
    product_id = Identifier(required=True)
    list_unit_price = Integer(required=True)
    paid_unit_price = Integer(required=True)
    aggregated_quantity = Integer(required=True)
    total_discount = Integer(required=True)
    customer_share = Integer(required=True)
    business_share = Integer(required=True)
    allocations = Text(required=True)  # JSON list of {order_id, customer_id, quantity}
    recorded_by = String(max_length=255)
    recorded_at = DateTime(required=True)
