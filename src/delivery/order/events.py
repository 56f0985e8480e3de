"""Order domain events — immutable facts about an order's lifecycle.

Events are past tense, versioned, and carry enough data for projectors and
the ledger and credit event handlers to act without reloading the order.
"""

from protean.fields import DateTime, Identifier, Integer, String, Text

from delivery.domain import delivery


@delivery.event(part_of="Order")
class OrderPlaced:
    """A priced order was accepted from checkout."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    lines = Text(required=True)  # JSON list of {product_id, unit_price, quantity}
    subtotal = Integer(required=True)
    service_fee = Integer(required=True)
    total = Integer(required=True)
    delivery_date = String(required=True, max_length=10)
    placed_at = DateTime(required=True)


@delivery.event(part_of="Order")
class OrderStatusChanged:
    """The order moved along its lifecycle."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    from_status = String(required=True, max_length=20)
    to_status = String(required=True, max_length=20)
    driver_id = Identifier()
    delivery_date = String(max_length=10)
    changed_at = DateTime(required=True)


@delivery.event(part_of="Order")
class DriverAssigned:
    """A driver was assigned to (or removed from) the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    driver_id = Identifier()  # empty when the driver was unassigned
    previous_driver_id = Identifier()
    assigned_at = DateTime(required=True)


@delivery.event(part_of="Order")
class ItemsReconciled:
    """A driver reported what was actually collected for the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    driver_id = Identifier(required=True)
    missing_items = Text(required=True)  # JSON list of missing item dicts
    refund_amount = Integer(required=True)
    adjusted_total = Integer(required=True)
    refund_status = String(max_length=20)
    driver_note = String(max_length=1000)
    reconciled_at = DateTime(required=True)


@delivery.event(part_of="Order")
class RefundSettled:
    """The refund owed for missing items was paid out or credited."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    outcome = String(required=True, max_length=20)
    amount = Integer(required=True)
    settled_at = DateTime(required=True)


@delivery.event(part_of="Order")
class CreditApplied:
    """Store credit the customer redeemed was applied to the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    redemption_id = Identifier(required=True)
    amount = Integer(required=True)
    discount_applied = Integer(required=True)
    amount_due = Integer(required=True)
    applied_at = DateTime(required=True)
