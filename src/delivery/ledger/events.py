"""Driver ledger events."""

from protean.fields import DateTime, Identifier, Integer, String, Text

from delivery.domain import delivery


@delivery.event(part_of="DriverAccount")
class DeliveryFeeAccrued:
    """A completed delivery earned the driver a fee."""

    __version__ = 1

    driver_id = Identifier(required=True)
    order_id = Identifier(required=True)
    amount = Integer(required=True)
    accrued_total = Integer(required=True)
    accrued_at = DateTime(required=True)


@delivery.event(part_of="DriverAccount")
class CashoutRequested:
    """A driver claimed every unclaimed delivery fee in one payout request."""

    __version__ = 1

    driver_id = Identifier(required=True)
    cashout_id = Identifier(required=True)
    order_ids = Text(required=True)  # JSON list of order ids
    order_count = Integer(required=True)
    amount = Integer(required=True)
    requested_at = DateTime(required=True)


@delivery.event(part_of="DriverAccount")
class CashoutPaid:
    """An operator confirmed a pending cashout was paid to the driver."""

    __version__ = 1

    driver_id = Identifier(required=True)
    cashout_id = Identifier(required=True)
    order_ids = Text(required=True)  # JSON list of order ids
    amount = Integer(required=True)
    paid_by = String(max_length=255)
    paid_at = DateTime(required=True)
