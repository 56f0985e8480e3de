"""Customer credit events."""

from protean.fields import DateTime, Identifier, Integer, String

from delivery.domain import delivery


@delivery.event(part_of="CustomerCredit")
class CustomerCreditEarned:
    __version__ = 1

    customer_id = Identifier(required=True)
    source = String(required=True, max_length=20)
    reference = String(required=True, max_length=255)
    order_id = Identifier()
    amount = Integer(required=True)
    available = Integer(required=True)
    earned_at = DateTime(required=True)


@delivery.event(part_of="CustomerCredit")
class CustomerCreditRedeemed:
    __version__ = 1

    customer_id = Identifier(required=True)
    order_id = Identifier(required=True)
    redemption_id = Identifier(required=True)
    amount = Integer(required=True)
    available = Integer(required=True)
    redeemed_at = DateTime(required=True)
