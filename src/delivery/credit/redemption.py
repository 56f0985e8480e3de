"""Redeeming customer credit — command and handler.

The order must belong to the customer and have room for the credit. The
order records the redemption in `discount_applied` when it handles
`CustomerCreditRedeemed`; its totals and refund are left as they are.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, Integer
from protean.utils.globals import current_domain

from delivery.credit.customer_credit import CustomerCredit
from delivery.domain import delivery
from delivery.errors import InsufficientCredit, NotFound
from delivery.order.order import Order
from delivery.shared.money import format_amount
from delivery.utils.queries import load

logger = structlog.get_logger(__name__)


@delivery.command(part_of="CustomerCredit")
class RedeemCredit:
    customer_id = Identifier(required=True)
    order_id = Identifier(required=True)
    amount = Integer(required=True)


@delivery.command_handler(part_of=CustomerCredit)
class RedeemCreditHandler:
    @handle(RedeemCredit)
    def redeem(self, command):
        order = load(Order, command.order_id)
        if str(order.customer_id) != str(command.customer_id):
            raise ValidationError({"order_id": [f"Order {command.order_id} does not belong to this customer"]})
        order.ensure_credit_fits(command.amount)

        try:
            account = load(CustomerCredit, command.customer_id, label="Customer credit")
        except NotFound:
            raise InsufficientCredit({"amount": [f"Only {format_amount(0)} credit is available"]}) from None

        account.redeem(order_id=command.order_id, amount=command.amount)
        current_domain.repository_for(CustomerCredit).add(account)
        logger.info(
            "Customer credit redeemed",
            customer_id=command.customer_id,
            order_id=command.order_id,
            amount=command.amount,
            available=account.available,
        )
        return account.available
