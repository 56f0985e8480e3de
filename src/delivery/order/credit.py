"""Applying redeemed store credit to an order — command and handler."""

import structlog
from protean import handle
from protean.fields import Identifier, Integer
from protean.utils.globals import current_domain

from delivery.domain import delivery
from delivery.order.order import Order
from delivery.utils.queries import load

logger = structlog.get_logger(__name__)


@delivery.command(part_of="Order")
class ApplyCredit:
    order_id = Identifier(required=True)
    redemption_id = Identifier(required=True)
    amount = Integer(required=True)


@delivery.command_handler(part_of=Order)
class ApplyCreditHandler:
    @handle(ApplyCredit)
    def apply_credit(self, command):
        order = load(Order, command.order_id)
        if not order.apply_credit(command.redemption_id, command.amount):
            logger.info(
                "Redemption already applied",
                order_id=str(order.id),
                redemption_id=command.redemption_id,
            )
            return False

        current_domain.repository_for(Order).add(order)
        logger.info(
            "Credit applied to order",
            order_id=str(order.id),
            amount=command.amount,
            discount_applied=order.discount_applied,
        )
        return True
