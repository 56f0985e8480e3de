"""Refund settlement — command and handler."""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from delivery.domain import delivery
from delivery.order.order import Order, RefundStatus
from delivery.utils.queries import load

logger = structlog.get_logger(__name__)


@delivery.command(part_of="Order")
class SettleRefund:
    """Close an order's pending refund as paid out or as store credit."""

    order_id = Identifier(required=True)
    outcome = String(required=True, max_length=20, choices=RefundStatus)


@delivery.command_handler(part_of=Order)
class SettleRefundHandler:
    @handle(SettleRefund)
    def settle_refund(self, command):
        order = load(Order, command.order_id)
        order.settle_refund(command.outcome)
        current_domain.repository_for(Order).add(order)
        logger.info(
            "Refund settled",
            order_id=str(order.id),
            outcome=command.outcome,
            amount=order.refund_amount,
        )
