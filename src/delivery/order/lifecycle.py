"""Order status transitions — command and handler."""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from delivery import dispatch
from delivery.domain import delivery
from delivery.ledger.accrual import accrue_delivery_fee
from delivery.order.order import Order, OrderStatus
from delivery.utils.queries import load

logger = structlog.get_logger(__name__)


@delivery.command(part_of="Order")
class TransitionOrderStatus:
    """Move an order to another status (admin action)."""

    order_id = Identifier(required=True)
    status = String(required=True, max_length=20)


@delivery.command_handler(part_of=Order)
class OrderLifecycleHandler:
    @handle(TransitionOrderStatus)
    def transition(self, command):
        order = load(Order, command.order_id)
        previous = order.status
        if not order.transition(command.status):
            logger.info(
                "Order already in requested status",
                order_id=str(order.id),
                status=order.status,
            )
            if order.status == OrderStatus.COMPLETED.value and order.driver_id:
                # A completion whose fee accrual failed is retried here
                with dispatch.serialized(dispatch.driver_key(order.driver_id)):
                    accrue_delivery_fee(str(order.driver_id), str(order.id))
            return False

        current_domain.repository_for(Order).add(order)
        logger.info(
            "Order status changed",
            order_id=str(order.id),
            from_status=previous,
            to_status=order.status,
        )
        return True
