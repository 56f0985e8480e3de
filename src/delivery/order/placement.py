"""Order placement — command and handler.

Checkout lives upstream; it hands over an already-priced order whose line
prices are snapshotted here and never re-read.
"""

import json

import structlog
from protean import handle
from protean.fields import DateTime, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from delivery.domain import delivery
from delivery.order.order import Order

logger = structlog.get_logger(__name__)


@delivery.command(part_of="Order")
class PlaceOrder:
    customer_id = Identifier(required=True)
    lines = Text(required=True)  # JSON: list of {product_id, unit_price, quantity}
    service_fee = Integer(default=0)
    delivery_date = String(max_length=10)
    placed_at = DateTime()


@delivery.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        lines = json.loads(command.lines) if isinstance(command.lines, str) else command.lines

        order = Order.place(
            customer_id=command.customer_id,
            lines=lines,
            service_fee=command.service_fee or 0,
            delivery_date=command.delivery_date,
            placed_at=command.placed_at,
        )
        current_domain.repository_for(Order).add(order)
        logger.info(
            "Order placed",
            order_id=str(order.id),
            customer_id=str(order.customer_id),
            total=order.total,
        )
        return str(order.id)
