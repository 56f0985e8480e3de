"""Collection verification — command and handler.

The driver reports, for every line on the order, how many units were
available at pickup. The order records the shortfalls, recomputes its refund
and moves to in_transit in one unit of work.
"""

import json

import structlog
from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from delivery.domain import delivery
from delivery.order.order import Order
from delivery.utils.queries import load

logger = structlog.get_logger(__name__)


@delivery.command(part_of="Order")
class VerifyCollection:
    order_id = Identifier(required=True)
    driver_id = Identifier(required=True)
    reports = Text(required=True)  # JSON: list of {product_id, available_quantity, reason}
    note = String(max_length=1000)


@delivery.command_handler(part_of=Order)
class CollectionHandler:
    @handle(VerifyCollection)
    def verify_collection(self, command):
        reports = json.loads(command.reports) if isinstance(command.reports, str) else command.reports

        order = load(Order, command.order_id)
        order.verify_collection(
            driver_id=command.driver_id,
            reports=reports,
            note=command.note,
        )
        current_domain.repository_for(Order).add(order)

        logger.info(
            "Collection verified",
            order_id=str(order.id),
            driver_id=command.driver_id,
            missing_items=len(order.missing_items),
            refund_amount=order.refund_amount,
        )
