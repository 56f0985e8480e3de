"""Driver assignment — command and handler."""

import structlog
from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from delivery.domain import delivery
from delivery.order.order import Order
from delivery.utils.queries import load

logger = structlog.get_logger(__name__)


@delivery.command(part_of="Order")
class AssignDriver:
    """Assign or reassign a driver; an empty driver_id unassigns."""

    order_id = Identifier(required=True)
    driver_id = Identifier()


@delivery.command_handler(part_of=Order)
class AssignDriverHandler:
    @handle(AssignDriver)
    def assign_driver(self, command):
        order = load(Order, command.order_id)
        if order.assign_driver(command.driver_id):
            current_domain.repository_for(Order).add(order)
            logger.info(
                "Driver assignment changed",
                order_id=str(order.id),
                driver_id=command.driver_id,
            )
