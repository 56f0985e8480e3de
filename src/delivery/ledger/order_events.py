"""Ledger reacts to order lifecycle events.

A completed delivery accrues the driver's fee. Accrual is keyed by order id,
so a redelivered event never pays twice.
"""

import structlog
from protean.utils.mixins import handle

from delivery import dispatch
from delivery.domain import delivery
from delivery.ledger.accrual import AccrueDeliveryFee
from delivery.ledger.driver_account import DriverAccount
from delivery.order.events import OrderStatusChanged
from delivery.order.order import OrderStatus

logger = structlog.get_logger(__name__)


@delivery.event_handler(part_of=DriverAccount, stream_category="delivery::order")
class OrderLedgerEventHandler:
    @handle(OrderStatusChanged)
    def on_order_status_changed(self, event: OrderStatusChanged) -> None:
        if event.to_status != OrderStatus.COMPLETED.value:
            return
        if not event.driver_id:
            logger.warning("Completed order has no driver to pay", order_id=str(event.order_id))
            return

        dispatch.process(
            AccrueDeliveryFee(driver_id=str(event.driver_id), order_id=str(event.order_id)),
            lock=(dispatch.driver_key(event.driver_id),),
        )
