"""Customer credit reacts to refunds settled as store credit."""

import structlog
from protean.utils.mixins import handle

from delivery import dispatch
from delivery.credit.customer_credit import CreditSource, CustomerCredit
from delivery.credit.earning import EarnCredit
from delivery.domain import delivery
from delivery.order.events import RefundSettled
from delivery.order.order import RefundStatus

logger = structlog.get_logger(__name__)


@delivery.event_handler(part_of=CustomerCredit, stream_category="delivery::order")
class OrderCreditEventHandler:
    @handle(RefundSettled)
    def on_refund_settled(self, event: RefundSettled) -> None:
        if event.outcome != RefundStatus.CREDITED.value:
            return

        dispatch.process(
            EarnCredit(
                customer_id=str(event.customer_id),
                source=CreditSource.REFUND.value,
                reference=f"refund:{event.order_id}",
                order_id=str(event.order_id),
                amount=event.amount,
            ),
            lock=(dispatch.customer_key(event.customer_id),),
        )
        logger.info(
            "Refund credited to customer",
            customer_id=str(event.customer_id),
            order_id=str(event.order_id),
            amount=event.amount,
        )
