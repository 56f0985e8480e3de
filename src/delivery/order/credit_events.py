"""Orders react to store credit redeemed against them."""

import structlog
from protean.utils.mixins import handle

from delivery import dispatch
from delivery.credit.events import CustomerCreditRedeemed
from delivery.domain import delivery
from delivery.order.credit import ApplyCredit
from delivery.order.order import Order

logger = structlog.get_logger(__name__)


@delivery.event_handler(part_of=Order, stream_category="delivery::customer_credit")
class CreditOrderEventHandler:
    @handle(CustomerCreditRedeemed)
    def on_credit_redeemed(self, event: CustomerCreditRedeemed) -> None:
        dispatch.process(
            ApplyCredit(
                order_id=str(event.order_id),
                redemption_id=str(event.redemption_id),
                amount=event.amount,
            ),
            lock=(dispatch.order_key(event.order_id),),
        )
        logger.info(
            "Redeemed credit recorded on order",
            order_id=str(event.order_id),
            customer_id=str(event.customer_id),
            amount=event.amount,
        )
