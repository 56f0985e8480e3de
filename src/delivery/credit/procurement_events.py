"""Customer credit reacts to committed procurement discounts.

The customer share is split across the orders that made up the demand in
proportion to their quantity; the per-order credits sum exactly to the share.
"""

import json

import structlog
from protean.utils.mixins import handle

from delivery import dispatch
from delivery.credit.customer_credit import CreditSource, CustomerCredit
from delivery.credit.earning import EarnCredit
from delivery.domain import delivery
from delivery.procurement.events import DiscountCommitted
from delivery.shared.money import allocate

logger = structlog.get_logger(__name__)


@delivery.event_handler(part_of=CustomerCredit, stream_category="delivery::procurement_discount")
class ProcurementCreditEventHandler:
    @handle(DiscountCommitted)
    def on_discount_committed(self, event: DiscountCommitted) -> None:
        allocations = json.loads(event.allocations)
        amounts = allocate(event.customer_share, [a["quantity"] for a in allocations])

        for allocation, amount in zip(allocations, amounts, strict=True):
            if amount <= 0:
                continue
            dispatch.process(
                EarnCredit(
                    customer_id=allocation["customer_id"],
                    source=CreditSource.PROCUREMENT.value,
                    reference=str(event.discount_id),
                    order_id=allocation["order_id"],
                    amount=amount,
                ),
                lock=(dispatch.customer_key(allocation["customer_id"]),),
            )

        logger.info(
            "Procurement savings credited",
            discount_id=str(event.discount_id),
            customer_share=event.customer_share,
            orders=len(allocations),
        )
