"""Order payouts — where each order's delivery fee stands.

An order with no row has not accrued a fee yet.
"""

import json
from enum import Enum

from protean.core.projector import on
from protean.fields import DateTime, Identifier, Integer, String
from protean.utils.globals import current_domain

from delivery.domain import delivery
from delivery.ledger.driver_account import DriverAccount
from delivery.ledger.events import CashoutPaid, CashoutRequested, DeliveryFeeAccrued


class PayoutStatus(Enum):
    UNACCRUED = "unaccrued"
    ACCRUED = "accrued"
    PENDING = "pending"
    PAID = "paid"


@delivery.projection
class OrderPayoutView:
    order_id = Identifier(identifier=True, required=True)
    driver_id = Identifier(required=True)
    amount = Integer(default=0)
    status = String(max_length=20, choices=PayoutStatus)
    cashout_id = Identifier()
    accrued_at = DateTime()
    paid_at = DateTime()


@delivery.projector(projector_for=OrderPayoutView, aggregates=[DriverAccount])
class OrderPayoutProjector:
    @on(DeliveryFeeAccrued)
    def on_fee_accrued(self, event):
        current_domain.repository_for(OrderPayoutView).add(
            OrderPayoutView(
                order_id=event.order_id,
                driver_id=event.driver_id,
                amount=event.amount,
                status=PayoutStatus.ACCRUED.value,
                accrued_at=event.accrued_at,
            )
        )

    def _update(self, order_ids, **changes):
        repo = current_domain.repository_for(OrderPayoutView)
        for order_id in order_ids:
            record = repo.get(order_id)
            for field, value in changes.items():
                setattr(record, field, value)
            repo.add(record)

    @on(CashoutRequested)
    def on_cashout_requested(self, event):
        self._update(
            json.loads(event.order_ids),
            status=PayoutStatus.PENDING.value,
            cashout_id=event.cashout_id,
        )

    @on(CashoutPaid)
    def on_cashout_paid(self, event):
        self._update(
            json.loads(event.order_ids),
            status=PayoutStatus.PAID.value,
            paid_at=event.paid_at,
        )
