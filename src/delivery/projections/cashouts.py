"""Cashout requests — admin payout queue and driver cashout history."""

from protean.core.projector import on
from protean.fields import DateTime, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from delivery.domain import delivery
from delivery.ledger.driver_account import CashoutStatus, DriverAccount
from delivery.ledger.events import CashoutPaid, CashoutRequested


@delivery.projection
class CashoutRequestView:
    cashout_id = Identifier(identifier=True, required=True)
    driver_id = Identifier(required=True)
    order_ids = Text()  # JSON list of order ids
    order_count = Integer(default=0)
    amount = Integer(default=0)
    status = String(max_length=20)
    created_at = DateTime()
    paid_at = DateTime()
    paid_by = String(max_length=255)


@delivery.projector(projector_for=CashoutRequestView, aggregates=[DriverAccount])
class CashoutRequestProjector:
    @on(CashoutRequested)
    def on_cashout_requested(self, event):
        current_domain.repository_for(CashoutRequestView).add(
            CashoutRequestView(
                cashout_id=event.cashout_id,
                driver_id=event.driver_id,
                order_ids=event.order_ids,
                order_count=event.order_count,
                amount=event.amount,
                status=CashoutStatus.PENDING.value,
                created_at=event.requested_at,
            )
        )

    @on(CashoutPaid)
    def on_cashout_paid(self, event):
        repo = current_domain.repository_for(CashoutRequestView)
        record = repo.get(event.cashout_id)
        record.status = CashoutStatus.COMPLETED.value
        record.paid_at = event.paid_at
        record.paid_by = event.paid_by
        repo.add(record)
