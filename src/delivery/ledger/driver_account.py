"""DriverAccount aggregate (CQRS) — per-driver delivery fee ledger.

Each completed delivery accrues one flat fee. A cashout claims every
unclaimed accrual at once; an operator later marks it paid.

    accrued + Σ cashout.amount == Σ accrual.amount == fee × completed orders

Cashout State Machine:
    PENDING → COMPLETED
"""

import json
from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String, Text

from delivery.domain import delivery
from delivery.errors import AlreadyPaid, NotFound, NothingToCashOut
from delivery.ledger.events import CashoutPaid, CashoutRequested, DeliveryFeeAccrued
from delivery.settings import currency, per_delivery_fee
from delivery.shared.money import Money


class CashoutStatus(Enum):
    PENDING = "pending"
    COMPLETED = "completed"


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@delivery.entity(part_of="DriverAccount")
class FeeAccrual:
    """The fee earned for one completed order."""

    order_id = Identifier(required=True)
    amount = Integer(required=True, min_value=0)
    accrued_at = DateTime(required=True)
    cashout_id = Identifier()  # set once claimed by a cashout


@delivery.entity(part_of="DriverAccount")
class CashoutRequest:
    """A batch of accruals the driver asked to be paid."""

    order_ids = Text(required=True)  # JSON list of order ids
    order_count = Integer(required=True, min_value=1)
    amount = Integer(required=True, min_value=0)
    status = String(
        max_length=20,
        choices=CashoutStatus,
        default=CashoutStatus.PENDING.value,
    )
    created_at = DateTime(required=True)
    paid_at = DateTime()
    paid_by = String(max_length=255)

    @property
    def order_id_list(self) -> list[str]:
        return json.loads(self.order_ids) if self.order_ids else []


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@delivery.aggregate
class DriverAccount:
    driver_id = Identifier(identifier=True, required=True)
    accrued = Integer(default=0, min_value=0)
    paid_total = Integer(default=0, min_value=0)
    last_cashout_at = DateTime()
    accruals = HasMany(FeeAccrual)
    cashouts = HasMany(CashoutRequest)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Invariants
    # -------------------------------------------------------------------
    @invariant.post
    def accrued_matches_unclaimed_accruals(self):
        unclaimed = sum(a.amount for a in self.accruals if not a.cashout_id)
        if self.accrued != unclaimed:
            raise ValidationError({"accrued": ["Accrued balance must equal the unclaimed accruals"]})

    @invariant.post
    def each_order_accrues_once(self):
        order_ids = [str(a.order_id) for a in self.accruals]
        if len(order_ids) != len(set(order_ids)):
            raise ValidationError({"accruals": ["An order can accrue a delivery fee only once"]})

    @invariant.post
    def cashout_amounts_match_claimed_accruals(self):
        for cashout in self.cashouts:
            claimed = [a for a in self.accruals if str(a.cashout_id or "") == str(cashout.id)]
            if cashout.amount != sum(a.amount for a in claimed) or cashout.order_count != len(claimed):
                raise ValidationError({"cashouts": [f"Cashout {cashout.id} does not match its claimed deliveries"]})

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def open(cls, driver_id: str):
        now = datetime.now(UTC)
        return cls(driver_id=driver_id, accrued=0, paid_total=0, created_at=now, updated_at=now)

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def accrual_for(self, order_id: str) -> FeeAccrual | None:
        return next((a for a in self.accruals if str(a.order_id) == str(order_id)), None)

    def cashout(self, cashout_id: str) -> CashoutRequest:
        cashout = next((c for c in self.cashouts if str(c.id) == str(cashout_id)), None)
        if cashout is None:
            raise NotFound({"cashout_id": [f"Cashout {cashout_id} does not exist"]})
        return cashout

    @property
    def pending_payout(self) -> int:
        return sum(c.amount for c in self.cashouts if c.status == CashoutStatus.PENDING.value)

    @property
    def completed_deliveries(self) -> int:
        return len(self.accruals)

    # -------------------------------------------------------------------
    # Accrual
    # -------------------------------------------------------------------
    def accrue(self, order_id: str, amount: int | None = None) -> bool:
        """Accrue the delivery fee for `order_id`; a repeat for the same order is a no-op."""
        if self.accrual_for(order_id) is not None:
            return False

        amount = per_delivery_fee() if amount is None else amount
        now = datetime.now(UTC)
        with atomic_change(self):
            self.add_accruals(FeeAccrual(order_id=str(order_id), amount=amount, accrued_at=now))
            self.accrued = Money(amount=self.accrued, currency=currency()).add(
                Money(amount=amount, currency=currency())
            ).amount
            self.updated_at = now

        self.raise_(
            DeliveryFeeAccrued(
                driver_id=str(self.driver_id),
                order_id=str(order_id),
                amount=amount,
                accrued_total=self.accrued,
                accrued_at=now,
            )
        )
        return True

    # -------------------------------------------------------------------
    # Cashout
    # -------------------------------------------------------------------
    def request_cashout(self) -> CashoutRequest:
        """Claim every unclaimed accrual in a single pending cashout."""
        unclaimed = [a for a in self.accruals if not a.cashout_id]
        if not unclaimed:
            raise NothingToCashOut(str(self.driver_id))

        now = datetime.now(UTC)
        order_ids = [str(a.order_id) for a in unclaimed]
        amount = sum(a.amount for a in unclaimed)
        cashout = CashoutRequest(
            id=str(uuid4()),
            order_ids=json.dumps(order_ids),
            order_count=len(order_ids),
            amount=amount,
            status=CashoutStatus.PENDING.value,
            created_at=now,
        )

        with atomic_change(self):
            self.add_cashouts(cashout)
            for accrual in unclaimed:
                accrual.cashout_id = cashout.id
            self.accrued = self.accrued - amount
            self.last_cashout_at = now
            self.updated_at = now

        self.raise_(
            CashoutRequested(
                driver_id=str(self.driver_id),
                cashout_id=str(cashout.id),
                order_ids=cashout.order_ids,
                order_count=cashout.order_count,
                amount=amount,
                requested_at=now,
            )
        )
        return cashout

    def mark_paid(self, cashout_id: str, paid_by: str | None = None) -> CashoutRequest:
        """Confirm a pending cashout was paid. A second call fails with AlreadyPaid."""
        cashout = self.cashout(cashout_id)
        if cashout.status != CashoutStatus.PENDING.value:
            raise AlreadyPaid(
                f"Cashout {cashout_id} is already paid",
                current_state=cashout.status,
                paid_at=cashout.paid_at.isoformat() if cashout.paid_at else "",
            )

        now = datetime.now(UTC)
        with atomic_change(self):
            cashout.status = CashoutStatus.COMPLETED.value
            cashout.paid_at = now
            cashout.paid_by = paid_by
            self.paid_total = self.paid_total + cashout.amount
            self.updated_at = now

        self.raise_(
            CashoutPaid(
                driver_id=str(self.driver_id),
                cashout_id=str(cashout.id),
                order_ids=cashout.order_ids,
                amount=cashout.amount,
                paid_by=paid_by,
                paid_at=now,
            )
        )
        return cashout
