"""CustomerCredit aggregate (CQRS) — store credit a customer can spend.

Credit is earned from the customer share of procurement discounts and from
refunds settled as credit, and spent by redeeming it against an order.

    available == total_earned − total_used >= 0
"""

from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String

from delivery.credit.events import CustomerCreditEarned, CustomerCreditRedeemed
from delivery.domain import delivery
from delivery.errors import InsufficientCredit
from delivery.shared.money import format_amount


class TransactionKind(Enum):
    EARNED = "earned"
    USED = "used"


class CreditSource(Enum):
    PROCUREMENT = "procurement"
    REFUND = "refund"
    REDEMPTION = "redemption"


@delivery.entity(part_of="CustomerCredit")
class CreditTransaction:
    kind = String(required=True, max_length=10, choices=TransactionKind)
    source = String(required=True, max_length=20, choices=CreditSource)
    reference = String(required=True, max_length=255)
    order_id = Identifier()
    amount = Integer(required=True, min_value=1)
    created_at = DateTime(required=True)


@delivery.aggregate
class CustomerCredit:
    customer_id = Identifier(identifier=True, required=True)
    total_earned = Integer(default=0, min_value=0)
    total_used = Integer(default=0, min_value=0)
    available = Integer(default=0, min_value=0)
    transactions = HasMany(CreditTransaction)
    updated_at = DateTime()

    @invariant.post
    def available_is_earned_less_used(self):
        if self.available != self.total_earned - self.total_used:
            raise ValidationError({"available": ["Available credit must equal earned less used"]})

    @classmethod
    def open(cls, customer_id: str):
        return cls(customer_id=customer_id, updated_at=datetime.now(UTC))

    def has_earned(self, source: str, reference: str, order_id: str | None) -> bool:
        return any(
            t.kind == TransactionKind.EARNED.value
            and t.source == source
            and t.reference == reference
            and str(t.order_id or "") == str(order_id or "")
            for t in self.transactions
        )

    def earn(self, source: str, reference: str, amount: int, order_id: str | None = None) -> bool:
        """Add credit; a repeat for the same (source, reference, order) is ignored."""
        if amount <= 0 or self.has_earned(source, reference, order_id):
            return False

        now = datetime.now(UTC)
        with atomic_change(self):
            self.add_transactions(
                CreditTransaction(
                    kind=TransactionKind.EARNED.value,
                    source=source,
                    reference=reference,
                    order_id=order_id,
                    amount=amount,
                    created_at=now,
                )
            )
            self.total_earned = self.total_earned + amount
            self.available = self.available + amount
            self.updated_at = now

        self.raise_(
            CustomerCreditEarned(
                customer_id=str(self.customer_id),
                source=source,
                reference=reference,
                order_id=order_id,
                amount=amount,
                available=self.available,
                earned_at=now,
            )
        )
        return True

    def redeem(self, order_id: str, amount: int) -> str:
        """Spend `amount` against `order_id`; returns the redemption id."""
        if amount is None or amount <= 0:
            raise ValidationError({"amount": ["Redemption amount must be positive"]})
        if amount > self.available:
            raise InsufficientCredit(
                {"amount": [f"Only {format_amount(self.available)} credit is available"]}
            )

        now = datetime.now(UTC)
        redemption = CreditTransaction(
            kind=TransactionKind.USED.value,
            source=CreditSource.REDEMPTION.value,
            reference=str(order_id),
            order_id=order_id,
            amount=amount,
            created_at=now,
        )
        with atomic_change(self):
            self.add_transactions(redemption)
            self.total_used = self.total_used + amount
            self.available = self.available - amount
            self.updated_at = now

        self.raise_(
            CustomerCreditRedeemed(
                customer_id=str(self.customer_id),
                order_id=order_id,
                redemption_id=str(redemption.id),
                amount=amount,
                available=self.available,
                redeemed_at=now,
            )
        )
        return str(redemption.id)
