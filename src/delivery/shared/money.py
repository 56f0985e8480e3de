"""Money value object and cent arithmetic.

All amounts are integers in minor units (cents). Display strings are
rendered at the edges and never fed back into computation.
"""

from decimal import ROUND_HALF_UP, Decimal

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Integer, String

from delivery.domain import delivery

VALID_CURRENCIES = frozenset({"ZAR", "USD", "EUR", "GBP"})

CURRENCY_SYMBOLS = {
    "ZAR": "R",
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
}


@delivery.value_object
class Money:
    """A non-negative amount of money in cents."""

    amount = Integer(required=True, min_value=0)
    currency = String(max_length=3, default="ZAR")

    @invariant.post
    def currency_must_be_supported(self):
        if self.currency not in VALID_CURRENCIES:
            raise ValidationError({"currency": [f"Unsupported currency: {self.currency}"]})

    def _assert_same_currency(self, other: "Money") -> None:
        if other.currency != self.currency:
            raise ValidationError({"currency": [f"Cannot combine {self.currency} with {other.currency}"]})

    def add(self, other: "Money") -> "Money":
        self._assert_same_currency(other)
        return Money(amount=self.amount + other.amount, currency=self.currency)

    def subtract(self, other: "Money") -> "Money":
        """Difference of two amounts; fails if the result would be negative."""
        self._assert_same_currency(other)
        if other.amount > self.amount:
            raise ValidationError({"amount": [f"Cannot subtract {other.amount} from {self.amount}"]})
        return Money(amount=self.amount - other.amount, currency=self.currency)

    def multiply(self, factor: int) -> "Money":
        if factor < 0:
            raise ValidationError({"factor": ["Multiplier cannot be negative"]})
        return Money(amount=self.amount * factor, currency=self.currency)

    @classmethod
    def zero(cls, currency: str = "ZAR") -> "Money":
        return cls(amount=0, currency=currency)


def format_amount(cents: int, currency: str = "ZAR") -> str:
    """Render cents for display, e.g. 4000 -> "R40.00"."""
    symbol = CURRENCY_SYMBOLS.get(currency, f"{currency} ")
    sign = "-" if cents < 0 else ""
    whole, fraction = divmod(abs(int(cents)), 100)
    return f"{sign}{symbol}{whole:,}.{fraction:02d}".replace(",", " ")


def split_share(total: int, percent: int) -> tuple[int, int]:
    """Split `total` cents into (share, remainder) at `percent`, rounding half-up.

    The remainder absorbs the rounding so both parts always sum to `total`.
    """
    share = (Decimal(total) * Decimal(percent) / Decimal(100)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    share = int(share)
    return share, total - share


def allocate(total: int, weights: list[int]) -> list[int]:
    """Distribute `total` cents proportionally to `weights` (largest remainder).

    The result has one entry per weight and sums exactly to `total`. Ties in
    the remainder go to the earlier weight.
    """
    weight_sum = sum(weights)
    if total == 0 or weight_sum == 0:
        return [0 for _ in weights]

    floors = []
    remainders = []
    for index, weight in enumerate(weights):
        whole, rest = divmod(total * weight, weight_sum)
        floors.append(whole)
        remainders.append((rest, -index))

    leftover = total - sum(floors)
    ranked = sorted(range(len(weights)), key=lambda i: remainders[i], reverse=True)
    for index in ranked[:leftover]:
        floors[index] += 1
    return floors
