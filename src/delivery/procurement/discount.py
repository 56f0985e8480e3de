"""ProcurementDiscount aggregate — the savings on one product for one delivery date.

Write-once: the first commit for a (date, product) stands.

    total_discount = (list_unit_price − paid_unit_price) × aggregated_quantity
    customer_share = total_discount × 75%, rounded half-up
    business_share = total_discount − customer_share
"""

import json
from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, Integer, String, Text

from delivery.domain import delivery
from delivery.errors import InvalidPrice
from delivery.procurement.events import DiscountCommitted
from delivery.settings import currency, customer_share_percent
from delivery.shared.money import Money, split_share


@delivery.aggregate
class ProcurementDiscount:
    id = Identifier(identifier=True)  # "{date}|{product_id}"
    date = String(required=True, max_length=10)
    product_id = Identifier(required=True)
    list_unit_price = Integer(required=True, min_value=0)
    paid_unit_price = Integer(required=True, min_value=0)
    aggregated_quantity = Integer(required=True, min_value=1)
    total_discount = Integer(required=True, min_value=0)
    customer_share = Integer(required=True, min_value=0)
    business_share = Integer(required=True, min_value=0)
    allocations = Text()  # JSON list of {order_id, customer_id, quantity}
    recorded_by = String(max_length=255)
    recorded_at = DateTime()

    @invariant.post
    def shares_add_up_to_total(self):
        if self.customer_share + self.business_share != self.total_discount:
            raise ValidationError({"total_discount": ["Customer and business shares must add up to the total"]})

    @invariant.post
    def total_matches_price_difference(self):
        expected = (self.list_unit_price - self.paid_unit_price) * self.aggregated_quantity
        if self.total_discount != expected:
            raise ValidationError({"total_discount": ["Total discount must equal the saving per unit times quantity"]})

    @staticmethod
    def key_for(date: str, product_id: str) -> str:
        return f"{date}|{product_id}"

    @classmethod
    def record(cls, demand, paid_unit_price: int, recorded_by: str | None = None):
        """Commit the discount for `demand` at the price actually paid."""
        if paid_unit_price is None or paid_unit_price <= 0:
            raise InvalidPrice({"paid_unit_price": ["Paid price must be positive"]})
        if paid_unit_price >= demand.list_unit_price:
            raise InvalidPrice(
                {"paid_unit_price": [f"Paid price must be below the list price of {demand.list_unit_price}"]}
            )

        saving = Money(amount=demand.list_unit_price - paid_unit_price, currency=currency())
        total = saving.multiply(demand.aggregated_quantity).amount
        customer_share, business_share = split_share(total, customer_share_percent())
        allocations = json.dumps(
            [
                {"order_id": o.order_id, "customer_id": o.customer_id, "quantity": o.quantity}
                for o in demand.orders
            ]
        )

        now = datetime.now(UTC)
        discount = cls(
            id=cls.key_for(demand.date, demand.product_id),
            date=demand.date,
            product_id=demand.product_id,
            list_unit_price=demand.list_unit_price,
            paid_unit_price=paid_unit_price,
            aggregated_quantity=demand.aggregated_quantity,
            total_discount=total,
            customer_share=customer_share,
            business_share=business_share,
            allocations=allocations,
            recorded_by=recorded_by,
            recorded_at=now,
        )
        discount.raise_(
            DiscountCommitted(
                discount_id=str(discount.id),
                date=discount.date,
                product_id=str(discount.product_id),
                list_unit_price=discount.list_unit_price,
                paid_unit_price=discount.paid_unit_price,
                aggregated_quantity=discount.aggregated_quantity,
                total_discount=discount.total_discount,
                customer_share=discount.customer_share,
                business_share=discount.business_share,
                allocations=allocations,
                recorded_by=recorded_by,
                recorded_at=now,
            )
        )
        return discount
