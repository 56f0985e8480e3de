"""Procurement demand — what needs buying per delivery date and product.

Lines of orders in the procurement-relevant status are grouped by
(delivery_date, product_id) and their quantities summed. Every line in a
group must carry the same list price.
"""

from collections import defaultdict
from dataclasses import dataclass, field

from delivery.errors import PriceInconsistency
from delivery.order.order import OrderStatus
from delivery.projections.order_lines import OrderLineView
from delivery.utils.queries import fetch_all

PROCUREMENT_STATUS = OrderStatus.PROCESSING


@dataclass
class OrderDemand:
    order_id: str
    customer_id: str
    quantity: int


@dataclass
class ProductDemand:
    date: str
    product_id: str
    list_unit_price: int
    aggregated_quantity: int = 0
    orders: list[OrderDemand] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "date": self.date,
            "product_id": self.product_id,
            "list_unit_price": self.list_unit_price,
            "aggregated_quantity": self.aggregated_quantity,
            "order_count": len(self.orders),
        }


def _group(lines) -> list[ProductDemand]:
    groups = defaultdict(list)
    for line in lines:
        groups[(line.delivery_date, str(line.product_id))].append(line)

    demand = []
    for (date, product_id), group in sorted(groups.items()):
        prices = {line.unit_price for line in group}
        if len(prices) > 1:
            raise PriceInconsistency(
                {"list_unit_price": [f"Product {product_id} has conflicting prices on {date}: {sorted(prices)}"]}
            )
        entry = ProductDemand(date=date, product_id=product_id, list_unit_price=prices.pop())
        for line in sorted(group, key=lambda line: str(line.order_id)):
            entry.aggregated_quantity += line.quantity
            entry.orders.append(
                OrderDemand(
                    order_id=str(line.order_id),
                    customer_id=str(line.customer_id),
                    quantity=line.quantity,
                )
            )
        demand.append(entry)
    return demand


def aggregate_demand(date: str | None = None) -> list[ProductDemand]:
    """Demand for every product, optionally for a single delivery date."""
    filters = {"order_status": PROCUREMENT_STATUS.value}
    if date:
        filters["delivery_date"] = date
    return _group(fetch_all(OrderLineView, **filters))


def demand_for(date: str, product_id: str) -> ProductDemand | None:
    lines = fetch_all(
        OrderLineView,
        order_status=PROCUREMENT_STATUS.value,
        delivery_date=date,
        product_id=str(product_id),
    )
    groups = _group(lines)
    return groups[0] if groups else None
