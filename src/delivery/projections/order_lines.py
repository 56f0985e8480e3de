"""Order lines — one row per (order, product), carrying the order's status.

Feeds procurement demand and the dashboard's top products.
"""

import json

from protean.core.projector import on
from protean.fields import DateTime, Identifier, Integer, String
from protean.utils.globals import current_domain

from delivery.domain import delivery
from delivery.order.events import OrderPlaced, OrderStatusChanged
from delivery.order.order import Order, OrderStatus
from delivery.utils.queries import fetch_all


@delivery.projection
class OrderLineView:
    id = Identifier(identifier=True)  # "{order_id}:{product_id}"
    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    unit_price = Integer(required=True)
    quantity = Integer(required=True)
    delivery_date = String(max_length=10)
    order_status = String(max_length=20)
    created_at = DateTime()


@delivery.projector(projector_for=OrderLineView, aggregates=[Order])
class OrderLineProjector:
    @on(OrderPlaced)
    def on_order_placed(self, event):
        repo = current_domain.repository_for(OrderLineView)
        for line in json.loads(event.lines):
            repo.add(
                OrderLineView(
                    id=f"{event.order_id}:{line['product_id']}",
                    order_id=event.order_id,
                    customer_id=event.customer_id,
                    product_id=line["product_id"],
                    unit_price=line["unit_price"],
                    quantity=line["quantity"],
                    delivery_date=event.delivery_date,
                    order_status=OrderStatus.PENDING.value,
                    created_at=event.placed_at,
                )
            )

    @on(OrderStatusChanged)
    def on_status_changed(self, event):
        repo = current_domain.repository_for(OrderLineView)
        for record in fetch_all(OrderLineView, order_id=str(event.order_id)):
            record.order_status = event.to_status
            repo.add(record)
