"""Order summary — one row per order for lookups, the dashboard and driver progress."""

from protean.core.projector import on
from protean.fields import DateTime, Identifier, Integer, String
from protean.utils.globals import current_domain

from delivery.domain import delivery
from delivery.order.events import (
    CreditApplied,
    DriverAssigned,
    ItemsReconciled,
    OrderPlaced,
    OrderStatusChanged,
    RefundSettled,
)
from delivery.order.order import Order, OrderStatus


@delivery.projection
class OrderSummary:
    order_id = Identifier(identifier=True, required=True)
    customer_id = Identifier(required=True)
    status = String(required=True, max_length=20)
    subtotal = Integer(default=0)
    service_fee = Integer(default=0)
    total = Integer(default=0)
    refund_amount = Integer(default=0)
    adjusted_total = Integer(default=0)
    refund_status = String(max_length=20)
    discount_applied = Integer(default=0)
    driver_id = Identifier()
    delivery_date = String(max_length=10)
    created_at = DateTime()
    updated_at = DateTime()
    completed_at = DateTime()


@delivery.projector(projector_for=OrderSummary, aggregates=[Order])
class OrderSummaryProjector:
    @on(OrderPlaced)
    def on_order_placed(self, event):
        current_domain.repository_for(OrderSummary).add(
            OrderSummary(
                order_id=event.order_id,
                customer_id=event.customer_id,
                status=OrderStatus.PENDING.value,
                subtotal=event.subtotal,
                service_fee=event.service_fee,
                total=event.total,
                refund_amount=0,
                adjusted_total=event.total,
                delivery_date=event.delivery_date,
                created_at=event.placed_at,
                updated_at=event.placed_at,
            )
        )

    @on(OrderStatusChanged)
    def on_status_changed(self, event):
        repo = current_domain.repository_for(OrderSummary)
        record = repo.get(event.order_id)
        record.status = event.to_status
        record.updated_at = event.changed_at
        if event.to_status == OrderStatus.COMPLETED.value:
            record.completed_at = event.changed_at
        repo.add(record)

    @on(DriverAssigned)
    def on_driver_assigned(self, event):
        repo = current_domain.repository_for(OrderSummary)
        record = repo.get(event.order_id)
        record.driver_id = event.driver_id
        record.updated_at = event.assigned_at
        repo.add(record)

    @on(ItemsReconciled)
    def on_items_reconciled(self, event):
        repo = current_domain.repository_for(OrderSummary)
        record = repo.get(event.order_id)
        record.refund_amount = event.refund_amount
        record.adjusted_total = event.adjusted_total
        record.refund_status = event.refund_status
        record.updated_at = event.reconciled_at
        repo.add(record)

    @on(RefundSettled)
    def on_refund_settled(self, event):
        repo = current_domain.repository_for(OrderSummary)
        record = repo.get(event.order_id)
        record.refund_status = event.outcome
        record.updated_at = event.settled_at
        repo.add(record)

    @on(CreditApplied)
    def on_credit_applied(self, event):
        repo = current_domain.repository_for(OrderSummary)
        record = repo.get(event.order_id)
        record.discount_applied = event.discount_applied
        record.updated_at = event.applied_at
        repo.add(record)
