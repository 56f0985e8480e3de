"""Pydantic API schemas for the delivery domain.

These are the external API contracts, separate from domain commands. Money
crosses the boundary as integer cents alongside a display string that is
never used for computation.
"""

import json
from datetime import datetime

from pydantic import BaseModel

from delivery.settings import currency
from delivery.shared.money import format_amount


# ---------------------------------------------------------------------------
# Shared
# ---------------------------------------------------------------------------
class MoneyOut(BaseModel):
    amount: int
    currency: str
    display: str

    @classmethod
    def of(cls, cents: int | None) -> "MoneyOut":
        cents = cents or 0
        return cls(amount=cents, currency=currency(), display=format_amount(cents, currency()))


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------
class OrderLineIn(BaseModel):
    product_id: str
    unit_price: int
    quantity: int


class PlaceOrderRequest(BaseModel):
    customer_id: str
    lines: list[OrderLineIn]
    service_fee: int = 0
    delivery_date: str | None = None
    placed_at: datetime | None = None


class TransitionStatusRequest(BaseModel):
    status: str


class AssignDriverRequest(BaseModel):
    driver_id: str | None = None


class AvailabilityReportIn(BaseModel):
    product_id: str
    available_quantity: int
    reason: str | None = None


class VerifyCollectionRequest(BaseModel):
    driver_id: str
    reports: list[AvailabilityReportIn]
    note: str | None = None


class SettleRefundRequest(BaseModel):
    outcome: str


class MarkCashoutPaidRequest(BaseModel):
    paid_by: str | None = None


class SaveDiscountRequest(BaseModel):
    date: str
    product_id: str
    paid_unit_price: int
    recorded_by: str | None = None


class RedeemCreditRequest(BaseModel):
    order_id: str
    amount: int


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------
class OrderIdResponse(BaseModel):
    order_id: str


class OrderLineOut(BaseModel):
    product_id: str
    unit_price: MoneyOut
    quantity: int


class MissingItemOut(BaseModel):
    product_id: str
    ordered_quantity: int
    missing_quantity: int
    unit_price: MoneyOut
    reason: str


class OrderResponse(BaseModel):
    order_id: str
    customer_id: str
    status: str
    lines: list[OrderLineOut]
    subtotal: MoneyOut
    service_fee: MoneyOut
    total: MoneyOut
    missing_items: list[MissingItemOut]
    refund_amount: MoneyOut
    adjusted_total: MoneyOut
    discount_applied: MoneyOut
    amount_due: MoneyOut
    refund_status: str | None = None
    driver_id: str | None = None
    driver_note: str | None = None
    delivery_date: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    completed_at: datetime | None = None

    @classmethod
    def from_order(cls, order) -> "OrderResponse":
        return cls(
            order_id=str(order.id),
            customer_id=str(order.customer_id),
            status=order.status,
            lines=[
                OrderLineOut(
                    product_id=str(line.product_id),
                    unit_price=MoneyOut.of(line.unit_price),
                    quantity=line.quantity,
                )
                for line in order.lines
            ],
            subtotal=MoneyOut.of(order.subtotal),
            service_fee=MoneyOut.of(order.service_fee),
            total=MoneyOut.of(order.total),
            missing_items=[
                MissingItemOut(
                    product_id=str(item.product_id),
                    ordered_quantity=item.ordered_quantity,
                    missing_quantity=item.missing_quantity,
                    unit_price=MoneyOut.of(item.unit_price),
                    reason=item.reason,
                )
                for item in order.missing_items
            ],
            refund_amount=MoneyOut.of(order.refund_amount),
            adjusted_total=MoneyOut.of(order.adjusted_total),
            discount_applied=MoneyOut.of(order.discount_applied),
            amount_due=MoneyOut.of(order.amount_due),
            refund_status=order.refund_status,
            driver_id=str(order.driver_id) if order.driver_id else None,
            driver_note=order.driver_note,
            delivery_date=order.delivery_date,
            created_at=order.created_at,
            updated_at=order.updated_at,
            completed_at=order.completed_at,
        )


class PayoutResponse(BaseModel):
    order_id: str
    status: str
    driver_id: str | None = None
    amount: MoneyOut
    cashout_id: str | None = None
    paid_at: datetime | None = None

    @classmethod
    def from_attribution(cls, data: dict) -> "PayoutResponse":
        return cls(**{**data, "amount": MoneyOut.of(data["amount"])})


class CashoutOut(BaseModel):
    cashout_id: str
    driver_id: str
    order_ids: list[str]
    order_count: int
    amount: MoneyOut
    status: str
    created_at: datetime | None = None
    paid_at: datetime | None = None
    paid_by: str | None = None

    @classmethod
    def from_record(cls, record) -> "CashoutOut":
        return cls(
            cashout_id=str(record.cashout_id),
            driver_id=str(record.driver_id),
            order_ids=json.loads(record.order_ids) if record.order_ids else [],
            order_count=record.order_count,
            amount=MoneyOut.of(record.amount),
            status=record.status,
            created_at=record.created_at,
            paid_at=record.paid_at,
            paid_by=record.paid_by,
        )


class EarningsResponse(BaseModel):
    driver_id: str
    accrued: MoneyOut
    pending_payout: MoneyOut
    paid_total: MoneyOut
    completed_deliveries: int
    last_cashout_at: datetime | None = None

    @classmethod
    def from_earnings(cls, data: dict) -> "EarningsResponse":
        return cls(
            driver_id=data["driver_id"],
            accrued=MoneyOut.of(data["accrued"]),
            pending_payout=MoneyOut.of(data["pending_payout"]),
            paid_total=MoneyOut.of(data["paid_total"]),
            completed_deliveries=data["completed_deliveries"],
            last_cashout_at=data["last_cashout_at"],
        )


class DemandOut(BaseModel):
    date: str
    product_id: str
    list_unit_price: MoneyOut
    aggregated_quantity: int
    order_count: int

    @classmethod
    def from_demand(cls, demand) -> "DemandOut":
        data = demand.to_dict()
        return cls(**{**data, "list_unit_price": MoneyOut.of(data["list_unit_price"])})


class DiscountOut(BaseModel):
    discount_id: str
    date: str
    product_id: str
    list_unit_price: MoneyOut
    paid_unit_price: MoneyOut
    aggregated_quantity: int
    total_discount: MoneyOut
    customer_share: MoneyOut
    business_share: MoneyOut
    recorded_by: str | None = None
    recorded_at: datetime | None = None

    @classmethod
    def from_discount(cls, discount) -> "DiscountOut":
        return cls(
            discount_id=str(discount.id),
            date=discount.date,
            product_id=str(discount.product_id),
            list_unit_price=MoneyOut.of(discount.list_unit_price),
            paid_unit_price=MoneyOut.of(discount.paid_unit_price),
            aggregated_quantity=discount.aggregated_quantity,
            total_discount=MoneyOut.of(discount.total_discount),
            customer_share=MoneyOut.of(discount.customer_share),
            business_share=MoneyOut.of(discount.business_share),
            recorded_by=discount.recorded_by,
            recorded_at=discount.recorded_at,
        )


class DiscountTotalsOut(BaseModel):
    total_discount: MoneyOut
    customer_share: MoneyOut
    business_share: MoneyOut
    aggregated_quantity: int
    discount_count: int


class ProductDiscountOut(BaseModel):
    product_id: str
    total_discount: MoneyOut
    customer_share: MoneyOut
    business_share: MoneyOut
    aggregated_quantity: int


class DiscountAnalyticsResponse(BaseModel):
    start_date: str | None = None
    end_date: str | None = None
    totals: DiscountTotalsOut
    top_products: list[ProductDiscountOut]

    @classmethod
    def from_analytics(cls, data: dict) -> "DiscountAnalyticsResponse":
        def _money(row: dict) -> dict:
            return {
                **row,
                "total_discount": MoneyOut.of(row["total_discount"]),
                "customer_share": MoneyOut.of(row["customer_share"]),
                "business_share": MoneyOut.of(row["business_share"]),
            }

        return cls(
            start_date=data["start_date"],
            end_date=data["end_date"],
            totals=DiscountTotalsOut(**_money(data["totals"])),
            top_products=[ProductDiscountOut(**_money(row)) for row in data["top_products"]],
        )


class CreditTransactionOut(BaseModel):
    kind: str
    source: str
    reference: str
    order_id: str | None = None
    amount: MoneyOut
    created_at: datetime | None = None


class CreditResponse(BaseModel):
    customer_id: str
    total_earned: MoneyOut
    total_used: MoneyOut
    available: MoneyOut
    transactions: list[CreditTransactionOut] = []

    @classmethod
    def from_account(cls, account) -> "CreditResponse":
        return cls(
            customer_id=str(account.customer_id),
            total_earned=MoneyOut.of(account.total_earned),
            total_used=MoneyOut.of(account.total_used),
            available=MoneyOut.of(account.available),
            transactions=[
                CreditTransactionOut(
                    kind=t.kind,
                    source=t.source,
                    reference=t.reference,
                    order_id=str(t.order_id) if t.order_id else None,
                    amount=MoneyOut.of(t.amount),
                    created_at=t.created_at,
                )
                for t in sorted(account.transactions, key=lambda t: t.created_at)
            ],
        )

    @classmethod
    def empty(cls, customer_id: str) -> "CreditResponse":
        zero = MoneyOut.of(0)
        return cls(customer_id=customer_id, total_earned=zero, total_used=zero, available=zero)


class TopProductOut(BaseModel):
    product_id: str
    quantity: int


class DashboardStatsResponse(BaseModel):
    days: int | None = None
    order_count: int
    revenue: MoneyOut
    service_fees: MoneyOut
    subtotals: MoneyOut
    refunds: MoneyOut
    status_counts: dict[str, int]
    top_products: list[TopProductOut]

    @classmethod
    def from_stats(cls, data: dict) -> "DashboardStatsResponse":
        return cls(
            days=data["days"],
            order_count=data["order_count"],
            revenue=MoneyOut.of(data["revenue"]),
            service_fees=MoneyOut.of(data["service_fees"]),
            subtotals=MoneyOut.of(data["subtotals"]),
            refunds=MoneyOut.of(data["refunds"]),
            status_counts=data["status_counts"],
            top_products=[TopProductOut(**row) for row in data["top_products"]],
        )


class DriverProgressResponse(BaseModel):
    driver_id: str
    days: int | None = None
    progressed_orders: int
