"""Order aggregate (CQRS) — lifecycle and collection financials of one order.

State Machine:
    PENDING → PROCESSING → IN_TRANSIT → COMPLETED
    {PENDING, PROCESSING} → CANCELLED

IN_TRANSIT is entered only through collection verification, where the
assigned driver reports what was actually available at pickup. Shortfalls
become MissingItem records and reduce what the customer is charged:

    refund_amount  = Σ missing_quantity × unit_price
    adjusted_total = total − refund_amount

Redeemed store credit is tracked separately in discount_applied and never
exceeds the adjusted total; amount_due is what remains to be paid.

All money fields are integer cents.
"""

import json
import re
from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String

from delivery.domain import delivery
from delivery.errors import (
    AlreadyTerminal,
    CreditExceedsOrder,
    DriverMismatch,
    DriverRequired,
    IncompleteAvailabilityReport,
    InvalidPrice,
    InvalidQuantity,
    InvalidTransition,
    ReasonRequired,
    RefundNotPending,
)
from delivery.order.events import (
    CreditApplied,
    DriverAssigned,
    ItemsReconciled,
    OrderPlaced,
    OrderStatusChanged,
    RefundSettled,
)
from delivery.settings import currency
from delivery.shared.money import Money


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    IN_TRANSIT = "in_transit"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class RefundStatus(Enum):
    PENDING = "pending"
    PROCESSED = "processed"
    CREDITED = "credited"


class MissingReason(Enum):
    OUT_OF_STOCK = "out_of_stock"
    DAMAGED = "damaged"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.IN_TRANSIT, OrderStatus.CANCELLED},
    OrderStatus.IN_TRANSIT: {OrderStatus.COMPLETED},
    OrderStatus.COMPLETED: set(),  # terminal
    OrderStatus.CANCELLED: set(),  # terminal
}

TERMINAL_STATUSES = {OrderStatus.COMPLETED, OrderStatus.CANCELLED}

# Statuses during which a driver may be (re)assigned
_ASSIGNABLE_STATUSES = {
    OrderStatus.PENDING,
    OrderStatus.PROCESSING,
    OrderStatus.IN_TRANSIT,
}

# Statuses from which collection may be verified (first run, then retries)
_VERIFIABLE_STATUSES = {OrderStatus.PROCESSING, OrderStatus.IN_TRANSIT}

_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@delivery.entity(part_of="Order")
class OrderLine:
    """A product on the order, priced as it was at checkout."""

    product_id = Identifier(required=True)
    unit_price = Integer(required=True, min_value=0)
    quantity = Integer(required=True, min_value=1)

    @property
    def line_total(self) -> int:
        return self.unit_price * self.quantity


@delivery.entity(part_of="Order")
class MissingItem:
    """A shortfall the driver reported at collection."""

    product_id = Identifier(required=True)
    ordered_quantity = Integer(required=True, min_value=1)
    missing_quantity = Integer(required=True, min_value=1)
    unit_price = Integer(required=True, min_value=0)
    reason = String(required=True, max_length=20, choices=MissingReason)

    @invariant.post
    def missing_cannot_exceed_ordered(self):
        if self.missing_quantity > self.ordered_quantity:
            raise ValidationError({"missing_quantity": ["Missing quantity cannot exceed the ordered quantity"]})

    def to_record(self) -> dict:
        return {
            "product_id": str(self.product_id),
            "ordered_quantity": self.ordered_quantity,
            "missing_quantity": self.missing_quantity,
            "unit_price": self.unit_price,
            "reason": self.reason,
        }


@delivery.entity(part_of="Order")
class AppliedCredit:
    """Store credit redeemed against the order."""

    redemption_id = Identifier(required=True)
    amount = Integer(required=True, min_value=1)
    applied_at = DateTime(required=True)


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@delivery.aggregate
class Order:
    customer_id = Identifier(required=True)
    status = String(
        max_length=20,
        choices=OrderStatus,
        default=OrderStatus.PENDING.value,
    )
    lines = HasMany(OrderLine)
    subtotal = Integer(default=0, min_value=0)
    service_fee = Integer(default=0, min_value=0)
    total = Integer(default=0, min_value=0)
    missing_items = HasMany(MissingItem)
    refund_amount = Integer(default=0, min_value=0)
    adjusted_total = Integer(default=0)
    refund_status = String(max_length=20, choices=RefundStatus)
    credits = HasMany(AppliedCredit)
    discount_applied = Integer(default=0, min_value=0)
    driver_id = Identifier()
    driver_note = String(max_length=1000)
    delivery_date = String(max_length=10)
    created_at = DateTime()
    updated_at = DateTime()
    completed_at = DateTime()

    # -------------------------------------------------------------------
    # Invariants
    # -------------------------------------------------------------------
    @invariant.post
    def total_is_subtotal_plus_service_fee(self):
        if self.total != self.subtotal + self.service_fee:
            raise ValidationError({"total": ["Total must equal subtotal plus service fee"]})

    @invariant.post
    def subtotal_matches_lines(self):
        if self.subtotal != sum(line.line_total for line in self.lines):
            raise ValidationError({"subtotal": ["Subtotal must equal the sum of order lines"]})

    @invariant.post
    def refund_matches_missing_items(self):
        expected = sum(item.missing_quantity * item.unit_price for item in self.missing_items)
        if self.refund_amount != expected:
            raise ValidationError({"refund_amount": ["Refund must equal the value of missing items"]})

    @invariant.post
    def adjusted_total_is_total_less_refund(self):
        if self.adjusted_total != self.total - self.refund_amount:
            raise ValidationError({"adjusted_total": ["Adjusted total must equal total less refund"]})
        if self.adjusted_total < 0:
            raise ValidationError({"adjusted_total": ["Adjusted total cannot be negative"]})

    @invariant.post
    def applied_credit_fits_adjusted_total(self):
        if self.discount_applied != sum(credit.amount for credit in self.credits):
            raise ValidationError({"discount_applied": ["Applied credit must equal the redemptions on the order"]})
        if self.discount_applied > self.adjusted_total:
            raise ValidationError({"discount_applied": ["Applied credit cannot exceed the adjusted total"]})

    @property
    def amount_due(self) -> int:
        return self.adjusted_total - self.discount_applied

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        customer_id: str,
        lines: list[dict],
        service_fee: int = 0,
        delivery_date: str | None = None,
        placed_at: datetime | None = None,
    ):
        """Accept an already-priced order from checkout."""
        if not lines:
            raise ValidationError({"lines": ["An order needs at least one line"]})
        if service_fee is None or service_fee < 0:
            raise InvalidPrice({"service_fee": ["Service fee cannot be negative"]})

        seen = set()
        for line in lines:
            product_id = str(line.get("product_id") or "")
            if not product_id:
                raise ValidationError({"product_id": ["Every line needs a product"]})
            if product_id in seen:
                raise ValidationError({"lines": [f"Product {product_id} appears more than once"]})
            seen.add(product_id)
            if int(line.get("quantity") or 0) <= 0:
                raise InvalidQuantity({"quantity": [f"Quantity for {product_id} must be positive"]})
            if line.get("unit_price") is None or int(line["unit_price"]) < 0:
                raise InvalidPrice({"unit_price": [f"Unit price for {product_id} cannot be negative"]})

        now = placed_at or datetime.now(UTC)
        if now.tzinfo is None:
            now = now.replace(tzinfo=UTC)
        delivery_date = delivery_date or now.date().isoformat()
        if not _DATE_PATTERN.match(delivery_date):
            raise ValidationError({"delivery_date": ["Delivery date must be YYYY-MM-DD"]})

        subtotal = Money.zero(currency())
        for line in lines:
            line_price = Money(amount=int(line["unit_price"]), currency=currency())
            subtotal = subtotal.add(line_price.multiply(int(line["quantity"])))
        total = subtotal.add(Money(amount=service_fee, currency=currency()))

        order = cls(
            customer_id=customer_id,
            status=OrderStatus.PENDING.value,
            delivery_date=delivery_date,
            created_at=now,
            updated_at=now,
        )
        with atomic_change(order):
            for line in lines:
                order.add_lines(
                    OrderLine(
                        product_id=str(line["product_id"]),
                        unit_price=int(line["unit_price"]),
                        quantity=int(line["quantity"]),
                    )
                )
            order.subtotal = subtotal.amount
            order.service_fee = service_fee
            order.total = total.amount
            order.adjusted_total = total.amount

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                customer_id=customer_id,
                lines=json.dumps(
                    [
                        {"product_id": str(line.product_id), "unit_price": line.unit_price, "quantity": line.quantity}
                        for line in order.lines
                    ]
                ),
                subtotal=order.subtotal,
                service_fee=order.service_fee,
                total=order.total,
                delivery_date=delivery_date,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Status transitions
    # -------------------------------------------------------------------
    def transition(self, target: str) -> bool:
        """Move the order to `target`.

        Returns False without raising an event when the order is already in
        `target`, so retried status updates (including a second completion)
        have no effect.
        """
        try:
            target_status = OrderStatus(target)
        except ValueError:
            raise ValidationError({"status": [f"Unknown status: {target}"]}) from None

        current = OrderStatus(self.status)
        if target_status == current:
            return False
        if current in TERMINAL_STATUSES:
            raise AlreadyTerminal(
                f"Order is already {current.value}",
                current_state=current.value,
            )
        if target_status == OrderStatus.IN_TRANSIT:
            raise InvalidTransition(
                "Orders enter in_transit only through collection verification",
                current_state=current.value,
            )
        if target_status not in _VALID_TRANSITIONS[current]:
            raise InvalidTransition(
                f"Cannot transition from {current.value} to {target_status.value}",
                current_state=current.value,
            )
        if target_status == OrderStatus.COMPLETED and not self.driver_id:
            raise DriverRequired(
                "An order cannot be completed without an assigned driver",
                current_state=current.value,
            )

        now = datetime.now(UTC)
        self.status = target_status.value
        self.updated_at = now
        if target_status == OrderStatus.COMPLETED:
            self.completed_at = now
        self._raise_status_changed(current, target_status, now)
        return True

    def _raise_status_changed(self, from_status: OrderStatus, to_status: OrderStatus, at: datetime) -> None:
        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                customer_id=str(self.customer_id),
                from_status=from_status.value,
                to_status=to_status.value,
                driver_id=str(self.driver_id) if self.driver_id else None,
                delivery_date=self.delivery_date,
                changed_at=at,
            )
        )

    # -------------------------------------------------------------------
    # Driver assignment
    # -------------------------------------------------------------------
    def assign_driver(self, driver_id: str | None) -> bool:
        """Assign, reassign or (with None) unassign the order's driver."""
        driver_id = str(driver_id) if driver_id else None
        previous = str(self.driver_id) if self.driver_id else None
        if driver_id == previous:
            return False

        current = OrderStatus(self.status)
        if driver_id is not None and current not in _ASSIGNABLE_STATUSES:
            raise InvalidTransition(
                f"Cannot assign a driver to a {current.value} order",
                current_state=current.value,
            )

        now = datetime.now(UTC)
        self.driver_id = driver_id
        self.updated_at = now
        self.raise_(
            DriverAssigned(
                order_id=str(self.id),
                driver_id=driver_id,
                previous_driver_id=previous,
                assigned_at=now,
            )
        )
        return True

    # -------------------------------------------------------------------
    # Collection verification
    # -------------------------------------------------------------------
    def verify_collection(self, driver_id: str, reports: list[dict], note: str | None = None) -> None:
        """Record what the driver could actually collect, one report per line.

        Each report is ``{"product_id", "available_quantity", "reason"}``.
        Missing items are replaced on every run so a retried report yields
        the same records; the order moves to IN_TRANSIT on the first run.

        `refund_status` becomes pending only when there is something to
        refund and is otherwise left as it was. A retry that clears every
        shortfall therefore keeps a pending status with a zero refund, which
        `settle_refund` rejects; the order has nothing left to settle.
        """
        current = OrderStatus(self.status)
        if current not in _VERIFIABLE_STATUSES:
            raise InvalidTransition(
                f"Collection cannot be verified for a {current.value} order",
                current_state=current.value,
            )
        if self.refund_status in (RefundStatus.PROCESSED.value, RefundStatus.CREDITED.value):
            raise InvalidTransition(
                "Collection cannot change after the refund was settled",
                current_state=current.value,
                refund_status=self.refund_status,
            )
        if not self.driver_id or str(self.driver_id) != str(driver_id):
            raise DriverMismatch(
                f"Driver {driver_id} is not assigned to this order",
                current_state=current.value,
                assigned_driver=self.driver_id or "",
            )

        missing_items = self._reconcile(reports)

        refund = Money.zero(currency())
        for item in missing_items:
            refund = refund.add(Money(amount=item.unit_price, currency=currency()).multiply(item.missing_quantity))
        adjusted_total = Money(amount=self.total, currency=currency()).subtract(refund).amount
        if adjusted_total < self.discount_applied:
            raise CreditExceedsOrder(
                {"reports": [f"Adjusted total {adjusted_total} would fall below the {self.discount_applied} credit applied"]}
            )

        now = datetime.now(UTC)
        with atomic_change(self):
            for item in list(self.missing_items):
                self.remove_missing_items(item)
            for item in missing_items:
                self.add_missing_items(item)

            self.refund_amount = refund.amount
            self.adjusted_total = adjusted_total
            if self.refund_amount > 0:
                self.refund_status = RefundStatus.PENDING.value
            if note is not None:
                self.driver_note = note
            if current == OrderStatus.PROCESSING:
                self.status = OrderStatus.IN_TRANSIT.value
            self.updated_at = now

        if current == OrderStatus.PROCESSING:
            self._raise_status_changed(current, OrderStatus.IN_TRANSIT, now)
        self.raise_(
            ItemsReconciled(
                order_id=str(self.id),
                driver_id=str(driver_id),
                missing_items=json.dumps([item.to_record() for item in missing_items]),
                refund_amount=self.refund_amount,
                adjusted_total=self.adjusted_total,
                refund_status=self.refund_status,
                driver_note=self.driver_note,
                reconciled_at=now,
            )
        )

    def _reconcile(self, reports: list[dict]) -> list[MissingItem]:
        lines = {str(line.product_id): line for line in self.lines}

        reported = {}
        for report in reports or []:
            product_id = str(report.get("product_id") or "")
            if product_id not in lines:
                raise IncompleteAvailabilityReport(
                    {"product_id": [f"Product {product_id} is not on this order"]}
                )
            if product_id in reported:
                raise IncompleteAvailabilityReport(
                    {"product_id": [f"Product {product_id} was reported more than once"]}
                )
            reported[product_id] = report

        unreported = sorted(set(lines) - set(reported))
        if unreported:
            raise IncompleteAvailabilityReport(
                {"reports": [f"No availability reported for: {', '.join(unreported)}"]}
            )

        missing_items = []
        for product_id, line in lines.items():
            report = reported[product_id]
            available = report.get("available_quantity")
            if isinstance(available, bool) or not isinstance(available, int):
                raise InvalidQuantity({"available_quantity": [f"Quantity for {product_id} must be a whole number"]})
            if available < 0 or available > line.quantity:
                raise InvalidQuantity(
                    {"available_quantity": [f"Available quantity for {product_id} must be between 0 and {line.quantity}"]}
                )

            missing = line.quantity - available
            if missing == 0:
                continue

            reason = report.get("reason")
            if not reason:
                raise ReasonRequired({"reason": [f"A reason is required for missing {product_id}"]})
            if reason not in {r.value for r in MissingReason}:
                raise ReasonRequired({"reason": [f"Unsupported reason: {reason}"]})

            missing_items.append(
                MissingItem(
                    product_id=product_id,
                    ordered_quantity=line.quantity,
                    missing_quantity=missing,
                    unit_price=line.unit_price,
                    reason=reason,
                )
            )
        return missing_items

    # -------------------------------------------------------------------
    # Refund settlement
    # -------------------------------------------------------------------
    def settle_refund(self, outcome: str) -> None:
        """Close a pending refund as paid out (processed) or store credit (credited)."""
        if outcome not in (RefundStatus.PROCESSED.value, RefundStatus.CREDITED.value):
            raise ValidationError({"outcome": [f"Unsupported refund outcome: {outcome}"]})
        if self.refund_status != RefundStatus.PENDING.value or self.refund_amount <= 0:
            raise RefundNotPending(
                "Order has no pending refund",
                current_state=self.refund_status or "none",
            )

        now = datetime.now(UTC)
        self.refund_status = outcome
        self.updated_at = now
        self.raise_(
            RefundSettled(
                order_id=str(self.id),
                customer_id=str(self.customer_id),
                outcome=outcome,
                amount=self.refund_amount,
                settled_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Store credit
    # -------------------------------------------------------------------
    def ensure_credit_fits(self, amount: int) -> None:
        """Reject `amount` when it would take applied credit past the adjusted total."""
        if self.status == OrderStatus.CANCELLED.value:
            raise InvalidTransition(
                "Credit cannot be applied to a cancelled order",
                current_state=self.status,
            )
        if amount is None or amount <= 0:
            raise ValidationError({"amount": ["Credit amount must be positive"]})
        if self.discount_applied + amount > self.adjusted_total:
            raise CreditExceedsOrder(
                {"amount": [f"At most {self.amount_due} more credit can be applied to this order"]}
            )

    def apply_credit(self, redemption_id: str, amount: int) -> bool:
        """Record a redemption; the same redemption is applied only once."""
        if any(str(credit.redemption_id) == str(redemption_id) for credit in self.credits):
            return False
        self.ensure_credit_fits(amount)

        now = datetime.now(UTC)
        with atomic_change(self):
            self.add_credits(AppliedCredit(redemption_id=str(redemption_id), amount=amount, applied_at=now))
            self.discount_applied = self.discount_applied + amount
            self.updated_at = now

        self.raise_(
            CreditApplied(
                order_id=str(self.id),
                customer_id=str(self.customer_id),
                redemption_id=str(redemption_id),
                amount=amount,
                discount_applied=self.discount_applied,
                amount_due=self.amount_due,
                applied_at=now,
            )
        )
        return True
