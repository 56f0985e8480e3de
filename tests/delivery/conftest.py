import json

import pytest
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def delivery_bed():
    from delivery.domain import delivery

    bed = DomainFixture(delivery)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(delivery_bed):
    with delivery_bed.domain_context():
        yield


DEFAULT_LINES = [
    {"product_id": "prod-apples", "unit_price": 1000, "quantity": 3},
    {"product_id": "prod-bread", "unit_price": 2000, "quantity": 2},
]


class DeliveryFlows:
    """Drives orders through the application layer the way the API does."""

    default_lines = DEFAULT_LINES

    def place_order(
        self,
        customer_id="cust-001",
        lines=None,
        service_fee=0,
        delivery_date="2025-03-10",
        placed_at=None,
    ):
        from delivery import dispatch
        from delivery.order.placement import PlaceOrder

        return dispatch.process(
            PlaceOrder(
                customer_id=customer_id,
                lines=json.dumps(lines or DEFAULT_LINES),
                service_fee=service_fee,
                delivery_date=delivery_date,
                placed_at=placed_at,
            )
        )

    def transition(self, order_id, status):
        from delivery import dispatch
        from delivery.order.lifecycle import TransitionOrderStatus

        return dispatch.process(
            TransitionOrderStatus(order_id=order_id, status=status),
            lock=(dispatch.order_key(order_id),),
        )

    def assign(self, order_id, driver_id):
        from delivery import dispatch
        from delivery.order.assignment import AssignDriver

        return dispatch.process(
            AssignDriver(order_id=order_id, driver_id=driver_id),
            lock=(dispatch.order_key(order_id),),
        )

    def verify(self, order_id, driver_id, reports, note=None):
        from delivery import dispatch
        from delivery.order.collection import VerifyCollection

        return dispatch.process(
            VerifyCollection(
                order_id=order_id,
                driver_id=driver_id,
                reports=json.dumps(reports),
                note=note,
            ),
            lock=(dispatch.order_key(order_id),),
        )

    def full_reports(self, lines=None):
        return [
            {"product_id": line["product_id"], "available_quantity": line["quantity"]}
            for line in lines or DEFAULT_LINES
        ]

    def collect(self, driver_id="drv-001", customer_id="cust-001", lines=None, **kwargs):
        """Place an order and take it to in_transit with `driver_id`."""
        order_id = self.place_order(customer_id=customer_id, lines=lines, **kwargs)
        self.assign(order_id, driver_id)
        self.transition(order_id, "processing")
        self.verify(order_id, driver_id, self.full_reports(lines))
        return order_id

    def deliver(self, driver_id="drv-001", customer_id="cust-001", lines=None, **kwargs):
        """Place an order and take it all the way to completed with `driver_id`."""
        order_id = self.collect(driver_id=driver_id, customer_id=customer_id, lines=lines, **kwargs)
        self.transition(order_id, "completed")
        return order_id

    def request_cashout(self, driver_id):
        from delivery import dispatch
        from delivery.ledger.cashout import RequestCashout

        return dispatch.process(
            RequestCashout(driver_id=driver_id),
            lock=(dispatch.driver_key(driver_id),),
        )

    def mark_paid(self, driver_id, cashout_id, paid_by="admin-001"):
        from delivery import dispatch
        from delivery.ledger.cashout import MarkCashoutPaid

        return dispatch.process(
            MarkCashoutPaid(driver_id=driver_id, cashout_id=cashout_id, paid_by=paid_by),
            lock=(dispatch.driver_key(driver_id),),
        )

    def save_discount(self, date, product_id, paid_unit_price, recorded_by="admin-001"):
        from delivery import dispatch
        from delivery.procurement.commit import SaveDiscount

        return dispatch.process(
            SaveDiscount(
                date=date,
                product_id=product_id,
                paid_unit_price=paid_unit_price,
                recorded_by=recorded_by,
            ),
            lock=(dispatch.discount_key(date, product_id),),
        )

    def settle_refund(self, order_id, outcome):
        from delivery import dispatch
        from delivery.order.refunds import SettleRefund

        return dispatch.process(
            SettleRefund(order_id=order_id, outcome=outcome),
            lock=(dispatch.order_key(order_id),),
        )

    def redeem(self, customer_id, order_id, amount):
        from delivery import dispatch
        from delivery.credit.redemption import RedeemCredit

        return dispatch.process(
            RedeemCredit(customer_id=customer_id, order_id=order_id, amount=amount),
            lock=(dispatch.order_key(order_id), dispatch.customer_key(customer_id)),
        )


@pytest.fixture()
def flows():
    return DeliveryFlows()
