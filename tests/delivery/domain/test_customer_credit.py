"""Tests for CustomerCredit: earning and redeeming store credit."""

import pytest
from delivery.credit.customer_credit import CreditSource, CustomerCredit, TransactionKind
from delivery.credit.events import CustomerCreditEarned, CustomerCreditRedeemed
from delivery.errors import InsufficientCredit
from protean.exceptions import ValidationError


def _credit(amount=1500):
    credit = CustomerCredit.open("cust-001")
    credit.earn(CreditSource.PROCUREMENT.value, "2024-01-05|PROD-1", amount, order_id="ord-1")
    credit._events.clear()
    return credit


class TestEarning:
    def test_earn_adds_to_available(self):
        credit = _credit(1500)
        assert credit.total_earned == 1500
        assert credit.available == 1500
        assert credit.transactions[0].kind == TransactionKind.EARNED.value

    def test_earn_raises_event(self):
        credit = CustomerCredit.open("cust-001")
        credit.earn(CreditSource.REFUND.value, "refund:ord-1", 2000, order_id="ord-1")
        event = credit._events[-1]
        assert isinstance(event, CustomerCreditEarned)
        assert event.available == 2000

    def test_same_reference_earns_once(self):
        credit = _credit(1500)
        assert credit.earn(CreditSource.PROCUREMENT.value, "2024-01-05|PROD-1", 1500, order_id="ord-1") is False
        assert credit.available == 1500

    def test_same_reference_for_another_order_earns_again(self):
        credit = _credit(1500)
        assert credit.earn(CreditSource.PROCUREMENT.value, "2024-01-05|PROD-1", 500, order_id="ord-2") is True
        assert credit.available == 2000

    def test_zero_amount_is_ignored(self):
        credit = CustomerCredit.open("cust-001")
        assert credit.earn(CreditSource.PROCUREMENT.value, "ref", 0) is False
        assert credit.transactions == []


class TestRedemption:
    def test_redeem_reduces_available(self):
        credit = _credit(1500)
        credit.redeem("ord-9", 1000)
        assert credit.available == 500
        assert credit.total_used == 1000
        assert isinstance(credit._events[-1], CustomerCreditRedeemed)

    def test_redeem_everything(self):
        credit = _credit(1500)
        credit.redeem("ord-9", 1500)
        assert credit.available == 0

    def test_cannot_overdraw(self):
        credit = _credit(1500)
        with pytest.raises(InsufficientCredit) as exc:
            credit.redeem("ord-9", 1501)
        assert "R15.00" in exc.value.messages["amount"][0]
        assert credit.available == 1500

    def test_amount_must_be_positive(self):
        credit = _credit(1500)
        with pytest.raises(ValidationError):
            credit.redeem("ord-9", 0)

    def test_available_cannot_drift(self):
        credit = _credit(1500)
        with pytest.raises(ValidationError):
            credit.available = 10
