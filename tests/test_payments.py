"""Tests for the Stripe gateway, card management and the add-funds flow."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import List

import httpx
import pytest
from hypothesis import given, settings, strategies as st

from cryptowallet.errors import GatewayError, StoreError
from cryptowallet.payments.funding import (
    CardService,
    FundingRejectionReason,
    FundingService,
    FundingStatus,
    parse_whole_dollars,
)
from cryptowallet.payments.gateway import (
    CardDetails,
    FundsCharge,
    IPaymentGateway,
    PaymentCard,
    PaymentIntent,
    StripeGateway,
    charge_from_payload,
)
from cryptowallet.storage.ledger import InMemoryLedgerStore
from cryptowallet.trading.ledger import BalanceService

from conftest import FakeResponse, FixedClock


USER = "user-1"
CUSTOMER = "cus_123"
VISA = CardDetails(number="4242 4242 4242 4242", exp_month=12, exp_year=2030, cvc="123")


class FakeGateway(IPaymentGateway):
    def __init__(self, intent_status: str = "succeeded", error: str = ""):
        self.intent_status = intent_status
        self.error = error
        self.intents: List[tuple] = []
        self.attached: List[tuple] = []
        self.charges: List[FundsCharge] = []

    def create_customer(self, email, name):
        if self.error:
            raise GatewayError(self.error)
        return "cus_new"

    def create_payment_method(self, card):
        return "pm_1"

    def attach_payment_method(self, payment_method_id, customer_id):
        self.attached.append((payment_method_id, customer_id))

    def create_payment_intent(self, amount_cents, customer_id, payment_method_id):
        if self.error:
            raise GatewayError(self.error)
        self.intents.append((amount_cents, customer_id, payment_method_id))
        return PaymentIntent(id="pi_1", status=self.intent_status, amount_cents=amount_cents)

    def list_payment_methods(self, customer_id):
        return [PaymentCard(id="pm_1", brand="visa", last4="4242")]

    def list_charges(self, customer_id):
        return list(self.charges)


class _FailingBalances(BalanceService):
    def adjust_balance(self, user_id, delta):
        raise StoreError("Database unavailable")


def _funding(gateway, balance="0"):
    balances = BalanceService(InMemoryLedgerStore(clock=FixedClock()))
    balances.set_balance(USER, Decimal(balance))
    return FundingService(gateway, balances), balances


# Funding

def test_add_funds_charges_cents_and_credits_balance():
    gateway = FakeGateway()
    funding, balances = _funding(gateway, "5")

    result = funding.add_funds(USER, CUSTOMER, "25", "pm_1")

    assert result.ok
    assert result.message == "Added $25 to your wallet."
    assert gateway.intents == [(2500, CUSTOMER, "pm_1")]
    assert balances.get_balance(USER) == Decimal("30")
    assert result.new_balance == Decimal("30")


@pytest.mark.parametrize("amount", ["", "0", "-5", "1.5", "abc", 0, True, "\u00b2", "\u2460", "\u0663"])
def test_add_funds_rejects_invalid_amounts(amount):
    gateway = FakeGateway()
    funding, balances = _funding(gateway, "5")

    result = funding.add_funds(USER, CUSTOMER, amount, "pm_1")

    assert result.status == FundingStatus.REJECTED
    assert result.rejection_reason == FundingRejectionReason.INVALID_AMOUNT
    assert result.message == "Invalid amount."
    assert gateway.intents == []
    assert balances.get_balance(USER) == Decimal("5")


def test_add_funds_requires_a_card():
    funding, _ = _funding(FakeGateway())
    result = funding.add_funds(USER, CUSTOMER, "10", "")
    assert result.rejection_reason == FundingRejectionReason.NO_PAYMENT_METHOD
    assert result.message == "Please select a card."


def test_add_funds_reports_gateway_error_without_crediting():
    funding, balances = _funding(FakeGateway(error="Your card was declined."), "5")
    result = funding.add_funds(USER, CUSTOMER, "10", "pm_1")
    assert result.status == FundingStatus.FAILED
    assert result.message == "Stripe Error: Your card was declined."
    assert balances.get_balance(USER) == Decimal("5")


def test_add_funds_does_not_credit_unsucceeded_intent():
    funding, balances = _funding(FakeGateway(intent_status="requires_action"))
    result = funding.add_funds(USER, CUSTOMER, "10", "pm_1")
    assert result.rejection_reason == FundingRejectionReason.PAYMENT_NOT_SUCCEEDED
    assert result.message == "Payment failed. Status: requires_action"
    assert balances.get_balance(USER) == 0


def test_add_funds_store_failure_after_charge():
    gateway = FakeGateway()
    funding = FundingService(gateway, _FailingBalances(InMemoryLedgerStore()))
    result = funding.add_funds(USER, CUSTOMER, "10", "pm_1")
    assert result.status == FundingStatus.FAILED
    assert result.rejection_reason == FundingRejectionReason.STORE_ERROR
    assert result.intent is not None
    assert len(gateway.intents) == 1


@given(st.integers(min_value=1, max_value=10**6))
@settings(max_examples=50)
def test_parse_whole_dollars_accepts_positive_integers(n):
    assert parse_whole_dollars(str(n)) == n
    assert parse_whole_dollars(n) == n


# Cards

def test_add_card_tokenizes_and_attaches():
    gateway = FakeGateway()
    assert CardService(gateway).add_card(CUSTOMER, VISA) == "pm_1"
    assert gateway.attached == [("pm_1", CUSTOMER)]


def test_add_card_requires_customer_and_valid_card():
    cards = CardService(FakeGateway())
    with pytest.raises(GatewayError, match="Stripe Customer ID is missing."):
        cards.add_card("", VISA)
    with pytest.raises(GatewayError, match="Invalid card details."):
        cards.add_card(CUSTOMER, CardDetails(number="4242", exp_month=13, exp_year=2030, cvc="1"))


def test_list_charges_most_recent_first():
    gateway = FakeGateway()
    old = FundsCharge("ch_1", Decimal("5"), "4242", datetime(2024, 1, 1, tzinfo=timezone.utc), "succeeded")
    new = FundsCharge("ch_2", Decimal("7"), "4242", datetime(2024, 6, 1, tzinfo=timezone.utc), "succeeded")
    gateway.charges = [old, new]
    assert [c.id for c in CardService(gateway).list_charges(CUSTOMER)] == ["ch_2", "ch_1"]


def test_card_label():
    assert PaymentCard(id="pm", brand="visa", last4="4242").label == "Visa Ending in 4242"


def test_charge_from_payload():
    charge = charge_from_payload({
        "id": "ch_1",
        "amount": 1250,
        "created": 1700000000,
        "status": "succeeded",
        "payment_method_details": {"card": {"last4": "4242"}},
    })
    assert charge.amount == Decimal("12.5")
    assert charge.created.tzinfo is timezone.utc
    assert charge_from_payload({"id": "ch_2", "amount": 100}) is None


# Stripe REST

class _StripeClient:
    def __init__(self, *responses):
        self.calls = []
        self._responses = list(responses)

    def request(self, method, url, data=None, params=None):
        self.calls.append((method, url, data, params))
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _stripe(monkeypatch, *responses):
    gateway = StripeGateway("sk_test", timeout_s=1)
    client = _StripeClient(*responses)
    monkeypatch.setattr(gateway, "_client", client)
    return gateway, client


def test_payment_intent_is_confirmed_usd(monkeypatch):
    gateway, client = _stripe(monkeypatch, FakeResponse({"id": "pi_1", "status": "succeeded", "amount": 500}))

    intent = gateway.create_payment_intent(500, CUSTOMER, "pm_1")

    assert intent == PaymentIntent(id="pi_1", status="succeeded", amount_cents=500)
    method, url, data, _ = client.calls[0]
    assert (method, url) == ("POST", "/payment_intents")
    assert data["confirm"] == "true"
    assert data["currency"] == "usd"
    assert data["amount"] == "500"


def test_stripe_error_message_is_raised(monkeypatch):
    gateway, _ = _stripe(monkeypatch, FakeResponse({"error": {"message": "No such customer", "code": "resource_missing"}}, 400))
    with pytest.raises(GatewayError) as exc:
        gateway.list_payment_methods(CUSTOMER)
    assert exc.value.message == "No such customer"
    assert exc.value.code == "resource_missing"


def test_missing_customer_id_is_rejected_before_request(monkeypatch):
    gateway, client = _stripe(monkeypatch)
    with pytest.raises(GatewayError, match="Stripe Customer ID is missing."):
        gateway.list_charges("")
    assert client.calls == []


def test_list_payment_methods_skips_non_cards(monkeypatch):
    gateway, client = _stripe(monkeypatch, FakeResponse({"data": [
        {"id": "pm_1", "card": {"brand": "visa", "last4": "4242", "exp_month": 1, "exp_year": 2030}},
        {"id": "pm_2"},
    ]}))
    cards = gateway.list_payment_methods(CUSTOMER)
    assert [c.id for c in cards] == ["pm_1"]
    assert client.calls[0][3] == {"customer": CUSTOMER, "type": "card"}


def test_network_failure_becomes_gateway_error(monkeypatch):
    gateway, _ = _stripe(monkeypatch, httpx.ConnectError("offline"))
    with pytest.raises(GatewayError):
        gateway.create_customer("a@b.co", "A")


@pytest.mark.parametrize("raw", ["\u00b2", "\u2460", "\u0663", "１０"])
def test_parse_whole_dollars_rejects_non_ascii_digits(raw):
    assert parse_whole_dollars(raw) is None
