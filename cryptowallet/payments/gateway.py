"""Payment gateway interface and Stripe REST implementation."""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

import httpx

from cryptowallet.errors import GatewayError
from cryptowallet.util.http import make_ssl_context

logger = logging.getLogger(__name__)

STRIPE_BASE = "https://api.stripe.com/v1"


@dataclass(frozen=True)
class CardDetails:
    """Raw card input to tokenize."""
    number: str
    exp_month: int
    exp_year: int
    cvc: str

    def is_valid(self) -> bool:
        digits = self.number.replace(" ", "")
        return (
            digits.isdigit()
            and 12 <= len(digits) <= 19
            and 1 <= int(self.exp_month) <= 12
            and int(self.exp_year) > 0
            and self.cvc.isdigit()
            and 3 <= len(self.cvc) <= 4
        )


@dataclass(frozen=True)
class PaymentCard:
    """A card payment method attached to a customer."""
    id: str
    brand: str
    last4: str
    exp_month: Optional[int] = None
    exp_year: Optional[int] = None

    @property
    def label(self) -> str:
        return f"{self.brand.capitalize() or 'Card'} Ending in {self.last4 or '****'}"


@dataclass(frozen=True)
class PaymentIntent:
    id: str
    status: str
    amount_cents: int


@dataclass(frozen=True)
class FundsCharge:
    """A past card charge, amount in dollars."""
    id: str
    amount: Decimal
    card_last4: str
    created: datetime
    status: str


def card_from_payment_method(pm: Dict[str, Any]) -> Optional[PaymentCard]:
    card = pm.get("card")
    if not pm.get("id") or not isinstance(card, dict):
        return None
    return PaymentCard(
        id=str(pm["id"]),
        brand=str(card.get("brand") or ""),
        last4=str(card.get("last4") or ""),
        exp_month=card.get("exp_month"),
        exp_year=card.get("exp_year"),
    )


def charge_from_payload(charge: Dict[str, Any]) -> Optional[FundsCharge]:
    """Map a charge object; None when any displayed field is missing."""
    try:
        card = charge["payment_method_details"]["card"]
        return FundsCharge(
            id=str(charge["id"]),
            amount=Decimal(int(charge["amount"])) / Decimal("100"),
            card_last4=str(card["last4"]),
            created=datetime.fromtimestamp(int(charge["created"]), tz=timezone.utc),
            status=str(charge["status"]),
        )
    except (KeyError, TypeError, ValueError):
        return None


class IPaymentGateway(ABC):
    """Interface for card tokenization and charges, keyed by customer id."""

    @abstractmethod
    def create_customer(self, email: str, name: str) -> str:
        """Create a customer record and return its id."""
        ...

    @abstractmethod
    def create_payment_method(self, card: CardDetails) -> str:
        """Tokenize a card and return the payment method id."""
        ...

    @abstractmethod
    def attach_payment_method(self, payment_method_id: str, customer_id: str) -> None:
        ...

    @abstractmethod
    def create_payment_intent(self, amount_cents: int, customer_id: str, payment_method_id: str) -> PaymentIntent:
        """Create and immediately confirm a USD payment intent."""
        ...

    @abstractmethod
    def list_payment_methods(self, customer_id: str) -> List[PaymentCard]:
        ...

    @abstractmethod
    def list_charges(self, customer_id: str) -> List[FundsCharge]:
        ...


class StripeGateway(IPaymentGateway):
    """Stripe over its form-encoded REST API.

    Provider errors are raised as GatewayError with Stripe's message text.
    """

    def __init__(self, secret_key: str, timeout_s: float = 10.0, base_url: str = STRIPE_BASE) -> None:
        self._client = httpx.Client(
            base_url=base_url,
            timeout=timeout_s,
            headers={"Authorization": f"Bearer {secret_key}"},
            verify=make_ssl_context(),
        )
        self._lock = threading.Lock()

    def _request(self, method: str, url: str, *, data: Optional[dict] = None,
                 params: Optional[dict] = None) -> Dict[str, Any]:
        try:
            with self._lock:
                r = self._client.request(method, url, data=data, params=params)
        except httpx.HTTPError as e:
            logger.error(f"Stripe {method} {url} failed: {e}")
            raise GatewayError(f"Network error: {e}") from e

        try:
            payload = r.json()
        except ValueError as e:
            logger.error(f"Stripe {method} {url} returned invalid JSON ({r.status_code})")
            raise GatewayError("Error parsing response from Stripe.") from e

        if not isinstance(payload, dict):
            raise GatewayError("Error parsing response from Stripe.")
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            logger.error(f"Stripe {method} {url}: {error['message']}")
            raise GatewayError(str(error["message"]), code=error.get("code"))
        if r.status_code >= 400:
            raise GatewayError(f"Stripe request failed with status {r.status_code}.")
        return payload

    @staticmethod
    def _require_customer(customer_id: str) -> None:
        if not customer_id:
            raise GatewayError("Stripe Customer ID is missing.")

    def create_customer(self, email: str, name: str) -> str:
        payload = self._request("POST", "/customers", data={"email": email, "name": name})
        return str(payload["id"])

    def create_payment_method(self, card: CardDetails) -> str:
        payload = self._request("POST", "/payment_methods", data={
            "type": "card",
            "card[number]": card.number.replace(" ", ""),
            "card[exp_month]": str(card.exp_month),
            "card[exp_year]": str(card.exp_year),
            "card[cvc]": card.cvc,
        })
        return str(payload["id"])

    def attach_payment_method(self, payment_method_id: str, customer_id: str) -> None:
        self._require_customer(customer_id)
        payload = self._request("POST", f"/payment_methods/{payment_method_id}/attach",
                                data={"customer": customer_id})
        if not payload.get("id"):
            raise GatewayError("Unexpected response while attaching card.")

    def create_payment_intent(self, amount_cents: int, customer_id: str, payment_method_id: str) -> PaymentIntent:
        self._require_customer(customer_id)
        payload = self._request("POST", "/payment_intents", data={
            "amount": str(int(amount_cents)),
            "currency": "usd",
            "customer": customer_id,
            "payment_method": payment_method_id,
            "confirm": "true",
            "payment_method_types[]": "card",
        })
        return PaymentIntent(
            id=str(payload.get("id", "")),
            status=str(payload.get("status", "unknown")),
            amount_cents=int(payload.get("amount", amount_cents)),
        )

    def list_payment_methods(self, customer_id: str) -> List[PaymentCard]:
        self._require_customer(customer_id)
        payload = self._request("GET", "/payment_methods", params={"customer": customer_id, "type": "card"})
        data = payload.get("data")
        if not isinstance(data, list):
            raise GatewayError("Error parsing card data from Stripe.")
        cards = [card_from_payment_method(pm) for pm in data if isinstance(pm, dict)]
        return [c for c in cards if c is not None]

    def list_charges(self, customer_id: str) -> List[FundsCharge]:
        self._require_customer(customer_id)
        payload = self._request("GET", "/charges", params={"customer": customer_id})
        data = payload.get("data")
        if not isinstance(data, list):
            raise GatewayError("Error parsing transactions from Stripe.")
        charges = [charge_from_payload(c) for c in data if isinstance(c, dict)]
        return [c for c in charges if c is not None]

    def close(self) -> None:
        self._client.close()
