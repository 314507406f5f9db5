"""Card management and add-funds flow."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Union

from cryptowallet.errors import GatewayError, StoreError
from cryptowallet.trading.ledger import IBalanceService

from .gateway import CardDetails, FundsCharge, IPaymentGateway, PaymentCard, PaymentIntent

logger = logging.getLogger(__name__)


class FundingStatus(Enum):
    SUCCEEDED = "succeeded"
    REJECTED = "rejected"
    FAILED = "failed"


class FundingRejectionReason(Enum):
    INVALID_AMOUNT = "invalid_amount"
    NO_PAYMENT_METHOD = "no_payment_method"
    PAYMENT_NOT_SUCCEEDED = "payment_not_succeeded"
    GATEWAY_ERROR = "gateway_error"
    STORE_ERROR = "store_error"


@dataclass
class FundingResult:
    """Result of an add-funds request.

    Attributes:
        status: SUCCEEDED, REJECTED (validation) or FAILED (gateway/store)
        rejection_reason: Reason when not succeeded
        message: Human-readable message for inline display
        intent: The payment intent, once one was created
        new_balance: Balance after crediting, when succeeded
    """
    status: FundingStatus
    rejection_reason: Optional[FundingRejectionReason] = None
    message: str = ""
    intent: Optional[PaymentIntent] = None
    new_balance: Optional[Decimal] = None

    @property
    def ok(self) -> bool:
        return self.status == FundingStatus.SUCCEEDED


def parse_whole_dollars(raw: Union[str, int]) -> Optional[int]:
    """Parse a positive whole number of dollars."""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        value = raw
    else:
        text = str(raw).strip()
        if not (text.isascii() and text.isdigit()):
            return None
        value = int(text)
    return value if value > 0 else None


class CardService:
    """Add and list a customer's cards."""

    def __init__(self, gateway: IPaymentGateway) -> None:
        self._gateway = gateway

    def list_cards(self, customer_id: str) -> List[PaymentCard]:
        return self._gateway.list_payment_methods(customer_id)

    def add_card(self, customer_id: str, card: CardDetails) -> str:
        """Tokenize card and attach it to the customer.

        Returns:
            The payment method id

        Raises:
            GatewayError: On invalid card details or a provider failure
        """
        if not customer_id:
            raise GatewayError("Stripe Customer ID is missing.")
        if not card.is_valid():
            raise GatewayError("Invalid card details.")
        payment_method_id = self._gateway.create_payment_method(card)
        self._gateway.attach_payment_method(payment_method_id, customer_id)
        logger.info(f"Attached {payment_method_id} to {customer_id}")
        return payment_method_id

    def list_charges(self, customer_id: str) -> List[FundsCharge]:
        """Funding history, most recent first."""
        charges = self._gateway.list_charges(customer_id)
        return sorted(charges, key=lambda c: c.created, reverse=True)


class FundingService:
    """Charges a card and credits the wallet balance.

    The charge and the balance credit are separate steps; if crediting fails
    after a successful charge, the money is taken but not credited.
    """

    def __init__(self, gateway: IPaymentGateway, balances: IBalanceService) -> None:
        self._gateway = gateway
        self._balances = balances

    def add_funds(
        self,
        user_id: str,
        customer_id: str,
        amount: Union[str, int],
        payment_method_id: str,
    ) -> FundingResult:
        dollars = parse_whole_dollars(amount)
        if dollars is None:
            return FundingResult(
                status=FundingStatus.REJECTED,
                rejection_reason=FundingRejectionReason.INVALID_AMOUNT,
                message="Invalid amount."
            )
        if not payment_method_id:
            return FundingResult(
                status=FundingStatus.REJECTED,
                rejection_reason=FundingRejectionReason.NO_PAYMENT_METHOD,
                message="Please select a card."
            )

        try:
            intent = self._gateway.create_payment_intent(dollars * 100, customer_id, payment_method_id)
        except GatewayError as e:
            return FundingResult(
                status=FundingStatus.FAILED,
                rejection_reason=FundingRejectionReason.GATEWAY_ERROR,
                message=f"Stripe Error: {e.message}"
            )

        if intent.status != "succeeded":
            logger.warning(f"Payment intent {intent.id} for {user_id} ended as {intent.status}")
            return FundingResult(
                status=FundingStatus.FAILED,
                rejection_reason=FundingRejectionReason.PAYMENT_NOT_SUCCEEDED,
                message=f"Payment failed. Status: {intent.status}",
                intent=intent,
            )

        try:
            new_balance = self._balances.adjust_balance(user_id, Decimal(dollars))
        except StoreError as e:
            logger.error(f"Charged {intent.id} but could not credit {user_id}: {e.message}")
            return FundingResult(
                status=FundingStatus.FAILED,
                rejection_reason=FundingRejectionReason.STORE_ERROR,
                message=e.message,
                intent=intent,
            )

        return FundingResult(
            status=FundingStatus.SUCCEEDED,
            message=f"Added ${dollars} to your wallet.",
            intent=intent,
            new_balance=new_balance,
        )
