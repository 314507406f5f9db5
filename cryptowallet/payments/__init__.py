# Payments module
"""Payment gateway adapter, card management and wallet funding."""

from cryptowallet.payments.gateway import (
    CardDetails,
    FundsCharge,
    IPaymentGateway,
    PaymentCard,
    PaymentIntent,
    StripeGateway,
)
from cryptowallet.payments.funding import (
    CardService,
    FundingRejectionReason,
    FundingResult,
    FundingService,
    FundingStatus,
)
from cryptowallet.payments.customers import BackendClient, CustomerProvisioner

__all__ = [
    "CardDetails",
    "FundsCharge",
    "IPaymentGateway",
    "PaymentCard",
    "PaymentIntent",
    "StripeGateway",
    "CardService",
    "FundingRejectionReason",
    "FundingResult",
    "FundingService",
    "FundingStatus",
    "BackendClient",
    "CustomerProvisioner",
]
