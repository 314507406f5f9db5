"""Exception types raised by the store, payment and auth adapters."""

from __future__ import annotations

from typing import Optional


class WalletError(Exception):
    """Base class for all wallet errors.

    Attributes:
        message: Human-readable text suitable for showing inline to the user
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class StoreError(WalletError):
    """Network or serialization failure talking to the ledger store."""

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        super().__init__(message)
        self.path = path


class GatewayError(WalletError):
    """Payment provider failure, carrying the provider's message text."""

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.code = code


class AuthError(WalletError):
    """Sign-in / sign-up failure mapped to a user-facing string."""

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.code = code


class BackendError(WalletError):
    """Failure from the auxiliary customer-provisioning backend."""
