# Accounts module
"""Identity provider client and user profile records."""

from cryptowallet.accounts.auth import (
    AuthSession,
    FirebaseAuthProvider,
    IAuthProvider,
    is_valid_email,
    is_valid_password,
)
from cryptowallet.accounts.profile import UserProfileService

__all__ = [
    "AuthSession",
    "FirebaseAuthProvider",
    "IAuthProvider",
    "is_valid_email",
    "is_valid_password",
    "UserProfileService",
]
