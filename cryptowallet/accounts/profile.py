"""User profile records stored at users/{uid}."""

from __future__ import annotations

import logging
from decimal import Decimal

from cryptowallet.storage.ledger import ILedgerStore, join_path
from cryptowallet.trading.models import UserProfile, decimal_to_store

logger = logging.getLogger(__name__)


def user_path(user_id: str) -> str:
    return join_path("users", user_id)


class UserProfileService:
    def __init__(self, store: ILedgerStore) -> None:
        self._store = store

    def get_profile(self, user_id: str) -> UserProfile:
        data = self._store.get(user_path(user_id))
        if not isinstance(data, dict):
            logger.warning(f"No user data found for {user_id}")
            data = {}
        return UserProfile.from_record(user_id, data)

    def update_profile(self, user_id: str, name: str, email: str) -> UserProfile:
        """Merge-update name and email, leaving balance and customer id alone."""
        self._store.update(user_path(user_id), {"name": name, "email": email})
        return self.get_profile(user_id)

    def ensure_profile(self, user_id: str, email: str, name: str = "") -> UserProfile:
        """Create the profile on first sign-up with a zero balance."""
        profile = self.get_profile(user_id)
        values = {}
        if not profile.email:
            values["email"] = email
        if name and not profile.name:
            values["name"] = name
        if self._store.get(join_path(user_path(user_id), "balance")) is None:
            values["balance"] = decimal_to_store(Decimal("0"))
        if values:
            self._store.update(user_path(user_id), values)
            profile = self.get_profile(user_id)
        return profile

    def set_customer_id(self, user_id: str, customer_id: str) -> None:
        self._store.set(join_path(user_path(user_id), "stripeCustomerId"), customer_id)
