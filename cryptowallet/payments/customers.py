"""Lazy provisioning of the payment-gateway customer for a user."""

from __future__ import annotations

import logging
import threading

import httpx

from cryptowallet.accounts.profile import UserProfileService
from cryptowallet.errors import BackendError
from cryptowallet.util.http import make_ssl_context

logger = logging.getLogger(__name__)


class BackendClient:
    """Client for the auxiliary backend's POST /create-customer."""

    def __init__(self, base_url: str, timeout_s: float = 10.0) -> None:
        self._client = httpx.Client(base_url=base_url.rstrip("/"), timeout=timeout_s, verify=make_ssl_context())
        self._lock = threading.Lock()

    def create_customer(self, email: str, name: str) -> str:
        try:
            with self._lock:
                r = self._client.post("/create-customer", json={"email": email, "name": name})
            payload = r.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"create-customer failed: {e}")
            raise BackendError(f"Could not reach the payments backend: {e}") from e

        if r.status_code >= 400 or not isinstance(payload, dict) or not payload.get("customerId"):
            message = payload.get("error") if isinstance(payload, dict) else None
            raise BackendError(str(message or f"Customer creation failed with status {r.status_code}."))
        return str(payload["customerId"])


class CustomerProvisioner:
    """Returns the user's stored customer id, creating one the first time."""

    def __init__(self, profiles: UserProfileService, backend: BackendClient) -> None:
        self._profiles = profiles
        self._backend = backend

    def ensure_customer(self, user_id: str) -> str:
        profile = self._profiles.get_profile(user_id)
        if profile.stripe_customer_id:
            return profile.stripe_customer_id

        customer_id = self._backend.create_customer(profile.email, profile.name)
        self._profiles.set_customer_id(user_id, customer_id)
        logger.info(f"Provisioned customer {customer_id} for {user_id}")
        return customer_id
