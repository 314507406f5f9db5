"""Email/password authentication against Firebase Identity Toolkit.

Provider error codes are mapped to the strings shown on the login screen;
local validation runs before any request is made.
"""

from __future__ import annotations

import logging
import re
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from cryptowallet.errors import AuthError
from cryptowallet.storage.storage import SessionCache
from cryptowallet.util.http import make_ssl_context

logger = logging.getLogger(__name__)

IDENTITY_TOOLKIT_BASE = "https://identitytoolkit.googleapis.com/v1"

EMAIL_RE = re.compile(r"^[A-Z0-9a-z._%+-]+@[A-Z0-9a-z.-]+\.[A-Za-z]{2,64}$")
MIN_PASSWORD_LENGTH = 6

INVALID_EMAIL_MESSAGE = "Please enter a valid email address."
SHORT_PASSWORD_MESSAGE = "Password must be at least 6 characters."
PASSWORD_MISMATCH_MESSAGE = "Passwords do not match."
RESET_SENT_MESSAGE = "A password reset link has been sent to your email."

SIGN_IN_ERRORS: Dict[str, str] = {
    "INVALID_PASSWORD": "The password you entered is incorrect. Please try again.",
    "INVALID_LOGIN_CREDENTIALS": "The password you entered is incorrect. Please try again.",
    "INVALID_EMAIL": "The email address format is invalid. Please check and try again.",
    "EMAIL_NOT_FOUND": "No account found with this email address. Please sign up.",
    "USER_DISABLED": "This account has been disabled. Contact support for assistance.",
}

PROVIDER_ERRORS: Dict[str, str] = {
    "EMAIL_EXISTS": "The email address is already in use by another account.",
    "WEAK_PASSWORD": SHORT_PASSWORD_MESSAGE,
    "INVALID_EMAIL": "The email address is badly formatted.",
    "EMAIL_NOT_FOUND": "There is no user record corresponding to this identifier.",
    "TOO_MANY_ATTEMPTS_TRY_LATER": "Too many attempts. Please try again later.",
}


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_RE.match(email))


def is_valid_password(password: str) -> bool:
    return len(password) >= MIN_PASSWORD_LENGTH


def error_code(message: str) -> str:
    """Provider messages look like "WEAK_PASSWORD : Password should be ..."."""
    return message.split(":", 1)[0].strip()


@dataclass(frozen=True)
class AuthSession:
    user_id: str
    email: str
    id_token: str = ""
    refresh_token: str = ""


class IAuthProvider(ABC):
    """Interface for the identity provider."""

    @abstractmethod
    def sign_in(self, email: str, password: str) -> AuthSession:
        ...

    @abstractmethod
    def sign_up(self, email: str, password: str, confirm_password: str) -> AuthSession:
        ...

    @abstractmethod
    def send_password_reset(self, email: str) -> str:
        """Send a reset link; returns the confirmation message."""
        ...

    @abstractmethod
    def sign_out(self) -> None:
        ...

    @abstractmethod
    def current_user_id(self) -> Optional[str]:
        ...


class FirebaseAuthProvider(IAuthProvider):
    """Identity Toolkit REST client that caches the signed-in uid."""

    def __init__(
        self,
        api_key: str,
        session: SessionCache,
        timeout_s: float = 10.0,
        base_url: str = IDENTITY_TOOLKIT_BASE,
    ) -> None:
        self._api_key = api_key
        self._session = session
        self._client = httpx.Client(base_url=base_url, timeout=timeout_s, verify=make_ssl_context())
        self._lock = threading.Lock()

    def _post(self, endpoint: str, body: Dict[str, Any], errors: Dict[str, str]) -> Dict[str, Any]:
        try:
            with self._lock:
                r = self._client.post(f"/accounts:{endpoint}", params={"key": self._api_key}, json=body)
            payload = r.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"accounts:{endpoint} failed: {e}")
            raise AuthError(f"An unexpected error occurred: {e}") from e

        if r.status_code >= 400 or not isinstance(payload, dict) or "error" in payload:
            raw = ""
            if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
                raw = str(payload["error"].get("message", ""))
            code = error_code(raw)
            logger.warning(f"accounts:{endpoint} rejected: {raw or r.status_code}")
            message = errors.get(code) or f"An unexpected error occurred: {raw or r.status_code}"
            raise AuthError(message, code=code or None)
        return payload

    def _start_session(self, payload: Dict[str, Any], email: str) -> AuthSession:
        session = AuthSession(
            user_id=str(payload.get("localId", "")),
            email=str(payload.get("email") or email),
            id_token=str(payload.get("idToken", "")),
            refresh_token=str(payload.get("refreshToken", "")),
        )
        if not session.user_id:
            raise AuthError("An unexpected error occurred: missing user id")
        self._session.save_user_id(session.user_id)
        return session

    def sign_in(self, email: str, password: str) -> AuthSession:
        if not is_valid_email(email):
            raise AuthError(INVALID_EMAIL_MESSAGE)
        if not is_valid_password(password):
            raise AuthError(SHORT_PASSWORD_MESSAGE)

        payload = self._post(
            "signInWithPassword",
            {"email": email, "password": password, "returnSecureToken": True},
            SIGN_IN_ERRORS,
        )
        return self._start_session(payload, email)

    def sign_up(self, email: str, password: str, confirm_password: str) -> AuthSession:
        if not is_valid_email(email):
            raise AuthError(INVALID_EMAIL_MESSAGE)
        if not is_valid_password(password):
            raise AuthError(SHORT_PASSWORD_MESSAGE)
        if password != confirm_password:
            raise AuthError(PASSWORD_MISMATCH_MESSAGE)

        payload = self._post(
            "signUp",
            {"email": email, "password": password, "returnSecureToken": True},
            PROVIDER_ERRORS,
        )
        return self._start_session(payload, email)

    def send_password_reset(self, email: str) -> str:
        if not is_valid_email(email):
            raise AuthError(INVALID_EMAIL_MESSAGE)
        self._post("sendOobCode", {"requestType": "PASSWORD_RESET", "email": email}, PROVIDER_ERRORS)
        return RESET_SENT_MESSAGE

    def sign_out(self) -> None:
        self._session.clear()

    def current_user_id(self) -> Optional[str]:
        return self._session.load_user_id()
