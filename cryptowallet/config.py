"""Application configuration from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

ENV_PREFIX = "CRYPTOWALLET_"


def default_data_dir() -> Path:
    return Path.home() / ".cryptowallet" / "data"


@dataclass
class AppConfig:
    """Settings for the remote services and local state.

    Attributes:
        database_url: Realtime Database root URL; empty means in-memory ledger
        database_auth: Token passed as `auth` to the database
        firebase_api_key: Web API key for Identity Toolkit
        stripe_secret_key: Stripe secret key
        backend_url: Base URL of the customer-provisioning backend
        data_dir: Directory holding the cached session
        http_timeout: Timeout in seconds for every HTTP request
        log_level: Logging level name
    """
    database_url: str = ""
    database_auth: str = ""
    firebase_api_key: str = ""
    stripe_secret_key: str = ""
    backend_url: str = "http://localhost:3000"
    data_dir: Path = field(default_factory=default_data_dir)
    http_timeout: float = 10.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AppConfig":
        env = os.environ if environ is None else environ

        def get(name: str, default: str = "") -> str:
            return env.get(ENV_PREFIX + name, default).strip()

        timeout_raw = get("HTTP_TIMEOUT")
        try:
            timeout = float(timeout_raw) if timeout_raw else 10.0
        except ValueError:
            raise ValueError(f"{ENV_PREFIX}HTTP_TIMEOUT must be a number, got {timeout_raw!r}")
        if timeout <= 0:
            raise ValueError(f"{ENV_PREFIX}HTTP_TIMEOUT must be positive, got {timeout_raw!r}")

        data_dir = get("DATA_DIR")
        return cls(
            database_url=get("DATABASE_URL"),
            database_auth=get("DATABASE_AUTH"),
            firebase_api_key=get("FIREBASE_API_KEY"),
            stripe_secret_key=get("STRIPE_SECRET_KEY"),
            backend_url=get("BACKEND_URL", "http://localhost:3000") or "http://localhost:3000",
            data_dir=Path(data_dir).expanduser() if data_dir else default_data_dir(),
            http_timeout=timeout,
            log_level=get("LOG_LEVEL", "INFO") or "INFO",
        )
