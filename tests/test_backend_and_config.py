from __future__ import annotations

import os
from decimal import Decimal
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from cryptowallet.backend.server import create_app
from cryptowallet.config import AppConfig
from cryptowallet.errors import GatewayError
from cryptowallet.storage.ledger import InMemoryLedgerStore
from cryptowallet.util.http import fix_ssl_env
from cryptowallet.wallet import build_wallet

from conftest import FixedClock, make_coin


class _CustomerGateway:
    def __init__(self, error: str = ""):
        self.error = error
        self.created = []

    def create_customer(self, email, name):
        if self.error:
            raise GatewayError(self.error)
        self.created.append((email, name))
        return "cus_abc"


def test_create_customer_returns_id():
    gateway = _CustomerGateway()
    client = TestClient(create_app(gateway))

    r = client.post("/create-customer", json={"email": "ann@example.com", "name": "Ann"})

    assert r.status_code == 200
    assert r.json() == {"customerId": "cus_abc"}
    assert gateway.created == [("ann@example.com", "Ann")]


def test_create_customer_gateway_error_is_500():
    client = TestClient(create_app(_CustomerGateway(error="Invalid API Key provided")))
    r = client.post("/create-customer", json={"email": "ann@example.com", "name": "Ann"})
    assert r.status_code == 500
    assert r.json() == {"error": "Invalid API Key provided"}


def test_config_from_env_reads_prefixed_values():
    config = AppConfig.from_env({
        "CRYPTOWALLET_DATABASE_URL": " https://demo.firebaseio.com ",
        "CRYPTOWALLET_HTTP_TIMEOUT": "3.5",
        "CRYPTOWALLET_DATA_DIR": "/tmp/cw",
        "CRYPTOWALLET_LOG_LEVEL": "debug",
    })
    assert config.database_url == "https://demo.firebaseio.com"
    assert config.http_timeout == 3.5
    assert config.data_dir == Path("/tmp/cw")
    assert config.log_level == "debug"
    assert config.backend_url == "http://localhost:3000"
    assert config.stripe_secret_key == ""


@pytest.mark.parametrize("value", ["abc", "0", "-1"])
def test_config_rejects_bad_timeout(value):
    with pytest.raises(ValueError):
        AppConfig.from_env({"CRYPTOWALLET_HTTP_TIMEOUT": value})


def test_fix_ssl_env_repairs_missing_paths(monkeypatch, tmp_path):
    monkeypatch.setenv("SSL_CERT_FILE", str(tmp_path / "missing.pem"))
    monkeypatch.setenv("SSL_CERT_DIR", str(tmp_path / "missing"))
    fix_ssl_env()
    assert Path(os.environ["SSL_CERT_FILE"]).exists()
    assert "SSL_CERT_DIR" not in os.environ


def test_build_wallet_with_in_memory_store(tmp_path):
    config = AppConfig(data_dir=tmp_path)
    wallet = build_wallet(config, store=InMemoryLedgerStore(clock=FixedClock()))

    assert wallet.auth is None
    assert wallet.funding is None

    coin = make_coin("100", "10")
    wallet.balances.set_balance("u1", Decimal("1000"))
    assert wallet.trades.buy("u1", coin, "200").ok

    summary = wallet.portfolio_summary("u1", [coin])
    assert summary.total_current_value == Decimal("200")
    assert summary.ledger_invested == Decimal("200")
    assert wallet.balances.get_balance("u1") == Decimal("800")
    assert len(wallet.transactions.get_transactions("u1")) == 1
