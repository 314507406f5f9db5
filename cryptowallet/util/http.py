from __future__ import annotations

import os
import ssl

import certifi
import truststore


def fix_ssl_env() -> None:
    """Normalize SSL certificate env vars before any client is created.

    - If SSL_CERT_FILE points to a missing file, use the certifi bundle.
    - If SSL_CERT_DIR points to a missing directory, unset it.
    """
    file = os.environ.get("SSL_CERT_FILE")
    dir_ = os.environ.get("SSL_CERT_DIR")
    if file and not os.path.exists(file):
        os.environ["SSL_CERT_FILE"] = certifi.where()
    if dir_ and not os.path.isdir(dir_):
        os.environ.pop("SSL_CERT_DIR", None)


def make_ssl_context() -> ssl.SSLContext:
    """TLS context for httpx clients backed by the OS trust store."""
    return truststore.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
