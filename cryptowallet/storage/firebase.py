"""Firebase Realtime Database ledger store over the REST API."""

from __future__ import annotations

import json
import logging
import threading
from typing import Any, Dict, Iterator, Optional, Tuple

import httpx

from cryptowallet.errors import StoreError
from cryptowallet.util.http import make_ssl_context

from .ledger import ILedgerStore, Unsubscribe, ValueCallback, split_path

logger = logging.getLogger(__name__)


def iter_sse_events(lines: Iterator[str]) -> Iterator[Tuple[str, str]]:
    """Group a server-sent-events line stream into (event, data) pairs."""
    event = ""
    data_lines = []
    for line in lines:
        if line == "":
            if event or data_lines:
                yield event, "\n".join(data_lines)
            event, data_lines = "", []
            continue
        if line.startswith(":"):
            continue
        name, _, value = line.partition(":")
        value = value[1:] if value.startswith(" ") else value
        if name == "event":
            event = value
        elif name == "data":
            data_lines.append(value)
    if event or data_lines:
        yield event, "\n".join(data_lines)


def apply_stream_event(snapshot: Any, event: str, payload: Dict[str, Any]) -> Any:
    """Apply a `put` or `patch` stream event to a local snapshot of the node."""
    parts = split_path(payload.get("path", "/"))
    data = payload.get("data")
    if event == "put":
        return _set_in(snapshot, parts, data)
    if event == "patch" and isinstance(data, dict):
        for key, value in data.items():
            snapshot = _set_in(snapshot, parts + split_path(key), value)
    return snapshot


def _set_in(node: Any, parts, value: Any) -> Any:
    if not parts:
        return value
    node = dict(node) if isinstance(node, dict) else {}
    child = _set_in(node.get(parts[0]), parts[1:], value)
    if child is None or child == {}:
        node.pop(parts[0], None)
    else:
        node[parts[0]] = child
    return node or None


class FirebaseLedgerStore(ILedgerStore):
    """Ledger store talking to a Realtime Database with `{path}.json` requests.

    Each call is one HTTP round-trip; nothing is batched or retried.
    """

    def __init__(
        self,
        database_url: str,
        auth_token: Optional[str] = None,
        timeout_s: float = 10.0,
    ) -> None:
        """Initialize the store.

        Args:
            database_url: Database root, e.g. "https://my-app.firebaseio.com"
            auth_token: ID token or database secret passed as `auth`
            timeout_s: Per-request timeout in seconds
        """
        self._base_url = database_url.rstrip("/")
        self._auth_token = auth_token
        self._timeout_s = timeout_s
        self._client = httpx.Client(base_url=self._base_url, timeout=timeout_s, verify=make_ssl_context())
        self._lock = threading.Lock()

    def set_auth_token(self, token: Optional[str]) -> None:
        """Swap the token used for subsequent requests (e.g., after sign-in)."""
        self._auth_token = token

    def _url(self, path: str) -> str:
        return "/" + "/".join(split_path(path)) + ".json"

    def _params(self) -> Dict[str, str]:
        return {"auth": self._auth_token} if self._auth_token else {}

    def _request(self, method: str, path: str, body: Any = None) -> Any:
        kwargs: Dict[str, Any] = {"params": self._params()}
        if body is not None:
            kwargs["content"] = json.dumps(body)
            kwargs["headers"] = {"Content-Type": "application/json"}
        try:
            with self._lock:
                r = self._client.request(method, self._url(path), **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"{method} '{path}' failed: {e}")
            raise StoreError(f"Network error: {e}", path=path) from e

        if r.status_code >= 400:
            message = self._error_message(r)
            logger.error(f"{method} '{path}' returned {r.status_code}: {message}")
            raise StoreError(message, path=path)

        try:
            return r.json()
        except ValueError as e:
            logger.error(f"Invalid JSON from '{path}': {e}")
            raise StoreError("Invalid response from the database.", path=path) from e

    @staticmethod
    def _error_message(r) -> str:
        try:
            payload = r.json()
        except ValueError:
            return f"Database request failed with status {r.status_code}."
        if isinstance(payload, dict) and payload.get("error"):
            return str(payload["error"])
        return f"Database request failed with status {r.status_code}."

    def get(self, path: str) -> Optional[Any]:
        return self._request("GET", path)

    def set(self, path: str, value: Any) -> None:
        if value is None:
            self.delete(path)
            return
        self._request("PUT", path, value)

    def update(self, path: str, values: Dict[str, Any]) -> None:
        self._request("PATCH", path, values)

    def delete(self, path: str) -> None:
        self._request("DELETE", path)

    def push(self, path: str, value: Any) -> str:
        result = self._request("POST", path, value)
        if not isinstance(result, dict) or "name" not in result:
            raise StoreError("Database did not return a key for the new record.", path=path)
        return str(result["name"])

    def subscribe(self, path: str, callback: ValueCallback) -> Unsubscribe:
        """Listen to the node with a streaming request on a daemon thread."""
        stop = threading.Event()
        thread = threading.Thread(
            target=self._stream,
            args=(path, callback, stop),
            name=f"ledger-stream:{path}",
            daemon=True,
        )
        thread.start()
        return stop.set

    def _stream(self, path: str, callback: ValueCallback, stop: threading.Event) -> None:
        snapshot: Any = None
        headers = {"Accept": "text/event-stream"}
        try:
            with httpx.Client(base_url=self._base_url, timeout=None, verify=make_ssl_context(),
                              follow_redirects=True) as client:
                with client.stream("GET", self._url(path), params=self._params(), headers=headers) as r:
                    r.raise_for_status()
                    for event, data in iter_sse_events(r.iter_lines()):
                        if stop.is_set():
                            return
                        if event in ("put", "patch"):
                            snapshot = apply_stream_event(snapshot, event, json.loads(data))
                            callback(snapshot)
                        elif event in ("cancel", "auth_revoked"):
                            logger.warning(f"Stream for '{path}' ended by server: {event}")
                            return
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Stream for '{path}' failed: {e}")
