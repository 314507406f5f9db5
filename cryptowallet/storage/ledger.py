"""Ledger store interface and in-memory implementation.

The ledger is a key-path addressable JSON tree (Firebase Realtime Database
semantics): a path such as ``users/abc/balance`` addresses a node, writing
None removes it, and parents left empty disappear.
"""

from __future__ import annotations

import copy
import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Tuple

from .push_ids import PushIdGenerator

logger = logging.getLogger(__name__)

# Placeholder replaced with the store's clock (epoch ms) when written.
SERVER_TIMESTAMP: Dict[str, str] = {".sv": "timestamp"}

ValueCallback = Callable[[Any], None]
Unsubscribe = Callable[[], None]


def split_path(path: str) -> List[str]:
    """Split a key path into its non-empty segments."""
    return [part for part in path.strip("/").split("/") if part]


def join_path(*parts: str) -> str:
    return "/".join(p.strip("/") for p in parts if p and p.strip("/"))


class ILedgerStore(ABC):
    """Interface for the key-path JSON store holding the wallet ledger."""

    @abstractmethod
    def get(self, path: str) -> Optional[Any]:
        """Read the value at path.

        Returns:
            The stored JSON value, or None if nothing is stored there
        """
        ...

    @abstractmethod
    def set(self, path: str, value: Any) -> None:
        """Replace the value at path (None deletes it)."""
        ...

    @abstractmethod
    def update(self, path: str, values: Dict[str, Any]) -> None:
        """Merge the given children into the node at path."""
        ...

    @abstractmethod
    def delete(self, path: str) -> None:
        """Remove the value at path."""
        ...

    @abstractmethod
    def push(self, path: str, value: Any) -> str:
        """Append value under a generated child key of path.

        Returns:
            The generated key
        """
        ...

    @abstractmethod
    def subscribe(self, path: str, callback: ValueCallback) -> Unsubscribe:
        """Invoke callback with the value at path now and after every change.

        Returns:
            A callable that removes the subscription
        """
        ...


def _prune(value: Any) -> Any:
    """Drop None leaves and empty containers, as the store does on write."""
    if isinstance(value, dict):
        out = {}
        for key, child in value.items():
            pruned = _prune(child)
            if pruned is not None:
                out[str(key)] = pruned
        return out or None
    if isinstance(value, list):
        items = [_prune(v) for v in value]
        items = [v for v in items if v is not None]
        return items or None
    return value


class InMemoryLedgerStore(ILedgerStore):
    """Ledger store backed by a nested dict.

    Used offline and in tests. Resolves SERVER_TIMESTAMP with its own clock
    and generates push keys locally.
    """

    def __init__(
        self,
        initial: Optional[Dict[str, Any]] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self._clock = clock or time.time
        self._root: Dict[str, Any] = copy.deepcopy(initial) if initial else {}
        self._lock = threading.RLock()
        self._ids = PushIdGenerator(clock=self._clock)
        self._listeners: List[Tuple[List[str], ValueCallback]] = []

    def get(self, path: str) -> Optional[Any]:
        with self._lock:
            return copy.deepcopy(self._lookup(split_path(path)))

    def set(self, path: str, value: Any) -> None:
        parts = split_path(path)
        with self._lock:
            self._write(parts, self._resolve(copy.deepcopy(value)))
        self._notify(parts)

    def update(self, path: str, values: Dict[str, Any]) -> None:
        parts = split_path(path)
        with self._lock:
            for key, child in values.items():
                self._write(parts + split_path(key), self._resolve(copy.deepcopy(child)))
        self._notify(parts)

    def delete(self, path: str) -> None:
        parts = split_path(path)
        with self._lock:
            self._write(parts, None)
        self._notify(parts)

    def push(self, path: str, value: Any) -> str:
        key = self._ids.generate()
        self.set(join_path(path, key), value)
        return key

    def subscribe(self, path: str, callback: ValueCallback) -> Unsubscribe:
        entry = (split_path(path), callback)
        with self._lock:
            self._listeners.append(entry)
        callback(self.get(path))

        def unsubscribe() -> None:
            with self._lock:
                if entry in self._listeners:
                    self._listeners.remove(entry)

        return unsubscribe

    def snapshot(self) -> Dict[str, Any]:
        """Deep copy of the whole tree."""
        with self._lock:
            return copy.deepcopy(self._root)

    def _lookup(self, parts: List[str]) -> Optional[Any]:
        node: Any = self._root
        for part in parts:
            if not isinstance(node, dict) or part not in node:
                return None
            node = node[part]
        return node

    def _write(self, parts: List[str], value: Any) -> None:
        value = _prune(value)
        if not parts:
            self._root = value if isinstance(value, dict) else {}
            return

        # Walk down, creating intermediate nodes and remembering the trail
        trail = []
        node = self._root
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                if value is None:
                    return
                child = {}
                node[part] = child
            trail.append((node, part))
            node = child

        if value is None:
            node.pop(parts[-1], None)
        else:
            node[parts[-1]] = value

        # Remove parents emptied by the write
        while trail and not node:
            parent, key = trail.pop()
            del parent[key]
            node = parent

    def _resolve(self, value: Any) -> Any:
        if value == SERVER_TIMESTAMP:
            return int(self._clock() * 1000)
        if isinstance(value, dict):
            return {k: self._resolve(v) for k, v in value.items()}
        if isinstance(value, list):
            return [self._resolve(v) for v in value]
        return value

    def _notify(self, changed: List[str]) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for parts, callback in listeners:
            n = min(len(parts), len(changed))
            if parts[:n] != changed[:n]:
                continue
            try:
                callback(self.get("/".join(parts)))
            except Exception as e:
                logger.error(f"Listener for '{'/'.join(parts)}' failed: {e}")
