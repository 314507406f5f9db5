"""Local persistence for client-side state.

The only state kept on the device is the cached user identifier; it is stored
through a small key/value JSON file service.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

SESSION_KEY = "session"


class IStorageService(ABC):
    """Key/value storage of JSON-serializable data."""

    @abstractmethod
    def save(self, key: str, data: Any) -> None:
        ...

    @abstractmethod
    def load(self, key: str) -> Optional[Any]:
        """Return the stored data, or None if not found."""
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...


class JsonFileStorage(IStorageService):
    """Stores each key as a separate JSON file in a base directory."""

    def __init__(self, base_path: str | Path) -> None:
        self._base_path = Path(base_path)
        self._base_path.mkdir(parents=True, exist_ok=True)

    def _get_file_path(self, key: str) -> Path:
        safe_key = key.replace("/", "_").replace("\\", "_")
        return self._base_path / f"{safe_key}.json"

    def save(self, key: str, data: Any) -> None:
        """Write data for key, replacing the file in one rename.

        Raises:
            TypeError: If data is not JSON-serializable
            OSError: If the file cannot be written
        """
        file_path = self._get_file_path(key)
        fd, tmp_name = tempfile.mkstemp(dir=self._base_path, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp_name, file_path)
        except (TypeError, OSError) as e:
            logger.error(f"Failed to save data for key '{key}': {e}")
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def load(self, key: str) -> Optional[Any]:
        file_path = self._get_file_path(key)
        if not file_path.exists():
            return None

        try:
            with file_path.open("r", encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Corrupted data for key '{key}': {e}")
            return None
        except OSError as e:
            logger.error(f"Failed to load data for key '{key}': {e}")
            return None

    def delete(self, key: str) -> None:
        file_path = self._get_file_path(key)
        try:
            file_path.unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"Failed to delete data for key '{key}': {e}")


class InMemoryStorage(IStorageService):
    """Dict-backed storage for tests and ephemeral sessions."""

    def __init__(self) -> None:
        self._data: dict = {}

    def save(self, key: str, data: Any) -> None:
        self._data[key] = json.loads(json.dumps(data))

    def load(self, key: str) -> Optional[Any]:
        return self._data.get(key)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class SessionCache:
    """Remembers the signed-in user's id between runs."""

    def __init__(self, storage: IStorageService) -> None:
        self._storage = storage

    def load_user_id(self) -> Optional[str]:
        data = self._storage.load(SESSION_KEY)
        if isinstance(data, dict) and data.get("uid"):
            return str(data["uid"])
        return None

    def save_user_id(self, user_id: str) -> None:
        self._storage.save(SESSION_KEY, {"uid": user_id})

    def clear(self) -> None:
        self._storage.delete(SESSION_KEY)
