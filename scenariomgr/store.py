"""A thread-safe in-memory key/value store holding JSON documents."""

from __future__ import annotations

import dataclasses
import enum
import json
import threading
from datetime import date, datetime
from typing import Any


class NotFoundError(LookupError):
    """Raised when a key is not in the store."""


def _encode(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    raise TypeError(f"cannot store value of type {type(value).__name__}")


class Store:
    """Entities serialised as JSON under string keys."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._data

    def set(self, key: str, entity: Any) -> None:
        """Store ``entity`` (a mapping or dataclass) under ``key``."""
        payload = json.dumps(entity, default=_encode)
        with self._lock:
            self._data[key] = payload

    def get(self, key: str) -> Any:
        """Return a fresh copy of the document under ``key``."""
        with self._lock:
            payload = self._data.get(key)
        if payload is None:
            raise NotFoundError(f"key '{key}' not found")
        return json.loads(payload)

    def find(self, entity_id: str, prefix: str) -> Any:
        """Return the document of entity ``entity_id`` kept under ``prefix``."""
        return self.get(prefix + entity_id)

    def values_with_prefix(self, prefix: str) -> dict[str, Any]:
        """Return every document whose key starts with ``prefix``."""
        with self._lock:
            matches = [(k, v) for k, v in self._data.items() if k.startswith(prefix)]
        return {key: json.loads(payload) for key, payload in matches}

    def delete(self, key: str) -> bool:
        """Remove ``key``; return whether it was present."""
        with self._lock:
            return self._data.pop(key, None) is not None