#!/usr/bin/env python3
"""
Key-value storage for user preferences such as the TonAPI bearer token.

The ingestion client only ever calls ``get(key)`` and ``set(key, value)``;
setting ``None`` removes the key. Two implementations are provided: an
in-memory store for tests and one-off runs, and a JSON file store that
persists between CLI invocations.
"""

import json
import logging
from pathlib import Path
from typing import Dict, Optional, Protocol

logger = logging.getLogger(__name__)

# Fixed key under which the bearer credential lives
CREDENTIAL_KEY = "tonapi_token"


class KeyValueStore(Protocol):
    """Opaque preference store."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: Optional[str]) -> None:
        ...


class MemoryStore:
    """Dictionary-backed store."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: Optional[str]) -> None:
        if value is None:
            self._data.pop(key, None)
        else:
            self._data[key] = value


class JSONFileStore:
    """
    Store that keeps every key in a single JSON object on disk.

    Usage:
        store = JSONFileStore(Path("~/.jetton_holders/credentials.json"))
        store.set("tonapi_token", "AE...")
        token = store.get("tonapi_token")
    """

    def __init__(self, path: Path):
        """Initialize store with the backing file path (created on first write)."""
        self.path = Path(path).expanduser()

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable store file {self.path}: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed store file {self.path}")
            return {}
        return {str(k): str(v) for k, v in data.items() if v is not None}

    def _save(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: Optional[str]) -> None:
        data = self._load()
        if value is None:
            if key not in data:
                return
            data.pop(key)
        else:
            data[key] = value
        self._save(data)
