"""Storage module for preferences and credentials."""

from .credential_store import CREDENTIAL_KEY, JSONFileStore, KeyValueStore, MemoryStore

__all__ = ["CREDENTIAL_KEY", "JSONFileStore", "KeyValueStore", "MemoryStore"]
