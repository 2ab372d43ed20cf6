"""API key storage and per-provider key rotation."""

from scriptgenie.keys.errors import (
    AllAttemptsFailed,
    DuplicateError,
    KeyManagerError,
    NoKeysAvailable,
    ValidationError,
)
from scriptgenie.keys.manager import KeyManager
from scriptgenie.keys.models import ApiKey, Provider
from scriptgenie.keys.rotation import execute_with_rotation
from scriptgenie.keys.storage import InMemoryStore, JsonFileStore, KeyValueStore

__all__ = [
    "AllAttemptsFailed",
    "ApiKey",
    "DuplicateError",
    "InMemoryStore",
    "JsonFileStore",
    "KeyManager",
    "KeyManagerError",
    "KeyValueStore",
    "NoKeysAvailable",
    "Provider",
    "ValidationError",
    "execute_with_rotation",
]
