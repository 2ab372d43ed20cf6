"""
Credential store — CRUD over the user's API keys, persisted whole.

One KeyManager is built at startup and handed to every component that
calls a provider. Every mutation is a read-modify-persist cycle on the
full key list (no incremental patching, last write wins).

Load-time migration:
- drops legacy system-injected keys
- backfills `isEnabled` (True) and `id` for records from older builds
- persists immediately if either of the above changed anything
- skips unreadable records (logged, left on disk until the next mutation)
"""

import json
import logging
import threading
from typing import Any, Awaitable, Callable, TypeVar

from scriptgenie.config import (
    KEYS_STORAGE_KEY,
    LEGACY_SYSTEM_KEY_ID,
    LEGACY_SYSTEM_LABEL,
)
from scriptgenie.keys.errors import DuplicateError, ValidationError
from scriptgenie.keys.models import (
    ApiKey,
    Provider,
    default_label,
    generate_key_id,
)
from scriptgenie.keys.rotation import execute_with_rotation
from scriptgenie.keys.storage import KeyValueStore
from scriptgenie.utils.security import mask_key

logger = logging.getLogger(__name__)

T = TypeVar("T")


class KeyManager:
    """Holds every ApiKey across providers, in insertion order."""

    def __init__(
        self,
        storage: KeyValueStore,
        storage_key: str = KEYS_STORAGE_KEY,
    ) -> None:
        self._storage = storage
        self._storage_key = storage_key
        self._keys: list[ApiKey] = []
        self._lock = threading.RLock()
        self.reload()

    # ──────────────────────────────────────────────
    # Queries
    # ──────────────────────────────────────────────

    def get_keys(self, provider: Provider | str) -> list[ApiKey]:
        """All keys for a provider, enabled or not, in store order."""
        provider = Provider.parse(provider)
        with self._lock:
            return [_copy(k) for k in self._keys if k.provider == provider]

    def get_enabled_keys(self, provider: Provider | str) -> list[ApiKey]:
        """The enabled pool for a provider, in store order."""
        return [k for k in self.get_keys(provider) if k.is_enabled]

    def get_key(self, key_id: str) -> ApiKey | None:
        with self._lock:
            for k in self._keys:
                if k.id == key_id:
                    return _copy(k)
        return None

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)

    # ──────────────────────────────────────────────
    # Mutations
    # ──────────────────────────────────────────────

    def add_key(
        self,
        key: str,
        provider: Provider | str,
        label: str | None = None,
    ) -> ApiKey:
        """
        Add a key for a provider, enabled by default.

        Raises:
            ValidationError: key is empty or whitespace-only.
            DuplicateError: the same key is already stored for the provider.
        """
        if not key or not key.strip():
            raise ValidationError("API Key cannot be empty")

        provider = Provider.parse(provider)

        with self._lock:
            if any(k.key == key and k.provider == provider for k in self._keys):
                raise DuplicateError("This API Key already exists.")

            new_key = ApiKey(
                id=generate_key_id(),
                key=key,
                provider=provider,
                label=label or default_label(key),
                is_enabled=True,
            )
            self._keys = [*self._keys, new_key]
            self._save()

        logger.info("Added %s key %s (%s)", provider.value, new_key.id, mask_key(key))
        return _copy(new_key)

    def remove_key(self, key_id: str) -> None:
        """Remove a key by id. Removing an unknown id is logged, not raised."""
        with self._lock:
            remaining = [k for k in self._keys if k.id != key_id]
            if len(remaining) == len(self._keys):
                logger.warning(
                    "Attempted to remove key with id %s but it was not found.", key_id
                )
            else:
                logger.info("Key %s removed successfully.", key_id)
            self._keys = remaining
            self._save()

    def toggle_key_status(self, key_id: str) -> None:
        """Flip a key's enabled flag. Unknown ids are a no-op."""
        with self._lock:
            for k in self._keys:
                if k.id == key_id:
                    k.is_enabled = not k.is_enabled
                    logger.info(
                        "Key %s %s", key_id, "enabled" if k.is_enabled else "disabled"
                    )
            self._save()

    def relabel_key(self, key_id: str, label: str | None) -> None:
        """Rename a key. An empty label restores the default. Unknown ids are a no-op."""
        with self._lock:
            for k in self._keys:
                if k.id == key_id:
                    k.label = (label or "").strip() or default_label(k.key)
            self._save()

    # ──────────────────────────────────────────────
    # Rotation
    # ──────────────────────────────────────────────

    async def execute_with_rotation(
        self,
        provider: Provider | str,
        operation: Callable[[str], Awaitable[T]],
    ) -> T:
        """Run `operation` with each enabled key until one succeeds."""
        return await execute_with_rotation(self, provider, operation)

    # ──────────────────────────────────────────────
    # Persistence
    # ──────────────────────────────────────────────

    def reload(self) -> None:
        """Load keys from storage, migrating records from older builds."""
        with self._lock:
            try:
                raw = self._storage.get(self._storage_key)
                records = json.loads(raw) if raw else []
                if not isinstance(records, list):
                    raise ValueError("stored keys are not a list")
            except (json.JSONDecodeError, ValueError) as e:
                logger.error("Failed to load keys: %s", e)
                self._keys = []
                return

            keys, changed = _migrate(records)
            self._keys = keys

            if changed:
                logger.info("Migrated stored keys; rewriting %d record(s)", len(keys))
                self._save()

    def _save(self) -> None:
        payload = json.dumps([k.to_dict() for k in self._keys], ensure_ascii=False)
        self._storage.set(self._storage_key, payload)


# ──────────────────────────────────────────────
# Private helpers
# ──────────────────────────────────────────────


def _copy(key: ApiKey) -> ApiKey:
    return ApiKey(
        id=key.id,
        key=key.key,
        provider=key.provider,
        label=key.label,
        is_enabled=key.is_enabled,
    )


def _is_legacy_system_entry(record: Any) -> bool:
    return (
        not isinstance(record, dict)
        or bool(record.get("isSystem"))
        or record.get("label") == LEGACY_SYSTEM_LABEL
        or record.get("id") == LEGACY_SYSTEM_KEY_ID
    )


def _migrate(records: list[Any]) -> tuple[list[ApiKey], bool]:
    """Return (keys, changed) after purging legacy entries and backfilling fields."""
    changed = False
    keys: list[ApiKey] = []

    for record in records:
        if _is_legacy_system_entry(record):
            changed = True
            continue

        record = dict(record)
        backfilled = False
        if record.get("isEnabled") is None:
            record["isEnabled"] = True
            backfilled = True
        if not record.get("id"):
            record["id"] = generate_key_id()
            backfilled = True

        try:
            keys.append(ApiKey.from_dict(record))
            changed = changed or backfilled
        except ValueError as e:
            # Unreadable records never trigger a rewrite; they stay on disk
            # until the next user mutation.
            material = record.get("key")
            logger.warning(
                "Ignoring unreadable key record %s (%s): %s",
                record.get("id"),
                mask_key(material) if isinstance(material, str) else "no key",
                e,
            )

    return keys, changed
