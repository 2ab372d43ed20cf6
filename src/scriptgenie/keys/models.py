"""
Credential records and the closed provider set.

Records are persisted as plain JSON objects. Field names match the
records written by earlier browser builds (`isEnabled`), so an
existing key export loads without conversion.
"""

import secrets
import string
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any

from scriptgenie.config import DEFAULT_LABEL_PREFIX_CHARS

_BASE36 = string.digits + string.ascii_lowercase


class Provider(str, Enum):
    """External generative-AI services a key can belong to."""

    GEMINI = "gemini"
    ELEVENLABS = "elevenlabs"

    @classmethod
    def parse(cls, value: "Provider | str") -> "Provider":
        """Parse a provider tag, rejecting anything outside the closed set."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            allowed = ", ".join(p.value for p in cls)
            raise ValueError(
                f"Unknown provider '{value}'. Must be one of: {allowed}"
            ) from None


def generate_key_id() -> str:
    """Return a fresh identifier: key-<epoch ms>-<9 base36 chars>."""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"key-{int(time.time() * 1000)}-{suffix}"


def default_label(key: str) -> str:
    """Label shown for a key the user did not name."""
    return f"Key {key[:DEFAULT_LABEL_PREFIX_CHARS]}..."


@dataclass
class ApiKey:
    """One user-supplied API key for one provider."""

    id: str
    key: str
    provider: Provider
    label: str | None = None
    is_enabled: bool = True

    @property
    def display_label(self) -> str:
        return self.label or default_label(self.key)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "key": self.key,
            "provider": self.provider.value,
            "label": self.label,
            "isEnabled": self.is_enabled,
        }

    @classmethod
    def from_dict(cls, record: dict[str, Any]) -> "ApiKey":
        """
        Build from a persisted record.

        Raises ValueError on a missing key or unknown provider tag.
        Missing `id`/`isEnabled` must be backfilled before calling this.
        """
        key = record.get("key")
        if not isinstance(key, str) or not key:
            raise ValueError("Stored key record has no key material.")

        return cls(
            id=str(record["id"]),
            key=key,
            provider=Provider.parse(record.get("provider", "")),
            label=record.get("label"),
            is_enabled=bool(record["isEnabled"]),
        )
