"""
Abstract base class for speech engines.

All engines implement this interface. Generation code calls engines
through this contract, never directly. Engines never hold an API key:
each one is given the shared KeyManager and wraps every remote call in
key rotation for its provider.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from scriptgenie.keys.manager import KeyManager
from scriptgenie.keys.models import Provider


class ProviderError(RuntimeError):
    """The provider answered, but not with something usable."""


@dataclass
class SpeechRequest:
    """Input to a speech engine."""

    text: str
    voice: str | None = None

    # Engine-specific overrides (passed through)
    params: dict[str, Any] | None = None


@dataclass
class SpeechResult:
    """Output from a speech engine: one complete audio file in memory."""

    audio: bytes
    mime_type: str
    extension: str
    sample_rate: int = 0
    duration_sec: float = 0.0


class SpeechEngine(ABC):
    """Abstract interface for text-to-speech providers."""

    def __init__(self, keys: KeyManager) -> None:
        self.keys = keys

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique engine identifier (e.g., 'gemini', 'elevenlabs')."""
        ...

    @property
    @abstractmethod
    def provider(self) -> Provider:
        """Provider whose key pool this engine rotates through."""
        ...

    @abstractmethod
    async def synthesize(self, request: SpeechRequest) -> SpeechResult:
        """
        Generate speech for one piece of text.

        Raises:
            NoKeysAvailable: no enabled key for the provider.
            AllAttemptsFailed: every enabled key failed.
        """
        ...

    async def list_voices(self) -> list[dict[str, str]]:
        """
        List available voices.

        Returns list of dicts with at least 'id' and 'name' keys.
        """
        return []

    async def aclose(self) -> None:
        """Release network resources."""
        return None
