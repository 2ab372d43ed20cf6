"""
Speech engine discovery and registration.
"""

from typing import Any, Callable

from scriptgenie.engines.base import SpeechEngine
from scriptgenie.keys.manager import KeyManager
from scriptgenie.keys.models import Provider


class EngineRegistry:
    """Registry of speech engines, built lazily around one KeyManager."""

    def __init__(self, keys: KeyManager) -> None:
        self.keys = keys
        self._factories: dict[str, Callable[..., SpeechEngine]] = {}
        self._engines: dict[str, SpeechEngine] = {}

    def register(self, name: str, factory: Callable[..., SpeechEngine]) -> None:
        """Register an engine factory. Factories receive the KeyManager."""
        self._factories[name] = factory

    def get(self, name: Provider | str, **kwargs: Any) -> SpeechEngine:
        """Get an engine instance by name. Instantiates on first call, caches."""
        name = name.value if isinstance(name, Provider) else name

        if name in self._engines:
            return self._engines[name]

        if name not in self._factories:
            available = ", ".join(self.list_available())
            raise KeyError(f"Engine '{name}' not registered. Available: {available}")

        engine = self._factories[name](self.keys, **kwargs)
        self._engines[name] = engine
        return engine

    def list_available(self) -> list[str]:
        """Return names of all registered engines."""
        return sorted(self._factories.keys())

    async def aclose(self) -> None:
        """Close every instantiated engine."""
        for engine in self._engines.values():
            await engine.aclose()
        self._engines.clear()


def build_registry(keys: KeyManager) -> EngineRegistry:
    """Registry with all built-in engines registered."""
    from scriptgenie.engines.elevenlabs import ElevenLabsEngine
    from scriptgenie.engines.gemini import GeminiSpeechEngine

    registry = EngineRegistry(keys)
    registry.register(Provider.GEMINI.value, GeminiSpeechEngine)
    registry.register(Provider.ELEVENLABS.value, ElevenLabsEngine)
    return registry
