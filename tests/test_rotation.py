"""Tests for sequential key rotation."""

import asyncio

import pytest

from scriptgenie.config import NO_KEYS_MARKER
from scriptgenie.keys import (
    AllAttemptsFailed,
    KeyManager,
    NoKeysAvailable,
    Provider,
    execute_with_rotation,
)


class _Recorder:
    """Async operation that fails for the listed keys and records every call."""

    def __init__(self, failing: set[str] | None = None) -> None:
        self.failing = failing or set()
        self.calls: list[str] = []

    async def __call__(self, api_key: str) -> str:
        self.calls.append(api_key)
        if api_key in self.failing:
            raise RuntimeError(f"quota exceeded for {api_key}")
        return f"ok:{api_key}"


@pytest.fixture
def three_keys(key_manager: KeyManager) -> KeyManager:
    for key in ("k1", "k2", "k3"):
        key_manager.add_key(key, Provider.GEMINI)
    key_manager.add_key("e1", Provider.ELEVENLABS)
    return key_manager


class TestRotationOrder:
    """Keys are tried in store order and the first success wins."""

    def test_first_key_success_short_circuits(self, three_keys: KeyManager) -> None:
        op = _Recorder()
        result = asyncio.run(execute_with_rotation(three_keys, Provider.GEMINI, op))
        assert result == "ok:k1"
        assert op.calls == ["k1"]

    def test_rotates_past_failures(self, three_keys: KeyManager) -> None:
        op = _Recorder(failing={"k1", "k2"})
        result = asyncio.run(execute_with_rotation(three_keys, Provider.GEMINI, op))
        assert result == "ok:k3"
        assert op.calls == ["k1", "k2", "k3"]

    def test_disabled_keys_skipped(self, three_keys: KeyManager) -> None:
        first = three_keys.get_keys(Provider.GEMINI)[0]
        three_keys.toggle_key_status(first.id)

        op = _Recorder()
        asyncio.run(execute_with_rotation(three_keys, Provider.GEMINI, op))
        assert op.calls == ["k2"]

    def test_only_requested_provider_used(self, three_keys: KeyManager) -> None:
        op = _Recorder()
        result = asyncio.run(execute_with_rotation(three_keys, "elevenlabs", op))
        assert result == "ok:e1"

    def test_manager_method_delegates(self, three_keys: KeyManager) -> None:
        op = _Recorder(failing={"k1"})
        result = asyncio.run(three_keys.execute_with_rotation(Provider.GEMINI, op))
        assert result == "ok:k2"


class TestRotationFailures:
    """Empty pools and exhausted pools raise distinguishable errors."""

    def test_empty_pool_never_calls_operation(self, key_manager: KeyManager) -> None:
        op = _Recorder()
        with pytest.raises(NoKeysAvailable) as exc_info:
            asyncio.run(execute_with_rotation(key_manager, Provider.GEMINI, op))

        assert op.calls == []
        assert NO_KEYS_MARKER in str(exc_info.value)
        assert exc_info.value.provider == "gemini"

    def test_all_disabled_counts_as_empty(self, key_manager: KeyManager) -> None:
        added = key_manager.add_key("k1", Provider.GEMINI)
        key_manager.toggle_key_status(added.id)

        with pytest.raises(NoKeysAvailable):
            asyncio.run(execute_with_rotation(key_manager, Provider.GEMINI, _Recorder()))

    def test_all_fail_raises_with_last_error(self, three_keys: KeyManager) -> None:
        op = _Recorder(failing={"k1", "k2", "k3"})
        with pytest.raises(AllAttemptsFailed) as exc_info:
            asyncio.run(execute_with_rotation(three_keys, Provider.GEMINI, op))

        err = exc_info.value
        assert op.calls == ["k1", "k2", "k3"]
        assert err.attempts == 3
        assert "quota exceeded for k3" in str(err)
        assert err.__cause__ is err.last_error
        assert NO_KEYS_MARKER not in str(err)

    def test_all_fail_records_labels(self, three_keys: KeyManager) -> None:
        op = _Recorder(failing={"k1", "k2", "k3"})
        with pytest.raises(AllAttemptsFailed) as exc_info:
            asyncio.run(execute_with_rotation(three_keys, Provider.GEMINI, op))

        assert [label for label, _ in exc_info.value.errors] == [
            "Key k1...",
            "Key k2...",
            "Key k3...",
        ]

    def test_cancellation_not_swallowed(self, three_keys: KeyManager) -> None:
        calls: list[str] = []

        async def _cancelled(api_key: str) -> str:
            calls.append(api_key)
            raise asyncio.CancelledError()

        with pytest.raises(asyncio.CancelledError):
            asyncio.run(execute_with_rotation(three_keys, Provider.GEMINI, _cancelled))
        assert calls == ["k1"]

    def test_key_material_not_logged(
        self, three_keys: KeyManager, caplog: pytest.LogCaptureFixture
    ) -> None:
        three_keys.add_key("AIzaSecretMaterial123", Provider.ELEVENLABS)
        first = three_keys.get_keys(Provider.ELEVENLABS)[0]
        three_keys.toggle_key_status(first.id)

        async def _fail(api_key: str) -> str:
            raise RuntimeError("denied")

        with caplog.at_level("WARNING"):
            with pytest.raises(AllAttemptsFailed):
                asyncio.run(execute_with_rotation(three_keys, Provider.ELEVENLABS, _fail))

        assert "AIzaSecretMaterial123" not in caplog.text
        assert "AIza…l123" in caplog.text
