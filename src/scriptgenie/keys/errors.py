"""
Credential store and rotation errors.

ValidationError and DuplicateError come from store mutations and are
never retried. NoKeysAvailable and AllAttemptsFailed come from the
rotation executor and must stay distinguishable: the first means
"add a key", the second means "try again later".
"""

from scriptgenie.config import NO_KEYS_MARKER


class KeyManagerError(Exception):
    """Base class for credential errors."""


class ValidationError(KeyManagerError, ValueError):
    """Malformed input to a store mutation (e.g. empty key)."""


class DuplicateError(KeyManagerError, ValueError):
    """The same key material is already stored for this provider."""


class NoKeysAvailable(KeyManagerError):
    """No enabled keys exist for the provider; nothing was attempted."""

    def __init__(self, provider: str) -> None:
        self.provider = provider
        super().__init__(
            f"{NO_KEYS_MARKER} found for {provider}. "
            f"Please add and enable a key in the key manager."
        )


class AllAttemptsFailed(KeyManagerError):
    """Every enabled key was tried and every attempt failed."""

    def __init__(
        self,
        provider: str,
        errors: list[tuple[str, BaseException]],
    ) -> None:
        self.provider = provider
        self.errors = errors
        self.attempts = len(errors)
        self.last_error = errors[-1][1] if errors else None
        detail = f": {self.last_error}" if self.last_error is not None else ""
        super().__init__(
            f"All {self.attempts} enabled {provider} key(s) failed{detail}"
        )
