"""
Rotation executor — run one remote call across a provider's key pool.

The caller supplies `operation(api_key)`; the executor supplies keys.
Attempts are strictly sequential in store order and the first success
wins. Any exception counts as a failed attempt: there is no
classification of auth vs. quota vs. network errors, and no backoff or
timeout of its own (timeouts belong to the HTTP client in `operation`).
"""

import logging
from typing import TYPE_CHECKING, Awaitable, Callable, TypeVar

from scriptgenie.keys.errors import AllAttemptsFailed, NoKeysAvailable
from scriptgenie.keys.models import Provider
from scriptgenie.utils.security import mask_key

if TYPE_CHECKING:
    from scriptgenie.keys.manager import KeyManager

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def execute_with_rotation(
    manager: "KeyManager",
    provider: Provider | str,
    operation: Callable[[str], Awaitable[T]],
) -> T:
    """
    Execute `operation` with each enabled key for `provider` until one succeeds.

    Args:
        manager: Credential store providing the enabled pool.
        provider: Provider whose keys to use.
        operation: Async callable performing one attempt with one key.

    Returns the first successful result.

    Raises:
        NoKeysAvailable: the enabled pool is empty (operation never called).
        AllAttemptsFailed: every key failed; chained from the last failure.
    """
    provider = Provider.parse(provider)

    # Snapshot: toggles during an in-flight call do not change this call's pool.
    pool = manager.get_enabled_keys(provider)
    if not pool:
        raise NoKeysAvailable(provider.value)

    errors: list[tuple[str, BaseException]] = []

    for api_key in pool:
        try:
            result = await operation(api_key.key)
        except Exception as e:
            logger.warning(
                "Key %s (%s) failed for %s: %s",
                api_key.display_label,
                mask_key(api_key.key),
                provider.value,
                e,
            )
            errors.append((api_key.display_label, e))
            continue

        if errors:
            logger.info(
                "%s request succeeded with key %s after %d failed attempt(s)",
                provider.value,
                api_key.display_label,
                len(errors),
            )
        return result

    raise AllAttemptsFailed(provider.value, errors) from errors[-1][1]
