"""
Durable key-value storage behind the credential store.

The store only needs two operations on one named record: read it whole
and replace it whole. Values are opaque strings; serialization belongs
to the caller.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path

from scriptgenie.config import SCRIPTGENIE_HOME, KEYS_DIR_NAME
from scriptgenie.utils.security import sanitize_filename

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Named string records that survive process restarts."""

    @abstractmethod
    def get(self, name: str) -> str | None:
        """Return the stored value, or None if the record does not exist."""
        ...

    @abstractmethod
    def set(self, name: str, value: str) -> None:
        """Replace the record with `value` (last write wins)."""
        ...


class InMemoryStore(KeyValueStore):
    """Process-local store, used by tests and throwaway sessions."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.records: dict[str, str] = dict(initial or {})
        self.writes = 0

    def get(self, name: str) -> str | None:
        return self.records.get(name)

    def set(self, name: str, value: str) -> None:
        self.records[name] = value
        self.writes += 1


class JsonFileStore(KeyValueStore):
    """One `<name>.json` file per record under a root directory."""

    def __init__(self, root: Path | None = None) -> None:
        self.root = Path(root) if root is not None else SCRIPTGENIE_HOME / KEYS_DIR_NAME

    def _path(self, name: str) -> Path:
        return self.root / f"{sanitize_filename(name)}.json"

    def get(self, name: str) -> str | None:
        path = self._path(name)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, name: str, value: str) -> None:
        path = self._path(name)
        path.parent.mkdir(parents=True, exist_ok=True)

        # Atomic replace: readers see the old record or the new one.
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(value, encoding="utf-8")
        tmp.replace(path)
        logger.debug("Wrote %s (%d bytes)", path, len(value))
