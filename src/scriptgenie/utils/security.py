"""
Input sanitization, path safety, and secret masking.

Threat model:
- Path traversal from user input (project IDs, export filenames)
- API key exposure in logs, CLI output, and API responses
"""

import os
import re
from pathlib import Path
from typing import Any

# Project IDs: alphanumeric, underscore, hyphen only
_PROJECT_ID_RE = re.compile(r"^[A-Za-z0-9_-]+$")

# Filenames: strip anything dangerous
_UNSAFE_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')

_SENSITIVE_PATTERNS = {"key", "secret", "token", "password"}


def sanitize_project_id(raw: str) -> str:
    """
    Sanitize a project ID to filesystem-safe characters.
    """
    cleaned = os.path.basename(raw.strip())

    cleaned = cleaned.replace(" ", "_").upper()
    cleaned = re.sub(r"[^A-Za-z0-9_-]", "", cleaned)

    if not cleaned:
        raise ValueError(f"Project ID '{raw}' contains no valid characters.")

    if not _PROJECT_ID_RE.match(cleaned):
        raise ValueError(f"Project ID '{cleaned}' is invalid after sanitization.")

    return cleaned


def sanitize_filename(raw: str) -> str:
    """
    Sanitize a filename, stripping path separators.
    """
    name = os.path.basename(raw)
    name = _UNSAFE_FILENAME_CHARS.sub("", name)

    # No leading dots (hidden files / directory traversal)
    name = name.lstrip(".")

    if not name:
        raise ValueError(f"Filename '{raw}' is empty after sanitization.")

    return name


def validate_path_within(path: Path, root: Path) -> bool:
    """
    Ensure `path` resolves to a location within `root`.
    """
    try:
        abs_path = os.path.abspath(str(path))
        abs_root = os.path.abspath(str(root))
        if not abs_path.startswith(abs_root):
            return False

        resolved = path.resolve()
        root_resolved = root.resolve()
        return resolved.is_relative_to(root_resolved)
    except (OSError, ValueError):
        return False


def mask_key(key: str, visible: int = 4) -> str:
    """
    Mask key material for display: first and last `visible` chars only.

    Short keys are fully masked so nothing meaningful leaks.
    """
    if len(key) <= visible * 2:
        return "*" * len(key)
    return f"{key[:visible]}…{key[-visible:]}"


def redact_api_keys(config: dict[str, Any]) -> dict[str, Any]:
    """
    Return a copy of config with API key values redacted for logging.

    Matches keys containing 'key', 'secret', 'token', 'password' (case-insensitive).
    """

    def _redact(obj: Any) -> Any:
        if isinstance(obj, dict):
            result = {}
            for k, v in obj.items():
                if any(p in k.lower() for p in _SENSITIVE_PATTERNS) and isinstance(
                    v, str
                ):
                    result[k] = "***REDACTED***"
                else:
                    result[k] = _redact(v)
            return result
        if isinstance(obj, list):
            return [_redact(item) for item in obj]
        return obj

    return _redact(config)
