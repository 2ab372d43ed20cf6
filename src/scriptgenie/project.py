"""
Project CRUD — create, list, load, save segments.

Every project is a directory under PROJECTS_ROOT containing:
- project.json (single source of truth: status + segments)
- script.txt (the script being analyzed)
- audio/, images/, export/
"""

import json
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from scriptgenie.config import PROJECTS_ROOT, PROJECT_DIRS
from scriptgenie.segments import ProcessingStatus, ScriptSegment
from scriptgenie.utils.security import sanitize_project_id

SCRIPT_FILENAME = "script.txt"


def get_project_path(project_id: str) -> Path:
    """Resolve and validate a project directory path."""
    if not re.fullmatch(r"^[A-Za-z0-9_-]+$", project_id):
        raise ValueError(f"Invalid Project ID format: {project_id}")

    path = PROJECTS_ROOT.joinpath(project_id)

    try:
        resolved_path = path.resolve()
        resolved_root = PROJECTS_ROOT.resolve()
    except OSError as e:
        raise ValueError(f"Invalid path resolution: {e}")

    if not resolved_path.is_relative_to(resolved_root):
        raise ValueError(f"Path traversal detected: {project_id}")

    return path


def create_project(project_id: str, script: str | None = None) -> Path:
    """
    Create a new project with its directory structure and project.json.

    Returns the project directory path.
    Raises FileExistsError if project already exists.
    """
    safe_id = sanitize_project_id(project_id)
    project_path = get_project_path(safe_id)

    if project_path.exists():
        raise FileExistsError(f"Project already exists: {safe_id}")

    for dir_rel in PROJECT_DIRS:
        (project_path / dir_rel).mkdir(parents=True, exist_ok=True)

    _write_json(project_path / "project.json", _default_project_json(safe_id))
    (project_path / SCRIPT_FILENAME).write_text(script or "", encoding="utf-8")

    return project_path


def list_projects() -> list[dict[str, Any]]:
    """
    List all projects under PROJECTS_ROOT.

    Returns list of dicts with id, created, status and asset counts.
    """
    if not PROJECTS_ROOT.exists():
        return []

    projects = []
    for entry in sorted(PROJECTS_ROOT.iterdir()):
        if entry.is_dir() and (entry / "project.json").exists():
            try:
                pj = load_project_json(entry.name)
                segments = pj.get("segments", [])
                projects.append(
                    {
                        "id": pj.get("id", entry.name),
                        "created": pj.get("created", "unknown"),
                        "status": pj.get("status", ProcessingStatus.IDLE.value),
                        "segments": len(segments),
                        "audio": sum(1 for s in segments if s.get("audio_file")),
                        "images": sum(1 for s in segments if s.get("image_file")),
                    }
                )
            except (json.JSONDecodeError, KeyError):
                projects.append(
                    {
                        "id": entry.name,
                        "created": "unknown",
                        "status": "error",
                        "segments": 0,
                        "audio": 0,
                        "images": 0,
                    }
                )

    return projects


def load_project_json(project_id: str) -> dict[str, Any]:
    """Load and return project.json for the given project."""
    path = get_project_path(project_id) / "project.json"
    if not path.exists():
        raise FileNotFoundError(f"project.json not found for '{project_id}'")
    return json.loads(path.read_text(encoding="utf-8"))


def save_project_json(project_id: str, data: dict[str, Any]) -> None:
    """Write project.json for the given project."""
    path = get_project_path(project_id) / "project.json"
    data["updated"] = datetime.now(timezone.utc).isoformat()
    _write_json(path, data)


def project_exists(project_id: str) -> bool:
    """Check if a project directory and project.json exist."""
    try:
        path = get_project_path(project_id)
        return (path / "project.json").exists()
    except ValueError:
        return False


def load_script(project_id: str) -> str:
    """Return the project's script text ('' if none yet)."""
    path = get_project_path(project_id) / SCRIPT_FILENAME
    if not path.exists():
        return ""
    return path.read_text(encoding="utf-8")


def save_script(project_id: str, script: str) -> None:
    path = get_project_path(project_id) / SCRIPT_FILENAME
    path.write_text(script, encoding="utf-8")


def load_segments(project_id: str) -> list[ScriptSegment]:
    """Segments of a project, in script order."""
    pj = load_project_json(project_id)
    return [ScriptSegment.from_dict(s) for s in pj.get("segments", [])]


def save_segments(
    project_id: str,
    segments: list[ScriptSegment],
    status: ProcessingStatus | None = None,
) -> None:
    """Replace the project's segments (and optionally its status)."""
    pj = load_project_json(project_id)
    pj["segments"] = [s.to_dict() for s in segments]
    if status is not None:
        pj["status"] = status.value
    save_project_json(project_id, pj)


def set_status(project_id: str, status: ProcessingStatus, **extra: Any) -> None:
    """Update project status; extra fields (e.g. error) are stored alongside."""
    pj = load_project_json(project_id)
    pj["status"] = status.value
    pj.pop("error", None)
    pj.update(extra)
    save_project_json(project_id, pj)


def find_segment(
    segments: list[ScriptSegment], segment_id: str
) -> tuple[int, ScriptSegment]:
    """Return (index, segment). Raises KeyError if the id is unknown."""
    for index, segment in enumerate(segments):
        if segment.id == segment_id:
            return index, segment
    raise KeyError(f"Segment '{segment_id}' not found")


def segment_asset_name(index: int, extension: str) -> str:
    """File name for a segment asset: 1-based, zero-padded for sorting."""
    return f"segment_{index + 1:03d}.{extension}"


# ──────────────────────────────────────────────
# Private helpers
# ──────────────────────────────────────────────


def _write_json(path: Path, data: dict[str, Any]) -> None:
    """Write JSON with consistent formatting."""
    path.write_text(
        json.dumps(data, indent=2, ensure_ascii=False) + "\n",
        encoding="utf-8",
    )


def _default_project_json(project_id: str) -> dict[str, Any]:
    """Generate the default project.json skeleton."""
    now = datetime.now(timezone.utc).isoformat()
    return {
        "id": project_id,
        "version": "1.0",
        "created": now,
        "updated": now,
        "status": ProcessingStatus.IDLE.value,
        "segments": [],
    }
