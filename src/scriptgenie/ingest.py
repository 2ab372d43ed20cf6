"""
Script import — read a .txt or .srt file into a project's script.

SRT files lose their cue numbers, timestamps and blank lines; only the
spoken lines are kept, one per line.
"""

from pathlib import Path
from typing import Any

from scriptgenie.project import load_project_json, save_project_json, save_script
from scriptgenie.segments import ProcessingStatus

SUPPORTED_EXTENSIONS = {".txt", ".srt"}


def parse_srt(content: str) -> str:
    """Strip SRT cue numbers, timing lines and blank lines."""
    kept = []
    for line in content.splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        if stripped.isdigit():
            continue
        if "-->" in line:
            continue
        kept.append(line)
    return "\n".join(kept)


def read_script_file(path: Path) -> str:
    """
    Read a script file. `.srt` is parsed; anything else is plain text.

    Raises:
        FileNotFoundError: path does not exist.
        ValueError: the file holds no script text.
    """
    if not path.exists():
        raise FileNotFoundError(f"Script file not found: {path}")

    # utf-8-sig drops the BOM some subtitle editors write
    content = path.read_text(encoding="utf-8-sig")

    if path.suffix.lower() == ".srt":
        content = parse_srt(content)

    if not content.strip():
        raise ValueError(f"Script file is empty: {path.name}")

    return content


def ingest_script(project_id: str, source: Path) -> dict[str, Any]:
    """
    Replace a project's script with the contents of `source`.

    Existing segments are kept until the next analysis replaces them;
    project status returns to IDLE.
    """
    script = read_script_file(source)
    save_script(project_id, script)

    pj = load_project_json(project_id)
    pj["status"] = ProcessingStatus.IDLE.value
    pj["source"] = source.name
    save_project_json(project_id, pj)

    return {
        "source": source.name,
        "characters": len(script),
        "lines": len(script.splitlines()),
    }
