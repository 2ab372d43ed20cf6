"""
Tabular and JSON export of a project's segments.
"""

import csv
import json
from pathlib import Path
from typing import Any

from scriptgenie.config import EXPORT_JSON_NAME, EXPORT_SHEET_NAME
from scriptgenie.project import get_project_path, load_segments

SHEET_COLUMNS = ["Order", "Script Content", "Image Prompt"]


def export_sheet(project_id: str, output_path: Path | None = None) -> Path:
    """
    Write segments as a CSV sheet: Order, Script Content, Image Prompt.

    Returns the path written. Raises ValueError if there are no segments.
    """
    segments = load_segments(project_id)
    if not segments:
        raise ValueError(f"Project '{project_id}' has no segments to export.")

    output_path = output_path or _export_dir(project_id) / EXPORT_SHEET_NAME

    # utf-8-sig so spreadsheet apps detect the encoding
    with open(output_path, "w", newline="", encoding="utf-8-sig") as f:
        writer = csv.writer(f)
        writer.writerow(SHEET_COLUMNS)
        for order, segment in enumerate(segments, start=1):
            writer.writerow([order, segment.original_text, segment.image_prompt])

    return output_path


def export_data(project_id: str) -> dict[str, Any]:
    """The segment list in exchange format (text, prompt, audio file, provider)."""
    rows = []
    for segment in load_segments(project_id):
        row: dict[str, Any] = {
            "text": segment.original_text,
            "image_prompt": segment.image_prompt,
        }
        if segment.audio_file:
            row["audio_file_name"] = segment.audio_file
        if segment.audio_provider:
            row["provider"] = segment.audio_provider.value
        rows.append(row)
    return {"segments": rows}


def export_json(project_id: str, output_path: Path | None = None) -> Path:
    """Write `export_data` to disk."""
    output_path = output_path or _export_dir(project_id) / EXPORT_JSON_NAME
    output_path.write_text(
        json.dumps(export_data(project_id), indent=2, ensure_ascii=False) + "\n",
        encoding="utf-8",
    )
    return output_path


def _export_dir(project_id: str) -> Path:
    path = get_project_path(project_id) / "export"
    path.mkdir(parents=True, exist_ok=True)
    return path
