"""
Zip archives of generated segment assets.

Entries are named segment_NNN.<ext> (1-based, zero-padded) inside an
`images/` or `audio/` folder so they sort in script order.
"""

import logging
import zipfile
from pathlib import Path

from scriptgenie.config import EXPORT_AUDIO_ZIP, EXPORT_IMAGES_ZIP
from scriptgenie.project import get_project_path, load_segments, segment_asset_name
from scriptgenie.utils.security import validate_path_within

logger = logging.getLogger(__name__)


def export_images_zip(project_id: str, output_path: Path | None = None) -> Path:
    """Zip every generated image. Raises ValueError if there are none."""
    return _export_assets(project_id, "images", EXPORT_IMAGES_ZIP, output_path)


def export_audio_zip(project_id: str, output_path: Path | None = None) -> Path:
    """Zip every generated audio file. Raises ValueError if there are none."""
    return _export_assets(project_id, "audio", EXPORT_AUDIO_ZIP, output_path)


def _export_assets(
    project_id: str,
    kind: str,
    default_name: str,
    output_path: Path | None,
) -> Path:
    project_path = get_project_path(project_id)
    asset_dir = project_path / kind

    entries: list[tuple[Path, str]] = []
    for index, segment in enumerate(load_segments(project_id)):
        filename = segment.image_file if kind == "images" else segment.audio_file
        if not filename:
            continue
        source = asset_dir / filename
        if not validate_path_within(source, asset_dir):
            logger.warning("Skipping %s file outside %s: %s", kind, asset_dir, filename)
            continue
        if not source.exists():
            logger.warning("Missing %s file for segment %s: %s", kind, segment.id, source)
            continue
        arcname = f"{kind}/{segment_asset_name(index, source.suffix.lstrip('.'))}"
        entries.append((source, arcname))

    if not entries:
        raise ValueError(f"No {kind} available to download.")

    export_dir = project_path / "export"
    export_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_path or export_dir / default_name

    with zipfile.ZipFile(output_path, "w", zipfile.ZIP_DEFLATED) as z:
        for source, arcname in entries:
            z.write(source, arcname)

    return output_path
