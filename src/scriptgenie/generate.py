"""
Generation workflow — analyze a script, then produce per-segment audio
and images.

Batch runs are sequential with a fixed pause between requests to stay
under provider rate limits. That pacing is decided here, not in the key
rotation layer. A batch stops early only when the provider has no usable
keys at all; any other per-segment failure is logged and counted.

UI-agnostic: use `progress_callback` to stream status to CLI or API.
"""

import asyncio
import logging
from typing import Any, Callable

from scriptgenie.config import (
    DEFAULT_AUDIO_BATCH_DELAY_SEC,
    DEFAULT_IMAGE_BATCH_DELAY_SEC,
)
from scriptgenie.engines.base import SpeechRequest
from scriptgenie.engines.gemini import GeminiClient
from scriptgenie.engines.registry import EngineRegistry
from scriptgenie.keys.errors import NoKeysAvailable
from scriptgenie.keys.models import Provider
from scriptgenie.project import (
    find_segment,
    get_project_path,
    load_script,
    load_segments,
    save_segments,
    segment_asset_name,
    set_status,
)
from scriptgenie.segments import (
    ProcessingStatus,
    ScriptSegment,
    segments_from_analysis,
)
from scriptgenie.utils.security import validate_path_within

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]


def _notifier(progress_callback: ProgressCallback | None) -> ProgressCallback:
    def _notify(msg: str) -> None:
        logger.info(msg)
        if progress_callback:
            progress_callback(msg)

    return _notify


async def analyze_project(
    project_id: str,
    client: GeminiClient,
    progress_callback: ProgressCallback | None = None,
) -> list[ScriptSegment]:
    """
    Split the project's script into segments with image prompts.

    Replaces any existing segments. On failure the project is marked
    ERROR and the exception propagates.
    """
    _notify = _notifier(progress_callback)

    script = load_script(project_id)
    if not script.strip():
        raise ValueError(f"Project '{project_id}' has no script to analyze.")

    set_status(project_id, ProcessingStatus.ANALYZING)
    _notify(f"Analyzing script ({len(script)} chars)...")

    try:
        items = await client.analyze_script(script)
    except Exception as e:
        set_status(project_id, ProcessingStatus.ERROR, error=str(e))
        raise

    segments = segments_from_analysis(items)
    save_segments(project_id, segments, status=ProcessingStatus.COMPLETE)
    _notify(f"Created {len(segments)} segments.")
    return segments


async def generate_segment_audio(
    project_id: str,
    segment_id: str,
    registry: EngineRegistry,
    provider: Provider | str = Provider.GEMINI,
    voice: str | None = None,
) -> ScriptSegment:
    """Synthesize one segment and store the audio file in the project."""
    provider = Provider.parse(provider)
    engine = registry.get(provider)

    _, segment = find_segment(load_segments(project_id), segment_id)

    result = await engine.synthesize(
        SpeechRequest(text=segment.original_text, voice=voice)
    )

    segment = _store_asset(
        project_id,
        segment_id,
        "audio",
        result.extension,
        result.audio,
        audio_provider=provider,
    )

    logger.info(
        "Segment %s: %s audio saved (%d bytes, %.2fs)",
        segment_id,
        provider.value,
        len(result.audio),
        result.duration_sec,
    )
    return segment


async def generate_all_audio(
    project_id: str,
    registry: EngineRegistry,
    provider: Provider | str = Provider.GEMINI,
    delay_sec: float = DEFAULT_AUDIO_BATCH_DELAY_SEC,
    progress_callback: ProgressCallback | None = None,
) -> dict[str, Any]:
    """
    Generate audio for every segment that has none yet, one at a time.

    Raises NoKeysAvailable as soon as the provider has no enabled key.
    Returns counts: total pending, generated, failed, plus failure details.
    """
    provider = Provider.parse(provider)
    pending = [s.id for s in load_segments(project_id) if not s.has_audio]

    async def _one(segment_id: str) -> None:
        await generate_segment_audio(project_id, segment_id, registry, provider)

    return await _run_batch(
        pending, _one, delay_sec, f"{provider.value} audio", progress_callback
    )


async def generate_segment_image(
    project_id: str,
    segment_id: str,
    client: GeminiClient,
) -> ScriptSegment:
    """Generate one segment's illustration and store it in the project."""
    _, segment = find_segment(load_segments(project_id), segment_id)

    image = await client.generate_image(segment.image_prompt)

    segment = _store_asset(project_id, segment_id, "images", image.extension, image.data)

    logger.info("Segment %s: image saved (%s)", segment_id, image.mime_type)
    return segment


async def generate_all_images(
    project_id: str,
    client: GeminiClient,
    delay_sec: float = DEFAULT_IMAGE_BATCH_DELAY_SEC,
    progress_callback: ProgressCallback | None = None,
) -> dict[str, Any]:
    """Generate images for every segment that has none yet, one at a time."""
    pending = [s.id for s in load_segments(project_id) if not s.has_image]

    async def _one(segment_id: str) -> None:
        await generate_segment_image(project_id, segment_id, client)

    return await _run_batch(pending, _one, delay_sec, "image", progress_callback)


async def _run_batch(
    segment_ids: list[str],
    run_one: Callable[[str], Any],
    delay_sec: float,
    label: str,
    progress_callback: ProgressCallback | None,
) -> dict[str, Any]:
    _notify = _notifier(progress_callback)

    generated = 0
    failures: list[dict[str, str]] = []

    if not segment_ids:
        _notify(f"No segments need {label}.")

    for i, segment_id in enumerate(segment_ids, start=1):
        if i > 1 and delay_sec > 0:
            await asyncio.sleep(delay_sec)

        _notify(f"  [{i}/{len(segment_ids)}] {label}: {segment_id}")
        try:
            await run_one(segment_id)
            generated += 1
        except NoKeysAvailable:
            raise
        except Exception as e:
            logger.error("Segment %s %s failed: %s", segment_id, label, e)
            _notify(f"    ✗ {segment_id}: {e}")
            failures.append({"segment_id": segment_id, "error": str(e)})

    return {
        "total": len(segment_ids),
        "generated": generated,
        "failed": len(failures),
        "failures": failures,
    }


def _store_asset(
    project_id: str,
    segment_id: str,
    kind: str,
    extension: str,
    data: bytes,
    **fields: Any,
) -> ScriptSegment:
    """
    Write a segment asset and record it on the segment.

    Segments are re-read after the provider call. Nothing awaits between
    this read and the save. Raises KeyError if the segment was removed
    meanwhile (e.g. by a new analysis).
    """
    segments = load_segments(project_id)
    index, segment = find_segment(segments, segment_id)

    asset_dir = get_project_path(project_id) / kind
    asset_dir.mkdir(parents=True, exist_ok=True)
    filename = segment_asset_name(index, extension)
    attr = "audio_file" if kind == "audio" else "image_file"

    # A regenerated segment may switch between .wav and .mp3.
    previous = getattr(segment, attr)
    if previous and previous != filename:
        old = asset_dir / previous
        if validate_path_within(old, asset_dir):
            old.unlink(missing_ok=True)
        else:
            logger.warning("Not deleting %s file outside %s: %s", kind, asset_dir, previous)

    (asset_dir / filename).write_bytes(data)

    setattr(segment, attr, filename)
    for name, value in fields.items():
        setattr(segment, name, value)
    save_segments(project_id, segments)
    return segment
