"""
Script segments and the analysis response contract.

Analysis returns a JSON array of {"text", "image_prompt"} objects; each
becomes one ScriptSegment that later collects an audio file and an
image file.
"""

import json
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any

from scriptgenie.keys.models import Provider


class ProcessingStatus(str, Enum):
    IDLE = "IDLE"
    ANALYZING = "ANALYZING"
    COMPLETE = "COMPLETE"
    ERROR = "ERROR"


class AnalysisTruncatedError(ValueError):
    """The analysis JSON could not be parsed, usually because it was cut off."""


@dataclass
class AnalysisItem:
    text: str
    image_prompt: str


@dataclass
class ScriptSegment:
    """One narration segment and the assets generated for it."""

    id: str
    original_text: str
    image_prompt: str
    audio_file: str | None = None
    audio_provider: Provider | None = None
    image_file: str | None = None

    @property
    def has_audio(self) -> bool:
        return bool(self.audio_file)

    @property
    def has_image(self) -> bool:
        return bool(self.image_file)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "text": self.original_text,
            "image_prompt": self.image_prompt,
            "audio_file": self.audio_file,
            "audio_provider": self.audio_provider.value if self.audio_provider else None,
            "image_file": self.image_file,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScriptSegment":
        provider = data.get("audio_provider")
        return cls(
            id=data["id"],
            original_text=data.get("text", ""),
            image_prompt=data.get("image_prompt", ""),
            audio_file=data.get("audio_file"),
            audio_provider=Provider.parse(provider) if provider else None,
            image_file=data.get("image_file"),
        )


def parse_analysis_json(text: str) -> list[AnalysisItem]:
    """
    Parse the analysis response body.

    Raises:
        AnalysisTruncatedError: body is not valid JSON.
        ValueError: body is valid JSON but not a list of segment objects.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise AnalysisTruncatedError(
            "The generated analysis was too long and got cut off. "
            "Please try inputting a shorter part of your script."
        ) from e

    if not isinstance(data, list):
        raise ValueError("Analysis response must be a JSON array.")

    items = []
    for i, entry in enumerate(data):
        if (
            not isinstance(entry, dict)
            or not isinstance(entry.get("text"), str)
            or not isinstance(entry.get("image_prompt"), str)
        ):
            raise ValueError(f"Analysis item {i} is missing 'text' or 'image_prompt'.")
        items.append(AnalysisItem(text=entry["text"], image_prompt=entry["image_prompt"]))

    return items


def segments_from_analysis(items: list[AnalysisItem]) -> list[ScriptSegment]:
    """Build fresh segments (no assets yet) from analysis items."""
    stamp = int(time.time() * 1000)
    return [
        ScriptSegment(
            id=f"seg-{stamp}-{index}",
            original_text=item.text,
            image_prompt=item.image_prompt,
        )
        for index, item in enumerate(items)
    ]
