"""Tests for script import from .txt and .srt files."""

from pathlib import Path

import pytest

from scriptgenie.ingest import ingest_script, parse_srt, read_script_file
from scriptgenie.project import load_project_json, load_script

SRT = """\
1
00:00:01,000 --> 00:00:03,500
The river rose at dawn.

2
00:00:04,000 --> 00:00:06,000
By noon the village
had moved uphill.
"""


class TestParseSrt:
    def test_strips_cues_and_timings(self) -> None:
        assert parse_srt(SRT) == (
            "The river rose at dawn.\nBy noon the village\nhad moved uphill."
        )

    def test_plain_text_untouched(self) -> None:
        assert parse_srt("Just a line.") == "Just a line."


class TestReadScriptFile:
    def test_txt(self, tmp_path: Path) -> None:
        path = tmp_path / "script.txt"
        path.write_text("Hello.\n\nWorld.", encoding="utf-8")
        assert read_script_file(path) == "Hello.\n\nWorld."

    def test_srt(self, tmp_path: Path) -> None:
        path = tmp_path / "episode.SRT"
        path.write_text(SRT, encoding="utf-8")
        assert read_script_file(path).startswith("The river rose at dawn.")

    def test_bom_dropped(self, tmp_path: Path) -> None:
        path = tmp_path / "script.txt"
        path.write_text("Hello.", encoding="utf-8-sig")
        assert read_script_file(path) == "Hello."

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            read_script_file(tmp_path / "nope.txt")

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "blank.txt"
        path.write_text("  \n", encoding="utf-8")
        with pytest.raises(ValueError, match="empty"):
            read_script_file(path)

    def test_srt_with_only_timings_is_empty(self, tmp_path: Path) -> None:
        path = tmp_path / "blank.srt"
        path.write_text("1\n00:00:01,000 --> 00:00:02,000\n\n", encoding="utf-8")
        with pytest.raises(ValueError):
            read_script_file(path)


class TestIngestScript:
    def test_replaces_script(self, sample_project: str, tmp_path: Path) -> None:
        source = tmp_path / "new.srt"
        source.write_text(SRT, encoding="utf-8")

        result = ingest_script(sample_project, source)

        assert result == {"source": "new.srt", "characters": 61, "lines": 3}
        assert load_script(sample_project).endswith("had moved uphill.")
        pj = load_project_json(sample_project)
        assert pj["source"] == "new.srt"
        assert pj["status"] == "IDLE"
