"""Tests for segment summaries and display formatters."""

from __future__ import annotations

import pytest

from src.composition.catalog import SoundCatalog
from src.composition.models import PauseSegment, SoundSegment, TextSegment
from src.composition.summary import (
    format_listen_count,
    format_pause_duration,
    format_queue_status,
    format_speed,
    summarize_segment,
    truncate_text,
)


class TestSummarizeSegment:
    def test_text(self, catalog: SoundCatalog) -> None:
        segment = TextSegment(id=1, order=0, text="Breathe in", speed="1.0")
        assert summarize_segment(segment, catalog) == 'Text: "Breathe in" (speed: 1.0)'

    def test_long_text_truncated(self, catalog: SoundCatalog) -> None:
        segment = TextSegment(id=1, order=0, text="a" * 60, speed="0.9")
        assert summarize_segment(segment, catalog) == f'Text: "{"a" * 50}..." (speed: 0.9)'

    def test_pause(self, catalog: SoundCatalog) -> None:
        segment = PauseSegment(id=2, order=1, duration_seconds="3.0")
        assert summarize_segment(segment, catalog) == "Pause: 3.0 seconds"

    def test_sound_uses_catalog_name(self, catalog: SoundCatalog) -> None:
        segment = SoundSegment(id=3, order=2, sound_file_ref="ocean.mp3")
        assert summarize_segment(segment, catalog) == "Sound: Ocean waves"

    def test_unknown_sound_falls_back_to_ref(self, catalog: SoundCatalog) -> None:
        segment = SoundSegment(id=3, order=2, sound_file_ref="thunder.mp3")
        assert summarize_segment(segment, catalog) == "Sound: thunder.mp3"


class TestFormatters:
    @pytest.mark.parametrize(
        ("raw", "expected"), [("0.85", "0.85x"), ("1.0", "1x"), ("fast", "fast")]
    )
    def test_format_speed(self, raw: str, expected: str) -> None:
        assert format_speed(raw) == expected

    @pytest.mark.parametrize(("raw", "expected"), [("3.0", "3s"), ("2.5", "2.5s"), ("", "")])
    def test_format_pause_duration(self, raw: str, expected: str) -> None:
        assert format_pause_duration(raw) == expected

    def test_truncate_text(self) -> None:
        assert truncate_text("short", 10) == "short"
        assert truncate_text("a longer sentence", 8) == "a longer..."

    def test_format_queue_status(self) -> None:
        assert format_queue_status("elevenlabs") == "Elevenlabs"
        assert format_queue_status("") == ""

    def test_format_listen_count(self) -> None:
        assert format_listen_count(1234567) == "1,234,567"
