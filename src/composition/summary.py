"""Human-readable text for segments and queue records (confirm step, CLI tables)."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

from src.composition.catalog import SoundCatalog
from src.composition.models import PauseSegment, Segment, SoundSegment, TextSegment

SUMMARY_TEXT_LENGTH = 50


def _plain_number(raw: str) -> str | None:
    try:
        value = Decimal(raw.strip())
    except InvalidOperation:
        return None
    if not value.is_finite():
        return None
    # "3.0" -> "3", "0.850" -> "0.85"
    return format(value.normalize(), "f")


def format_speed(speed: str) -> str:
    """``"0.85"`` -> ``"0.85x"``; unparseable input is returned unchanged."""
    number = _plain_number(speed)
    return f"{number}x" if number is not None else speed


def format_pause_duration(duration: str) -> str:
    """``"3.0"`` -> ``"3s"``; unparseable input is returned unchanged."""
    number = _plain_number(duration)
    return f"{number}s" if number is not None else duration


def truncate_text(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return f"{text[:max_length]}..."


def format_queue_status(status: str) -> str:
    return status[:1].upper() + status[1:]


def format_listen_count(count: int) -> str:
    return f"{count:,}"


def summarize_segment(segment: Segment, catalog: SoundCatalog) -> str:
    """One-line description of a segment as shown before confirming creation."""
    if isinstance(segment, TextSegment):
        speed = f" (speed: {segment.speed})" if segment.speed else ""
        return f'Text: "{truncate_text(segment.text, SUMMARY_TEXT_LENGTH)}"{speed}'
    if isinstance(segment, PauseSegment):
        return f"Pause: {segment.duration_seconds} seconds"
    if isinstance(segment, SoundSegment):
        return f"Sound: {catalog.display_name(segment.sound_file_ref)}"
    raise TypeError(f"Unknown segment type: {type(segment).__name__}")
