"""Pre-submission validation of meditation drafts.

Validation is pure: no network I/O, no mutation of the draft.  Callers
re-run it whenever a field with a reported error changes, and once more
right before submission.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING

from src.composition.models import (
    MeditationDraft,
    PauseSegment,
    Segment,
    SoundSegment,
    TextSegment,
)

if TYPE_CHECKING:
    from src.composition.catalog import SoundCatalog
    from src.config import Settings

SEGMENTS_FIELD = "segments"


def segment_field(index: int, name: str) -> str:
    """Field path for one segment field, e.g. ``segments.2.speed``."""
    return f"{SEGMENTS_FIELD}.{index}.{name}"


@dataclass(frozen=True)
class ValidationLimits:
    title_max_length: int = 100
    description_max_length: int = 500
    speed_min: Decimal = Decimal("0.7")
    speed_max: Decimal = Decimal("1.2")

    @classmethod
    def from_settings(cls, settings: Settings) -> ValidationLimits:
        return cls(
            title_max_length=settings.title_max_length,
            description_max_length=settings.description_max_length,
            speed_min=Decimal(str(settings.speed_min)),
            speed_max=Decimal(str(settings.speed_max)),
        )


@dataclass(frozen=True)
class ValidationResult:
    """Field path -> message.  An empty mapping means the draft is valid."""

    field_errors: dict[str, str] = field(default_factory=dict)

    @property
    def valid(self) -> bool:
        return not self.field_errors

    def merged(self, other: Mapping[str, str]) -> ValidationResult:
        """Return a new result with ``other``'s errors layered over this one's."""
        return ValidationResult({**self.field_errors, **other})

    def segment_errors(self, index: int) -> dict[str, str]:
        """Errors for the segment at ``index``, keyed by bare field name."""
        prefix = f"{SEGMENTS_FIELD}.{index}."
        return {
            path[len(prefix) :]: message
            for path, message in self.field_errors.items()
            if path.startswith(prefix)
        }


def parse_positive_decimal(raw: str) -> Decimal | None:
    """Parse ``raw`` as a finite decimal > 0, or return None."""
    try:
        value = Decimal(raw.strip())
    except (InvalidOperation, AttributeError):
        return None
    if not value.is_finite() or value <= 0:
        return None
    return value


class CompositionValidator:
    def __init__(self, catalog: SoundCatalog, limits: ValidationLimits | None = None) -> None:
        self.catalog = catalog
        self.limits = limits or ValidationLimits()

    def validate(self, draft: MeditationDraft) -> ValidationResult:
        errors = self.validate_metadata(draft.title, draft.description)

        segments = draft.segments
        if not segments:
            errors[SEGMENTS_FIELD] = "Add at least one text, pause, or sound segment"

        for index, segment in enumerate(segments):
            errors.update(self._validate_segment(index, segment))

        return ValidationResult(errors)

    def validate_metadata(self, title: str | None, description: str | None) -> dict[str, str]:
        """Title and description rules; ``None`` skips a field (partial updates)."""
        errors: dict[str, str] = {}
        limits = self.limits
        if title is not None:
            title = title.strip()
            if not title:
                errors["title"] = "Title is required"
            elif len(title) > limits.title_max_length:
                errors["title"] = f"Title must be at most {limits.title_max_length} characters"
        if description is not None and len(description) > limits.description_max_length:
            errors["description"] = (
                f"Description must be at most {limits.description_max_length} characters"
            )
        return errors

    def _validate_segment(self, index: int, segment: Segment) -> dict[str, str]:
        errors: dict[str, str] = {}
        if isinstance(segment, TextSegment):
            if not segment.text.strip():
                errors[segment_field(index, "text")] = "Text is required"
            speed = parse_positive_decimal(segment.speed)
            lo, hi = self.limits.speed_min, self.limits.speed_max
            if speed is None or not lo <= speed <= hi:
                errors[segment_field(index, "speed")] = f"Speed must be a number between {lo} and {hi}"
        elif isinstance(segment, PauseSegment):
            if parse_positive_decimal(segment.duration_seconds) is None:
                errors[segment_field(index, "duration_seconds")] = (
                    "Pause duration must be a positive number of seconds"
                )
        elif isinstance(segment, SoundSegment):
            if self.catalog.resolve(segment.sound_file_ref) is None:
                errors[segment_field(index, "sound_file_ref")] = "Choose a sound from the catalog"
        else:
            raise TypeError(f"Unknown segment type: {type(segment).__name__}")
        return errors
