"""Data models for meditation composition."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from src.composition.sequence import SequenceModel


class SegmentType(StrEnum):
    """Discriminant for the three segment variants."""

    TEXT = "text"
    PAUSE = "pause"
    SOUND = "sound"


class Visibility(StrEnum):
    PUBLIC = "public"
    PRIVATE = "private"


DEFAULT_SPEED = "1.0"
DEFAULT_PAUSE_SECONDS = "3.0"


@dataclass(frozen=True)
class TextSegment:
    """Spoken text rendered by the text-to-speech stage."""

    id: int
    order: int
    text: str = ""
    speed: str = DEFAULT_SPEED

    segment_type: ClassVar[SegmentType] = SegmentType.TEXT
    variant_fields: ClassVar[tuple[str, ...]] = ("text", "speed")


@dataclass(frozen=True)
class PauseSegment:
    """Timed silence."""

    id: int
    order: int
    duration_seconds: str = DEFAULT_PAUSE_SECONDS

    segment_type: ClassVar[SegmentType] = SegmentType.PAUSE
    variant_fields: ClassVar[tuple[str, ...]] = ("duration_seconds",)


@dataclass(frozen=True)
class SoundSegment:
    """A pre-recorded sound from the sound catalog."""

    id: int
    order: int
    sound_file_ref: str = ""

    segment_type: ClassVar[SegmentType] = SegmentType.SOUND
    variant_fields: ClassVar[tuple[str, ...]] = ("sound_file_ref",)


Segment = TextSegment | PauseSegment | SoundSegment

SEGMENT_CLASSES: dict[SegmentType, type[TextSegment] | type[PauseSegment] | type[SoundSegment]] = {
    SegmentType.TEXT: TextSegment,
    SegmentType.PAUSE: PauseSegment,
    SegmentType.SOUND: SoundSegment,
}


def _new_sequence() -> SequenceModel:
    from src.composition.sequence import SequenceModel

    return SequenceModel()


@dataclass
class MeditationDraft:
    """An unsaved, client-local composition awaiting validation and submission.

    ``submitted`` flips to True once the backend accepts the draft; the
    durable record lives server-side from then on.
    """

    title: str = ""
    description: str = ""
    visibility: Visibility = Visibility.PUBLIC
    sequence: SequenceModel = field(default_factory=_new_sequence)
    submitted: bool = False

    @property
    def segments(self) -> list[Segment]:
        return self.sequence.to_ordered_list()
