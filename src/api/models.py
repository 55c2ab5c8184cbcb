"""Pydantic request/response schemas for the Go Lightly meditation API.

Field names are camelCase on the wire; models accept either spelling on
input and should be dumped with ``by_alias=True``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from src.composition.models import (
    MeditationDraft,
    PauseSegment,
    Segment,
    SegmentType,
    SoundSegment,
    TextSegment,
    Visibility,
)
from src.composition.sequence import SequenceModel
from src.composition.validator import SEGMENTS_FIELD
from src.pipeline_config import QueueStatus


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Segments
# ---------------------------------------------------------------------------


class TextSegmentWire(WireModel):
    type: Literal["text"] = "text"
    text: str
    speed: str


class PauseSegmentWire(WireModel):
    type: Literal["pause"] = "pause"
    pause_duration: str


class SoundSegmentWire(WireModel):
    type: Literal["sound"] = "sound"
    sound_file: str


SegmentWire = Annotated[
    TextSegmentWire | PauseSegmentWire | SoundSegmentWire,
    Field(discriminator="type"),
]

# Local segment field name -> wire field name
_WIRE_SEGMENT_FIELDS: dict[str, str] = {
    "text": "text",
    "speed": "speed",
    "duration_seconds": "pauseDuration",
    "sound_file_ref": "soundFile",
}
_LOCAL_SEGMENT_FIELDS = {wire: local for local, wire in _WIRE_SEGMENT_FIELDS.items()}


def segment_to_wire(segment: Segment) -> TextSegmentWire | PauseSegmentWire | SoundSegmentWire:
    if isinstance(segment, TextSegment):
        return TextSegmentWire(text=segment.text, speed=segment.speed)
    if isinstance(segment, PauseSegment):
        return PauseSegmentWire(pause_duration=segment.duration_seconds)
    if isinstance(segment, SoundSegment):
        return SoundSegmentWire(sound_file=segment.sound_file_ref)
    raise TypeError(f"Unknown segment type: {type(segment).__name__}")


def field_path_from_wire(parts: list[str | int] | tuple[str | int, ...]) -> str:
    """Translate a wire location into a local field path.

    ``("body", "meditationArray", 1, "pauseDuration")`` becomes
    ``"segments.1.duration_seconds"``.  Unknown names pass through unchanged.
    """
    names = [str(p) for p in parts]
    if names and names[0] == "body":
        names = names[1:]
    if not names:
        return ""
    if names[0] == "meditationArray":
        names[0] = SEGMENTS_FIELD
        if len(names) >= 3:
            # Discriminated-union errors add the tag as an extra component
            if names[2] in {t.value for t in SegmentType} and len(names) >= 4:
                del names[2]
            names[2] = _LOCAL_SEGMENT_FIELDS.get(names[2], names[2])
    return ".".join(names)


def field_path_to_wire(path: str) -> str:
    """Inverse of :func:`field_path_from_wire` for dotted local paths."""
    names = path.split(".")
    if names[0] == SEGMENTS_FIELD:
        names[0] = "meditationArray"
        if len(names) >= 3:
            names[2] = _WIRE_SEGMENT_FIELDS.get(names[2], names[2])
    return ".".join(names)


# ---------------------------------------------------------------------------
# Meditation creation
# ---------------------------------------------------------------------------


class CreateMeditationRequest(WireModel):
    """Request body for POST /meditations/create.  Array position is the segment order."""

    title: str
    description: str | None = None
    visibility: Visibility = Visibility.PUBLIC
    meditation_array: list[SegmentWire]

    @classmethod
    def from_draft(cls, draft: MeditationDraft) -> CreateMeditationRequest:
        return cls(
            title=draft.title.strip(),
            description=draft.description or None,
            visibility=draft.visibility,
            meditation_array=[segment_to_wire(s) for s in draft.segments],
        )

    def to_draft(self) -> MeditationDraft:
        """Rebuild a draft (with fresh client-local ids) from the wire request."""
        sequence = SequenceModel()
        for element in self.meditation_array:
            segment = sequence.add_segment(SegmentType(element.type))
            if isinstance(element, TextSegmentWire):
                sequence.update_segment(segment.id, {"text": element.text, "speed": element.speed})
            elif isinstance(element, PauseSegmentWire):
                sequence.update_segment(segment.id, {"duration_seconds": element.pause_duration})
            else:
                sequence.update_segment(segment.id, {"sound_file_ref": element.sound_file})
        return MeditationDraft(
            title=self.title,
            description=self.description or "",
            visibility=self.visibility,
            sequence=sequence,
        )


class CreateMeditationResponse(WireModel):
    message: str
    queue_id: int
    file_path: str


# ---------------------------------------------------------------------------
# Queue records
# ---------------------------------------------------------------------------


class QueueRecord(WireModel):
    """Backend tracking entity for one generation job.  Read-only on the client."""

    model_config = ConfigDict(frozen=True)

    id: int
    user_id: int
    status: QueueStatus
    job_filename: str
    created_at: datetime
    updated_at: datetime
    # Set by the backend once the job reaches ``done``
    meditation_id: int | None = None


class QueueListResponse(WireModel):
    queue: list[QueueRecord]


class QueueRecordResponse(WireModel):
    queue: QueueRecord


class DeleteQueueRecordResponse(WireModel):
    message: str
    queue_id: int


# ---------------------------------------------------------------------------
# Meditations
# ---------------------------------------------------------------------------


class Meditation(WireModel):
    """Cached read-model copy of a completed meditation."""

    model_config = ConfigDict(extra="allow")

    id: int
    title: str
    description: str | None = None
    visibility: Visibility
    listen_count: int = 0
    created_at: datetime | None = None


class MeditationListResponse(WireModel):
    meditations: list[Meditation] = []

    @model_validator(mode="before")
    @classmethod
    def _accept_legacy_key(cls, data: Any) -> Any:
        # Older backends return the list under "meditationsArray"
        if isinstance(data, dict) and data.get("meditations") is None:
            data = {**data, "meditations": data.get("meditationsArray") or []}
        return data


class UpdateMeditationRequest(WireModel):
    title: str | None = None
    description: str | None = None
    visibility: Visibility | None = None


class UpdateMeditationResponse(WireModel):
    message: str
    meditation: Meditation


class DeleteMeditationResponse(WireModel):
    message: str
    meditation_id: int


class FavoriteMeditationResponse(WireModel):
    message: str
    meditation_id: int
    favorite: bool


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class ErrorDetail(WireModel):
    message: str
    code: str | None = None
    details: dict[str, Any] | None = None


class ErrorResponse(WireModel):
    error: ErrorDetail
