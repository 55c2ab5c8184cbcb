"""Ordered, editable list of meditation segments."""

from __future__ import annotations

import dataclasses
from collections.abc import Iterator, Mapping

from src.composition.models import SEGMENT_CLASSES, Segment, SegmentType

_IMMUTABLE_FIELDS = frozenset({"id", "order"})


class SequenceModel:
    """In-memory list of segments that keeps ``order`` contiguous.

    Every structural change (add, remove, reorder) renumbers the rows so
    that ``order`` is always ``0..n-1``.  Segment ids are client-local and
    never reused within one model.
    """

    def __init__(self) -> None:
        self._segments: list[Segment] = []
        self._next_id = 1

    def __len__(self) -> int:
        return len(self._segments)

    def __iter__(self) -> Iterator[Segment]:
        return iter(self.to_ordered_list())

    def get(self, segment_id: int) -> Segment:
        return self._segments[self._index_of(segment_id)]

    def add_segment(
        self,
        segment_type: SegmentType | str = SegmentType.TEXT,
        position: int | None = None,
    ) -> Segment:
        """Insert a new segment with default fields at ``position`` (append if None)."""
        segment_type = SegmentType(segment_type)
        if position is None:
            position = len(self._segments)
        if not 0 <= position <= len(self._segments):
            raise IndexError(f"position {position} out of range 0..{len(self._segments)}")

        segment = SEGMENT_CLASSES[segment_type](id=self._next_id, order=position)
        self._next_id += 1
        self._segments.insert(position, segment)
        self._renumber()
        return self.get(segment.id)

    def remove_segment(self, segment_id: int) -> Segment:
        removed = self._segments.pop(self._index_of(segment_id))
        self._renumber()
        return removed

    def update_segment(self, segment_id: int, patch: Mapping[str, str]) -> Segment:
        """Apply field changes to one segment.

        A ``"type"`` key switches the variant (clearing the old variant's
        fields); the remaining keys must belong to the resulting variant.
        The whole patch is checked before the row changes.
        """
        changes = dict(patch)
        index = self._index_of(segment_id)
        segment = self._segments[index]
        target = type(segment)
        if "type" in changes:
            target = SEGMENT_CLASSES[SegmentType(changes.pop("type"))]

        illegal = set(changes) & _IMMUTABLE_FIELDS
        if illegal:
            raise ValueError(f"Cannot patch {', '.join(sorted(illegal))}")
        unknown = set(changes) - set(target.variant_fields)
        if unknown:
            raise ValueError(
                f"{target.segment_type} segment has no field(s): {', '.join(sorted(unknown))}"
            )

        if target is not type(segment):
            segment = target(id=segment.id, order=segment.order)
        updated = dataclasses.replace(segment, **changes)  # type: ignore[arg-type]
        self._segments[index] = updated
        return updated

    def change_type(self, segment_id: int, segment_type: SegmentType | str) -> Segment:
        """Switch a row to another variant, keeping its id and position."""
        segment_type = SegmentType(segment_type)
        index = self._index_of(segment_id)
        current = self._segments[index]
        if current.segment_type is segment_type:
            return current
        replacement = SEGMENT_CLASSES[segment_type](id=current.id, order=current.order)
        self._segments[index] = replacement
        return replacement

    def reorder(self, segment_id: int, new_position: int) -> None:
        if not 0 <= new_position < len(self._segments):
            raise IndexError(f"position {new_position} out of range 0..{len(self._segments) - 1}")
        segment = self._segments.pop(self._index_of(segment_id))
        self._segments.insert(new_position, segment)
        self._renumber()

    def to_ordered_list(self) -> list[Segment]:
        return list(self._segments)

    def _index_of(self, segment_id: int) -> int:
        for index, segment in enumerate(self._segments):
            if segment.id == segment_id:
                return index
        raise KeyError(segment_id)

    def _renumber(self) -> None:
        self._segments = [
            s if s.order == i else dataclasses.replace(s, order=i)
            for i, s in enumerate(self._segments)
        ]
