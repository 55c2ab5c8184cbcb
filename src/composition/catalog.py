"""Fixed catalog of named sound assets that sound segments refer to."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass


@dataclass(frozen=True)
class SoundFile:
    """A sound asset: display name plus the filename the backend knows it by."""

    name: str
    filename: str


class SoundCatalog:
    def __init__(self, sound_files: Iterable[SoundFile] = ()) -> None:
        self._files: list[SoundFile] = list(sound_files)

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, str]]) -> SoundCatalog:
        """Build a catalog from ``{"name": ..., "filename": ...}`` rows."""
        return cls(SoundFile(name=r["name"], filename=r["filename"]) for r in records)

    def __iter__(self) -> Iterator[SoundFile]:
        return iter(self._files)

    def __len__(self) -> int:
        return len(self._files)

    def __contains__(self, ref: object) -> bool:
        return isinstance(ref, str) and self.resolve(ref) is not None

    def resolve(self, ref: str) -> SoundFile | None:
        """Find a sound by exact filename, falling back to a case-insensitive name match."""
        ref = ref.strip()
        if not ref:
            return None
        for sound in self._files:
            if sound.filename == ref:
                return sound
        lowered = ref.lower()
        for sound in self._files:
            if sound.name.lower() == lowered:
                return sound
        return None

    def display_name(self, ref: str) -> str:
        sound = self.resolve(ref)
        return sound.name if sound else ref
