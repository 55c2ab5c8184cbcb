"""Pipeline configuration: queue status vocabulary and the PollingPolicy dataclass."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.config import Settings


class QueueStatus(StrEnum):
    """Backend pipeline stages a generation job passes through, in order."""

    QUEUED = "queued"
    STARTED = "started"
    ELEVENLABS = "elevenlabs"
    CONCATENATOR = "concatenator"
    DONE = "done"

    @property
    def rank(self) -> int:
        """Position of this stage in the pipeline (0 for ``queued``)."""
        return _PIPELINE_ORDER.index(self)

    @property
    def is_terminal(self) -> bool:
        return self is QueueStatus.DONE

    def stages_between(self, later: QueueStatus) -> list[QueueStatus]:
        """Stages strictly between this one and ``later`` (empty if adjacent or behind)."""
        return list(_PIPELINE_ORDER[self.rank + 1 : later.rank])


_PIPELINE_ORDER: tuple[QueueStatus, ...] = tuple(QueueStatus)


@dataclass(frozen=True)
class PollingPolicy:
    """Immutable polling configuration for the pipeline status tracker.

    ``stall_after_polls`` and ``stall_timeout_seconds`` are independent
    triggers; either one (when set) marks a job as stalled.  A stalled job
    is still polled unless ``stop_on_stall`` is True.
    """

    interval_seconds: float = 5.0
    stall_after_polls: int | None = 12
    stall_timeout_seconds: float | None = 300.0
    max_duration_seconds: float | None = None
    stop_on_stall: bool = False
    max_consecutive_errors: int = 5

    def __post_init__(self) -> None:
        if self.interval_seconds < 0:
            raise ValueError("interval_seconds must be >= 0")
        if self.stall_after_polls is not None and self.stall_after_polls < 1:
            raise ValueError("stall_after_polls must be >= 1")
        if self.max_consecutive_errors < 1:
            raise ValueError("max_consecutive_errors must be >= 1")

    @classmethod
    def from_settings(cls, settings: Settings, **overrides: object) -> PollingPolicy:
        values: dict[str, object] = {
            "interval_seconds": settings.poll_interval_seconds,
            "stall_after_polls": settings.stall_after_polls,
            "stall_timeout_seconds": settings.stall_timeout_seconds,
            "max_consecutive_errors": settings.max_consecutive_poll_errors,
        }
        values.update(overrides)
        return cls(**values)  # type: ignore[arg-type]
