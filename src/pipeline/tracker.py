"""Client-side view of a generation job moving through the backend pipeline.

The backend workers drive ``queued -> started -> elevenlabs -> concatenator
-> done``; the tracker only observes.  Observations are checkpoints in a
total order, not a transcript of every transition:

* stages may be skipped between two polls, which is fine;
* a status that appears to move backwards is ignored, so the tracker's
  view never regresses;
* no progress for long enough marks the job as *stalled*, which is not a
  failure and does not stop polling unless the policy says so;
* a record that disappears is *vanished*, the other "did not complete"
  outcome (the backend has no failed status).

Each tracker follows one queue id and shares no state with other
trackers, so many can poll concurrently.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable
from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol

from src.api.models import QueueRecord
from src.client.errors import TransientServerError
from src.config import settings
from src.pipeline_config import PollingPolicy, QueueStatus

logger = logging.getLogger(__name__)


class StatusSource(Protocol):
    async def fetch_queue_record(self, queue_id: int) -> QueueRecord | None:
        """Return the current record, or None if it no longer exists."""
        ...


class TrackingOutcome(StrEnum):
    DONE = "done"
    VANISHED = "vanished"
    STALLED = "stalled"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class StatusSnapshot:
    """What the tracker knew after one poll."""

    queue_id: int
    status: QueueStatus | None
    record: QueueRecord | None
    polls: int
    unchanged_polls: int = 0
    stalled: bool = False
    vanished: bool = False
    skipped: tuple[QueueStatus, ...] = ()

    @property
    def done(self) -> bool:
        return self.status is QueueStatus.DONE and not self.vanished


@dataclass(frozen=True)
class TrackingResult:
    outcome: TrackingOutcome
    snapshot: StatusSnapshot | None

    @property
    def completed(self) -> bool:
        return self.outcome is TrackingOutcome.DONE


class PipelineStatusTracker:
    def __init__(
        self,
        queue_id: int,
        source: StatusSource,
        policy: PollingPolicy | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.queue_id = queue_id
        self.source = source
        self.policy = policy or PollingPolicy.from_settings(settings)
        self._clock = clock
        self._sleep = sleep
        self._started_at = clock()
        self._last_progress_at = self._started_at
        self._polls = 0
        self._unchanged = 0
        self._stall_reported = False
        self._snapshot: StatusSnapshot | None = None

    @property
    def last_snapshot(self) -> StatusSnapshot | None:
        """Most recent observation; survives cancellation of a running poll."""
        return self._snapshot

    def observe(self, record: QueueRecord | None) -> StatusSnapshot:
        """Fold one fetched record (or its absence) into the tracker state."""
        current = self._snapshot
        if current is not None and (current.done or current.vanished):
            return current

        now = self._clock()
        self._polls += 1
        previous = current.status if current else None

        if record is None:
            logger.warning(
                "Queue record %d is gone (last seen: %s)", self.queue_id, previous or "never"
            )
            self._snapshot = StatusSnapshot(
                queue_id=self.queue_id,
                status=previous,
                record=current.record if current else None,
                polls=self._polls,
                unchanged_polls=self._unchanged,
                vanished=True,
            )
            return self._snapshot

        status = record.status
        skipped: tuple[QueueStatus, ...] = ()
        if previous is None or status.rank > previous.rank:
            if previous is not None:
                skipped = tuple(previous.stages_between(status))
                logger.info("Job %d: %s -> %s", self.queue_id, previous, status)
                if skipped:
                    logger.debug(
                        "Job %d: stages not observed: %s",
                        self.queue_id,
                        ", ".join(skipped),
                    )
            else:
                logger.info("Job %d: %s", self.queue_id, status)
            self._unchanged = 0
            self._last_progress_at = now
            self._stall_reported = False
        elif status.rank < previous.rank:
            logger.warning(
                "Job %d reported %s after %s; keeping %s", self.queue_id, status, previous, previous
            )
            status = previous
            record = current.record if current else record
            self._unchanged += 1
        else:
            self._unchanged += 1

        stalled = not status.is_terminal and self._is_stalled(now)
        if stalled and not self._stall_reported:
            logger.info("Job %d is taking longer than expected (still %s)", self.queue_id, status)
            self._stall_reported = True

        self._snapshot = StatusSnapshot(
            queue_id=self.queue_id,
            status=status,
            record=record,
            polls=self._polls,
            unchanged_polls=self._unchanged,
            stalled=stalled,
            skipped=skipped,
        )
        return self._snapshot

    async def poll_once(self) -> StatusSnapshot:
        record = await self.source.fetch_queue_record(self.queue_id)
        return self.observe(record)

    async def watch(self) -> AsyncIterator[StatusSnapshot]:
        """Poll on the policy's interval, yielding each snapshot.

        Stops after ``done``, a vanished record, a stall when
        ``stop_on_stall`` is set, or ``max_duration_seconds``.  Transient
        fetch errors are logged and polling continues until
        ``max_consecutive_errors`` in a row, then the last one is raised.
        """
        errors = 0
        while True:
            try:
                snapshot = await self.poll_once()
            except TransientServerError as exc:
                errors += 1
                logger.warning(
                    "Polling job %d failed (%d/%d): %s",
                    self.queue_id,
                    errors,
                    self.policy.max_consecutive_errors,
                    exc.message,
                )
                if errors >= self.policy.max_consecutive_errors:
                    raise
            else:
                errors = 0
                yield snapshot
                if self._finished(snapshot):
                    return
            if self._timed_out():
                logger.info("Stopped tracking job %d after the time limit", self.queue_id)
                return
            await self._sleep(self.policy.interval_seconds)

    async def wait(self) -> TrackingResult:
        """Poll until the job finishes (or tracking stops) and report why."""
        async for _ in self.watch():
            pass
        return self.result()

    def result(self) -> TrackingResult:
        """Outcome implied by the latest snapshot, without polling again."""
        snapshot = self._snapshot
        if snapshot is not None and snapshot.done:
            outcome = TrackingOutcome.DONE
        elif snapshot is not None and snapshot.vanished:
            outcome = TrackingOutcome.VANISHED
        elif snapshot is not None and snapshot.stalled and self.policy.stop_on_stall:
            outcome = TrackingOutcome.STALLED
        else:
            outcome = TrackingOutcome.TIMED_OUT
        return TrackingResult(outcome=outcome, snapshot=snapshot)

    def _is_stalled(self, now: float) -> bool:
        policy = self.policy
        if policy.stall_after_polls is not None and self._unchanged >= policy.stall_after_polls:
            return True
        if policy.stall_timeout_seconds is not None:
            return now - self._last_progress_at >= policy.stall_timeout_seconds
        return False

    def _finished(self, snapshot: StatusSnapshot) -> bool:
        if snapshot.done or snapshot.vanished:
            return True
        return snapshot.stalled and self.policy.stop_on_stall

    def _timed_out(self) -> bool:
        limit = self.policy.max_duration_seconds
        return limit is not None and self._clock() - self._started_at >= limit


async def wait_all(trackers: Iterable[PipelineStatusTracker]) -> dict[int, TrackingResult]:
    """Run several trackers concurrently; results keyed by queue id."""
    trackers = list(trackers)
    results = await asyncio.gather(*(t.wait() for t in trackers))
    return {t.queue_id: r for t, r in zip(trackers, results, strict=True)}
