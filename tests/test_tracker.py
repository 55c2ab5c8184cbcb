"""Tests for PipelineStatusTracker with a scripted status source and a fake clock."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from datetime import UTC, datetime

import pytest

from src.api.models import QueueRecord
from src.client.errors import AuthorizationError, TransientServerError
from src.pipeline.tracker import (
    PipelineStatusTracker,
    StatusSnapshot,
    TrackingOutcome,
    wait_all,
)
from src.pipeline_config import PollingPolicy, QueueStatus

ORDER = list(QueueStatus)
_NOW = datetime(2026, 10, 1, 8, 0, tzinfo=UTC)


def _record(queue_id: int, status: str, meditation_id: int | None = None) -> QueueRecord:
    return QueueRecord(
        id=queue_id,
        user_id=1,
        status=QueueStatus(status),
        job_filename=f"{queue_id:04d}-job.json",
        created_at=_NOW,
        updated_at=_NOW,
        meditation_id=meditation_id,
    )


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class ScriptedSource:
    """Returns one scripted item per fetch; repeats the last one when exhausted.

    Items are a status string, None (record gone), or an exception to raise.
    """

    def __init__(self, queue_id: int, script: Iterable[str | None | Exception]) -> None:
        self.queue_id = queue_id
        self.script = list(script)
        self.fetches = 0

    async def fetch_queue_record(self, queue_id: int) -> QueueRecord | None:
        assert queue_id == self.queue_id
        item = self.script[min(self.fetches, len(self.script) - 1)]
        self.fetches += 1
        if isinstance(item, Exception):
            raise item
        if item is None:
            return None
        return _record(queue_id, item, meditation_id=99 if item == "done" else None)


def _tracker(
    script: Iterable[str | None | Exception],
    queue_id: int = 1,
    clock: FakeClock | None = None,
    **policy: object,
) -> tuple[PipelineStatusTracker, ScriptedSource, FakeClock]:
    clock = clock or FakeClock()
    source = ScriptedSource(queue_id, script)
    defaults: dict[str, object] = {
        "interval_seconds": 5.0,
        "stall_after_polls": None,
        "stall_timeout_seconds": None,
    }
    defaults.update(policy)
    tracker = PipelineStatusTracker(
        queue_id,
        source,
        PollingPolicy(**defaults),  # type: ignore[arg-type]
        clock=clock,
        sleep=clock.sleep,
    )
    return tracker, source, clock


def _collect(tracker: PipelineStatusTracker) -> list[StatusSnapshot]:
    async def run() -> list[StatusSnapshot]:
        return [s async for s in tracker.watch()]

    return asyncio.run(run())


class TestQueueStatus:
    def test_pipeline_order(self) -> None:
        assert [s.value for s in ORDER] == [
            "queued",
            "started",
            "elevenlabs",
            "concatenator",
            "done",
        ]
        assert [s.rank for s in ORDER] == [0, 1, 2, 3, 4]

    def test_only_done_is_terminal(self) -> None:
        assert [s for s in ORDER if s.is_terminal] == [QueueStatus.DONE]

    def test_stages_between(self) -> None:
        assert QueueStatus.QUEUED.stages_between(QueueStatus.DONE) == [
            QueueStatus.STARTED,
            QueueStatus.ELEVENLABS,
            QueueStatus.CONCATENATOR,
        ]
        assert QueueStatus.STARTED.stages_between(QueueStatus.ELEVENLABS) == []
        assert QueueStatus.DONE.stages_between(QueueStatus.QUEUED) == []


class TestObservation:
    def test_full_walk(self) -> None:
        tracker, _, _ = _tracker(["queued", "started", "elevenlabs", "concatenator", "done"])
        snapshots = _collect(tracker)
        assert [s.status for s in snapshots] == ORDER
        assert snapshots[-1].done
        assert tracker.result().outcome is TrackingOutcome.DONE

    def test_skipped_stages_accepted(self) -> None:
        tracker, _, _ = _tracker(["queued", "elevenlabs", "done"])
        snapshots = _collect(tracker)
        assert [s.status for s in snapshots] == [
            QueueStatus.QUEUED,
            QueueStatus.ELEVENLABS,
            QueueStatus.DONE,
        ]
        assert snapshots[1].skipped == (QueueStatus.STARTED,)
        assert snapshots[2].skipped == (QueueStatus.CONCATENATOR,)
        assert tracker.result().completed

    def test_queued_then_done(self) -> None:
        tracker, _, _ = _tracker(["queued", "done"])
        result = asyncio.run(tracker.wait())
        assert result.outcome is TrackingOutcome.DONE
        assert result.snapshot is not None
        assert result.snapshot.record is not None
        assert result.snapshot.record.meditation_id == 99

    def test_first_observation_mid_pipeline(self) -> None:
        tracker, _, _ = _tracker(["concatenator", "done"])
        snapshots = _collect(tracker)
        assert snapshots[0].status is QueueStatus.CONCATENATOR
        assert snapshots[0].skipped == ()
        assert snapshots[-1].done

    def test_regression_ignored(self) -> None:
        tracker, _, _ = _tracker(["elevenlabs", "started", "concatenator", "done"])
        statuses = [s.status for s in _collect(tracker)]
        assert statuses == [
            QueueStatus.ELEVENLABS,
            QueueStatus.ELEVENLABS,
            QueueStatus.CONCATENATOR,
            QueueStatus.DONE,
        ]

    @pytest.mark.parametrize("seed", range(5))
    def test_never_regresses(self, seed: int) -> None:
        # Deterministic shuffles of noisy observations
        noisy = [ORDER[(seed * 7 + i * 3) % 4].value for i in range(12)] + ["done"]
        tracker, _, _ = _tracker(noisy)
        ranks = [s.status.rank for s in _collect(tracker) if s.status is not None]
        assert ranks == sorted(ranks)

    def test_done_is_final(self) -> None:
        tracker, _, _ = _tracker([])
        done = tracker.observe(_record(1, "done", meditation_id=4))
        assert tracker.observe(_record(1, "queued")) is done
        assert tracker.observe(None) is done

    def test_interval_is_injected(self) -> None:
        tracker, _, clock = _tracker(["queued", "started", "done"], interval_seconds=0.25)
        _collect(tracker)
        assert clock.sleeps == [0.25, 0.25]


class TestDidNotComplete:
    def test_record_removed(self) -> None:
        tracker, _, _ = _tracker(["queued", "started", None])
        result = asyncio.run(tracker.wait())
        assert result.outcome is TrackingOutcome.VANISHED
        assert result.snapshot is not None
        assert result.snapshot.vanished
        assert result.snapshot.status is QueueStatus.STARTED
        assert not result.snapshot.done

    def test_unknown_record(self) -> None:
        tracker, source, _ = _tracker([None])
        result = asyncio.run(tracker.wait())
        assert result.outcome is TrackingOutcome.VANISHED
        assert result.snapshot is not None and result.snapshot.status is None
        assert source.fetches == 1

    def test_stall_after_unchanged_polls(self) -> None:
        tracker, _, _ = _tracker(["elevenlabs"], stall_after_polls=3, stop_on_stall=True)
        snapshots = _collect(tracker)
        assert [s.stalled for s in snapshots] == [False, False, False, True]
        assert snapshots[-1].unchanged_polls == 3
        assert tracker.result().outcome is TrackingOutcome.STALLED

    def test_stall_after_timeout(self) -> None:
        tracker, _, clock = _tracker(
            ["started"], interval_seconds=10.0, stall_timeout_seconds=30.0, stop_on_stall=True
        )
        snapshots = _collect(tracker)
        assert snapshots[-1].stalled
        assert clock.now == 30.0
        assert len(snapshots) == 4

    def test_progress_clears_stall(self) -> None:
        tracker, _, _ = _tracker(
            ["started", "started", "started", "concatenator", "done"], stall_after_polls=2
        )
        snapshots = _collect(tracker)
        assert [s.stalled for s in snapshots] == [False, False, True, False, False]
        assert tracker.result().outcome is TrackingOutcome.DONE

    def test_stall_keeps_polling_by_default(self) -> None:
        tracker, _, _ = _tracker(["queued"] * 4 + ["done"], stall_after_polls=2)
        result = asyncio.run(tracker.wait())
        assert result.outcome is TrackingOutcome.DONE

    def test_regression_counts_as_no_progress(self) -> None:
        tracker, _, _ = _tracker(
            ["concatenator", "queued", "started"], stall_after_polls=2, stop_on_stall=True
        )
        snapshots = _collect(tracker)
        assert snapshots[-1].stalled
        assert snapshots[-1].status is QueueStatus.CONCATENATOR

    def test_max_duration(self) -> None:
        tracker, _, clock = _tracker(["queued"], interval_seconds=5.0, max_duration_seconds=12.0)
        result = asyncio.run(tracker.wait())
        assert result.outcome is TrackingOutcome.TIMED_OUT
        assert clock.now == 15.0


class TestPollErrors:
    def test_transient_errors_tolerated(self) -> None:
        tracker, _, _ = _tracker(
            ["queued", TransientServerError("boom", 503), TransientServerError("boom", 502), "done"],
            max_consecutive_errors=3,
        )
        snapshots = _collect(tracker)
        assert [s.status for s in snapshots] == [QueueStatus.QUEUED, QueueStatus.DONE]

    def test_too_many_errors_raise(self) -> None:
        tracker, _, _ = _tracker(
            ["queued", TransientServerError("down", 503)], max_consecutive_errors=2
        )
        with pytest.raises(TransientServerError):
            asyncio.run(tracker.wait())
        assert tracker.last_snapshot is not None
        assert tracker.last_snapshot.status is QueueStatus.QUEUED

    def test_authorization_error_propagates(self) -> None:
        tracker, source, _ = _tracker([AuthorizationError("expired", 401)])
        with pytest.raises(AuthorizationError):
            asyncio.run(tracker.wait())
        assert source.fetches == 1


class TestCancellation:
    def test_cancel_keeps_last_snapshot(self) -> None:
        async def scenario() -> StatusSnapshot | None:
            source = ScriptedSource(5, ["started"])
            tracker = PipelineStatusTracker(
                5,
                source,
                PollingPolicy(interval_seconds=60.0, stall_after_polls=None, stall_timeout_seconds=None),
            )
            task = asyncio.create_task(tracker.wait())
            while source.fetches == 0:
                await asyncio.sleep(0)
            await asyncio.sleep(0)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task
            return tracker.last_snapshot

        snapshot = asyncio.run(scenario())
        assert snapshot is not None
        assert snapshot.status is QueueStatus.STARTED
        assert not snapshot.vanished


class TestConcurrentTracking:
    def test_wait_all_independent(self) -> None:
        clock_a, clock_b = FakeClock(), FakeClock()
        a, _, _ = _tracker(["queued", "done"], queue_id=1, clock=clock_a)
        b, _, _ = _tracker(["started", None], queue_id=2, clock=clock_b)
        results = asyncio.run(wait_all([a, b]))
        assert results[1].outcome is TrackingOutcome.DONE
        assert results[2].outcome is TrackingOutcome.VANISHED


def test_default_policy_from_settings() -> None:
    from src.config import settings

    tracker = PipelineStatusTracker(1, ScriptedSource(1, ["queued"]))
    assert tracker.policy.interval_seconds == settings.poll_interval_seconds
    assert tracker.policy.stall_after_polls == settings.stall_after_polls
