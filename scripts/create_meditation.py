"""Compose a meditation from a JSON file, submit it, and optionally watch the job.

Input file shape::

    {
      "title": "Evening clarity",
      "description": "optional",
      "visibility": "public",
      "soundFiles": [{"name": "Rain", "filename": "rain.mp3"}],
      "segments": [
        {"type": "text", "text": "Breathe in", "speed": "1.0"},
        {"type": "pause", "duration_seconds": "3.0"},
        {"type": "sound", "sound_file_ref": "rain.mp3"}
      ]
    }
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.client.errors import (
    AuthorizationError,
    DraftInvalid,
    SubmissionRejected,
    TransientServerError,
)
from src.client.http import ApiClient
from src.client.meditations import MeditationsClient
from src.client.session import StaticCredentials
from src.client.submission import SubmissionClient
from src.composition.catalog import SoundCatalog
from src.composition.models import MeditationDraft, Visibility
from src.composition.summary import format_queue_status, summarize_segment
from src.composition.validator import CompositionValidator, ValidationLimits
from src.config import settings
from src.pipeline.tracker import PipelineStatusTracker, TrackingOutcome
from src.pipeline_config import PollingPolicy


def load_draft(data: dict) -> tuple[MeditationDraft, SoundCatalog]:
    """Build a draft and its sound catalog from the parsed input file."""
    catalog = SoundCatalog.from_records(data.get("soundFiles", []))
    draft = MeditationDraft(
        title=data.get("title", ""),
        description=data.get("description", ""),
        visibility=Visibility(data.get("visibility", "public")),
    )
    for row in data.get("segments", []):
        fields = {k: str(v) for k, v in row.items() if k != "type"}
        segment = draft.sequence.add_segment(row.get("type", "text"))
        draft.sequence.update_segment(segment.id, fields)
    return draft, catalog


def print_errors(errors: dict[str, str]) -> None:
    for path, message in sorted(errors.items()):
        print(f"  {path}: {message}")


async def create_meditation(path: Path, token: str | None, watch: bool, interval: float) -> int:
    with open(path, encoding="utf-8") as f:
        draft, catalog = load_draft(json.load(f))

    print(f"Meditation: {draft.title or '(untitled)'}")
    for segment in draft.segments:
        print(f"  - {summarize_segment(segment, catalog)}")

    validator = CompositionValidator(catalog, ValidationLimits.from_settings(settings))
    async with ApiClient(StaticCredentials(token)) as api:
        submitter = SubmissionClient(api, validator)
        try:
            receipt = await submitter.submit(draft)
        except DraftInvalid as exc:
            print("Not submitted, fix these first:")
            print_errors(exc.result.field_errors)
            return 1
        except SubmissionRejected as exc:
            print(f"Rejected by the backend: {exc.message}")
            print_errors(exc.validation.field_errors if exc.validation else exc.field_errors)
            return 1
        except AuthorizationError as exc:
            print(exc.user_message)
            return 1
        except TransientServerError as exc:
            print(f"Backend unavailable, try again later: {exc.message}")
            return 1

        print(f"Queued as job {receipt.queue_id} ({receipt.file_path})")
        if not watch:
            return 0

        meditations = MeditationsClient(api)
        policy = PollingPolicy.from_settings(settings, interval_seconds=interval)
        tracker = PipelineStatusTracker(receipt.queue_id, meditations, policy)
        announced_stall = False
        async for snapshot in tracker.watch():
            if snapshot.status is not None:
                print(f"  status: {format_queue_status(snapshot.status)}")
            if snapshot.stalled and not announced_stall:
                print("  This is taking longer than expected; it may still finish.")
                announced_stall = True

        result = tracker.result()
        if result.outcome is TrackingOutcome.DONE and result.snapshot and result.snapshot.record:
            print(f"Done: {meditations.artifact_url(result.snapshot.record)}")
            return 0
        print(f"Job did not complete ({result.outcome})")
        return 2


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    parser = argparse.ArgumentParser()
    parser.add_argument("file", type=Path)
    parser.add_argument("--token", default=os.getenv("API_TOKEN"))
    parser.add_argument("--watch", action="store_true")
    parser.add_argument("--interval", type=float, default=settings.poll_interval_seconds)
    args = parser.parse_args()
    sys.exit(asyncio.run(create_meditation(args.file, args.token, args.watch, args.interval)))
