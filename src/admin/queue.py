"""Operator view across every user: queue records and meditations.

Covers listing, status summaries and destructive deletes.  Authorization
is the backend's job; a non-admin caller gets
:class:`~src.client.errors.AuthorizationError` with ``requires_login``
False.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum

from src.api.models import (
    DeleteMeditationResponse,
    DeleteQueueRecordResponse,
    Meditation,
    MeditationListResponse,
    QueueListResponse,
    QueueRecord,
)
from src.client.errors import (
    InvalidMeditationId,
    InvalidQueueId,
    InvalidRecordId,
    NotFoundError,
)
from src.client.http import ApiClient
from src.pipeline_config import QueueStatus

logger = logging.getLogger(__name__)

QUEUE_PATH = "/admin/queuer"
MEDITATIONS_PATH = "/admin/meditations"

OPERATOR_DELETE_NOTICE = (
    "Deleting a queue record removes the tracking entry only and cannot be undone. "
    "It does not cancel a generation job that is already running."
)

MEDITATION_DELETE_NOTICE = (
    "Deleting a meditation removes it for its owner and every listener and cannot be undone."
)


class DeleteOutcome(StrEnum):
    DELETED = "deleted"
    ALREADY_GONE = "already_gone"


@dataclass(frozen=True)
class DeleteResult:
    """Outcome of deleting a queue record or a meditation."""

    record_id: int
    outcome: DeleteOutcome
    message: str = ""


def _check_id(value: object, error: type[InvalidRecordId], kind: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise error(f"{kind} id must be a positive integer, got {value!r}")
    return value


class AdministrativeQueueView:
    def __init__(self, api: ApiClient) -> None:
        self.api = api

    async def list_records(self) -> list[QueueRecord]:
        """All queue records across users, newest first."""
        response = await self.api.request_model("GET", QUEUE_PATH, QueueListResponse)
        return sorted(response.queue, key=lambda r: (r.created_at, r.id), reverse=True)

    async def fetch_queue_record(self, queue_id: int) -> QueueRecord | None:
        """Status source for the tracker built on the list endpoint."""
        for record in await self.list_records():
            if record.id == queue_id:
                return record
        return None

    async def delete_record(self, queue_id: int) -> DeleteResult:
        """Delete a queue record.  A record that is already gone is not an error.

        Raises:
            InvalidQueueId: ``queue_id`` is not a positive integer (nothing is sent).
        """
        queue_id = _check_id(queue_id, InvalidQueueId, "Queue")
        try:
            response = await self.api.request_model(
                "DELETE", f"{QUEUE_PATH}/{queue_id}", DeleteQueueRecordResponse
            )
        except NotFoundError as exc:
            logger.info("Queue record %d was already gone", queue_id)
            return DeleteResult(queue_id, DeleteOutcome.ALREADY_GONE, exc.message)
        logger.info("Deleted queue record %d", queue_id)
        return DeleteResult(response.queue_id, DeleteOutcome.DELETED, response.message)

    async def list_meditations(self) -> list[Meditation]:
        """Every meditation, public and private, across users."""
        response = await self.api.request_model("GET", MEDITATIONS_PATH, MeditationListResponse)
        return response.meditations

    async def delete_meditation(self, meditation_id: int) -> DeleteResult:
        """Delete any user's meditation; one that is already gone is not an error.

        Raises:
            InvalidMeditationId: ``meditation_id`` is not a positive integer.
        """
        meditation_id = _check_id(meditation_id, InvalidMeditationId, "Meditation")
        try:
            response = await self.api.request_model(
                "DELETE", f"{MEDITATIONS_PATH}/{meditation_id}", DeleteMeditationResponse
            )
        except NotFoundError as exc:
            logger.info("Meditation %d was already gone", meditation_id)
            return DeleteResult(meditation_id, DeleteOutcome.ALREADY_GONE, exc.message)
        logger.info("Deleted meditation %d", meditation_id)
        return DeleteResult(response.meditation_id, DeleteOutcome.DELETED, response.message)


def summarize_by_status(records: Iterable[QueueRecord]) -> dict[QueueStatus, int]:
    """Record counts per stage, every stage present, in pipeline order."""
    counts = {status: 0 for status in QueueStatus}
    for record in records:
        counts[record.status] += 1
    return counts


def pending_records(records: Iterable[QueueRecord]) -> list[QueueRecord]:
    return [r for r in records if not r.status.is_terminal]
