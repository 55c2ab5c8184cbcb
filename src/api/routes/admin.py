"""Admin endpoints: every queue record and every meditation, across users."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException

from src.api.dependencies import AdminUser, StoreDep
from src.api.models import (
    DeleteMeditationResponse,
    DeleteQueueRecordResponse,
    MeditationListResponse,
    QueueListResponse,
    QueueRecordResponse,
)
from src.pipeline_config import QueueStatus

router = APIRouter()


@router.get("/admin/queuer", response_model=QueueListResponse)
async def list_queue(_: AdminUser, store: StoreDep) -> QueueListResponse:
    return QueueListResponse(queue=sorted(store.queue.values(), key=lambda r: r.id))


@router.delete("/admin/queuer/{queue_id}", response_model=DeleteQueueRecordResponse)
async def delete_queue_record(queue_id: int, _: AdminUser, store: StoreDep) -> DeleteQueueRecordResponse:
    """Remove the tracking record.  A running generation job is not cancelled."""
    if not store.delete_queue_record(queue_id):
        raise HTTPException(status_code=404, detail="Queue record not found")
    return DeleteQueueRecordResponse(message="Queue record deleted", queue_id=queue_id)


@router.post("/admin/queuer/{queue_id}/advance/{status}", response_model=QueueRecordResponse)
async def advance_queue_record(
    queue_id: int, status: QueueStatus, _: AdminUser, store: StoreDep
) -> QueueRecordResponse:
    """Stand in for the pipeline workers: move a job forward to ``status``."""
    if queue_id not in store.queue:
        raise HTTPException(status_code=404, detail="Queue record not found")
    try:
        record = store.advance(queue_id, status)
    except ValueError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return QueueRecordResponse(queue=record)


@router.get("/admin/meditations", response_model=MeditationListResponse)
async def list_all_meditations(admin: AdminUser, store: StoreDep) -> MeditationListResponse:
    """Every meditation, public and private."""
    meditations = sorted(store.meditations.values(), key=lambda m: m.id)
    return MeditationListResponse(meditations=[m.to_wire(admin) for m in meditations])


@router.delete("/admin/meditations/{meditation_id}", response_model=DeleteMeditationResponse)
async def delete_any_meditation(
    meditation_id: int, _: AdminUser, store: StoreDep
) -> DeleteMeditationResponse:
    if store.meditations.pop(meditation_id, None) is None:
        raise HTTPException(status_code=404, detail="Meditation not found")
    return DeleteMeditationResponse(message="Meditation deleted", meditation_id=meditation_id)
