"""Meditation endpoints: create, list, queue status, update, delete, favorite."""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, HTTPException

from src.api.dependencies import CurrentUser, OptionalUser, StoreDep
from src.api.models import (
    CreateMeditationRequest,
    CreateMeditationResponse,
    DeleteMeditationResponse,
    FavoriteMeditationResponse,
    MeditationListResponse,
    QueueRecordResponse,
    UpdateMeditationRequest,
    UpdateMeditationResponse,
    field_path_to_wire,
)
from src.api.store import SandboxStore, SandboxUser, StoredMeditation

router = APIRouter()


def _validation_error(fields: dict[str, str]) -> HTTPException:
    return HTTPException(
        status_code=400,
        detail={
            "message": "Meditation is invalid",
            "code": "VALIDATION_ERROR",
            "details": {"fields": {field_path_to_wire(p): m for p, m in fields.items()}},
        },
    )


def _owned_meditation(store: SandboxStore, user: SandboxUser, meditation_id: int) -> StoredMeditation:
    meditation = store.meditations.get(meditation_id)
    if meditation is None or (meditation.user_id != user.id and not user.is_admin):
        raise HTTPException(status_code=404, detail="Meditation not found")
    return meditation


@router.post("/meditations/create", status_code=201, response_model=CreateMeditationResponse)
async def create_meditation(
    body: CreateMeditationRequest, user: CurrentUser, store: StoreDep
) -> CreateMeditationResponse:
    """Queue a meditation for generation.  Array position is segment order."""
    result = store.validator.validate(body.to_draft())
    if not result.valid:
        raise _validation_error(result.field_errors)

    record = store.create_job(user, body)
    return CreateMeditationResponse(
        message="Meditation queued for generation",
        queue_id=record.id,
        file_path=f"/jobs/{record.job_filename}",
    )


@router.get("/meditations/all", response_model=MeditationListResponse)
async def list_meditations(user: OptionalUser, store: StoreDep) -> MeditationListResponse:
    """Public meditations, plus the caller's private ones when authenticated."""
    return MeditationListResponse(
        meditations=[m.to_wire(user) for m in store.visible_meditations(user)]
    )


@router.get("/meditations/queue/{queue_id}", response_model=QueueRecordResponse)
async def get_queue_record(queue_id: int, user: CurrentUser, store: StoreDep) -> QueueRecordResponse:
    record = store.queue.get(queue_id)
    if record is None or (record.user_id != user.id and not user.is_admin):
        raise HTTPException(status_code=404, detail="Queue record not found")
    return QueueRecordResponse(queue=record)


@router.patch("/meditations/update/{meditation_id}", response_model=UpdateMeditationResponse)
async def update_meditation(
    meditation_id: int, body: UpdateMeditationRequest, user: CurrentUser, store: StoreDep
) -> UpdateMeditationResponse:
    meditation = _owned_meditation(store, user, meditation_id)
    errors = store.validator.validate_metadata(body.title, body.description)
    if errors:
        raise _validation_error(errors)

    if body.title is not None:
        meditation.title = body.title.strip()
    if body.description is not None:
        meditation.description = body.description
    if body.visibility is not None:
        meditation.visibility = body.visibility
    return UpdateMeditationResponse(
        message="Meditation updated", meditation=meditation.to_wire(user)
    )


@router.delete("/meditations/{meditation_id}", response_model=DeleteMeditationResponse)
async def delete_meditation(
    meditation_id: int, user: CurrentUser, store: StoreDep
) -> DeleteMeditationResponse:
    _owned_meditation(store, user, meditation_id)
    del store.meditations[meditation_id]
    return DeleteMeditationResponse(message="Meditation deleted", meditation_id=meditation_id)


@router.post(
    "/meditations/favorite/{meditation_id}/{flag}", response_model=FavoriteMeditationResponse
)
async def favorite_meditation(
    meditation_id: int, flag: Literal["true", "false"], user: CurrentUser, store: StoreDep
) -> FavoriteMeditationResponse:
    visible = {m.id: m for m in store.visible_meditations(user)}
    meditation = visible.get(meditation_id)
    if meditation is None:
        raise HTTPException(status_code=404, detail="Meditation not found")

    favorite = flag == "true"
    if favorite:
        meditation.favorited_by.add(user.id)
    else:
        meditation.favorited_by.discard(user.id)
    return FavoriteMeditationResponse(
        message="Favorite updated", meditation_id=meditation_id, favorite=favorite
    )
