"""Meditation listing, queue status lookup, and artifact URLs."""

from __future__ import annotations

from src.api.models import (
    DeleteMeditationResponse,
    FavoriteMeditationResponse,
    Meditation,
    MeditationListResponse,
    QueueRecord,
    QueueRecordResponse,
    UpdateMeditationRequest,
    UpdateMeditationResponse,
)
from src.client.errors import ArtifactNotReady, NotFoundError
from src.client.http import ApiClient, AuthMode
from src.composition.models import Visibility
from src.pipeline_config import QueueStatus


class MeditationsClient:
    def __init__(self, api: ApiClient) -> None:
        self.api = api

    async def list_meditations(self) -> list[Meditation]:
        """Public meditations, plus the caller's private ones when a credential is present."""
        response = await self.api.request_model(
            "GET", "/meditations/all", MeditationListResponse, auth=AuthMode.OPTIONAL
        )
        return response.meditations

    async def get_queue_record(self, queue_id: int) -> QueueRecord | None:
        """Current snapshot of one of the caller's queue records, or None if it is gone."""
        try:
            response = await self.api.request_model(
                "GET", f"/meditations/queue/{queue_id}", QueueRecordResponse
            )
        except NotFoundError:
            return None
        return response.queue

    # Status source for PipelineStatusTracker
    fetch_queue_record = get_queue_record

    def stream_url(self, meditation_id: int) -> str:
        return self.api.url_for(f"/meditations/{meditation_id}/stream")

    def artifact_url(self, record: QueueRecord) -> str:
        """Stream URL for the meditation a finished job produced."""
        if record.status is not QueueStatus.DONE:
            raise ArtifactNotReady(f"Job {record.id} is still {record.status}")
        if record.meditation_id is None:
            raise ArtifactNotReady(f"Job {record.id} finished without a meditation id")
        return self.stream_url(record.meditation_id)

    async def update_meditation(
        self,
        meditation_id: int,
        *,
        title: str | None = None,
        description: str | None = None,
        visibility: Visibility | None = None,
    ) -> Meditation:
        body = UpdateMeditationRequest(title=title, description=description, visibility=visibility)
        response = await self.api.request_model(
            "PATCH",
            f"/meditations/update/{meditation_id}",
            UpdateMeditationResponse,
            json=body.model_dump(by_alias=True, mode="json", exclude_none=True),
        )
        return response.meditation

    async def delete_meditation(self, meditation_id: int) -> DeleteMeditationResponse:
        return await self.api.request_model(
            "DELETE", f"/meditations/{meditation_id}", DeleteMeditationResponse
        )

    async def favorite_meditation(self, meditation_id: int, favorite: bool) -> bool:
        flag = "true" if favorite else "false"
        response = await self.api.request_model(
            "POST", f"/meditations/favorite/{meditation_id}/{flag}", FavoriteMeditationResponse
        )
        return response.favorite
