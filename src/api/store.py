"""In-memory state for the sandbox backend: users, queue records, meditations.

Nothing here produces audio.  Pipeline workers are simulated by calling
:meth:`SandboxStore.advance`, which moves a job forward and creates the
meditation when it reaches ``done``.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from src.api.models import CreateMeditationRequest, Meditation, QueueRecord
from src.composition.catalog import SoundCatalog, SoundFile
from src.composition.models import Visibility
from src.composition.validator import CompositionValidator, ValidationLimits
from src.pipeline_config import QueueStatus

if TYPE_CHECKING:
    from src.config import Settings


@dataclass
class SandboxUser:
    id: int
    email: str
    is_admin: bool = False


@dataclass
class StoredMeditation:
    id: int
    user_id: int
    title: str
    description: str
    visibility: Visibility
    created_at: datetime
    segments: list[dict[str, Any]] = field(default_factory=list)
    listen_count: int = 0
    favorited_by: set[int] = field(default_factory=set)

    def to_wire(self, viewer: SandboxUser | None = None) -> Meditation:
        return Meditation.model_validate(
            {
                "id": self.id,
                "title": self.title,
                "description": self.description or None,
                "visibility": self.visibility,
                "listenCount": self.listen_count,
                "createdAt": self.created_at,
                "userId": self.user_id,
                "isFavorite": viewer is not None and viewer.id in self.favorited_by,
            }
        )


@dataclass
class _PendingJob:
    user_id: int
    request: CreateMeditationRequest


def _slugify(title: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-") or "meditation"


class SandboxStore:
    def __init__(
        self,
        catalog: SoundCatalog | None = None,
        limits: ValidationLimits | None = None,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        self.catalog = catalog or SoundCatalog()
        self.validator = CompositionValidator(self.catalog, limits)
        self._clock = clock
        self._users_by_token: dict[str, SandboxUser] = {}
        self.queue: dict[int, QueueRecord] = {}
        self.meditations: dict[int, StoredMeditation] = {}
        self._jobs: dict[int, _PendingJob] = {}
        self._next_user_id = 1
        self._next_queue_id = 1
        self._next_meditation_id = 1

    @classmethod
    def from_settings(cls, settings: Settings) -> SandboxStore:
        """Store seeded with the sound catalog and bearer tokens from ``settings``."""
        catalog = SoundCatalog(
            SoundFile(name=name, filename=filename)
            for filename, name in settings.sandbox_sound_files.items()
        )
        store = cls(catalog=catalog, limits=ValidationLimits.from_settings(settings))
        for token in settings.sandbox_user_tokens:
            store.add_user(token)
        for token in settings.sandbox_admin_tokens:
            store.add_user(token, is_admin=True)
        return store

    # -- users ---------------------------------------------------------------

    def add_user(self, token: str, email: str | None = None, *, is_admin: bool = False) -> SandboxUser:
        user = SandboxUser(
            id=self._next_user_id,
            email=email or f"user{self._next_user_id}@example.com",
            is_admin=is_admin,
        )
        self._next_user_id += 1
        self._users_by_token[token] = user
        return user

    def user_for_token(self, token: str) -> SandboxUser | None:
        return self._users_by_token.get(token)

    # -- queue ---------------------------------------------------------------

    def create_job(self, user: SandboxUser, request: CreateMeditationRequest) -> QueueRecord:
        now = self._clock()
        queue_id = self._next_queue_id
        self._next_queue_id += 1
        record = QueueRecord(
            id=queue_id,
            user_id=user.id,
            status=QueueStatus.QUEUED,
            job_filename=f"{queue_id:04d}-{_slugify(request.title)}.json",
            created_at=now,
            updated_at=now,
        )
        self.queue[queue_id] = record
        self._jobs[queue_id] = _PendingJob(user_id=user.id, request=request)
        return record

    def advance(self, queue_id: int, status: QueueStatus | str) -> QueueRecord:
        """Move a job forward to ``status`` as a pipeline worker would."""
        status = QueueStatus(status)
        record = self.queue[queue_id]
        if status.rank < record.status.rank:
            raise ValueError(f"Job {queue_id} cannot move from {record.status} back to {status}")
        update: dict[str, Any] = {"status": status, "updated_at": self._clock()}
        if status is QueueStatus.DONE and record.meditation_id is None:
            update["meditation_id"] = self._publish(queue_id).id
        record = record.model_copy(update=update)
        self.queue[queue_id] = record
        return record

    def delete_queue_record(self, queue_id: int) -> bool:
        self._jobs.pop(queue_id, None)
        return self.queue.pop(queue_id, None) is not None

    def _publish(self, queue_id: int) -> StoredMeditation:
        job = self._jobs[queue_id]
        request = job.request
        meditation = StoredMeditation(
            id=self._next_meditation_id,
            user_id=job.user_id,
            title=request.title,
            description=request.description or "",
            visibility=request.visibility,
            created_at=self._clock(),
            segments=[s.model_dump(by_alias=True) for s in request.meditation_array],
        )
        self._next_meditation_id += 1
        self.meditations[meditation.id] = meditation
        return meditation

    # -- meditations ---------------------------------------------------------

    def visible_meditations(self, viewer: SandboxUser | None) -> list[StoredMeditation]:
        """Public meditations, plus the viewer's own private ones."""
        return [
            m
            for m in sorted(self.meditations.values(), key=lambda m: m.id)
            if m.visibility is Visibility.PUBLIC or (viewer is not None and m.user_id == viewer.id)
        ]
