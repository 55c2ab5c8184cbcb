"""Shared fixtures: sound catalog, validator, and the in-memory sandbox backend."""

from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest
from fastapi import FastAPI

from src.api.main import create_app
from src.api.store import SandboxStore
from src.client.http import ApiClient
from src.client.session import AnonymousCredentials, StaticCredentials
from src.composition.catalog import SoundCatalog, SoundFile
from src.composition.models import MeditationDraft
from src.composition.validator import CompositionValidator

USER_TOKEN = "user-token"
OTHER_USER_TOKEN = "other-user-token"
ADMIN_TOKEN = "admin-token"


@pytest.fixture
def catalog() -> SoundCatalog:
    return SoundCatalog(
        [
            SoundFile(name="Rain", filename="rain"),
            SoundFile(name="Singing bowl", filename="singing_bowl.mp3"),
            SoundFile(name="Ocean waves", filename="ocean.mp3"),
        ]
    )


@pytest.fixture
def validator(catalog: SoundCatalog) -> CompositionValidator:
    return CompositionValidator(catalog)


@pytest.fixture
def evening_draft() -> MeditationDraft:
    """Breathe in (text) -> 3 s pause -> rain."""
    draft = MeditationDraft(title="Evening clarity")
    text = draft.sequence.add_segment("text")
    draft.sequence.update_segment(text.id, {"text": "Breathe in", "speed": "1.0"})
    pause = draft.sequence.add_segment("pause")
    draft.sequence.update_segment(pause.id, {"duration_seconds": "3.0"})
    sound = draft.sequence.add_segment("sound")
    draft.sequence.update_segment(sound.id, {"sound_file_ref": "rain"})
    return draft


@pytest.fixture
def store(catalog: SoundCatalog) -> SandboxStore:
    store = SandboxStore(catalog=catalog)
    store.add_user(USER_TOKEN, "listener@example.com")
    store.add_user(OTHER_USER_TOKEN, "other@example.com")
    store.add_user(ADMIN_TOKEN, "admin@example.com", is_admin=True)
    return store


@pytest.fixture
def sandbox(store: SandboxStore) -> FastAPI:
    return create_app(store)


@pytest.fixture
def make_api(sandbox: FastAPI) -> Callable[..., ApiClient]:
    """Build an ApiClient talking to the sandbox app in-process."""

    def _make(token: str | None = None, credentials: object | None = None) -> ApiClient:
        http = httpx.AsyncClient(
            transport=httpx.ASGITransport(app=sandbox), base_url="http://sandbox"
        )
        if credentials is None:
            credentials = StaticCredentials(token) if token else AnonymousCredentials()
        return ApiClient(credentials, http=http)  # type: ignore[arg-type]

    return _make
