"""Sandbox backend implementing the meditation wire contract in memory.

Run locally with ``uvicorn src.api.main:app --port 3000``.  The default store is
seeded from ``Settings`` (sound catalog, user and admin bearer tokens); jobs
move through the pipeline via the admin advance route.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.api.models import ErrorDetail, ErrorResponse
from src.api.routes.admin import router as admin_router
from src.api.routes.meditations import router as meditations_router
from src.api.store import SandboxStore
from src.config import settings


async def _error_envelope(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render HTTP errors as ``{"error": {"message", "code", "details"}}``."""
    if isinstance(exc.detail, dict):
        detail = ErrorDetail.model_validate(exc.detail)
    else:
        detail = ErrorDetail(message=str(exc.detail))
    body = ErrorResponse(error=detail).model_dump(by_alias=True, exclude_none=True)
    return JSONResponse(status_code=exc.status_code, content=body, headers=exc.headers)


def create_app(store: SandboxStore | None = None) -> FastAPI:
    app = FastAPI(
        title="Go Lightly Sandbox API",
        description="In-memory meditation backend for local development and contract tests",
        version="0.1.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000"],
        allow_origin_regex=r"http://localhost:\d+",
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(StarletteHTTPException, _error_envelope)  # type: ignore[arg-type]

    app.state.store = store if store is not None else SandboxStore.from_settings(settings)
    app.include_router(meditations_router)
    app.include_router(admin_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "healthy"}

    return app


app = create_app()
