"""Async HTTP client wrapper for the Go Lightly backend."""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from src.api.models import field_path_from_wire
from src.client.errors import (
    ApiError,
    AuthorizationError,
    NotFoundError,
    SubmissionRejected,
    TransientServerError,
)
from src.client.session import AnonymousCredentials, CredentialProvider
from src.config import settings

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class AuthMode(StrEnum):
    """How a call uses the bearer credential."""

    REQUIRED = "required"  # fail locally if there is no credential
    OPTIONAL = "optional"  # send it if present (e.g. public + own private listings)
    NONE = "none"


def _error_message_and_fields(response: httpx.Response) -> tuple[str, dict[str, str]]:
    """Pull a message and field errors out of the backend's error envelope.

    Understands ``{"error": {"message", "details": {"fields"}}}`` and
    FastAPI's ``{"detail": ...}``.
    """
    fallback = response.reason_phrase or f"HTTP {response.status_code}"
    try:
        body = response.json()
    except ValueError:
        return response.text or fallback, {}
    if not isinstance(body, dict):
        return fallback, {}

    error = body.get("error")
    if isinstance(error, dict):
        message = str(error.get("message") or fallback)
        details = error.get("details")
        raw_fields = details.get("fields") if isinstance(details, dict) else None
        fields: dict[str, str] = {}
        if isinstance(raw_fields, dict):
            for path, text in raw_fields.items():
                fields[field_path_from_wire(str(path).split(".")) or str(path)] = str(text)
        return message, fields

    detail = body.get("detail")
    if isinstance(detail, list):
        fields = {}
        for item in detail:
            if isinstance(item, dict) and "loc" in item:
                path = field_path_from_wire(item["loc"]) or "request"
                fields[path] = str(item.get("msg", "Invalid value"))
        return "Request validation failed", fields
    if isinstance(detail, str):
        return detail, {}
    if isinstance(body.get("message"), str):
        return body["message"], {}
    return fallback, {}


def error_from_response(response: httpx.Response) -> ApiError:
    """Map a non-2xx response onto the error taxonomy."""
    status = response.status_code
    message, fields = _error_message_and_fields(response)
    if status in (401, 403):
        return AuthorizationError(message, status)
    if status == 404:
        return NotFoundError(message, status)
    if status == 429 or status >= 500:
        return TransientServerError(message, status)
    if 400 <= status < 500:
        return SubmissionRejected(message, status, fields)
    return ApiError(message, status)


class ApiClient:
    """Thin wrapper over ``httpx.AsyncClient`` that injects the credential.

    Pass ``http`` to reuse a preconfigured client (tests mount the sandbox
    backend through ``httpx.ASGITransport``); it must carry a base URL.
    """

    def __init__(
        self,
        credentials: CredentialProvider | None = None,
        *,
        base_url: str | None = None,
        timeout: float | None = None,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self.credentials: CredentialProvider = credentials or AnonymousCredentials()
        if http is not None:
            self._http = http
            self._owns_http = False
            self.base_url = (base_url or str(http.base_url)).rstrip("/")
        else:
            self.base_url = (base_url or settings.api_base_url).rstrip("/")
            self._http = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=timeout if timeout is not None else settings.request_timeout_seconds,
                headers={"Content-Type": "application/json"},
            )
            self._owns_http = True

    async def __aenter__(self) -> ApiClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        auth: AuthMode = AuthMode.REQUIRED,
    ) -> Any:
        """Send one request and return the decoded JSON body (``{}`` if empty).

        Raises:
            AuthorizationError: 401/403, or ``auth=REQUIRED`` with no credential.
            NotFoundError: 404.
            SubmissionRejected: other 4xx.
            TransientServerError: 5xx, 429, timeouts, connection failures.
        """
        headers: dict[str, str] = {}
        token = self.credentials.current_credential() if auth is not AuthMode.NONE else None
        if auth is AuthMode.REQUIRED and not token:
            raise AuthorizationError("You must log in to do that.")
        if token:
            headers["Authorization"] = f"Bearer {token}"

        logger.debug("%s %s", method, path)
        try:
            response = await self._http.request(method, path, json=json, headers=headers)
        except httpx.TimeoutException as exc:
            logger.error("Request timed out: %s %s", method, path)
            raise TransientServerError(f"Request timed out: {exc}") from exc
        except httpx.RequestError as exc:
            logger.error("No response received from server: %s", exc)
            raise TransientServerError(f"Network error: {exc}") from exc

        if response.is_error:
            raise self._handle_error(response)

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise ApiError("Backend returned a non-JSON body", response.status_code) from exc

    async def request_model(
        self,
        method: str,
        path: str,
        model: type[ModelT],
        *,
        json: Any = None,
        auth: AuthMode = AuthMode.REQUIRED,
    ) -> ModelT:
        """Like :meth:`request` but validates the body into ``model``."""
        data = await self.request(method, path, json=json, auth=auth)
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            raise ApiError(f"Unexpected response shape from {path}: {exc}") from exc

    def _handle_error(self, response: httpx.Response) -> ApiError:
        error = error_from_response(response)
        status = response.status_code
        if status == 401:
            logger.warning("Unauthorized request - token may be expired")
            self.credentials.on_unauthorized()
        elif status == 403:
            logger.warning("Access forbidden: %s", error.message)
        elif status == 404:
            logger.warning("Resource not found: %s", response.request.url.path)
        elif status >= 500:
            logger.error("Server error occurred [%d]: %s", status, error.message)
        else:
            logger.warning("API error [%d]: %s", status, error.message)
        return error
