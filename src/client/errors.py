"""Exception taxonomy for submission, tracking, and admin calls.

Backend failures derive from :class:`ApiError`.  Local conditions that
never reach the network (invalid drafts, duplicate submits, artifacts that
are not ready yet) have their own classes.  A stalled pipeline is not an
error and has no exception here.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.composition.validator import ValidationResult


class ApiError(Exception):
    """A backend call failed."""

    retryable = False

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class SubmissionRejected(ApiError):
    """The backend rejected the request (validation, policy, malformed input).

    ``field_errors`` uses local field paths so it can be merged into the
    same error surface as pre-submission validation.  After a failed
    submit, ``validation`` holds that merged result.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        field_errors: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, status_code)
        self.field_errors: dict[str, str] = dict(field_errors or {})
        self.validation: ValidationResult | None = None


class AuthorizationError(ApiError):
    """401/403, or a credential-only call made without a credential."""

    @property
    def requires_login(self) -> bool:
        return self.status_code != 403

    @property
    def user_message(self) -> str:
        if self.requires_login:
            return "You must log in to do that."
        return "You do not have permission to do that."


class TransientServerError(ApiError):
    """5xx, rate limiting, or a network failure.  Safe to retry manually."""

    retryable = True


class NotFoundError(ApiError):
    """The requested record does not exist (any more)."""


class DraftInvalid(Exception):
    """Local validation failed; nothing was sent."""

    def __init__(self, result: ValidationResult) -> None:
        super().__init__(f"Draft has {len(result.field_errors)} validation error(s)")
        self.result = result


class SubmissionInProgress(Exception):
    """A submit for this draft is already waiting on the backend."""


class DraftAlreadySubmitted(Exception):
    """The draft was already accepted; submitting again needs ``allow_duplicate=True``."""


class ArtifactNotReady(Exception):
    """The queue record has not reached ``done`` so there is nothing to stream."""


class InvalidRecordId(ValueError):
    """An id that can never exist (not a positive integer)."""


class InvalidQueueId(InvalidRecordId):
    pass


class InvalidMeditationId(InvalidRecordId):
    pass
