"""Submission of a composed meditation draft to the generation backend."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from src.api.models import CreateMeditationRequest, CreateMeditationResponse
from src.client.errors import (
    ApiError,
    DraftAlreadySubmitted,
    DraftInvalid,
    SubmissionInProgress,
    SubmissionRejected,
)
from src.client.http import ApiClient, AuthMode
from src.composition.models import MeditationDraft
from src.composition.validator import CompositionValidator

logger = logging.getLogger(__name__)

CREATE_PATH = "/meditations/create"


@dataclass(frozen=True)
class SubmissionReceipt:
    """Handle for an accepted generation job."""

    queue_id: int
    file_path: str
    message: str = ""


class SubmissionClient:
    """Posts validated drafts to the backend.

    Exactly one network call is made per :meth:`submit`; nothing is
    retried automatically, since a retry could create a second (billed)
    generation job.
    """

    def __init__(self, api: ApiClient, validator: CompositionValidator) -> None:
        self.api = api
        self.validator = validator
        self._in_flight: set[int] = set()

    def is_submitting(self, draft: MeditationDraft) -> bool:
        return id(draft) in self._in_flight

    async def submit(
        self, draft: MeditationDraft, *, allow_duplicate: bool = False
    ) -> SubmissionReceipt:
        """Validate ``draft`` again, send it, and return the queue handle.

        Raises:
            DraftInvalid: local validation failed; nothing was sent.
            SubmissionInProgress: a submit for this draft has not resolved yet.
            DraftAlreadySubmitted: the draft was accepted before and
                ``allow_duplicate`` is False.
            SubmissionRejected: the backend refused the draft; ``validation``
                holds the local result merged with the server's field errors.
            AuthorizationError: not logged in (401) or not allowed (403).
            TransientServerError: 5xx or network failure.
        """
        key = id(draft)
        if key in self._in_flight:
            raise SubmissionInProgress("This meditation is already being submitted")
        if draft.submitted and not allow_duplicate:
            raise DraftAlreadySubmitted("This meditation was already submitted")

        result = self.validator.validate(draft)
        if not result.valid:
            raise DraftInvalid(result)

        payload = CreateMeditationRequest.from_draft(draft).model_dump(
            by_alias=True, mode="json", exclude_none=True
        )

        self._in_flight.add(key)
        try:
            logger.info(
                "Submitting meditation %r with %d segment(s)",
                draft.title.strip(),
                len(draft.sequence),
            )
            try:
                response = await self.api.request_model(
                    "POST", CREATE_PATH, CreateMeditationResponse, json=payload, auth=AuthMode.REQUIRED
                )
            except SubmissionRejected as exc:
                exc.validation = result.merged(exc.field_errors)
                logger.warning(
                    "Backend rejected meditation %r: %s", draft.title.strip(), exc.message
                )
                raise
        finally:
            self._in_flight.discard(key)

        # The job exists once the backend answers 2xx
        draft.submitted = True
        if not response.file_path:
            raise ApiError(
                f"Backend accepted the meditation as job {response.queue_id} but returned no file path"
            )

        logger.info("Meditation queued as job %d (%s)", response.queue_id, response.file_path)
        return SubmissionReceipt(
            queue_id=response.queue_id,
            file_path=response.file_path,
            message=response.message,
        )
