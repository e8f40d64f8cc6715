from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from config import settings
from schemas.submission import ProposalPayload, ProposalSubmit

logger = logging.getLogger(__name__)

SUBMIT_PATH = "/api/proposals/submit"


class SubmissionFailed(Exception):
    """The gate did not accept the proposal; nothing changed locally, the caller may retry."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def already_submitted(self) -> bool:
        return self.status_code == 409


class SubmissionClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url or settings.gate_api_url
        self.timeout = timeout if timeout is not None else settings.submission_timeout_seconds
        self.transport = transport

    async def submit(self, proposal_id: str, payload: ProposalPayload) -> dict[str, Any]:
        body = ProposalSubmit(proposal_id=proposal_id, payload=payload).model_dump(
            mode="json", by_alias=True, exclude_none=True
        )
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self.transport
            ) as client:
                response = await client.post(SUBMIT_PATH, json=body)
        except httpx.HTTPError as e:
            logger.warning("Submission of %s failed: %s", proposal_id, e)
            raise SubmissionFailed(f"Failed to submit proposal: {e}") from e

        if response.status_code >= 400:
            message = _error_message(response)
            logger.warning("Submission of %s rejected (%s): %s", proposal_id, response.status_code, message)
            raise SubmissionFailed(message, status_code=response.status_code)
        return response.json()


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"Failed to submit proposal (HTTP {response.status_code})"
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return f"Failed to submit proposal (HTTP {response.status_code})"
