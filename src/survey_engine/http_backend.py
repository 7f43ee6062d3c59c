"""HttpSurveyBackend — SurveyBackend over the survey service's REST API.

Speaks the ``/api/v1/surveys/{instance_key}/...`` routes served by
``survey_server``.  Respondent identity travels in the ``X-Respondent-ID``
header; an optional bearer token is forwarded for deployments that sit
behind an authenticating gateway.

Transport and protocol failures are translated into the engine's error
taxonomy so the coordinator and loader can apply their fallbacks:

    status   → RemoteStatusUnreachable
    catalog  → CatalogUnavailable
    submit   → SubmissionFailure (carrying the server's message if any)
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from survey_engine.errors import CatalogUnavailable, RemoteStatusUnreachable, SubmissionFailure
from survey_engine.interfaces import SurveyBackend
from survey_engine.models.payload import SubmissionAck, SubmissionPayload
from survey_engine.models.session import RemoteCompletionRecord

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"
IDENTITY_HEADER = "X-Respondent-ID"


class HttpSurveyBackend(SurveyBackend):
    """REST client for the survey service.

    Args:
        client: an ``httpx.AsyncClient`` whose ``base_url`` points at the
            service; the caller owns its lifetime unless created through
            :meth:`from_url`
        token: optional bearer token sent on every request
    """

    def __init__(self, client: httpx.AsyncClient, *, token: str | None = None) -> None:
        self._client = client
        self._token = token

    @classmethod
    def from_url(
        cls, base_url: str, *, token: str | None = None, timeout: float = 10.0
    ) -> "HttpSurveyBackend":
        """Build a backend with its own client; call :meth:`aclose` when done."""
        return cls(httpx.AsyncClient(base_url=base_url, timeout=timeout), token=token)

    async def aclose(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # SurveyBackend
    # ------------------------------------------------------------------

    async def get_completion_status(
        self, identity: str, instance_key: str
    ) -> RemoteCompletionRecord:
        try:
            resp = await self._client.get(
                self._url(instance_key, "status"), headers=self._headers(identity),
            )
            resp.raise_for_status()
            data = resp.json()
            return RemoteCompletionRecord(is_complete=bool(data["is_complete"]))
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as exc:
            raise RemoteStatusUnreachable(
                f"Status check failed for {instance_key}: {exc}"
            ) from exc

    async def get_questions(self, instance_key: str) -> list[dict[str, Any]]:
        try:
            resp = await self._client.get(
                self._url(instance_key, "questions"), headers=self._headers(),
            )
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as exc:
            raise CatalogUnavailable(
                f"Failed to load questions (status {exc.response.status_code})"
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise CatalogUnavailable(f"Failed to load questions: {exc}") from exc

        questions = data.get("questions") if isinstance(data, dict) else None
        if not isinstance(questions, list):
            raise CatalogUnavailable("Failed to load questions: malformed response")
        return questions

    async def submit_answers(self, payload: SubmissionPayload) -> SubmissionAck:
        try:
            resp = await self._client.post(
                self._url(payload.survey_instance_key, "responses"),
                json=payload.model_dump(mode="json"),
                headers=self._headers(payload.identity),
            )
        except httpx.HTTPError as exc:
            raise SubmissionFailure("Network error") from exc

        body = _json_or_none(resp)
        if resp.is_success:
            try:
                return SubmissionAck.model_validate(body)
            except ValueError as exc:
                raise SubmissionFailure("Malformed submission response") from exc

        message = None
        if isinstance(body, dict):
            message = body.get("message") or body.get("detail")
        logger.warning(
            "Submission for %s rejected with status %d",
            payload.survey_instance_key, resp.status_code,
        )
        raise SubmissionFailure(
            str(message) if message else f"Submission failed (status {resp.status_code})"
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _url(instance_key: str, leaf: str) -> str:
        return f"{API_PREFIX}/surveys/{quote(instance_key, safe='')}/{leaf}"

    def _headers(self, identity: str | None = None) -> dict[str, str]:
        headers: dict[str, str] = {}
        if identity is not None:
            headers[IDENTITY_HEADER] = identity
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers


def _json_or_none(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return None
