"""Abstract interfaces for the engine's external collaborators.

These ABCs define the contract that concrete implementations must fulfil.
The SDK ships an HTTP backend (``survey_engine.http_backend``), an in-memory
store (``survey_engine.storage``) and a SQL store (``survey_db.store``);
tests substitute in-memory fakes.

Typical integration flow::

    backend: SurveyBackend = HttpSurveyBackend(client)
    store: KeyValueStore = SqlKeyValueStore(get_session_factory())

    engine = open_sentiment_survey(backend, store, employee_id="e-42")
    view = await engine.start()
    # ... render view, forward respondent intents ...
    view = await engine.answer(view.current_question.id, "Great team")
    view = await engine.next_question()
"""

from abc import ABC, abstractmethod
from typing import Any

from survey_engine.models.payload import SubmissionAck, SubmissionPayload
from survey_engine.models.session import RemoteCompletionRecord


class SurveyBackend(ABC):
    """Interface for the remote survey service.

    Implementations may raise any exception on transport failure; the
    engine components translate those into its own error taxonomy.
    """

    @abstractmethod
    async def get_completion_status(
        self, identity: str, instance_key: str
    ) -> RemoteCompletionRecord:
        """Return whether ``identity`` already completed ``instance_key``.

        Parameters
        ----------
        identity:
            Opaque respondent key, scoped by the calling survey type.
        instance_key:
            The concrete survey instance, e.g. ``"sentiment-form-2@2026-10"``.
        """
        ...

    @abstractmethod
    async def get_questions(self, instance_key: str) -> list[dict[str, Any]]:
        """Return the raw, ordered question catalog for ``instance_key``.

        An empty list is a valid answer ("no questions configured").  The
        entries are parsed by :class:`~survey_engine.catalog.CatalogLoader`.
        """
        ...

    @abstractmethod
    async def submit_answers(self, payload: SubmissionPayload) -> SubmissionAck:
        """Transmit a completed survey.

        Must be safe to call more than once with an identical payload; the
        service is expected to treat a repeat as a no-op success.
        """
        ...


class KeyValueStore(ABC):
    """Durable string key/value storage that survives reloads.

    Every call completes its write before returning; there is no queue and
    no coalescing.  Values are opaque strings (the engine stores JSON).
    """

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the stored value, or ``None`` when absent."""
        ...

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Create or overwrite ``key``."""
        ...

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Delete ``key``; removing an absent key is not an error."""
        ...
