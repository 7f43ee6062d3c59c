"""The two call sites: monthly sentiment survey and one-time HR feedback.

Both build the same :class:`SurveyEngine`; they differ only in storage
namespace, identity scoping and how the instance key is chosen.

Usage::

    engine = open_sentiment_survey(backend, store, employee_id="e-42")
    view = await engine.start()

    hr = open_hr_feedback_survey(backend, store, hr_user_id="hr-7")
    view = await hr.start()
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable

from survey_engine.constants import (
    DEFAULT_IDENTITY,
    HR_FEEDBACK_NAMESPACE,
    SENTIMENT_NAMESPACE,
)
from survey_engine.controller import SurveyEngine
from survey_engine.instances import hr_feedback_instance_key, sentiment_instance_key
from survey_engine.interfaces import KeyValueStore, SurveyBackend

KeyFunction = Callable[[datetime], str]


def open_sentiment_survey(
    backend: SurveyBackend,
    store: KeyValueStore,
    *,
    employee_id: str | None = None,
    now: datetime | None = None,
    key_fn: KeyFunction = sentiment_instance_key,
    **engine_options: Any,
) -> SurveyEngine:
    """Engine for this month's rotating sentiment form.

    ``employee_id`` scopes the session; when omitted the respondent is the
    signed-in employee and the shared ``"default"`` identity is used.
    Extra keyword arguments are passed to :class:`SurveyEngine`.
    """
    moment = now or datetime.now(timezone.utc)
    return SurveyEngine(
        backend,
        store,
        namespace=SENTIMENT_NAMESPACE,
        identity=employee_id or DEFAULT_IDENTITY,
        instance_key=key_fn(moment),
        **engine_options,
    )


def open_hr_feedback_survey(
    backend: SurveyBackend,
    store: KeyValueStore,
    *,
    hr_user_id: str,
    now: datetime | None = None,
    key_fn: KeyFunction = hr_feedback_instance_key,
    **engine_options: Any,
) -> SurveyEngine:
    """Engine for the one-time HR feedback survey of ``hr_user_id``."""
    if not hr_user_id:
        raise ValueError("hr_user_id is required for the HR feedback survey")
    moment = now or datetime.now(timezone.utc)
    return SurveyEngine(
        backend,
        store,
        namespace=HR_FEEDBACK_NAMESPACE,
        identity=hr_user_id,
        instance_key=key_fn(moment),
        **engine_options,
    )
