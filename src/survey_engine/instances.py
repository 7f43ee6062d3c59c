"""Survey instance keys — which concrete survey a respondent is taking.

Instance keys have the shape ``{catalog_id}`` or ``{catalog_id}@{period}``.
The catalog id selects the question set; the optional period makes each
rotation its own instance so that last year's March submission does not
count for this year's March form.

    sentiment: "sentiment-form-{1..4}@YYYY-MM", form = (month - 1) % 4 + 1
    HR feedback: "hr-feedback" (one-time, never rotates)

Both key functions are pure functions of the supplied time so callers can
inject them and tests never need to fake the clock.
"""

from datetime import datetime

from survey_engine.constants import (
    HR_FEEDBACK_INSTANCE_KEY,
    INSTANCE_PERIOD_SEPARATOR,
    SENTIMENT_FORM_COUNT,
)


def sentiment_form_id(now: datetime) -> int:
    """Rotating form number 1..SENTIMENT_FORM_COUNT for the month of ``now``."""
    return (now.month - 1) % SENTIMENT_FORM_COUNT + 1


def sentiment_instance_key(now: datetime) -> str:
    """Instance key of the sentiment survey running during ``now``'s month."""
    return (
        f"sentiment-form-{sentiment_form_id(now)}"
        f"{INSTANCE_PERIOD_SEPARATOR}{now:%Y-%m}"
    )


def hr_feedback_instance_key(now: datetime | None = None) -> str:
    """Instance key of the HR feedback survey; ``now`` is ignored."""
    return HR_FEEDBACK_INSTANCE_KEY


def catalog_id_for(instance_key: str) -> str:
    """Strip the period suffix: ``"sentiment-form-2@2026-10"`` → ``"sentiment-form-2"``."""
    return instance_key.split(INSTANCE_PERIOD_SEPARATOR, 1)[0]
