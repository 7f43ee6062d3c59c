"""Survey engine constants shared across the SDK.

These values are referenced by the dwell gate, the navigation controller,
and the instance-key helpers.  Pacing values can be overridden via
environment variables so that deployments (or demos) can tune the reading
time without code changes.
"""

import os

# Minimum reading time on a question's first visit, in countdown units.
# Overridable via SURVEY_DWELL_UNITS env var.
DWELL_UNITS = int(os.getenv("SURVEY_DWELL_UNITS", "3"))

# Length of one countdown unit in seconds.
# Overridable via SURVEY_DWELL_TICK_SECONDS env var.
DWELL_TICK_SECONDS = float(os.getenv("SURVEY_DWELL_TICK_SECONDS", "1.0"))

# How long an advisory stays visible before clearing itself.
ADVISORY_SECONDS = float(os.getenv("SURVEY_ADVISORY_SECONDS", "3.0"))
# The "answer all questions" advisory carries a count and stays up longer.
INCOMPLETE_ADVISORY_SECONDS = float(
    os.getenv("SURVEY_INCOMPLETE_ADVISORY_SECONDS", "4.0")
)

# Sentiment forms rotate monthly through this many catalogs (1..N).
SENTIMENT_FORM_COUNT = 4

# Storage namespaces keep the two call sites from ever sharing keys.
SENTIMENT_NAMESPACE = "sentiment"
HR_FEEDBACK_NAMESPACE = "hr_feedback"

# The HR feedback survey is a single, one-time instance.
HR_FEEDBACK_INSTANCE_KEY = "hr-feedback"

# Separator between a catalog id and its period in an instance key,
# e.g. "sentiment-form-2@2026-10".
INSTANCE_PERIOD_SEPARATOR = "@"

# Identity used when a call site has no explicit respondent id.
DEFAULT_IDENTITY = "default"

# Respondent-facing advisory texts, keyed by (reason, action).
ADVISORY_MESSAGES: dict[str, str] = {
    "dwell_next": (
        "Please take a moment to read the question carefully before proceeding."
    ),
    "dwell_submit": (
        "Please take a moment to read the question carefully before submitting."
    ),
    "unanswered_next": (
        "Please provide an answer before proceeding to the next question."
    ),
    "unanswered_submit": (
        "Please provide an answer to the current question before submitting."
    ),
    "incomplete": (
        "Please answer all {total} questions before submitting. "
        "You have answered {answered}/{total} questions."
    ),
}

# Fixed texts for the terminal and blocking views.
THANK_YOU_MESSAGE = "You have already submitted this survey. Thank you!"
SUBMITTED_MESSAGE = "Responses saved successfully!"
NO_QUESTIONS_MESSAGE = "No questions are configured for this survey."
PROGRESS_UNAVAILABLE_MESSAGE = (
    "Your progress cannot be saved right now. Please try again later."
)
