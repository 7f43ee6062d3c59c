"""Submission payload models shared by the engine, HTTP client and server.

The payload carries one entry per answered question.  Exactly one of the
value fields is set per entry, chosen by the question type:

    free_text       -> answer_text
    single_choice   -> option_value
    rating          -> option_value
    bounded_amount  -> amount
"""

from typing import List, Optional, Union

from pydantic import BaseModel


class AnswerEntry(BaseModel):
    """One answered question in a submission."""

    question_id: str
    answer_text: Optional[str] = None
    option_value: Optional[Union[int, str]] = None
    amount: Optional[Union[int, float]] = None

    def value(self) -> Union[int, float, str, None]:
        """Return whichever value field is set."""
        for candidate in (self.answer_text, self.option_value, self.amount):
            if candidate is not None:
                return candidate
        return None


class SubmissionPayload(BaseModel):
    """Everything the backend needs to record a completed survey."""

    identity: str
    survey_instance_key: str
    answers: List[AnswerEntry]


class SubmissionAck(BaseModel):
    """Backend response to a submission."""

    success: bool
    message: Optional[str] = None
