"""SurveySubmission ORM model — one row per accepted survey submission.

The (respondent_id, instance_key) pair is unique: a respondent completes a
given survey instance at most once.  ``payload_digest`` lets the server
recognise an identical resubmission (a client retry after a lost response)
and acknowledge it instead of rejecting it.
"""

import uuid
from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy import DateTime, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from survey_db.models.base import Base, JSONType


class SurveySubmission(Base):
    __tablename__ = "survey_submissions"

    id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, primary_key=True, default=uuid.uuid4,
    )
    respondent_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    instance_key: Mapped[str] = mapped_column(Text, nullable=False)

    # [{"question_id": ..., "answer_text"|"option_value"|"amount": ...}, ...]
    answers: Mapped[list] = mapped_column(JSONType, nullable=False)
    # sha256 hex of the canonical answers JSON
    payload_digest: Mapped[str] = mapped_column(String(64), nullable=False)

    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        UniqueConstraint(
            "respondent_id", "instance_key", name="uq_submission_respondent_instance",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<SurveySubmission respondent={self.respondent_id!r} "
            f"instance={self.instance_key!r}>"
        )
