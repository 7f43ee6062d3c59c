"""Create session_store_entries and survey_submissions.

Revision ID: 20261018_initial
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

revision = "20261018_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "session_store_entries",
        sa.Column("key", sa.Text(), primary_key=True),
        sa.Column("value", sa.Text(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "survey_submissions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("respondent_id", sa.Text(), nullable=False),
        sa.Column("instance_key", sa.Text(), nullable=False),
        sa.Column(
            "answers", sa.JSON().with_variant(JSONB(), "postgresql"), nullable=False,
        ),
        sa.Column("payload_digest", sa.String(64), nullable=False),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint(
            "respondent_id", "instance_key", name="uq_submission_respondent_instance",
        ),
    )
    op.create_index(
        "ix_survey_submissions_respondent_id", "survey_submissions", ["respondent_id"],
    )


def downgrade() -> None:
    op.drop_index("ix_survey_submissions_respondent_id", table_name="survey_submissions")
    op.drop_table("survey_submissions")
    op.drop_table("session_store_entries")
