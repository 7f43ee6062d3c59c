"""StoredEntry ORM model — one row per client key/value entry.

Backs :class:`survey_db.store.SqlKeyValueStore`, the durable store that
keeps in-progress survey sessions and "already submitted" flags across
reloads when the engine runs server-side.
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column

from survey_db.models.base import Base


class StoredEntry(Base):
    __tablename__ = "session_store_entries"

    # Namespaced key, e.g. "sentiment:e-42:sentiment-form-2@2026-10:session"
    key: Mapped[str] = mapped_column(Text, primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<StoredEntry key={self.key!r}>"
