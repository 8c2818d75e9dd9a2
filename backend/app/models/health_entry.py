from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin


class HealthEntry(Base, TimestampMixin):
    """A logged meal, lab result or symptom.

    The type-specific fields live in ``data`` so that all three categories
    share one table and one "most recent" query.
    """

    __tablename__ = "health_entries"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    entry_type: Mapped[str] = mapped_column(
        String(20), nullable=False,
        comment="meal, lab_result, symptom"
    )
    data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
        comment="When the user says the entry happened"
    )

    __table_args__ = (
        Index("ix_health_entries_user_type_recorded", "user_id", "entry_type", "recorded_at"),
    )

    def __repr__(self) -> str:
        return f"<HealthEntry(id={self.id}, user_id='{self.user_id}', type='{self.entry_type}')>"
