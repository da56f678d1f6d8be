"""Activity event log (append-only)."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Mapped, mapped_column

from gameia.extensions import db


class ActivityEventRecord(db.Model):
    """Persisted ``ActivityEvent``. Rows are never updated or deleted."""

    __tablename__ = "activity_event"
    __table_args__ = (
        db.Index("ix_activity_event_user_occurred_at", "user_id", "occurred_at"),
        db.Index("ix_activity_event_source", "source_type", "source_id"),
        db.UniqueConstraint("idempotency_key", name="ux_activity_event_idempotency_key"),
    )

    id: Mapped[str] = mapped_column(db.String(32), primary_key=True)
    user_id: Mapped[str] = mapped_column(db.String(64), index=True, nullable=False)
    organization_id: Mapped[str | None] = mapped_column(db.String(64), index=True)
    event_type: Mapped[str] = mapped_column(db.String(64), nullable=False)
    source_type: Mapped[str] = mapped_column(db.String(32), nullable=False)
    source_id: Mapped[str] = mapped_column(db.String(128), nullable=False)
    source_name: Mapped[str | None] = mapped_column(db.String(255))
    score: Mapped[float | None] = mapped_column(db.Float)
    skill_ids: Mapped[list] = mapped_column(db.JSON, nullable=False, default=list)
    attempt_id: Mapped[str | None] = mapped_column(db.String(128))
    idempotency_key: Mapped[str | None] = mapped_column(db.String(512))
    meta: Mapped[dict] = mapped_column("metadata", db.JSON, nullable=False, default=dict)
    occurred_at: Mapped[datetime] = mapped_column(nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)
