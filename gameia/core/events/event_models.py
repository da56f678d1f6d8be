"""Persistent core event ledger."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Mapped, mapped_column

from gameia.extensions import db


class CoreEvent(db.Model):
    """Append-only record of XP-bearing happenings (never updated)."""

    __tablename__ = "core_event"
    __table_args__ = (
        db.Index("ix_core_event_user_created_at", "user_id", "created_at"),
        db.Index("ix_core_event_user_event_type", "user_id", "event_type"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str | None] = mapped_column(db.String(64), index=True)
    organization_id: Mapped[str | None] = mapped_column(db.String(64), index=True)
    event_type: Mapped[str] = mapped_column(db.String(128), index=True, nullable=False)
    xp_earned: Mapped[int] = mapped_column(default=0, nullable=False)
    coins_earned: Mapped[int] = mapped_column(default=0, nullable=False)
    payload: Mapped[dict] = mapped_column(db.JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, index=True)
