"""Skill impact log."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Mapped, mapped_column

from gameia.extensions import db


class SkillImpactEvent(db.Model):
    """One contribution toward a (user, skill) score. Insert-only."""

    __tablename__ = "skill_impact_event"
    __table_args__ = (
        db.Index("ix_skill_impact_user_skill_created_at", "user_id", "skill_id", "created_at"),
        db.Index("ix_skill_impact_source", "source_type", "source_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(db.String(64), index=True, nullable=False)
    organization_id: Mapped[str | None] = mapped_column(db.String(64), index=True)
    skill_id: Mapped[str] = mapped_column(db.String(64), nullable=False)
    source_type: Mapped[str] = mapped_column(db.String(32), nullable=False)
    source_id: Mapped[str | None] = mapped_column(db.String(128))
    impact_type: Mapped[str] = mapped_column(db.String(32), nullable=False)
    impact_value: Mapped[float] = mapped_column(db.Float, nullable=False, default=0)
    normalized_score: Mapped[float | None] = mapped_column(db.Float)
    meta: Mapped[dict] = mapped_column("metadata", db.JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, index=True)
