"""Reward configuration, settlement history, balances and streaks."""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy.orm import Mapped, mapped_column

from gameia.extensions import db


class RewardConfigRecord(db.Model):
    """Admin-editable reward config per activity type; org rows override global ones."""

    __tablename__ = "reward_config"
    __table_args__ = (
        db.Index("ix_reward_config_activity_org", "activity_type", "organization_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    activity_type: Mapped[str] = mapped_column(db.String(128), nullable=False)
    organization_id: Mapped[str | None] = mapped_column(db.String(64))
    config: Mapped[dict] = mapped_column(db.JSON, nullable=False, default=dict)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, onupdate=datetime.utcnow)


class RewardTransaction(db.Model):
    """One settled reward. Zero-value rows record why nothing was paid."""

    __tablename__ = "reward_transaction"
    __table_args__ = (
        db.Index("ix_reward_transaction_user_created_at", "user_id", "created_at"),
        db.Index("ix_reward_transaction_user_source", "user_id", "source_type", "source_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(db.String(64), nullable=False)
    organization_id: Mapped[str | None] = mapped_column(db.String(64), index=True)
    source_type: Mapped[str] = mapped_column(db.String(32), nullable=False)
    source_id: Mapped[str] = mapped_column(db.String(128), nullable=False)
    attempt_id: Mapped[str | None] = mapped_column(db.String(128))
    xp: Mapped[int] = mapped_column(default=0, nullable=False)
    coins: Mapped[int] = mapped_column(default=0, nullable=False)
    target_met: Mapped[bool] = mapped_column(default=True, nullable=False)
    participation: Mapped[bool] = mapped_column(default=False, nullable=False)
    reason: Mapped[str | None] = mapped_column(db.String(64))
    meta: Mapped[dict] = mapped_column("metadata", db.JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)


class UserBalance(db.Model):
    """XP/coin totals. Only ever changed by additive updates."""

    __tablename__ = "user_balance"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(db.String(64), unique=True, nullable=False)
    organization_id: Mapped[str | None] = mapped_column(db.String(64), index=True)
    xp: Mapped[int] = mapped_column(default=0, nullable=False)
    coins: Mapped[int] = mapped_column(default=0, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)


class UserStreak(db.Model):
    __tablename__ = "user_streak"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(db.String(64), unique=True, nullable=False)
    organization_id: Mapped[str | None] = mapped_column(db.String(64))
    current_streak: Mapped[int] = mapped_column(default=0, nullable=False)
    longest_streak: Mapped[int] = mapped_column(default=0, nullable=False)
    total_active_days: Mapped[int] = mapped_column(default=0, nullable=False)
    last_active_date: Mapped[date | None] = mapped_column(db.Date)
    updated_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, onupdate=datetime.utcnow)
