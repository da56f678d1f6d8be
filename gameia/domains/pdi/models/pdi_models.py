"""Development plans (PDI), goals, progress audit and linked actions."""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy.orm import Mapped, mapped_column, relationship

from gameia.extensions import db

PLAN_ACTIVE = "active"
PLAN_STATUSES = (PLAN_ACTIVE, "completed", "archived")

GOAL_NOT_STARTED = "not_started"
GOAL_IN_PROGRESS = "in_progress"
GOAL_COMPLETED = "completed"
GOAL_STATUSES = (GOAL_NOT_STARTED, GOAL_IN_PROGRESS, GOAL_COMPLETED)


class DevelopmentPlan(db.Model):
    __tablename__ = "development_plan"
    __table_args__ = (db.Index("ix_development_plan_user_status", "user_id", "status"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(db.String(64), nullable=False)
    organization_id: Mapped[str | None] = mapped_column(db.String(64), index=True)
    title: Mapped[str] = mapped_column(db.String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(db.Text)
    status: Mapped[str] = mapped_column(db.String(16), nullable=False, default=PLAN_ACTIVE)
    created_by: Mapped[str | None] = mapped_column(db.String(64))
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, onupdate=datetime.utcnow)

    goals: Mapped[list["DevelopmentGoal"]] = relationship(
        "DevelopmentGoal", back_populates="plan", order_by="DevelopmentGoal.id"
    )


class DevelopmentGoal(db.Model):
    """
    A target inside a plan. ``progress`` only moves forward through
    auto-progress; ``status`` is ``completed`` exactly at 100.
    """

    __tablename__ = "development_goal"

    id: Mapped[int] = mapped_column(primary_key=True)
    plan_id: Mapped[int] = mapped_column(db.ForeignKey("development_plan.id"), index=True, nullable=False)
    skill_id: Mapped[str | None] = mapped_column(db.String(64), index=True)
    title: Mapped[str] = mapped_column(db.String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(db.Text)
    target_date: Mapped[date | None] = mapped_column(db.Date)
    priority: Mapped[str] = mapped_column(db.String(16), nullable=False, default="medium")
    status: Mapped[str] = mapped_column(db.String(16), nullable=False, default=GOAL_NOT_STARTED)
    progress: Mapped[int] = mapped_column(nullable=False, default=0)
    linked_training_ids: Mapped[list] = mapped_column(db.JSON, nullable=False, default=list)
    linked_challenge_ids: Mapped[list] = mapped_column(db.JSON, nullable=False, default=list)
    linked_cognitive_test_ids: Mapped[list] = mapped_column(db.JSON, nullable=False, default=list)
    related_games: Mapped[list] = mapped_column(db.JSON, nullable=False, default=list)
    auto_progress_enabled: Mapped[bool | None] = mapped_column(default=True)
    xp_reward: Mapped[int | None] = mapped_column()
    weight: Mapped[float] = mapped_column(db.Float, nullable=False, default=1.0)
    last_auto_update: Mapped[datetime | None] = mapped_column()
    stagnant_since: Mapped[datetime | None] = mapped_column()
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)

    plan: Mapped[DevelopmentPlan] = relationship("DevelopmentPlan", back_populates="goals")


class GoalProgressEvent(db.Model):
    """Audit row per applied progress change. ``after - before == delta``."""

    __tablename__ = "goal_progress_event"
    __table_args__ = (db.Index("ix_goal_progress_event_goal_created_at", "goal_id", "created_at"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    goal_id: Mapped[int] = mapped_column(db.ForeignKey("development_goal.id"), nullable=False)
    user_id: Mapped[str] = mapped_column(db.String(64), index=True, nullable=False)
    organization_id: Mapped[str | None] = mapped_column(db.String(64))
    source_type: Mapped[str] = mapped_column(db.String(32), nullable=False)
    source_id: Mapped[str | None] = mapped_column(db.String(128))
    source_name: Mapped[str | None] = mapped_column(db.String(255))
    progress_before: Mapped[int] = mapped_column(nullable=False)
    progress_after: Mapped[int] = mapped_column(nullable=False)
    progress_delta: Mapped[int] = mapped_column(nullable=False)
    xp_earned: Mapped[int] = mapped_column(nullable=False, default=0)
    meta: Mapped[dict] = mapped_column("metadata", db.JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)


class PDILinkedAction(db.Model):
    """Suggested step toward a goal; pending until completed or dismissed."""

    __tablename__ = "pdi_linked_action"
    __table_args__ = (db.Index("ix_pdi_linked_action_user_pending", "user_id", "completed_at", "dismissed_at"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    goal_id: Mapped[int] = mapped_column(db.ForeignKey("development_goal.id"), index=True, nullable=False)
    user_id: Mapped[str] = mapped_column(db.String(64), nullable=False)
    organization_id: Mapped[str | None] = mapped_column(db.String(64))
    action_type: Mapped[str] = mapped_column(db.String(32), nullable=False)
    action_id: Mapped[str | None] = mapped_column(db.String(128))
    action_name: Mapped[str] = mapped_column(db.String(255), nullable=False)
    priority: Mapped[int] = mapped_column(nullable=False, default=2)
    expected_progress_impact: Mapped[int | None] = mapped_column()
    meta: Mapped[dict] = mapped_column("metadata", db.JSON, nullable=False, default=dict)
    suggested_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)
    completed_at: Mapped[datetime | None] = mapped_column()
    dismissed_at: Mapped[datetime | None] = mapped_column()
