"""Assessment submissions and the follow-ups they generate."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Mapped, mapped_column

from gameia.extensions import db

CONSEQUENCE_PENDING = "pending"
CONSEQUENCE_ACCEPTED = "accepted"
CONSEQUENCE_DISMISSED = "dismissed"

REQUEST_OPEN = "open"
REQUEST_COMPLETED = "completed"


class AssessmentSubmission(db.Model):
    __tablename__ = "assessment_submission"
    __table_args__ = (db.Index("ix_assessment_submission_user_created_at", "user_id", "created_at"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(db.String(64), nullable=False)
    evaluator_id: Mapped[str | None] = mapped_column(db.String(64))
    organization_id: Mapped[str | None] = mapped_column(db.String(64), index=True)
    assessment_type: Mapped[str] = mapped_column(db.String(32), nullable=False)
    context_id: Mapped[str | None] = mapped_column(db.String(128))
    responses: Mapped[dict] = mapped_column(db.JSON, nullable=False, default=dict)
    total_score: Mapped[float | None] = mapped_column(db.Float)
    skill_scores: Mapped[dict] = mapped_column(db.JSON, nullable=False, default=dict)
    skill_ids: Mapped[list] = mapped_column(db.JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)


class AssessmentConsequence(db.Model):
    """Suggested follow-up. ``pending`` until accepted or dismissed, both terminal."""

    __tablename__ = "assessment_consequence"
    __table_args__ = (
        db.Index("ix_assessment_consequence_user_status", "user_id", "status"),
        db.Index("ix_assessment_consequence_dedupe", "user_id", "consequence_type", "target_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(db.String(64), nullable=False)
    organization_id: Mapped[str | None] = mapped_column(db.String(64))
    assessment_type: Mapped[str | None] = mapped_column(db.String(32))
    assessment_id: Mapped[int | None] = mapped_column(db.ForeignKey("assessment_submission.id"))
    consequence_type: Mapped[str] = mapped_column(db.String(32), nullable=False)
    target_type: Mapped[str | None] = mapped_column(db.String(32))
    target_id: Mapped[str | None] = mapped_column(db.String(128))
    title: Mapped[str] = mapped_column(db.String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(db.Text)
    priority: Mapped[int] = mapped_column(nullable=False, default=1)
    skill_ids: Mapped[list] = mapped_column(db.JSON, nullable=False, default=list)
    status: Mapped[str] = mapped_column(db.String(16), nullable=False, default=CONSEQUENCE_PENDING)
    meta: Mapped[dict] = mapped_column("metadata", db.JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)
    accepted_at: Mapped[datetime | None] = mapped_column()
    dismissed_at: Mapped[datetime | None] = mapped_column()


class ContextualAssessmentRequest(db.Model):
    """
    An assessment the user agreed to take about something they just did.

    ``origin_type``/``origin_id`` name that context (a training, a completed
    goal, an accepted consequence). The request stays ``open`` until a
    submission arrives with ``context_id == origin_id``.
    """

    __tablename__ = "contextual_assessment_request"
    __table_args__ = (
        db.Index("ix_contextual_assessment_request_user_status", "user_id", "status"),
        db.Index("ix_contextual_assessment_request_origin", "user_id", "origin_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(db.String(64), nullable=False)
    organization_id: Mapped[str | None] = mapped_column(db.String(64))
    origin_type: Mapped[str] = mapped_column(db.String(32), nullable=False)
    origin_id: Mapped[str | None] = mapped_column(db.String(128))
    assessment_type: Mapped[str] = mapped_column(db.String(32), nullable=False, default="self")
    skill_ids: Mapped[list] = mapped_column(db.JSON, nullable=False, default=list)
    consequence_id: Mapped[int | None] = mapped_column(db.ForeignKey("assessment_consequence.id"))
    assessment_id: Mapped[int | None] = mapped_column(db.ForeignKey("assessment_submission.id"))
    status: Mapped[str] = mapped_column(db.String(16), nullable=False, default=REQUEST_OPEN)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)
    completed_at: Mapped[datetime | None] = mapped_column()
