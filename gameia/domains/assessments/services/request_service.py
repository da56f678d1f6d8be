"""Contextual assessment suggestions and the requests that accept them."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Set, Tuple

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from gameia.core.errors import PersistenceError, ValidationError
from gameia.domains.activity.models.activity_models import ActivityEventRecord
from gameia.domains.activity.schemas.activity_schemas import SourceType
from gameia.domains.assessments.events import (
    ASSESSMENTS_REQUEST_COMPLETED,
    ASSESSMENTS_REQUEST_CREATED,
)
from gameia.domains.assessments.models.assessment_models import (
    REQUEST_COMPLETED,
    REQUEST_OPEN,
    AssessmentSubmission,
    ContextualAssessmentRequest,
)
from gameia.domains.assessments.schemas.assessment_schemas import AssessmentSuggestion, AssessmentType
from gameia.domains.pdi.models.pdi_models import GOAL_COMPLETED, DevelopmentGoal, DevelopmentPlan
from gameia.extensions import db
from gameia.platform.outbox import enqueue as enqueue_outbox

logger = logging.getLogger(__name__)

SUGGEST_POST_ACTIVITY = "post_activity"
SUGGEST_GOAL_REVIEW = "goal_review"
CONTEXT_PDI_GOAL = "pdi_goal"

_ASSESSABLE_SOURCES = (
    SourceType.TRAINING.value,
    SourceType.MODULE.value,
    SourceType.CHALLENGE.value,
)


def _handled_contexts(user_id: str) -> Set[str]:
    """Context ids the user already assessed or agreed to assess."""
    submitted = db.session.query(AssessmentSubmission.context_id).filter(
        AssessmentSubmission.user_id == user_id,
        AssessmentSubmission.context_id.isnot(None),
    )
    requested = db.session.query(ContextualAssessmentRequest.origin_id).filter(
        ContextualAssessmentRequest.user_id == user_id,
        ContextualAssessmentRequest.origin_id.isnot(None),
    )
    return {row[0] for row in submitted.all()} | {row[0] for row in requested.all()}


def suggest_assessments(
    user_id: str,
    *,
    now: Optional[datetime] = None,
    window_days: Optional[int] = None,
    limit: int = 10,
) -> List[AssessmentSuggestion]:
    """
    Suggest assessments tied to what the user recently finished.

    Completed trainings, modules and challenges that touched skills come
    first (priority 1), then goals completed in the window (priority 2).
    Contexts already assessed or requested are left out. Nothing is stored.
    """
    now = now or datetime.utcnow()
    days = int(window_days or current_app.config.get("ASSESSMENT_SUGGESTION_WINDOW_DAYS", 14))
    if days < 1:
        raise ValidationError("window_days must be positive", details={"field": "window_days"})
    since = now - timedelta(days=days)
    handled = _handled_contexts(user_id)
    found: Dict[Tuple[str, str], AssessmentSuggestion] = {}

    activities = (
        ActivityEventRecord.query.filter(
            ActivityEventRecord.user_id == user_id,
            ActivityEventRecord.source_type.in_(_ASSESSABLE_SOURCES),
            ActivityEventRecord.occurred_at >= since,
            ActivityEventRecord.occurred_at <= now,
        )
        .order_by(ActivityEventRecord.occurred_at.desc())
        .all()
    )
    for record in activities:
        key = (record.source_type, record.source_id)
        if not record.skill_ids or record.source_id in handled or key in found:
            continue
        found[key] = AssessmentSuggestion(
            suggestion_type=SUGGEST_POST_ACTIVITY,
            context_type=record.source_type,
            context_id=record.source_id,
            priority=1,
            reason=f"You completed {record.source_name or record.source_id}; rate how these skills changed.",
            skill_ids=list(record.skill_ids),
        )

    goals = (
        DevelopmentGoal.query.join(DevelopmentPlan, DevelopmentGoal.plan_id == DevelopmentPlan.id)
        .filter(
            DevelopmentPlan.user_id == user_id,
            DevelopmentGoal.status == GOAL_COMPLETED,
            DevelopmentGoal.skill_id.isnot(None),
            DevelopmentGoal.updated_at >= since,
        )
        .order_by(DevelopmentGoal.updated_at.desc())
        .all()
    )
    for goal in goals:
        context_id = str(goal.id)
        if context_id in handled:
            continue
        found[(CONTEXT_PDI_GOAL, context_id)] = AssessmentSuggestion(
            suggestion_type=SUGGEST_GOAL_REVIEW,
            context_type=CONTEXT_PDI_GOAL,
            context_id=context_id,
            priority=2,
            reason=f"Goal '{goal.title}' is complete; check where {goal.skill_id} stands now.",
            skill_ids=[goal.skill_id],
        )

    # sorted() is stable, so newest stays first within a priority.
    return sorted(found.values(), key=lambda s: s.priority)[:limit]


def create_request(
    user_id: str,
    origin_type: str,
    origin_id: Optional[str],
    skill_ids: Iterable[str],
    *,
    assessment_type: str = AssessmentType.SELF.value,
    organization_id: Optional[str] = None,
    consequence_id: Optional[int] = None,
    commit: bool = True,
) -> ContextualAssessmentRequest:
    skill_ids = list(dict.fromkeys(skill_ids or []))
    if not origin_type:
        raise ValidationError("origin_type is required", details={"field": "context_type"})
    if not skill_ids:
        raise ValidationError("skill_ids are required", details={"field": "skill_ids"})
    try:
        assessment_type = AssessmentType(assessment_type).value
    except ValueError:
        raise ValidationError(
            f"Unknown assessment_type: {assessment_type}", details={"field": "assessment_type"}
        ) from None

    request = ContextualAssessmentRequest(
        user_id=user_id,
        organization_id=organization_id,
        origin_type=origin_type,
        origin_id=origin_id,
        assessment_type=assessment_type,
        skill_ids=skill_ids,
        consequence_id=consequence_id,
        status=REQUEST_OPEN,
    )
    try:
        db.session.add(request)
        db.session.flush()
        enqueue_outbox(
            ASSESSMENTS_REQUEST_CREATED,
            {
                "request_id": request.id,
                "user_id": user_id,
                "origin_type": origin_type,
                "origin_id": origin_id,
                "skill_ids": skill_ids,
            },
            user_id=user_id,
            organization_id=organization_id,
        )
        if commit:
            db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Assessment request not saved (user=%s)", user_id)
        raise PersistenceError("Assessment request not saved") from exc
    return request


def complete_requests(
    user_id: str,
    context_id: str,
    assessment_id: int,
    *,
    organization_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> List[ContextualAssessmentRequest]:
    """Close the user's open requests for ``context_id``. Caller commits."""
    now = now or datetime.utcnow()
    closed = (
        ContextualAssessmentRequest.query.filter_by(
            user_id=user_id, origin_id=context_id, status=REQUEST_OPEN
        ).all()
    )
    for request in closed:
        request.status = REQUEST_COMPLETED
        request.assessment_id = assessment_id
        request.completed_at = now
        enqueue_outbox(
            ASSESSMENTS_REQUEST_COMPLETED,
            {"request_id": request.id, "user_id": user_id, "assessment_id": assessment_id},
            user_id=user_id,
            organization_id=organization_id,
        )
    return closed


def list_requests(user_id: str, status: Optional[str] = REQUEST_OPEN, limit: int = 50) -> List[ContextualAssessmentRequest]:
    query = ContextualAssessmentRequest.query.filter_by(user_id=user_id)
    if status:
        query = query.filter_by(status=status)
    return (
        query.order_by(ContextualAssessmentRequest.created_at.desc(), ContextualAssessmentRequest.id.desc())
        .limit(limit)
        .all()
    )
