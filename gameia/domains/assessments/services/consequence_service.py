"""Consequence generator and the accept/dismiss lifecycle."""

from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from gameia.core.errors import InvalidTransition, NotFoundError, PersistenceError
from gameia.domains.assessments.events import (
    ASSESSMENTS_CONSEQUENCE_ACCEPTED,
    ASSESSMENTS_CONSEQUENCE_DISMISSED,
    ASSESSMENTS_CONSEQUENCE_GENERATED,
)
from gameia.domains.assessments.models.assessment_models import (
    CONSEQUENCE_ACCEPTED,
    CONSEQUENCE_DISMISSED,
    CONSEQUENCE_PENDING,
    AssessmentConsequence,
)
from gameia.domains.assessments.schemas.assessment_schemas import AssessmentType, ConsequenceType
from gameia.domains.assessments.services.request_service import create_request
from gameia.domains.pdi.services.plan_service import (
    active_plan,
    add_linked_action,
    create_goal,
    create_plan,
    goal_for_skill,
)
from gameia.extensions import db
from gameia.platform.outbox import enqueue as enqueue_outbox

logger = logging.getLogger(__name__)

TARGET_SKILL = "skill"
TARGET_ASSESSMENT = "assessment"
ORIGIN_CONSEQUENCE = "consequence"

_PEER_VIEWS = (AssessmentType.PEER.value, AssessmentType.FEEDBACK_360.value)

# Linked actions sort ascending (1 first); consequences sort descending.
_ACTION_TYPE_BY_CONSEQUENCE = {
    ConsequenceType.TRAINING_SUGGESTION.value: "training",
    ConsequenceType.CHALLENGE.value: "challenge",
    ConsequenceType.ONE_ON_ONE.value: "one_on_one",
}


def _check_deadline(deadline: Optional[float]) -> None:
    if deadline is not None and time.monotonic() > deadline:
        raise TimeoutError("Consequence generation exceeded its time budget")


def _pending_exists(user_id: str, consequence_type: str, target_id: Optional[str]) -> bool:
    query = AssessmentConsequence.query.filter(
        AssessmentConsequence.user_id == user_id,
        AssessmentConsequence.consequence_type == consequence_type,
        AssessmentConsequence.status == CONSEQUENCE_PENDING,
    )
    if target_id is None:
        query = query.filter(AssessmentConsequence.target_id.is_(None))
    else:
        query = query.filter(AssessmentConsequence.target_id == target_id)
    return db.session.query(query.exists()).scalar()


def _plan_candidates(
    assessment_type: str,
    skill_scores: Dict[str, float],
    total_score: Optional[float],
    skill_ids: List[str],
) -> List[dict]:
    cfg = current_app.config
    low = cfg.get("CONSEQUENCE_LOW_SCORE", 60)
    critical = cfg.get("CONSEQUENCE_CRITICAL_SCORE", 40)
    strength = cfg.get("CONSEQUENCE_STRENGTH_SCORE", 85)

    candidates = []
    for skill_id, score in sorted(skill_scores.items()):
        if score < critical:
            candidates.append(
                {
                    "consequence_type": ConsequenceType.PDI_GOAL.value,
                    "target_type": TARGET_SKILL,
                    "target_id": skill_id,
                    "title": f"Create a development goal for {skill_id}",
                    "description": f"Scored {score:.0f}/100, below the critical threshold of {critical:.0f}.",
                    "priority": 3,
                    "skill_ids": [skill_id],
                }
            )
        elif score < low:
            candidates.append(
                {
                    "consequence_type": ConsequenceType.TRAINING_SUGGESTION.value,
                    "target_type": TARGET_SKILL,
                    "target_id": skill_id,
                    "title": f"Take a training on {skill_id}",
                    "description": f"Scored {score:.0f}/100, below {low:.0f}.",
                    "priority": 2,
                    "skill_ids": [skill_id],
                }
            )
        elif score >= strength:
            candidates.append(
                {
                    "consequence_type": ConsequenceType.INSIGHT.value,
                    "target_type": TARGET_SKILL,
                    "target_id": skill_id,
                    "title": f"{skill_id} is a strength",
                    "description": f"Scored {score:.0f}/100.",
                    "priority": 1,
                    "skill_ids": [skill_id],
                }
            )
        if assessment_type == AssessmentType.MANAGER.value and score < low:
            candidates.append(
                {
                    "consequence_type": ConsequenceType.ONE_ON_ONE.value,
                    "target_type": TARGET_SKILL,
                    "target_id": skill_id,
                    "title": f"Discuss {skill_id} in your next 1:1",
                    "description": "Development area flagged by your manager.",
                    "priority": 2,
                    "skill_ids": [skill_id],
                }
            )

    flagged = sorted(skill for skill, score in skill_scores.items() if score < low)
    if assessment_type in _PEER_VIEWS and flagged:
        candidates.append(
            {
                "consequence_type": ConsequenceType.ASSESSMENT_REQUEST.value,
                "target_type": TARGET_ASSESSMENT,
                "target_id": AssessmentType.SELF.value,
                "title": "Rate yourself on the skills your peers flagged",
                "description": f"{', '.join(flagged)} scored below {low:.0f}.",
                "priority": 1,
                "skill_ids": flagged,
            }
        )

    if not skill_scores and total_score is not None and total_score < low:
        candidates.append(
            {
                "consequence_type": ConsequenceType.CHALLENGE.value,
                "target_type": TARGET_ASSESSMENT,
                "target_id": assessment_type,
                "title": "Take on a practice challenge",
                "description": f"Overall score {total_score:.0f}/100.",
                "priority": 2,
                "skill_ids": list(skill_ids),
            }
        )
    return candidates


def generate_consequences(
    user_id: str,
    assessment_type: str,
    assessment_id: Optional[int],
    skill_scores: Dict[str, float],
    total_score: Optional[float] = None,
    skill_ids: Optional[Iterable[str]] = None,
    *,
    organization_id: Optional[str] = None,
    deadline: Optional[float] = None,
) -> List[AssessmentConsequence]:
    """
    Stage ``pending`` follow-ups for an assessment. A pending suggestion with
    the same type and target is not created twice. ``deadline`` is a
    ``time.monotonic()`` instant; passing it raises ``TimeoutError``.
    Caller commits.
    """
    created = []
    for candidate in _plan_candidates(assessment_type, skill_scores, total_score, list(skill_ids or [])):
        _check_deadline(deadline)
        if _pending_exists(user_id, candidate["consequence_type"], candidate["target_id"]):
            continue
        consequence = AssessmentConsequence(
            user_id=user_id,
            organization_id=organization_id,
            assessment_type=assessment_type,
            assessment_id=assessment_id,
            status=CONSEQUENCE_PENDING,
            **candidate,
        )
        db.session.add(consequence)
        db.session.flush()
        enqueue_outbox(
            ASSESSMENTS_CONSEQUENCE_GENERATED,
            {
                "consequence_id": consequence.id,
                "user_id": user_id,
                "consequence_type": consequence.consequence_type,
                "target_type": consequence.target_type,
                "target_id": consequence.target_id,
                "priority": consequence.priority,
            },
            user_id=user_id,
            organization_id=organization_id,
        )
        created.append(consequence)
    return created


def _get_consequence(user_id: str, consequence_id: int) -> AssessmentConsequence:
    consequence = AssessmentConsequence.query.filter_by(id=consequence_id, user_id=user_id).first()
    if not consequence:
        raise NotFoundError(f"Consequence {consequence_id} not found")
    return consequence


def _transition(consequence: AssessmentConsequence, status: str, now: datetime) -> None:
    """One-way pending -> ``status``; a concurrent transition loses."""
    values = {"status": status}
    values["accepted_at" if status == CONSEQUENCE_ACCEPTED else "dismissed_at"] = now
    result = db.session.execute(
        update(AssessmentConsequence)
        .where(
            AssessmentConsequence.id == consequence.id,
            AssessmentConsequence.status == CONSEQUENCE_PENDING,
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    db.session.expire(consequence)
    if result.rowcount != 1:
        raise InvalidTransition(
            "Consequence is no longer pending", details={"consequence_id": consequence.id}
        )


def _materialize(consequence: AssessmentConsequence, organization_id: Optional[str]) -> Dict[str, Optional[int]]:
    """Create the PDI item or assessment request an accepted consequence stands for."""
    created: Dict[str, Optional[int]] = {"goal_id": None, "action_id": None, "request_id": None}
    skill_id = (consequence.skill_ids or [None])[0]
    if consequence.consequence_type == ConsequenceType.ASSESSMENT_REQUEST.value:
        request = create_request(
            consequence.user_id,
            ORIGIN_CONSEQUENCE,
            str(consequence.id),
            consequence.skill_ids or [],
            assessment_type=consequence.target_id or AssessmentType.SELF.value,
            organization_id=organization_id,
            consequence_id=consequence.id,
            commit=False,
        )
        created["request_id"] = request.id
        return created
    if consequence.consequence_type == ConsequenceType.PDI_GOAL.value:
        plan = active_plan(consequence.user_id, organization_id)
        if plan is None:
            plan = create_plan(
                consequence.user_id, organization_id, title="Development plan", commit=False
            )
        goal = create_goal(
            consequence.user_id,
            plan.id,
            title=consequence.title,
            description=consequence.description,
            skill_id=skill_id,
            priority="high",
            commit=False,
        )
        created["goal_id"] = goal.id
        return created

    action_type = _ACTION_TYPE_BY_CONSEQUENCE.get(consequence.consequence_type)
    if action_type and skill_id:
        goal = goal_for_skill(consequence.user_id, skill_id)
        if goal is not None:
            action = add_linked_action(
                consequence.user_id,
                goal.id,
                action_type=action_type,
                action_name=consequence.title,
                action_id=consequence.target_id if consequence.target_type != TARGET_SKILL else None,
                priority=max(1, 4 - consequence.priority),
                organization_id=organization_id,
                metadata={"consequence_id": consequence.id},
                commit=False,
            )
            created.update(goal_id=goal.id, action_id=action.id)
    return created


def accept_consequence(
    user_id: str,
    consequence_id: int,
    *,
    organization_id: Optional[str] = None,
) -> AssessmentConsequence:
    consequence = _get_consequence(user_id, consequence_id)
    if consequence.status != CONSEQUENCE_PENDING:
        raise InvalidTransition("Consequence is no longer pending", details={"consequence_id": consequence_id})
    try:
        _transition(consequence, CONSEQUENCE_ACCEPTED, datetime.utcnow())
        created = _materialize(consequence, organization_id)
        consequence.meta = {**(consequence.meta or {}), **{k: v for k, v in created.items() if v}}
        enqueue_outbox(
            ASSESSMENTS_CONSEQUENCE_ACCEPTED,
            {
                "consequence_id": consequence.id,
                "user_id": user_id,
                "consequence_type": consequence.consequence_type,
                **created,
            },
            user_id=user_id,
            organization_id=organization_id,
        )
        db.session.commit()
    except InvalidTransition:
        db.session.rollback()
        raise
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Accepting consequence %s failed", consequence_id)
        raise PersistenceError("Consequence not updated") from exc
    return consequence


def dismiss_consequence(
    user_id: str,
    consequence_id: int,
    *,
    organization_id: Optional[str] = None,
) -> AssessmentConsequence:
    consequence = _get_consequence(user_id, consequence_id)
    if consequence.status != CONSEQUENCE_PENDING:
        raise InvalidTransition("Consequence is no longer pending", details={"consequence_id": consequence_id})
    try:
        _transition(consequence, CONSEQUENCE_DISMISSED, datetime.utcnow())
        enqueue_outbox(
            ASSESSMENTS_CONSEQUENCE_DISMISSED,
            {
                "consequence_id": consequence.id,
                "user_id": user_id,
                "consequence_type": consequence.consequence_type,
            },
            user_id=user_id,
            organization_id=organization_id,
        )
        db.session.commit()
    except InvalidTransition:
        db.session.rollback()
        raise
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise PersistenceError("Consequence not updated") from exc
    return consequence


def list_consequences(user_id: str, status: Optional[str] = CONSEQUENCE_PENDING, limit: int = 50) -> List[AssessmentConsequence]:
    query = AssessmentConsequence.query.filter_by(user_id=user_id)
    if status:
        query = query.filter_by(status=status)
    return (
        query.order_by(AssessmentConsequence.priority.desc(), AssessmentConsequence.created_at.desc())
        .limit(limit)
        .all()
    )
