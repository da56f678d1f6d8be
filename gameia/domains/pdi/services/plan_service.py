"""Development plan CRUD, manual check-ins and linked actions."""

from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError

from gameia.core.errors import (
    ConcurrencyConflict,
    InvalidTransition,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from gameia.domains.pdi.events import PDI_GOAL_COMPLETED, PDI_GOAL_PROGRESSED
from gameia.domains.pdi.models.pdi_models import (
    GOAL_COMPLETED,
    GOAL_IN_PROGRESS,
    GOAL_NOT_STARTED,
    PLAN_ACTIVE,
    DevelopmentGoal,
    DevelopmentPlan,
    GoalProgressEvent,
    PDILinkedAction,
)
from gameia.extensions import db
from gameia.platform.outbox import enqueue as enqueue_outbox

MANUAL_CHECKIN = "manual_checkin"


def _commit(message: str) -> None:
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise PersistenceError(message) from exc


def create_plan(
    user_id: str,
    organization_id: Optional[str],
    *,
    title: str,
    description: Optional[str] = None,
    created_by: Optional[str] = None,
    commit: bool = True,
) -> DevelopmentPlan:
    title_norm = (title or "").strip()
    if not title_norm:
        raise ValidationError("Plan title is required", details={"field": "title"})
    plan = DevelopmentPlan(
        user_id=user_id,
        organization_id=organization_id,
        title=title_norm,
        description=(description or "").strip() or None,
        status=PLAN_ACTIVE,
        created_by=created_by or user_id,
    )
    db.session.add(plan)
    db.session.flush()
    if commit:
        _commit("Plan not saved")
    return plan


def get_plan(user_id: str, plan_id: int) -> DevelopmentPlan:
    plan = DevelopmentPlan.query.filter_by(id=plan_id, user_id=user_id).first()
    if not plan:
        raise NotFoundError(f"Plan {plan_id} not found")
    return plan


def active_plan(user_id: str, organization_id: Optional[str] = None) -> Optional[DevelopmentPlan]:
    query = DevelopmentPlan.query.filter_by(user_id=user_id, status=PLAN_ACTIVE)
    if organization_id:
        query = query.filter_by(organization_id=organization_id)
    return query.order_by(DevelopmentPlan.created_at.desc(), DevelopmentPlan.id.desc()).first()


def list_plans(user_id: str, status: Optional[str] = None) -> List[DevelopmentPlan]:
    query = DevelopmentPlan.query.filter_by(user_id=user_id)
    if status:
        query = query.filter_by(status=status)
    return query.order_by(DevelopmentPlan.created_at.desc(), DevelopmentPlan.id.desc()).all()


def create_goal(
    user_id: str,
    plan_id: int,
    *,
    title: str,
    description: Optional[str] = None,
    skill_id: Optional[str] = None,
    target_date: Optional[date] = None,
    priority: str = "medium",
    linked_training_ids: Optional[List[str]] = None,
    linked_challenge_ids: Optional[List[str]] = None,
    linked_cognitive_test_ids: Optional[List[str]] = None,
    related_games: Optional[List[str]] = None,
    auto_progress_enabled: bool = True,
    xp_reward: Optional[int] = None,
    weight: float = 1.0,
    commit: bool = True,
) -> DevelopmentGoal:
    plan = get_plan(user_id, plan_id)
    title_norm = (title or "").strip()
    if not title_norm:
        raise ValidationError("Goal title is required", details={"field": "title"})
    goal = DevelopmentGoal(
        plan_id=plan.id,
        skill_id=skill_id,
        title=title_norm,
        description=(description or "").strip() or None,
        target_date=target_date,
        priority=priority,
        status=GOAL_NOT_STARTED,
        progress=0,
        linked_training_ids=list(linked_training_ids or []),
        linked_challenge_ids=list(linked_challenge_ids or []),
        linked_cognitive_test_ids=list(linked_cognitive_test_ids or []),
        related_games=list(related_games or []),
        auto_progress_enabled=auto_progress_enabled,
        xp_reward=xp_reward,
        weight=weight,
    )
    db.session.add(goal)
    db.session.flush()
    if commit:
        _commit("Goal not saved")
    return goal


def get_goal(user_id: str, goal_id: int) -> DevelopmentGoal:
    goal = (
        DevelopmentGoal.query.join(DevelopmentPlan, DevelopmentGoal.plan_id == DevelopmentPlan.id)
        .filter(DevelopmentGoal.id == goal_id, DevelopmentPlan.user_id == user_id)
        .first()
    )
    if not goal:
        raise NotFoundError(f"Goal {goal_id} not found")
    return goal


def goal_for_skill(user_id: str, skill_id: str) -> Optional[DevelopmentGoal]:
    """Open goal on the user's active plans that targets ``skill_id``."""
    return (
        DevelopmentGoal.query.join(DevelopmentPlan, DevelopmentGoal.plan_id == DevelopmentPlan.id)
        .filter(
            DevelopmentPlan.user_id == user_id,
            DevelopmentPlan.status == PLAN_ACTIVE,
            DevelopmentGoal.skill_id == skill_id,
            DevelopmentGoal.status != GOAL_COMPLETED,
        )
        .order_by(DevelopmentGoal.id.asc())
        .first()
    )


def manual_checkin(
    user_id: str,
    goal_id: int,
    progress: int,
    note: Optional[str] = None,
    *,
    organization_id: Optional[str] = None,
) -> DevelopmentGoal:
    """
    Set progress by hand (user or manager). A completed goal is never moved
    back; any other value is recorded as a ``manual_checkin`` audit row.

    The write is conditional on the progress and status that were read, so a
    concurrent auto-progress or completion is never overwritten: the check-in
    fails with ``InvalidTransition`` (goal completed meanwhile) or
    ``ConcurrencyConflict`` (progress moved meanwhile) and nothing is recorded.
    """
    if progress is None or not 0 <= int(progress) <= 100:
        raise ValidationError("progress must be between 0 and 100", details={"field": "progress"})
    goal = get_goal(user_id, goal_id)
    if goal.status == GOAL_COMPLETED:
        raise InvalidTransition("Goal already completed", details={"goal_id": goal_id})

    now = datetime.utcnow()
    before = int(goal.progress or 0)
    after = int(progress)
    values = {"progress": after, "updated_at": now}
    if after >= 100:
        values["status"] = GOAL_COMPLETED
    elif after > 0:
        values["status"] = GOAL_IN_PROGRESS
    if after > before or after >= 100:
        values["stagnant_since"] = None

    stmt = (
        update(DevelopmentGoal)
        .where(
            DevelopmentGoal.id == goal.id,
            DevelopmentGoal.progress == before,
            DevelopmentGoal.status == goal.status,
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    try:
        updated = db.session.execute(stmt).rowcount
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise PersistenceError("Check-in not saved") from exc
    if updated != 1:
        status = db.session.execute(
            select(DevelopmentGoal.status).where(DevelopmentGoal.id == goal.id)
        ).scalar_one_or_none()
        if status == GOAL_COMPLETED:
            raise InvalidTransition("Goal already completed", details={"goal_id": goal_id})
        raise ConcurrencyConflict("Goal changed during check-in", details={"goal_id": goal_id})
    completed = values.get("status") == GOAL_COMPLETED

    db.session.add(
        GoalProgressEvent(
            goal_id=goal.id,
            user_id=user_id,
            organization_id=organization_id,
            source_type=MANUAL_CHECKIN,
            source_id=None,
            source_name=None,
            progress_before=before,
            progress_after=after,
            progress_delta=after - before,
            xp_earned=0,
            meta={"note": (note or "").strip() or None},
            created_at=now,
        )
    )
    enqueue_outbox(
        PDI_GOAL_PROGRESSED,
        {
            "goal_id": goal.id,
            "user_id": user_id,
            "source_type": MANUAL_CHECKIN,
            "source_id": None,
            "progress_before": before,
            "progress_after": after,
            "progress_delta": after - before,
            "xp_earned": 0,
            "match_reason": MANUAL_CHECKIN,
        },
        user_id=user_id,
        organization_id=organization_id,
    )
    if completed:
        enqueue_outbox(
            PDI_GOAL_COMPLETED,
            {"goal_id": goal.id, "user_id": user_id, "plan_id": goal.plan_id, "completed_at": now.isoformat()},
            user_id=user_id,
            organization_id=organization_id,
        )
    _commit("Check-in not saved")
    db.session.refresh(goal)
    return goal


def get_progress_history(user_id: str, goal_id: int, limit: int = 50) -> List[GoalProgressEvent]:
    get_goal(user_id, goal_id)
    return (
        GoalProgressEvent.query.filter_by(goal_id=goal_id)
        .order_by(GoalProgressEvent.created_at.desc(), GoalProgressEvent.id.desc())
        .limit(limit)
        .all()
    )


def add_linked_action(
    user_id: str,
    goal_id: int,
    *,
    action_type: str,
    action_name: str,
    action_id: Optional[str] = None,
    priority: int = 2,
    expected_progress_impact: Optional[int] = None,
    organization_id: Optional[str] = None,
    metadata: Optional[dict] = None,
    commit: bool = True,
) -> PDILinkedAction:
    goal = get_goal(user_id, goal_id)
    action = PDILinkedAction(
        goal_id=goal.id,
        user_id=user_id,
        organization_id=organization_id,
        action_type=action_type,
        action_id=action_id,
        action_name=action_name,
        priority=priority,
        expected_progress_impact=expected_progress_impact,
        meta=metadata or {},
    )
    db.session.add(action)
    db.session.flush()
    if commit:
        _commit("Action not saved")
    return action


def _pending_action(user_id: str, action_id: int) -> PDILinkedAction:
    action = PDILinkedAction.query.filter_by(id=action_id, user_id=user_id).first()
    if not action:
        raise NotFoundError(f"Action {action_id} not found")
    if action.completed_at or action.dismissed_at:
        raise InvalidTransition("Action is no longer pending", details={"action_id": action_id})
    return action


def dismiss_action(user_id: str, action_id: int) -> PDILinkedAction:
    action = _pending_action(user_id, action_id)
    action.dismissed_at = datetime.utcnow()
    _commit("Action not saved")
    return action


def complete_action(user_id: str, action_id: int) -> PDILinkedAction:
    action = _pending_action(user_id, action_id)
    action.completed_at = datetime.utcnow()
    _commit("Action not saved")
    return action


def list_pending_actions(user_id: str, goal_id: Optional[int] = None, limit: int = 50) -> List[PDILinkedAction]:
    query = PDILinkedAction.query.filter(
        PDILinkedAction.user_id == user_id,
        PDILinkedAction.completed_at.is_(None),
        PDILinkedAction.dismissed_at.is_(None),
    )
    if goal_id is not None:
        query = query.filter(PDILinkedAction.goal_id == goal_id)
    return query.order_by(PDILinkedAction.priority.asc(), PDILinkedAction.suggested_at.asc()).limit(limit).all()
