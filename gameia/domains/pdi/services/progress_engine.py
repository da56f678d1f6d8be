"""Goal auto-progress: advance matching PDI goals when activities complete.

Each goal is its own unit of work (a savepoint). Progress is only ever moved
with a conditional update keyed on the progress value that was read, so two
events racing on the same goal cannot push it past 100 or lose an increment.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Tuple

from flask import current_app
from sqlalchemy import or_, select, update
from sqlalchemy.exc import SQLAlchemyError

from gameia.core.errors import ConcurrencyConflict, NotFoundError, PersistenceError
from gameia.core.events.event_service import PDI_PROGRESS_AUTO, record_core_event
from gameia.core.utils.validation import round_half_up
from gameia.domains.activity.schemas.activity_schemas import ActivityEvent, SourceType
from gameia.domains.pdi.events import PDI_GOAL_COMPLETED, PDI_GOAL_PROGRESSED
from gameia.domains.pdi.models.pdi_models import (
    GOAL_COMPLETED,
    GOAL_IN_PROGRESS,
    PLAN_ACTIVE,
    DevelopmentGoal,
    DevelopmentPlan,
    GoalProgressEvent,
    PDILinkedAction,
)
from gameia.domains.rewards.services.settlement_service import credit_balance
from gameia.extensions import db
from gameia.platform.outbox import enqueue as enqueue_outbox

logger = logging.getLogger(__name__)

STATUS_UPDATED = "updated"
STATUS_SKIPPED = "skipped"
STATUS_CONFLICT = "conflict"
STATUS_ERROR = "error"

SKILL_MATCH = "skill_match"

# source type -> (goal attribute holding linked ids, match reason).
# Modules have no link list and move goals by skill overlap only.
_LINKS = {
    SourceType.TRAINING: ("linked_training_ids", "linked_training"),
    SourceType.CHALLENGE: ("linked_challenge_ids", "linked_challenge"),
    SourceType.COGNITIVE_TEST: ("linked_cognitive_test_ids", "linked_cognitive_test"),
    SourceType.GAME: ("related_games", "related_game"),
}

_MAX_SCORE_MULTIPLIER = Decimal("1.5")


@dataclass
class GoalUpdateResult:
    goal_id: int
    status: str
    match_reason: Optional[str]
    progress_before: Optional[int] = None
    progress_after: Optional[int] = None
    progress_delta: int = 0
    xp_earned: int = 0
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def match_reason(goal: DevelopmentGoal, event: ActivityEvent) -> Optional[str]:
    """First satisfied reason; an explicit link wins over a skill overlap."""
    link = _LINKS.get(event.source_type)
    if link:
        attr, reason = link
        if event.source_id in (getattr(goal, attr) or []):
            return reason
    if goal.skill_id and goal.skill_id in event.skill_ids:
        return SKILL_MATCH
    return None


def compute_progress_delta(source_type, score: Optional[float], impact_table: Mapping[str, Mapping]) -> int:
    """
    ``round_half_up(base * min(score / 100, 1.5))`` capped at the source max.
    Without a score the multiplier is 1. Unknown sources move nothing.
    """
    key = source_type.value if isinstance(source_type, SourceType) else str(source_type)
    impact = impact_table.get(key)
    if not impact:
        return 0
    multiplier = Decimal("1")
    if score is not None:
        multiplier = min(Decimal(str(score)) / 100, _MAX_SCORE_MULTIPLIER)
    delta = round_half_up(Decimal(str(impact["base"])) * multiplier)
    return max(0, min(delta, int(impact["max"])))


def goal_xp(actual_delta: int, xp_reward: int) -> int:
    return round_half_up(Decimal(actual_delta) / 100 * Decimal(xp_reward))


def _fresh_state(goal_id: int) -> Optional[Tuple[int, str]]:
    row = db.session.execute(
        select(DevelopmentGoal.progress, DevelopmentGoal.status).where(DevelopmentGoal.id == goal_id)
    ).first()
    if row is None:
        return None
    return int(row.progress or 0), row.status


def advance_progress(
    goal_id: int,
    observed: int,
    delta: int,
    *,
    max_retries: int = 3,
    now: Optional[datetime] = None,
) -> Tuple[int, int]:
    """
    Move ``progress`` forward by ``delta`` (clamped to 100) with a
    compare-and-set on the value last read. Returns ``(before, after)`` as
    actually applied; ``before == after`` means nothing changed.

    A lost race re-reads the goal and recomputes from the fresh base. Raises
    ``ConcurrencyConflict`` once ``max_retries`` re-reads are exhausted.
    """
    now = now or datetime.utcnow()
    before = int(observed or 0)
    for _ in range(max_retries + 1):
        after = min(before + delta, 100)
        if after <= before:
            return before, before
        status = GOAL_COMPLETED if after >= 100 else GOAL_IN_PROGRESS
        stmt = (
            update(DevelopmentGoal)
            .where(
                DevelopmentGoal.id == goal_id,
                DevelopmentGoal.progress == before,
                DevelopmentGoal.status != GOAL_COMPLETED,
            )
            .values(
                progress=after,
                status=status,
                stagnant_since=None,
                last_auto_update=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if db.session.execute(stmt).rowcount == 1:
            return before, after

        fresh = _fresh_state(goal_id)
        if fresh is None:
            raise NotFoundError(f"Goal {goal_id} not found")
        before, fresh_status = fresh
        if fresh_status == GOAL_COMPLETED:
            return before, before
    raise ConcurrencyConflict(f"Goal {goal_id} kept changing", details={"goal_id": goal_id})


def eligible_goals(user_id: str, organization_id: Optional[str] = None) -> List[DevelopmentGoal]:
    query = (
        DevelopmentGoal.query.join(DevelopmentPlan, DevelopmentGoal.plan_id == DevelopmentPlan.id)
        .filter(
            DevelopmentPlan.user_id == user_id,
            DevelopmentPlan.status == PLAN_ACTIVE,
            DevelopmentGoal.status != GOAL_COMPLETED,
            or_(
                DevelopmentGoal.auto_progress_enabled.is_(None),
                DevelopmentGoal.auto_progress_enabled.is_(True),
            ),
        )
    )
    if organization_id:
        query = query.filter(
            or_(DevelopmentPlan.organization_id.is_(None), DevelopmentPlan.organization_id == organization_id)
        )
    return query.order_by(DevelopmentGoal.id.asc()).all()


def _complete_linked_actions(goal_id: int, event: ActivityEvent, now: datetime) -> None:
    try:
        with db.session.begin_nested():
            actions = PDILinkedAction.query.filter(
                PDILinkedAction.goal_id == goal_id,
                PDILinkedAction.action_type == event.source_type.value,
                PDILinkedAction.action_id == event.source_id,
                PDILinkedAction.completed_at.is_(None),
                PDILinkedAction.dismissed_at.is_(None),
            ).all()
            for action in actions:
                action.completed_at = now
    except SQLAlchemyError:
        logger.warning("Linked action completion failed for goal %s", goal_id, exc_info=True)


def _apply_to_goal(
    goal: DevelopmentGoal,
    event: ActivityEvent,
    reason: str,
    delta: int,
    now: datetime,
) -> GoalUpdateResult:
    goal_id = goal.id
    observed = int(goal.progress or 0)
    xp_reward = goal.xp_reward if goal.xp_reward is not None else current_app.config["PDI_DEFAULT_XP_REWARD"]
    result = GoalUpdateResult(
        goal_id=goal_id,
        status=STATUS_SKIPPED,
        match_reason=reason,
        progress_before=observed,
        progress_after=observed,
    )
    try:
        with db.session.begin_nested():
            before, after = advance_progress(
                goal_id,
                observed,
                delta,
                max_retries=current_app.config.get("PDI_MAX_CAS_RETRIES", 3),
                now=now,
            )
            actual = after - before
            if actual > 0:
                xp = goal_xp(actual, xp_reward)
                db.session.add(
                    GoalProgressEvent(
                        goal_id=goal_id,
                        user_id=event.user_id,
                        organization_id=event.organization_id,
                        source_type=event.source_type.value,
                        source_id=event.source_id,
                        source_name=event.source_name,
                        progress_before=before,
                        progress_after=after,
                        progress_delta=actual,
                        xp_earned=xp,
                        meta={
                            "match_reason": reason,
                            "score": event.score,
                            "event_type": event.event_type.value,
                            "event_id": event.id,
                        },
                        created_at=now,
                    )
                )
                enqueue_outbox(
                    PDI_GOAL_PROGRESSED,
                    {
                        "goal_id": goal_id,
                        "user_id": event.user_id,
                        "source_type": event.source_type.value,
                        "source_id": event.source_id,
                        "progress_before": before,
                        "progress_after": after,
                        "progress_delta": actual,
                        "xp_earned": xp,
                        "match_reason": reason,
                    },
                    user_id=event.user_id,
                    organization_id=event.organization_id,
                )
                if after >= 100:
                    enqueue_outbox(
                        PDI_GOAL_COMPLETED,
                        {
                            "goal_id": goal_id,
                            "user_id": event.user_id,
                            "plan_id": goal.plan_id,
                            "completed_at": now.isoformat(),
                        },
                        user_id=event.user_id,
                        organization_id=event.organization_id,
                    )
    except ConcurrencyConflict as exc:
        logger.info("Goal %s skipped after repeated conflicts", goal_id)
        result.status = STATUS_CONFLICT
        result.error = exc.code
        return result
    except (SQLAlchemyError, NotFoundError) as exc:
        logger.exception("Goal %s progress update failed", goal_id)
        result.status = STATUS_ERROR
        result.error = str(exc)
        return result
    finally:
        # The conditional update bypasses the identity map.
        db.session.expire(goal)

    result.progress_before = before
    result.progress_after = after
    if actual <= 0:
        return result
    result.status = STATUS_UPDATED
    result.progress_delta = actual
    result.xp_earned = xp
    _complete_linked_actions(goal_id, event, now)
    return result


def apply_event(
    event: ActivityEvent,
    *,
    now: Optional[datetime] = None,
    commit: bool = True,
) -> List[GoalUpdateResult]:
    """
    Advance every eligible goal the event matches and credit the summed XP
    once. Sibling goals are independent: a conflict or failure on one is
    reported in its result and does not stop the others.

    With ``commit=False`` the caller owns the transaction.
    """
    impact_table = current_app.config["PDI_PROGRESS_IMPACT"]
    if event.source_type.value not in impact_table:
        return []
    now = now or datetime.utcnow()
    delta = compute_progress_delta(event.source_type, event.score, impact_table)

    results: List[GoalUpdateResult] = []
    for goal in eligible_goals(event.user_id, event.organization_id):
        reason = match_reason(goal, event)
        if reason is None:
            continue
        if delta <= 0:
            results.append(
                GoalUpdateResult(
                    goal_id=goal.id,
                    status=STATUS_SKIPPED,
                    match_reason=reason,
                    progress_before=goal.progress,
                    progress_after=goal.progress,
                )
            )
            continue
        results.append(_apply_to_goal(goal, event, reason, delta, now))

    updated = [r for r in results if r.status == STATUS_UPDATED]
    total_xp = sum(r.xp_earned for r in updated)
    try:
        if total_xp > 0:
            record_core_event(
                PDI_PROGRESS_AUTO,
                {
                    "event_id": event.id,
                    "source_type": event.source_type.value,
                    "source_id": event.source_id,
                    "goals": [
                        {"goal_id": r.goal_id, "progress_delta": r.progress_delta, "xp_earned": r.xp_earned}
                        for r in updated
                    ],
                },
                event.user_id,
                organization_id=event.organization_id,
                xp_earned=total_xp,
            )
            credit_balance(event.user_id, event.organization_id, total_xp, 0)
        if commit:
            db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Goal progress commit failed (user=%s, event=%s)", event.user_id, event.id)
        raise PersistenceError("Goal progress not saved") from exc
    if updated:
        logger.info(
            "Auto-progressed %d goal(s) for user %s from %s:%s (+%d xp)",
            len(updated),
            event.user_id,
            event.source_type.value,
            event.source_id,
            total_xp,
        )
    return results
