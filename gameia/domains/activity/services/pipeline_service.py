"""Activity pipeline: one ingested event fans out to streak, reward, impacts and goals."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from gameia.core.errors import DuplicateEventError, GameiaError, PersistenceError
from gameia.domains.activity.events import ACTIVITY_EVENT_PROCESSED
from gameia.domains.activity.models.activity_models import ActivityEventRecord
from gameia.domains.activity.schemas.activity_schemas import (
    ActivityEvent,
    ActivityOutcomeResponse,
    GoalUpdateResponse,
    RewardSummary,
)
from gameia.domains.pdi.services.progress_engine import GoalUpdateResult, apply_event
from gameia.domains.rewards.models.reward_models import RewardTransaction
from gameia.domains.rewards.schemas.reward_schemas import Performance, RewardConfig
from gameia.domains.rewards.services.settlement_service import load_reward_config, settle_reward
from gameia.domains.rewards.services.streak_service import touch_streak
from gameia.domains.skills.services.impact_service import record_event_impacts
from gameia.extensions import db
from gameia.platform.outbox import enqueue as enqueue_outbox

logger = logging.getLogger(__name__)


@dataclass
class ActivityOutcome:
    event: ActivityEvent
    reward: Optional[RewardTransaction] = None
    impact_ids: List[int] = field(default_factory=list)
    goal_updates: List[GoalUpdateResult] = field(default_factory=list)
    streak_days: int = 0

    @property
    def goals_xp_earned(self) -> int:
        return sum(update.xp_earned for update in self.goal_updates)

    def to_response(self) -> ActivityOutcomeResponse:
        reward = None
        if self.reward is not None:
            reward = RewardSummary(
                xp=self.reward.xp,
                coins=self.reward.coins,
                target_met=self.reward.target_met,
                participation=self.reward.participation,
                reason=self.reward.reason,
            )
        return ActivityOutcomeResponse(
            event_id=self.event.id,
            event_type=self.event.event_type.value,
            source_type=self.event.source_type.value,
            source_id=self.event.source_id,
            score=self.event.score,
            streak_days=self.streak_days,
            reward=reward,
            impact_ids=list(self.impact_ids),
            goal_updates=[GoalUpdateResponse(**u.to_dict()) for u in self.goal_updates],
            goals_xp_earned=self.goals_xp_earned,
        )


def _persist_event(event: ActivityEvent) -> ActivityEventRecord:
    key = event.idempotency_key
    if key and ActivityEventRecord.query.filter_by(idempotency_key=key).first():
        raise DuplicateEventError("Attempt already submitted", details={"attempt_id": event.attempt_id})
    record = ActivityEventRecord(
        id=event.id,
        user_id=event.user_id,
        organization_id=event.organization_id,
        event_type=event.event_type.value,
        source_type=event.source_type.value,
        source_id=event.source_id,
        source_name=event.source_name,
        score=event.score,
        skill_ids=list(event.skill_ids),
        attempt_id=event.attempt_id,
        idempotency_key=key,
        meta=dict(event.metadata),
        occurred_at=event.occurred_at,
    )
    try:
        with db.session.begin_nested():
            db.session.add(record)
    except IntegrityError:
        raise DuplicateEventError(
            "Attempt already submitted", details={"attempt_id": event.attempt_id}
        ) from None
    return record


def process_activity(event: ActivityEvent, reward_config: Optional[RewardConfig] = None) -> ActivityOutcome:
    """
    Persist the event and apply every effect it has, in one transaction.

    Reward settlement runs at most once per attempt: a repeated ``attempt_id``
    raises ``DuplicateEventError`` before anything is credited. Without an
    explicit ``reward_config`` the stored one for the event's reward key is
    used; when there is none the event earns no reward.
    """
    outcome = ActivityOutcome(event=event)
    try:
        _persist_event(event)
        streak = touch_streak(event.user_id, event.organization_id, event.occurred_at.date())
        outcome.streak_days = streak.current_streak

        if reward_config is None:
            reward_config = load_reward_config(event.reward_key, event.organization_id, required=False)
        if reward_config is not None:
            outcome.reward = settle_reward(
                event.user_id,
                event.organization_id,
                event.source_type.value,
                event.source_id,
                reward_config,
                Performance(
                    difficulty=event.difficulty,
                    score=event.score,
                    streak_days=outcome.streak_days,
                    completion_time_ratio=event.completion_time_ratio,
                ),
                attempt_id=event.attempt_id,
                commit=False,
            )

        xp_earned = outcome.reward.xp if outcome.reward is not None else None
        outcome.impact_ids = record_event_impacts(event, xp_earned, commit=False)
        outcome.goal_updates = apply_event(event, commit=False)

        enqueue_outbox(
            ACTIVITY_EVENT_PROCESSED,
            {
                "event_id": event.id,
                "user_id": event.user_id,
                "event_type": event.event_type.value,
                "source_type": event.source_type.value,
                "source_id": event.source_id,
                "score": event.score,
                "skill_ids": list(event.skill_ids),
                "xp_earned": (xp_earned or 0) + outcome.goals_xp_earned,
                "coins_earned": outcome.reward.coins if outcome.reward is not None else 0,
                "occurred_at": event.occurred_at.isoformat(),
            },
            user_id=event.user_id,
            organization_id=event.organization_id,
        )
        db.session.commit()
    except GameiaError:
        db.session.rollback()
        raise
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Activity %s not processed", event.id)
        raise PersistenceError("Your progress may not have been saved") from exc

    logger.info(
        "Processed %s for user %s (reward=%s, impacts=%d, goals=%d)",
        event.event_type.value,
        event.user_id,
        outcome.reward.xp if outcome.reward is not None else None,
        len(outcome.impact_ids),
        len(outcome.goal_updates),
    )
    return outcome


def recent_events(user_id: str, limit: int = 50) -> List[ActivityEventRecord]:
    return (
        ActivityEventRecord.query.filter_by(user_id=user_id)
        .order_by(ActivityEventRecord.occurred_at.desc(), ActivityEventRecord.created_at.desc())
        .limit(limit)
        .all()
    )
