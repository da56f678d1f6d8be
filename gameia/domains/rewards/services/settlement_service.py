"""Reward settlement: history checks, transaction, additive balance credit."""

from __future__ import annotations

import logging
from datetime import datetime, time
from typing import List, Optional

from flask import current_app
from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from gameia.core.errors import ConfigurationError, PersistenceError
from gameia.core.events.event_service import REWARD_SETTLED, record_core_event
from gameia.domains.rewards.events import REWARDS_REWARD_SETTLED
from gameia.domains.rewards.models.reward_models import (
    RewardConfigRecord,
    RewardTransaction,
    UserBalance,
)
from gameia.domains.rewards.schemas.reward_schemas import Performance, RewardConfig, RewardResult
from gameia.domains.rewards.services.calculator import compute_reward
from gameia.extensions import db
from gameia.platform.outbox import enqueue as enqueue_outbox

logger = logging.getLogger(__name__)

REASON_NOT_REPEATABLE = "not_repeatable"
REASON_DAILY_LIMIT = "daily_limit_reached"


def load_reward_config(
    activity_type: str,
    organization_id: Optional[str] = None,
    *,
    required: bool = True,
) -> Optional[RewardConfig]:
    """Active config for ``activity_type``; an org row wins over the global one."""
    rows = (
        RewardConfigRecord.query.filter(
            RewardConfigRecord.activity_type == activity_type,
            RewardConfigRecord.is_active.is_(True),
            or_(
                RewardConfigRecord.organization_id.is_(None),
                RewardConfigRecord.organization_id == organization_id,
            ),
        )
        .order_by(RewardConfigRecord.id.desc())
        .all()
    )
    row = next((r for r in rows if organization_id and r.organization_id == organization_id), None)
    if row is None:
        row = next((r for r in rows if r.organization_id is None), None)
    if row is None:
        if required:
            raise ConfigurationError(
                f"No reward config for {activity_type}", details={"activity_type": activity_type}
            )
        return None
    return RewardConfig.from_mapping(row.config)


def credit_balance(user_id: str, organization_id: Optional[str], xp: int, coins: int) -> None:
    """Add to the user's balance. Never assigns an absolute value; caller commits."""
    if not xp and not coins:
        return
    stmt = (
        update(UserBalance)
        .where(UserBalance.user_id == user_id)
        .values(xp=UserBalance.xp + xp, coins=UserBalance.coins + coins, updated_at=datetime.utcnow())
    )
    if db.session.execute(stmt).rowcount:
        return
    try:
        with db.session.begin_nested():
            db.session.add(UserBalance(user_id=user_id, organization_id=organization_id, xp=xp, coins=coins))
    except IntegrityError:
        # Another request created the row first.
        db.session.execute(stmt)


def _paid_attempts(user_id: str, source_type: str, source_id: str, since: Optional[datetime] = None) -> int:
    query = RewardTransaction.query.filter(
        RewardTransaction.user_id == user_id,
        RewardTransaction.source_type == source_type,
        RewardTransaction.source_id == source_id,
        RewardTransaction.reason.is_(None),
    )
    if since is not None:
        query = query.filter(RewardTransaction.created_at >= since)
    return query.count()


def _blocked_reason(user_id: str, source_type: str, source_id: str, config: RewardConfig, now: datetime) -> Optional[str]:
    if not config.is_repeatable and _paid_attempts(user_id, source_type, source_id):
        return REASON_NOT_REPEATABLE
    if config.max_attempts_per_day:
        day_start = datetime.combine(now.date(), time.min)
        if _paid_attempts(user_id, source_type, source_id, since=day_start) >= config.max_attempts_per_day:
            return REASON_DAILY_LIMIT
    return None


def settle_reward(
    user_id: str,
    organization_id: Optional[str],
    source_type: str,
    source_id: str,
    config: RewardConfig,
    performance: Performance,
    *,
    attempt_id: Optional[str] = None,
    now: Optional[datetime] = None,
    commit: bool = True,
) -> RewardTransaction:
    """
    Compute and credit the reward for one completion.

    Must be called at most once per (user, source_id, attempt): this function
    does not deduplicate. The activity pipeline enforces attempt identity.
    Either the transaction row and the balance credit are both written or
    ``PersistenceError`` is raised.
    """
    now = now or datetime.utcnow()
    reason = _blocked_reason(user_id, source_type, source_id, config, now)
    if reason:
        result = RewardResult(xp=0, coins=0, target_met=performance.target_met(config))
    else:
        result = compute_reward(
            config, performance, full_ratio=current_app.config.get("TIME_BONUS_FULL_RATIO", 0.5)
        )

    txn = RewardTransaction(
        user_id=user_id,
        organization_id=organization_id,
        source_type=source_type,
        source_id=source_id,
        attempt_id=attempt_id,
        xp=result.xp,
        coins=result.coins,
        target_met=result.target_met,
        participation=result.participation,
        reason=reason,
        meta={"multiplier": result.multiplier, "bonuses": result.bonuses, "score": performance.score},
        created_at=now,
    )
    try:
        db.session.add(txn)
        db.session.flush()
        credit_balance(user_id, organization_id, result.xp, result.coins)
        if result.xp or result.coins:
            record_core_event(
                REWARD_SETTLED,
                {"transaction_id": txn.id, "source_type": source_type, "source_id": source_id},
                user_id,
                organization_id=organization_id,
                xp_earned=result.xp,
                coins_earned=result.coins,
            )
        enqueue_outbox(
            REWARDS_REWARD_SETTLED,
            {
                "transaction_id": txn.id,
                "user_id": user_id,
                "source_type": source_type,
                "source_id": source_id,
                "attempt_id": attempt_id,
                "xp": txn.xp,
                "coins": txn.coins,
                "target_met": txn.target_met,
                "participation": txn.participation,
                "reason": reason,
                "created_at": txn.created_at.isoformat(),
            },
            user_id=user_id,
            organization_id=organization_id,
        )
        if commit:
            db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Reward settlement failed (user=%s, source=%s:%s)", user_id, source_type, source_id)
        raise PersistenceError("Reward not credited") from exc
    return txn


def get_balance(user_id: str) -> Optional[UserBalance]:
    return UserBalance.query.filter_by(user_id=user_id).first()


def reward_history(user_id: str, limit: int = 50) -> List[RewardTransaction]:
    return (
        RewardTransaction.query.filter_by(user_id=user_id)
        .order_by(RewardTransaction.created_at.desc(), RewardTransaction.id.desc())
        .limit(limit)
        .all()
    )
