"""Reward settlement, balances and streaks against the database."""

from datetime import date, datetime, timedelta

import pytest
from sqlalchemy.exc import OperationalError

pytestmark = pytest.mark.integration

from gameia.core.errors import ConfigurationError, PersistenceError
from gameia.core.events.event_service import REWARD_SETTLED, recent_core_events
from gameia.domains.rewards.models.reward_models import RewardConfigRecord, RewardTransaction
from gameia.domains.rewards.schemas.reward_schemas import Performance, RewardConfig
from gameia.domains.rewards.services import settlement_service
from gameia.domains.rewards.services.settlement_service import (
    REASON_DAILY_LIMIT,
    REASON_NOT_REPEATABLE,
    credit_balance,
    get_balance,
    load_reward_config,
    reward_history,
    settle_reward,
)
from gameia.domains.rewards.services.streak_service import current_streak, touch_streak
from gameia.extensions import db


def _config(**overrides) -> RewardConfig:
    data = {"xp_base_reward": 50, "coins_base_reward": 10}
    data.update(overrides)
    return RewardConfig(**data)


def _store_config(activity_type, config, organization_id=None, is_active=True):
    row = RewardConfigRecord(
        activity_type=activity_type, organization_id=organization_id, config=config, is_active=is_active
    )
    db.session.add(row)
    db.session.commit()
    return row


def test_settle_credits_balance_and_records_transaction(app, user_id, org_id):
    txn = settle_reward(user_id, org_id, "game", "memory_match", _config(), Performance(score=90), attempt_id="a-1")

    assert (txn.xp, txn.coins) == (50, 10)
    assert txn.reason is None
    balance = get_balance(user_id)
    assert (balance.xp, balance.coins) == (50, 10)
    events = recent_core_events(user_id)
    assert [e.event_type for e in events] == [REWARD_SETTLED]
    assert events[0].xp_earned == 50
    assert events[0].coins_earned == 10


def test_balance_accumulates_additively(app, user_id):
    settle_reward(user_id, None, "game", "g-1", _config(), Performance())
    settle_reward(user_id, None, "training", "t-1", _config(xp_base_reward=25, coins_base_reward=0), Performance())
    credit_balance(user_id, None, 5, 1)
    db.session.commit()

    balance = get_balance(user_id)
    assert (balance.xp, balance.coins) == (80, 11)
    assert [t.source_id for t in reward_history(user_id)] == ["t-1", "g-1"]


def test_zero_reward_writes_no_core_event(app, user_id):
    config = _config(target_score=80, participation_xp=0, participation_coins=0)
    txn = settle_reward(user_id, None, "game", "g-1", config, Performance(score=10))
    assert txn.participation is True
    assert (txn.xp, txn.coins) == (0, 0)
    assert recent_core_events(user_id) == []
    assert get_balance(user_id) is None


def test_non_repeatable_pays_once(app, user_id):
    config = _config(is_repeatable=False)
    first = settle_reward(user_id, None, "challenge", "c-1", config, Performance(), attempt_id="1")
    second = settle_reward(user_id, None, "challenge", "c-1", config, Performance(), attempt_id="2")

    assert first.xp == 50
    assert (second.xp, second.coins, second.reason) == (0, 0, REASON_NOT_REPEATABLE)
    assert get_balance(user_id).xp == 50


def test_daily_attempt_limit(app, user_id):
    config = _config(max_attempts_per_day=2)
    now = datetime(2026, 5, 4, 9, 0, 0)
    results = [
        settle_reward(user_id, None, "game", "g-1", config, Performance(), now=now + timedelta(minutes=i))
        for i in range(3)
    ]
    assert [r.xp for r in results] == [50, 50, 0]
    assert results[2].reason == REASON_DAILY_LIMIT

    next_day = settle_reward(user_id, None, "game", "g-1", config, Performance(), now=now + timedelta(days=1))
    assert next_day.xp == 50


def test_storage_failure_raises_and_credits_nothing(app, user_id, monkeypatch):
    def _boom(*args, **kwargs):
        raise OperationalError("UPDATE user_balance", {}, Exception("disk I/O error"))

    monkeypatch.setattr(settlement_service, "credit_balance", _boom)
    with pytest.raises(PersistenceError):
        settle_reward(user_id, None, "game", "g-1", _config(), Performance())

    assert RewardTransaction.query.filter_by(user_id=user_id).count() == 0
    assert get_balance(user_id) is None


def test_load_config_prefers_organization_row(app, org_id):
    activity = f"quiz-{org_id}"
    _store_config(activity, {"xp_base_reward": 10, "coins_base_reward": 1})
    _store_config(activity, {"xp_base_reward": 99, "coins_base_reward": 9}, organization_id=org_id)

    assert load_reward_config(activity, org_id).xp_base_reward == 99
    assert load_reward_config(activity, None).xp_base_reward == 10
    assert load_reward_config(activity, "other-org").xp_base_reward == 10


def test_load_config_missing_fails_closed(app, org_id):
    activity = f"missing-{org_id}"
    _store_config(activity, {"xp_base_reward": 10, "coins_base_reward": 1}, is_active=False)
    with pytest.raises(ConfigurationError):
        load_reward_config(activity)
    assert load_reward_config(activity, required=False) is None


def test_load_config_invalid_blob_is_configuration_error(app, org_id):
    activity = f"broken-{org_id}"
    _store_config(activity, {"coins_base_reward": 1})
    with pytest.raises(ConfigurationError):
        load_reward_config(activity)


def test_streak_extends_on_consecutive_days_and_resets_after_gap(app, user_id):
    start = date(2026, 6, 1)
    assert touch_streak(user_id, today=start).current_streak == 1
    assert touch_streak(user_id, today=start).current_streak == 1
    assert touch_streak(user_id, today=start + timedelta(days=1)).current_streak == 2
    streak = touch_streak(user_id, today=start + timedelta(days=2))
    assert (streak.current_streak, streak.longest_streak) == (3, 3)

    streak = touch_streak(user_id, today=start + timedelta(days=5))
    db.session.commit()
    assert (streak.current_streak, streak.longest_streak, streak.total_active_days) == (1, 3, 4)
    assert current_streak(user_id) == 1


def test_late_event_does_not_rewind_streak(app, user_id):
    start = date(2026, 6, 10)
    touch_streak(user_id, today=start)
    streak = touch_streak(user_id, today=start - timedelta(days=3))
    assert streak.last_active_date == start
    assert streak.current_streak == 1
