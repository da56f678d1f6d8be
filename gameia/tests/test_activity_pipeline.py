"""End-to-end activity processing: streak, reward, impacts and goals in one commit."""

from datetime import datetime

import pytest
from sqlalchemy.exc import OperationalError

pytestmark = pytest.mark.integration

from gameia.core.errors import DuplicateEventError, PersistenceError
from gameia.domains.activity.models.activity_models import ActivityEventRecord
from gameia.domains.activity.services import pipeline_service
from gameia.domains.activity.services.ingest_service import ingest
from gameia.domains.activity.services.pipeline_service import process_activity, recent_events
from gameia.domains.pdi.services.plan_service import create_goal, create_plan
from gameia.domains.rewards.models.reward_models import RewardConfigRecord, RewardTransaction
from gameia.domains.rewards.schemas.reward_schemas import RewardConfig
from gameia.domains.rewards.services.settlement_service import get_balance
from gameia.domains.skills.services.consolidation_service import get_consolidated_score
from gameia.domains.skills.models.skill_impact import SkillImpactEvent
from gameia.extensions import db
from gameia.platform.outbox.models import OutboxMessage


def _game_event(user_id, **overrides):
    payload = {
        "user_id": user_id,
        "event_type": "game_completed",
        "source_id": f"game-{user_id}",
        "score": 90,
        "skill_ids": ["s-1"],
        "difficulty": "hard",
        "attempt_id": "attempt-1",
    }
    payload.update(overrides)
    return ingest(payload)


@pytest.fixture
def game_config(app, user_id):
    row = RewardConfigRecord(
        activity_type=f"game-{user_id}",
        config={
            "xp_base_reward": 100,
            "coins_base_reward": 20,
            "difficulty_multipliers": {"hard": 1.5},
        },
    )
    db.session.add(row)
    db.session.commit()
    return row


def test_game_completion_fans_out(app, user_id, game_config):
    plan = create_plan(user_id, None, title="Plan")
    goal = create_goal(user_id, plan.id, title="Memory", related_games=[f"game-{user_id}"], xp_reward=100)

    outcome = process_activity(_game_event(user_id))

    assert outcome.streak_days == 1
    assert (outcome.reward.xp, outcome.reward.coins) == (150, 30)
    assert len(outcome.impact_ids) == 1
    impact = db.session.get(SkillImpactEvent, outcome.impact_ids[0])
    assert (impact.impact_type, impact.impact_value, impact.normalized_score) == ("xp_gain", 150, 90)

    # game base 5 * 0.9 = 4.5 -> 5
    [update] = outcome.goal_updates
    assert (update.goal_id, update.progress_delta, update.xp_earned) == (goal.id, 5, 5)
    assert outcome.goals_xp_earned == 5
    assert get_balance(user_id).xp == 155

    processed = OutboxMessage.query.filter_by(user_id=user_id, event_type="activity.event.processed").one()
    assert processed.payload["xp_earned"] == 155
    assert processed.payload["coins_earned"] == 30

    response = outcome.to_response()
    assert response.reward.xp == 150
    assert response.goal_updates[0].status == "updated"


def test_repeated_attempt_is_rejected_without_double_credit(app, user_id, game_config):
    process_activity(_game_event(user_id))
    with pytest.raises(DuplicateEventError):
        process_activity(_game_event(user_id))

    assert RewardTransaction.query.filter_by(user_id=user_id).count() == 1
    assert get_balance(user_id).xp == 150
    assert ActivityEventRecord.query.filter_by(user_id=user_id).count() == 1


def test_new_attempt_is_paid_again(app, user_id, game_config):
    process_activity(_game_event(user_id))
    process_activity(_game_event(user_id, attempt_id="attempt-2"))
    assert get_balance(user_id).xp == 300


def test_without_config_no_reward_but_impacts_recorded(app, user_id):
    outcome = process_activity(_game_event(user_id, attempt_id=None))
    assert outcome.reward is None
    assert len(outcome.impact_ids) == 1
    assert get_balance(user_id) is None
    assert outcome.to_response().reward is None


def test_explicit_config_overrides_stored_one(app, user_id, game_config):
    config = RewardConfig(xp_base_reward=7, coins_base_reward=1)
    outcome = process_activity(_game_event(user_id, difficulty=None), reward_config=config)
    assert (outcome.reward.xp, outcome.reward.coins) == (7, 1)


def test_failure_rolls_back_everything(app, user_id, game_config, monkeypatch):
    def _boom(*args, **kwargs):
        raise OperationalError("INSERT INTO skill_impact_event", {}, Exception("database is locked"))

    monkeypatch.setattr(pipeline_service, "record_event_impacts", _boom)
    with pytest.raises(PersistenceError):
        process_activity(_game_event(user_id))

    assert ActivityEventRecord.query.filter_by(user_id=user_id).count() == 0
    assert RewardTransaction.query.filter_by(user_id=user_id).count() == 0
    assert get_balance(user_id) is None

    # Nothing was persisted, so the same attempt can be retried.
    monkeypatch.undo()
    outcome = process_activity(_game_event(user_id))
    assert outcome.reward.xp == 150


def test_recent_events_newest_first(app, user_id):
    process_activity(_game_event(user_id, attempt_id="1", occurred_at=datetime(2026, 1, 1, 9)))
    process_activity(_game_event(user_id, attempt_id="2", occurred_at=datetime(2026, 1, 2, 9)))
    assert [r.attempt_id for r in recent_events(user_id)] == ["2", "1"]


@pytest.mark.parametrize(
    "overrides",
    [
        {"event_type": "test_completed", "source_id": "ct-1"},
        {"event_type": "feedback_given", "source_id": "fb-1", "relationship": "peer"},
    ],
)
def test_unscored_assessment_event_counts_without_scoring(app, user_id, overrides):
    outcome = process_activity(_game_event(user_id, score=None, difficulty=None, **overrides))

    impact = db.session.get(SkillImpactEvent, outcome.impact_ids[0])
    assert impact.normalized_score is None

    score = get_consolidated_score(user_id, "s-1", 30)
    assert score.consolidated_score is None
    assert score.total_events == 1


def test_scored_test_event_still_scores(app, user_id):
    process_activity(_game_event(user_id, event_type="test_completed", source_id="ct-1", score=64, difficulty=None))
    assert get_consolidated_score(user_id, "s-1", 30).consolidated_score == 64
