"""Skill impact recording and score consolidation."""

from datetime import datetime, timedelta

import pytest

pytestmark = pytest.mark.integration

from gameia.core.errors import ValidationError
from gameia.domains.activity.schemas.activity_schemas import ActivityEvent, EventType, SourceType
from gameia.domains.skills.models.skill_impact import SkillImpactEvent
from gameia.domains.skills.services.consolidation_service import get_consolidated_score
from gameia.domains.skills.services.impact_service import (
    get_skill_history,
    record_event_impacts,
    record_impact,
)
from gameia.extensions import db
from gameia.platform.outbox.models import OutboxMessage


def test_record_impact_appends_rows_for_repeated_sources(app, user_id):
    first = record_impact(user_id, "s-1", "game", "g-1", "xp_gain", 40)
    second = record_impact(user_id, "s-1", "game", "g-1", "xp_gain", 40)

    assert first != second
    rows = SkillImpactEvent.query.filter_by(user_id=user_id).all()
    assert len(rows) == 2
    assert all(r.normalized_score is None for r in rows)


def test_record_impact_normalizes_assessment_values(app, user_id):
    impact_id = record_impact(user_id, "s-1", "feedback_360", "fb-1", "peer_feedback", 130)
    impact = db.session.get(SkillImpactEvent, impact_id)
    assert impact.impact_value == 130
    assert impact.normalized_score == 100.0


def test_record_impact_stages_outbox_message(app, user_id):
    impact_id = record_impact(user_id, "s-1", "cognitive_test", "ct-1", "test_score", 70)
    message = OutboxMessage.query.filter_by(user_id=user_id, event_type="skills.impact.recorded").one()
    assert message.payload["impact_id"] == impact_id
    assert message.payload["normalized_score"] == 70.0


def test_record_impact_rejects_unknown_types(app, user_id):
    with pytest.raises(ValidationError):
        record_impact(user_id, "s-1", "game", "g-1", "vibes", 10)
    with pytest.raises(ValidationError):
        record_impact(user_id, "", "game", "g-1", "xp_gain", 10)


def test_event_impacts_one_row_per_skill(app, user_id):
    event = ActivityEvent(
        user_id=user_id,
        event_type=EventType.GAME_COMPLETED,
        source_type=SourceType.GAME,
        source_id="memory_match",
        score=80,
        skill_ids=("s-1", "s-2"),
    )
    ids = record_event_impacts(event, xp_earned=120)
    assert len(ids) == 2
    rows = SkillImpactEvent.query.filter(SkillImpactEvent.id.in_(ids)).all()
    assert {r.skill_id for r in rows} == {"s-1", "s-2"}
    assert all(r.impact_type == "xp_gain" and r.impact_value == 120 for r in rows)
    assert all(r.normalized_score == 80 for r in rows)


def test_event_without_skills_records_nothing(app, user_id):
    event = ActivityEvent(
        user_id=user_id,
        event_type=EventType.TRAINING_COMPLETED,
        source_type=SourceType.TRAINING,
        source_id="t-1",
    )
    assert record_event_impacts(event) == []


def test_manager_feedback_event_maps_to_manager_impact(app, user_id):
    event = ActivityEvent(
        user_id=user_id,
        event_type=EventType.FEEDBACK_GIVEN,
        source_type=SourceType.FEEDBACK_360,
        source_id="fb-3",
        score=60,
        relationship="manager",
        skill_ids=("s-1",),
    )
    record_event_impacts(event)
    history = get_skill_history(user_id, "s-1")
    assert [h.impact_type for h in history] == ["manager_feedback"]


def test_consolidated_score_weights_by_impact_type(app, user_id):
    record_impact(user_id, "s-1", "feedback_360", "fb-1", "manager_feedback", 80)
    record_impact(user_id, "s-1", "feedback_360", "fb-2", "self_assessment", 40)
    record_impact(user_id, "s-1", "feedback_360", "fb-3", "self_assessment", 60)
    record_impact(user_id, "s-1", "game", "g-1", "xp_gain", 250)

    score = get_consolidated_score(user_id, "s-1", 30)
    # (3 * 80 + 1 * 50) / 4
    assert score.consolidated_score == 72.5
    assert score.total_events == 4
    assert score.breakdown["self_assessment"].avg_score == 50
    assert score.breakdown["self_assessment"].count == 2
    assert score.breakdown["xp_gain"].total_xp == 250
    assert score.last_activity is not None


def test_consolidation_is_repeatable(app, user_id):
    record_impact(user_id, "s-1", "cognitive_test", "ct-1", "test_score", 64)
    now = datetime.utcnow() + timedelta(seconds=1)
    first = get_consolidated_score(user_id, "s-1", 30, now=now)
    second = get_consolidated_score(user_id, "s-1", 30, now=now)
    assert first == second


def test_no_impacts_in_window_is_null_not_zero(app, user_id):
    record_impact(
        user_id,
        "s-1",
        "cognitive_test",
        "ct-1",
        "test_score",
        90,
        created_at=datetime.utcnow() - timedelta(days=40),
    )
    score = get_consolidated_score(user_id, "s-1", 30)
    assert score.consolidated_score is None
    assert score.total_events == 0
    assert score.breakdown == {}

    wider = get_consolidated_score(user_id, "s-1", 60)
    assert wider.consolidated_score == 90


def test_xp_only_skill_has_no_consolidated_score(app, user_id):
    record_impact(user_id, "s-1", "game", "g-1", "xp_gain", 100)
    score = get_consolidated_score(user_id, "s-1")
    assert score.consolidated_score is None
    assert score.total_events == 1
    assert score.period_days == 90


def test_non_positive_period_rejected(app, user_id):
    with pytest.raises(ValidationError):
        get_consolidated_score(user_id, "s-1", 0)
