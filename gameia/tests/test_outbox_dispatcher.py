from __future__ import annotations

from datetime import datetime, timedelta

import pytest

pytestmark = pytest.mark.integration

from gameia.core.events.event_bus import EventBus
from gameia.domains.activity.events import EVENT_CATALOG as ACTIVITY_EVENTS
from gameia.domains.assessments.events import EVENT_CATALOG as ASSESSMENT_EVENTS
from gameia.domains.pdi.events import EVENT_CATALOG as PDI_EVENTS
from gameia.domains.pdi.services.plan_service import create_goal, create_plan, manual_checkin
from gameia.domains.rewards.events import EVENT_CATALOG as REWARD_EVENTS
from gameia.domains.skills.events import EVENT_CATALOG as SKILL_EVENTS
from gameia.domains.skills.models.skill_impact import SkillImpactEvent
from gameia.domains.skills.services.impact_service import record_impact
from gameia.extensions import db
from gameia.platform.outbox import EventBusAdapter, enqueue
from gameia.platform.outbox.models import OutboxMessage
from gameia.platform.worker import dispatcher
from gameia.platform.worker.config import DispatchConfig

ALL_EVENTS = {**ACTIVITY_EVENTS, **ASSESSMENT_EVENTS, **PDI_EVENTS, **REWARD_EVENTS, **SKILL_EVENTS}


def _config(**overrides) -> DispatchConfig:
    defaults = {
        "batch_size": 5,
        "poll_interval": 0,
        "max_attempts": 2,
        "backoff_seconds": 3,
        "backoff_multiplier": 2,
    }
    defaults.update(overrides)
    return DispatchConfig(**defaults)


def _enqueue(user_id: str, event_type: str = "test.event", available_at: datetime | None = None) -> OutboxMessage:
    msg = enqueue(
        event_type,
        {"hello": "world"},
        user_id=user_id,
        available_at=available_at or datetime.utcnow() - timedelta(seconds=1),
    )
    db.session.commit()
    return msg


def _drain_others():
    """Mark messages left by earlier tests as sent so batches only see ours."""
    OutboxMessage.query.filter(OutboxMessage.status.in_(("pending", "retry"))).update(
        {"status": "sent"}, synchronize_session=False
    )
    db.session.commit()


def test_successful_dispatch_marks_sent_and_increments_attempts(app, user_id):
    _drain_others()
    msg = _enqueue(user_id)
    sent_ids: list[int] = []

    processed = dispatcher.process_ready_batch(lambda m: sent_ids.append(m.id), _config())

    db.session.refresh(msg)
    assert processed == 1
    assert sent_ids == [msg.id]
    assert msg.status == "sent"
    assert msg.attempts == 1
    assert msg.last_error is None
    assert msg.sent_at is not None


def test_failure_backs_off_then_fails_after_max_attempts(app, user_id):
    _drain_others()
    msg = _enqueue(user_id)

    def _fail(message):
        raise RuntimeError("broker down")

    assert dispatcher.process_ready_batch(_fail, _config()) == 1
    db.session.refresh(msg)
    assert msg.status == "retry"
    assert msg.last_error == "broker down"
    assert msg.available_at > datetime.utcnow()

    msg.available_at = datetime.utcnow() - timedelta(seconds=1)
    db.session.commit()
    dispatcher.process_ready_batch(_fail, _config())
    db.session.refresh(msg)
    assert msg.status == "failed"
    assert msg.attempts == 2


def test_future_messages_wait(app, user_id):
    _drain_others()
    _enqueue(user_id, available_at=datetime.utcnow() + timedelta(hours=1))
    assert dispatcher.process_ready_batch(lambda m: None, _config()) == 0


def test_backoff_is_exponential_and_capped():
    cfg = _config(max_backoff_seconds=10)
    assert dispatcher.backoff_delay(1, cfg) == 3
    assert dispatcher.backoff_delay(2, cfg) == 6
    assert dispatcher.backoff_delay(5, cfg) == 10


def test_adapter_publishes_once_per_message(app, user_id):
    bus = EventBus()
    received = []
    bus.subscribe("skills.impact.recorded", received.append)
    record_impact(user_id, "s-1", "game", "g-1", "xp_gain", 10)
    message = OutboxMessage.query.filter_by(user_id=user_id, event_type="skills.impact.recorded").one()

    adapter = EventBusAdapter(bus)
    adapter.dispatch(message)
    adapter.dispatch(message)

    assert len(received) == 1
    assert received[0].payload["skill_id"] == "s-1"
    assert received[0].payload["external_id"] == f"skills.impact.recorded:{message.id}"


def test_staged_payloads_match_event_catalog(app, user_id):
    record_impact(user_id, "s-1", "cognitive_test", "ct-1", "test_score", 55)
    for message in OutboxMessage.query.filter_by(user_id=user_id).all():
        entry = ALL_EVENTS[message.event_type]
        assert set(message.payload) == set(entry["payload"])


def test_adapter_remembers_only_recent_deliveries(app, user_id):
    bus = EventBus()
    received = []
    bus.subscribe("test.event", received.append)
    first, second, third = (_enqueue(user_id) for _ in range(3))

    adapter = EventBusAdapter(bus, seen_limit=2)
    for message in (first, second, third):
        adapter.dispatch(message)
    adapter.dispatch(third)
    assert len(received) == 3

    # The oldest id was evicted, so only the row status guards it now.
    adapter.dispatch(first)
    assert len(received) == 4


def test_goal_completion_is_delivered_to_skill_log(app, user_id):
    _drain_others()
    plan = create_plan(user_id, None, title="Plan")
    goal = create_goal(user_id, plan.id, title="Coaching", skill_id="s-coach")
    manual_checkin(user_id, goal.id, 100)

    dispatcher.process_ready_batch(EventBusAdapter().dispatch, _config(batch_size=20))

    completed = OutboxMessage.query.filter_by(user_id=user_id, event_type="pdi.goal.completed").one()
    assert completed.status == "sent"
    [impact] = SkillImpactEvent.query.filter_by(user_id=user_id, impact_type="goal_completion").all()
    assert (impact.skill_id, impact.source_type, impact.source_id) == ("s-coach", "pdi_goal", str(goal.id))
    assert impact.normalized_score == 100.0

    # A second delivery of the same completion does not log it twice.
    EventBusAdapter().dispatch(completed)
    db.session.commit()
    assert SkillImpactEvent.query.filter_by(user_id=user_id, impact_type="goal_completion").count() == 1


def test_goal_without_skill_logs_nothing(app, user_id):
    _drain_others()
    plan = create_plan(user_id, None, title="Plan")
    goal = create_goal(user_id, plan.id, title="Read more")
    manual_checkin(user_id, goal.id, 100)

    dispatcher.process_ready_batch(EventBusAdapter().dispatch, _config(batch_size=20))

    assert SkillImpactEvent.query.filter_by(user_id=user_id).count() == 0
