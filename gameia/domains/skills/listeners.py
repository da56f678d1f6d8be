"""Skill log listeners fed by the outbox worker through the event bus."""

from __future__ import annotations

import logging
from typing import Optional

from gameia.core.events.event_bus import EventBus
from gameia.core.events.event_models import CoreEvent
from gameia.domains.activity.schemas.activity_schemas import SourceType
from gameia.domains.pdi.events import PDI_GOAL_COMPLETED
from gameia.domains.pdi.models.pdi_models import DevelopmentGoal
from gameia.domains.skills.models.skill_impact import SkillImpactEvent
from gameia.domains.skills.schemas.skill_schemas import ImpactType
from gameia.domains.skills.services.impact_service import record_impact
from gameia.extensions import db

logger = logging.getLogger(__name__)


def record_goal_completion(event: CoreEvent) -> Optional[int]:
    """
    Log a ``goal_completion`` impact for the skill a completed goal targets.

    At most one per goal. The row is left for the dispatcher's commit, so it
    lands together with the message being marked sent.
    """
    payload = event.payload or {}
    goal = db.session.get(DevelopmentGoal, payload.get("goal_id"))
    if goal is None or not goal.skill_id:
        return None
    source_id = str(goal.id)
    already = SkillImpactEvent.query.filter_by(
        user_id=payload.get("user_id"),
        source_type=SourceType.PDI_GOAL.value,
        source_id=source_id,
        impact_type=ImpactType.GOAL_COMPLETION.value,
    ).first()
    if already is not None:
        return already.id
    impact_id = record_impact(
        payload["user_id"],
        goal.skill_id,
        SourceType.PDI_GOAL.value,
        source_id,
        ImpactType.GOAL_COMPLETION.value,
        100.0,
        {"plan_id": goal.plan_id, "event_id": payload.get("event_id")},
        organization_id=event.organization_id,
        commit=False,
    )
    logger.info("Goal %s completed; skill %s credited", goal.id, goal.skill_id)
    return impact_id


def register_listeners(bus: EventBus) -> None:
    bus.subscribe(PDI_GOAL_COMPLETED, record_goal_completion)
