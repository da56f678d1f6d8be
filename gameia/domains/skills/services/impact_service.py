"""Skill impact recorder: append one row per (user, skill, source) impact."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from gameia.core.errors import PersistenceError, ValidationError
from gameia.core.utils.validation import clamp_score
from gameia.domains.activity.schemas.activity_schemas import ActivityEvent, SourceType
from gameia.domains.skills.events import SKILLS_IMPACT_RECORDED
from gameia.domains.skills.models.skill_impact import SkillImpactEvent
from gameia.domains.skills.schemas.skill_schemas import ImpactType
from gameia.extensions import db
from gameia.platform.outbox import enqueue as enqueue_outbox

logger = logging.getLogger(__name__)

_FEEDBACK_IMPACT = {
    "manager": ImpactType.MANAGER_FEEDBACK,
    "self": ImpactType.SELF_ASSESSMENT,
}
_XP_SOURCES = {SourceType.GAME, SourceType.TRAINING, SourceType.MODULE, SourceType.CHALLENGE}


def record_impact(
    user_id: str,
    skill_id: str,
    source_type: str,
    source_id: Optional[str],
    impact_type: str,
    impact_value: float,
    metadata: Optional[dict] = None,
    *,
    organization_id: Optional[str] = None,
    normalized_score: Optional[float] = None,
    created_at: Optional[datetime] = None,
    scored: bool = True,
    commit: bool = True,
) -> int:
    """
    Insert a new impact and return its id. Repeated play of the same source
    produces distinct rows; nothing is ever upserted.

    For ``xp_gain`` the value is raw XP. For assessment-like types it is
    expected to be a 0-100 score already; the range is not enforced here.
    With ``scored=False`` the row keeps no normalized score: it counts as an
    event but never enters a skill average.
    """
    if not user_id or not skill_id:
        raise ValidationError("user_id and skill_id are required")
    try:
        impact_type = ImpactType(impact_type).value
        source_type = SourceType(source_type).value
    except ValueError as exc:
        raise ValidationError(str(exc)) from None
    if not scored:
        normalized_score = None
    elif normalized_score is None and impact_type != ImpactType.XP_GAIN.value:
        normalized_score = clamp_score(impact_value)

    impact = SkillImpactEvent(
        user_id=user_id,
        organization_id=organization_id,
        skill_id=skill_id,
        source_type=source_type,
        source_id=source_id,
        impact_type=impact_type,
        impact_value=float(impact_value),
        normalized_score=normalized_score,
        meta=metadata or {},
    )
    if created_at is not None:
        impact.created_at = created_at
    try:
        db.session.add(impact)
        db.session.flush()
        enqueue_outbox(
            SKILLS_IMPACT_RECORDED,
            {
                "impact_id": impact.id,
                "user_id": user_id,
                "skill_id": skill_id,
                "source_type": source_type,
                "source_id": source_id,
                "impact_type": impact_type,
                "impact_value": impact.impact_value,
                "normalized_score": normalized_score,
                "created_at": impact.created_at.isoformat(),
            },
            user_id=user_id,
            organization_id=organization_id,
        )
        if commit:
            db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Failed to record skill impact (user=%s, skill=%s)", user_id, skill_id)
        raise PersistenceError("Skill impact not recorded") from exc
    return impact.id


def impact_for_event(event: ActivityEvent, xp_earned: Optional[int] = None) -> Tuple[ImpactType, float, Optional[float]]:
    """
    Return ``(impact_type, impact_value, normalized_score)`` for an activity.

    A test or feedback event without a score yields a None normalized score,
    which records the impact as unscored.
    """
    source = event.source_type
    if source is SourceType.COGNITIVE_TEST:
        return ImpactType.TEST_SCORE, event.score or 0.0, clamp_score(event.score)
    if source is SourceType.FEEDBACK_360:
        impact_type = _FEEDBACK_IMPACT.get(event.relationship or "", ImpactType.PEER_FEEDBACK)
        return impact_type, event.score or 0.0, clamp_score(event.score)
    if source is SourceType.PDI_GOAL:
        value = event.score if event.score is not None else 100.0
        return ImpactType.GOAL_COMPLETION, value, clamp_score(value)
    if source is SourceType.ONE_ON_ONE and event.score is not None:
        return ImpactType.ASSESSMENT, event.score, clamp_score(event.score)
    if source in _XP_SOURCES or source is SourceType.ONE_ON_ONE:
        if xp_earned is not None:
            value = float(xp_earned)
        else:
            value = float(event.score or 0.0)
        return ImpactType.XP_GAIN, value, event.score
    raise ValidationError(f"No impact mapping for source_type {source.value}")


def record_event_impacts(
    event: ActivityEvent,
    xp_earned: Optional[int] = None,
    *,
    commit: bool = True,
) -> List[int]:
    """Record one impact per skill the event touched."""
    if not event.skill_ids:
        return []
    impact_type, value, normalized = impact_for_event(event, xp_earned)
    metadata = {
        "event_id": event.id,
        "event_type": event.event_type.value,
        "score": event.score,
    }
    if event.source_name:
        metadata["source_name"] = event.source_name
    ids = [
        record_impact(
            event.user_id,
            skill_id,
            event.source_type.value,
            event.source_id,
            impact_type.value,
            value,
            metadata,
            organization_id=event.organization_id,
            normalized_score=normalized,
            scored=impact_type is ImpactType.XP_GAIN or normalized is not None,
            commit=False,
        )
        for skill_id in event.skill_ids
    ]
    if commit:
        try:
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise PersistenceError("Skill impacts not recorded") from exc
    return ids


def get_impact_history(user_id: str, limit: int = 100) -> List[SkillImpactEvent]:
    return (
        SkillImpactEvent.query.filter_by(user_id=user_id)
        .order_by(SkillImpactEvent.created_at.desc(), SkillImpactEvent.id.desc())
        .limit(limit)
        .all()
    )


def get_skill_history(user_id: str, skill_id: str, limit: int = 50) -> List[SkillImpactEvent]:
    return (
        SkillImpactEvent.query.filter_by(user_id=user_id, skill_id=skill_id)
        .order_by(SkillImpactEvent.created_at.desc(), SkillImpactEvent.id.desc())
        .limit(limit)
        .all()
    )

