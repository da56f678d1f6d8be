"""Core event ledger writes and reads."""

from __future__ import annotations

from typing import List, Optional

from gameia.core.events.event_models import CoreEvent
from gameia.extensions import db

PDI_PROGRESS_AUTO = "PDI_PROGRESS_AUTO"
REWARD_SETTLED = "REWARD_SETTLED"


def record_core_event(
    event_type: str,
    payload: dict,
    user_id: Optional[str] = None,
    *,
    organization_id: Optional[str] = None,
    xp_earned: int = 0,
    coins_earned: int = 0,
) -> CoreEvent:
    """Stage a ledger row; the caller commits alongside its domain changes."""
    record = CoreEvent(
        event_type=event_type,
        payload=payload or {},
        user_id=user_id,
        organization_id=organization_id,
        xp_earned=xp_earned,
        coins_earned=coins_earned,
    )
    db.session.add(record)
    return record


def recent_core_events(user_id: str, limit: int = 20) -> List[CoreEvent]:
    return (
        CoreEvent.query.filter_by(user_id=user_id)
        .order_by(CoreEvent.created_at.desc(), CoreEvent.id.desc())
        .limit(limit)
        .all()
    )
