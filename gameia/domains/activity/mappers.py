"""DTO mappers for the activity domain."""

from __future__ import annotations

from gameia.domains.activity.models.activity_models import ActivityEventRecord
from gameia.domains.activity.schemas.activity_schemas import ActivityEventRecordResponse


def map_event_record(record: ActivityEventRecord) -> ActivityEventRecordResponse:
    return ActivityEventRecordResponse(
        id=record.id,
        event_type=record.event_type,
        source_type=record.source_type,
        source_id=record.source_id,
        source_name=record.source_name,
        score=record.score,
        skill_ids=record.skill_ids or [],
        attempt_id=record.attempt_id,
        occurred_at=record.occurred_at,
    )
