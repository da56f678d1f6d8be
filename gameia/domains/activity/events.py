"""Activity domain event catalog."""

from __future__ import annotations

ACTIVITY_EVENT_PROCESSED = "activity.event.processed"

EVENT_CATALOG = {
    ACTIVITY_EVENT_PROCESSED: {
        "version": "v1",
        "payload": {
            "event_id": "str",
            "user_id": "str",
            "event_type": "str",
            "source_type": "str",
            "source_id": "str",
            "score": "float?",
            "skill_ids": "list[str]",
            "xp_earned": "int",
            "coins_earned": "int",
            "occurred_at": "datetime",
        },
    },
}

__all__ = ["EVENT_CATALOG", "ACTIVITY_EVENT_PROCESSED"]
