"""PDI domain event catalog."""

from __future__ import annotations

PDI_GOAL_PROGRESSED = "pdi.goal.progressed"
PDI_GOAL_COMPLETED = "pdi.goal.completed"

EVENT_CATALOG = {
    PDI_GOAL_PROGRESSED: {
        "version": "v1",
        "payload": {
            "goal_id": "int",
            "user_id": "str",
            "source_type": "str",
            "source_id": "str?",
            "progress_before": "int",
            "progress_after": "int",
            "progress_delta": "int",
            "xp_earned": "int",
            "match_reason": "str",
        },
    },
    PDI_GOAL_COMPLETED: {
        "version": "v1",
        "payload": {
            "goal_id": "int",
            "user_id": "str",
            "plan_id": "int",
            "completed_at": "datetime",
        },
    },
}

__all__ = ["EVENT_CATALOG", "PDI_GOAL_PROGRESSED", "PDI_GOAL_COMPLETED"]
