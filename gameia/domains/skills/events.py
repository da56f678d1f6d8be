"""Skills domain event catalog."""

from __future__ import annotations

SKILLS_IMPACT_RECORDED = "skills.impact.recorded"

EVENT_CATALOG = {
    SKILLS_IMPACT_RECORDED: {
        "version": "v1",
        "payload": {
            "impact_id": "int",
            "user_id": "str",
            "skill_id": "str",
            "source_type": "str",
            "source_id": "str?",
            "impact_type": "str",
            "impact_value": "float",
            "normalized_score": "float?",
            "created_at": "datetime",
        },
    },
}

__all__ = ["EVENT_CATALOG", "SKILLS_IMPACT_RECORDED"]
