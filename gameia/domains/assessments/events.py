"""Assessments domain event catalog."""

from __future__ import annotations

ASSESSMENTS_ASSESSMENT_SUBMITTED = "assessments.assessment.submitted"
ASSESSMENTS_CONSEQUENCE_GENERATED = "assessments.consequence.generated"
ASSESSMENTS_CONSEQUENCE_ACCEPTED = "assessments.consequence.accepted"
ASSESSMENTS_CONSEQUENCE_DISMISSED = "assessments.consequence.dismissed"
ASSESSMENTS_REQUEST_CREATED = "assessments.request.created"
ASSESSMENTS_REQUEST_COMPLETED = "assessments.request.completed"

EVENT_CATALOG = {
    ASSESSMENTS_ASSESSMENT_SUBMITTED: {
        "version": "v1",
        "payload": {
            "assessment_id": "int",
            "user_id": "str",
            "evaluator_id": "str?",
            "assessment_type": "str",
            "total_score": "float?",
            "skill_scores": "dict[str, float]",
        },
    },
    ASSESSMENTS_CONSEQUENCE_GENERATED: {
        "version": "v1",
        "payload": {
            "consequence_id": "int",
            "user_id": "str",
            "consequence_type": "str",
            "target_type": "str?",
            "target_id": "str?",
            "priority": "int",
        },
    },
    ASSESSMENTS_CONSEQUENCE_ACCEPTED: {
        "version": "v1",
        "payload": {
            "consequence_id": "int",
            "user_id": "str",
            "consequence_type": "str",
            "goal_id": "int?",
            "action_id": "int?",
            "request_id": "int?",
        },
    },
    ASSESSMENTS_CONSEQUENCE_DISMISSED: {
        "version": "v1",
        "payload": {"consequence_id": "int", "user_id": "str", "consequence_type": "str"},
    },
    ASSESSMENTS_REQUEST_CREATED: {
        "version": "v1",
        "payload": {
            "request_id": "int",
            "user_id": "str",
            "origin_type": "str",
            "origin_id": "str?",
            "skill_ids": "list[str]",
        },
    },
    ASSESSMENTS_REQUEST_COMPLETED: {
        "version": "v1",
        "payload": {"request_id": "int", "user_id": "str", "assessment_id": "int"},
    },
}

__all__ = [
    "EVENT_CATALOG",
    "ASSESSMENTS_ASSESSMENT_SUBMITTED",
    "ASSESSMENTS_CONSEQUENCE_GENERATED",
    "ASSESSMENTS_CONSEQUENCE_ACCEPTED",
    "ASSESSMENTS_CONSEQUENCE_DISMISSED",
    "ASSESSMENTS_REQUEST_CREATED",
    "ASSESSMENTS_REQUEST_COMPLETED",
]
