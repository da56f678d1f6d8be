"""Adapter for the conversational scoring oracle.

The oracle is opaque: ``evaluate(transcript) -> {score, depth, insights}``.
Only its score crosses into the pipeline, as a ``feedback_given`` event.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional, Protocol, Sequence

from gameia.core.errors import ValidationError
from gameia.domains.activity.schemas.activity_schemas import ActivityEvent
from gameia.domains.activity.services.ingest_service import ingest


class ScoringOracle(Protocol):
    def evaluate(self, transcript: Sequence[Mapping[str, Any]]) -> Mapping[str, Any]: ...


def reflection_event(
    oracle: ScoringOracle,
    transcript: Sequence[Mapping[str, Any]],
    *,
    user_id: str,
    source_id: str,
    organization_id: Optional[str] = None,
    skill_ids: Optional[Iterable[str]] = None,
) -> ActivityEvent:
    """Score a reflection transcript and build the self-feedback event."""
    if not transcript:
        raise ValidationError("Transcript is empty", details={"field": "transcript"})
    result = oracle.evaluate(transcript) or {}
    score = result.get("score")
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        raise ValidationError("Oracle returned no numeric score", details={"field": "score"})
    if not 0 <= score <= 100:
        raise ValidationError("Oracle score out of range", details={"field": "score"})

    return ingest(
        {
            "user_id": user_id,
            "organization_id": organization_id,
            "event_type": "feedback_given",
            "source_type": "feedback_360",
            "source_id": source_id,
            "score": score,
            "relationship": "self",
            "skill_ids": list(skill_ids or []),
            "metadata": {
                "origin": "ai_reflection",
                "depth": result.get("depth"),
                "insights": list(result.get("insights") or []),
            },
        }
    )
