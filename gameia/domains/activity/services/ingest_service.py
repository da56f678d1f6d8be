"""Event ingest: map heterogeneous completions onto ``ActivityEvent``.

Pure mapping stage. Nothing is persisted and nothing is retried here; a
``ValidationError`` means the producer must resubmit corrected data.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional, Tuple

from pydantic import ValidationError as SchemaValidationError

from gameia.core.errors import ValidationError
from gameia.core.utils.validation import require_fields
from gameia.domains.activity.schemas.activity_schemas import (
    EVENT_BY_SOURCE,
    SOURCE_BY_EVENT,
    ActivityEvent,
    EventType,
    SourceType,
)

_PASSTHROUGH_FIELDS = (
    "id",
    "organization_id",
    "source_name",
    "occurred_at",
    "attempt_id",
)


def ingest(raw: Mapping[str, Any]) -> ActivityEvent:
    """Validate and normalise a producer payload into an ``ActivityEvent``."""
    if not isinstance(raw, Mapping):
        raise ValidationError("Activity payload must be an object")
    require_fields(raw, "user_id", "source_id")

    event_type, source_type = _resolve_types(raw.get("event_type"), raw.get("source_type"))

    fields = {key: raw[key] for key in _PASSTHROUGH_FIELDS if raw.get(key) not in (None, "")}
    fields.update(
        user_id=str(raw["user_id"]).strip(),
        source_id=str(raw["source_id"]).strip(),
        event_type=event_type,
        source_type=source_type,
        score=_normalize_score(source_type, raw),
        skill_ids=_normalize_skill_ids(raw.get("skill_ids")),
        difficulty=_normalize_difficulty(raw.get("difficulty")),
        completion_time_ratio=_completion_ratio(raw),
        metadata=dict(raw.get("metadata") or {}),
    )
    if source_type is SourceType.FEEDBACK_360:
        relationship = raw.get("relationship")
        fields["relationship"] = str(relationship).strip().lower() if relationship else "peer"

    try:
        return ActivityEvent(**fields)
    except SchemaValidationError as exc:
        raise ValidationError(
            "Invalid activity event",
            details={"errors": exc.errors(include_url=False, include_context=False, include_input=False)},
        ) from exc


def _resolve_types(raw_event_type, raw_source_type) -> Tuple[EventType, SourceType]:
    if not raw_event_type and not raw_source_type:
        raise ValidationError("Missing required field: event_type", details={"field": "event_type"})
    event_type = _parse_enum(EventType, raw_event_type, "event_type") if raw_event_type else None
    source_type = _parse_enum(SourceType, raw_source_type, "source_type") if raw_source_type else None
    if event_type is None:
        event_type = EVENT_BY_SOURCE[source_type]
    if source_type is None:
        source_type = SOURCE_BY_EVENT[event_type]
    return event_type, source_type


def _parse_enum(enum_cls, value, field: str):
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        raise ValidationError(f"Unknown {field}: {value}", details={"field": field}) from None


def _number(raw: Mapping[str, Any], key: str) -> Optional[float]:
    value = raw.get(key)
    if value in (None, ""):
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be numeric", details={"field": key})
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be numeric", details={"field": key}) from None


def _ratio_score(numerator: Optional[float], denominator: Optional[float], field: str) -> Optional[float]:
    if numerator is None or denominator is None:
        return None
    if denominator <= 0:
        raise ValidationError(f"{field} must be positive", details={"field": field})
    return numerator / denominator * 100


def _normalize_score(source_type: SourceType, raw: Mapping[str, Any]) -> Optional[float]:
    score = _number(raw, "score")
    if score is None and source_type is SourceType.GAME:
        score = _ratio_score(_number(raw, "points"), _number(raw, "max_points"), "max_points")
    elif score is None and source_type is SourceType.COGNITIVE_TEST:
        score = _ratio_score(_number(raw, "correct"), _number(raw, "total"), "total")
    elif score is None and source_type is SourceType.FEEDBACK_360:
        rating = _number(raw, "rating")
        if rating is not None:
            if not 1 <= rating <= 5:
                raise ValidationError("rating must be between 1 and 5", details={"field": "rating"})
            score = rating * 20
    if score is None:
        return None
    return round(max(0.0, min(100.0, score)), 2)


def _normalize_skill_ids(value) -> Tuple[str, ...]:
    if value in (None, ""):
        return ()
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, Iterable):
        raise ValidationError("skill_ids must be a list", details={"field": "skill_ids"})
    seen = []
    for item in value:
        skill_id = str(item).strip()
        if skill_id and skill_id not in seen:
            seen.append(skill_id)
    return tuple(seen)


def _normalize_difficulty(value) -> Optional[str]:
    if value in (None, ""):
        return None
    return str(value).strip().lower()


def _completion_ratio(raw: Mapping[str, Any]) -> Optional[float]:
    ratio = _number(raw, "completion_time_ratio")
    if ratio is not None:
        return ratio
    spent = _number(raw, "time_spent_seconds")
    expected = _number(raw, "expected_seconds")
    if spent is None or not expected:
        return None
    return round(spent / expected, 4)
