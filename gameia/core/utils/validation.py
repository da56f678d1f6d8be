"""Input validation helpers."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from gameia.core.errors import ValidationError


def require_fields(data: dict, *fields: str) -> None:
    for field in fields:
        value = data.get(field)
        if isinstance(value, str):
            value = value.strip()
        if value in (None, ""):
            raise ValidationError(f"Missing required field: {field}", details={"field": field})


def round_half_up(value) -> int:
    """Round to the nearest integer, halves away from zero (never truncates)."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def clamp_score(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    return max(0.0, min(100.0, float(value)))
