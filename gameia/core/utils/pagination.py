"""Limit parsing for list endpoints."""

from __future__ import annotations


def parse_limit(raw, default: int = 50, maximum: int = 200) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return default
    return max(min(value, maximum), 1)
