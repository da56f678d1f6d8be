"""Outbox worker settings, read from ``OUTBOX_*`` environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass


def _env(name: str, default: str) -> str:
    return os.environ.get(f"OUTBOX_{name}", default)


@dataclass
class DispatchConfig:
    batch_size: int
    poll_interval: float
    max_attempts: int
    backoff_seconds: float
    backoff_multiplier: float
    max_backoff_seconds: float = 900.0

    @classmethod
    def from_env(cls) -> "DispatchConfig":
        # Reward and progress notifications go stale quickly; retry fast and give up within ~15 min.
        return cls(
            batch_size=int(_env("BATCH_SIZE", "100")),
            poll_interval=float(_env("POLL_INTERVAL", "2")),
            max_attempts=int(_env("MAX_ATTEMPTS", "6")),
            backoff_seconds=float(_env("BACKOFF_SECONDS", "2")),
            backoff_multiplier=float(_env("BACKOFF_MULTIPLIER", "3")),
            max_backoff_seconds=float(_env("MAX_BACKOFF_SECONDS", "900")),
        )
