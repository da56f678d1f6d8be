"""Rewards domain event catalog."""

from __future__ import annotations

REWARDS_REWARD_SETTLED = "rewards.reward.settled"

EVENT_CATALOG = {
    REWARDS_REWARD_SETTLED: {
        "version": "v1",
        "payload": {
            "transaction_id": "int",
            "user_id": "str",
            "source_type": "str",
            "source_id": "str",
            "attempt_id": "str?",
            "xp": "int",
            "coins": "int",
            "target_met": "bool",
            "participation": "bool",
            "reason": "str?",
            "created_at": "datetime",
        },
    },
}

__all__ = ["EVENT_CATALOG", "REWARDS_REWARD_SETTLED"]
