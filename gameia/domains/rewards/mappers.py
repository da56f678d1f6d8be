"""DTO mappers for the rewards domain."""

from __future__ import annotations

from typing import Optional

from gameia.domains.rewards.models.reward_models import RewardTransaction, UserBalance, UserStreak
from gameia.domains.rewards.schemas.reward_schemas import BalanceResponse, RewardTransactionResponse


def map_transaction_response(txn: RewardTransaction) -> RewardTransactionResponse:
    return RewardTransactionResponse(
        id=txn.id,
        source_type=txn.source_type,
        source_id=txn.source_id,
        attempt_id=txn.attempt_id,
        xp=txn.xp,
        coins=txn.coins,
        target_met=txn.target_met,
        participation=txn.participation,
        reason=txn.reason,
        created_at=txn.created_at,
    )


def map_balance_response(balance: Optional[UserBalance], streak: Optional[UserStreak]) -> BalanceResponse:
    return BalanceResponse(
        xp=balance.xp if balance else 0,
        coins=balance.coins if balance else 0,
        current_streak=streak.current_streak if streak else 0,
        longest_streak=streak.longest_streak if streak else 0,
    )
