"""Reward math. Pure functions; Decimal throughout so halves round up."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from gameia.core.utils.validation import round_half_up
from gameia.domains.rewards.schemas.reward_schemas import Performance, RewardConfig, RewardResult

_ZERO = Decimal("0")
_ONE = Decimal("1")
_HUNDRED = Decimal("100")


def _dec(value) -> Decimal:
    return Decimal(str(value))


def time_bonus_percent(config: RewardConfig, ratio: Optional[float], full_ratio: float = 0.5) -> Decimal:
    """
    Bonus for finishing faster than expected.

    ``ratio`` is time spent over expected time. At or below ``full_ratio`` the
    whole ``max_bonus_percent`` is earned; above it the bonus falls linearly to
    zero at ratio 1. No ratio, no bonus.
    """
    bonus = config.time_bonus_config
    if not bonus.enabled or ratio is None:
        return _ZERO
    cap = _dec(bonus.max_bonus_percent)
    ratio_d = _dec(ratio)
    full = _dec(full_ratio)
    if ratio_d <= full:
        return cap
    if ratio_d >= _ONE:
        return _ZERO
    return min(cap, cap * (_ONE - ratio_d) / (_ONE - full))


def streak_bonus_percent(config: RewardConfig, streak_days: int) -> Decimal:
    bonus = config.streak_bonus_config
    if not bonus.enabled or streak_days <= 0:
        return _ZERO
    return min(_dec(bonus.bonus_per_day) * streak_days, _dec(bonus.max_bonus))


def compute_reward(config: RewardConfig, performance: Performance, *, full_ratio: float = 0.5) -> RewardResult:
    """Compute XP and coins for one completion. Never touches storage."""
    if not performance.target_met(config):
        return RewardResult(
            xp=config.participation_xp,
            coins=config.participation_coins,
            target_met=False,
            participation=True,
        )

    difficulty = _dec(config.difficulty_multipliers.for_difficulty(performance.difficulty))
    time_bonus = time_bonus_percent(config, performance.completion_time_ratio, full_ratio)
    streak_bonus = streak_bonus_percent(config, performance.streak_days)
    multiplier = difficulty * (_ONE + (time_bonus + streak_bonus) / _HUNDRED)

    xp = _dec(config.xp_base_reward) * _dec(config.xp_multiplier) * multiplier
    coins = _dec(config.coins_base_reward) * _dec(config.coins_multiplier) * multiplier
    return RewardResult(
        xp=round_half_up(xp),
        coins=round_half_up(coins),
        target_met=True,
        multiplier=float(multiplier),
        bonuses={
            "difficulty": float(difficulty),
            "time_percent": float(time_bonus),
            "streak_percent": float(streak_bonus),
        },
    )
