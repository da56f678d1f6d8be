"""Reward math: multipliers, bonuses, participation floors."""

from decimal import Decimal

import pytest

pytestmark = pytest.mark.unit

from gameia.core.errors import ConfigurationError
from gameia.core.utils.validation import round_half_up
from gameia.domains.rewards.schemas.reward_schemas import Performance, RewardConfig
from gameia.domains.rewards.services.calculator import (
    compute_reward,
    streak_bonus_percent,
    time_bonus_percent,
)


@pytest.fixture
def full_config():
    return RewardConfig.from_mapping(
        {
            "xp_base_reward": 100,
            "coins_base_reward": 50,
            "difficulty_multipliers": {"hard": 1.5},
            "time_bonus_config": {"enabled": True, "max_bonus_percent": 20},
            "streak_bonus_config": {"enabled": True, "bonus_per_day": 5, "max_bonus": 50},
        }
    )


def test_full_reward_with_all_bonuses(full_config):
    performance = Performance(difficulty="hard", streak_days=10, met_target=True, completion_time_ratio=0.3)
    result = compute_reward(full_config, performance)

    assert result.bonuses == {"difficulty": 1.5, "time_percent": 20.0, "streak_percent": 50.0}
    assert result.multiplier == pytest.approx(2.55)
    assert result.xp == 255
    # 127.5 rounds half up
    assert result.coins == 128
    assert result.target_met is True
    assert result.participation is False


def test_participation_floor_ignores_base_and_multipliers():
    config = RewardConfig.from_mapping(
        {
            "xp_base_reward": 500,
            "coins_base_reward": 300,
            "xp_multiplier": 3,
            "difficulty_multipliers": {"hard": 2},
            "participation_xp": 10,
            "participation_coins": 5,
            "target_score": 70,
        }
    )
    result = compute_reward(config, Performance(difficulty="hard", score=50, streak_days=7))
    assert (result.xp, result.coins) == (10, 5)
    assert result.target_met is False
    assert result.participation is True


def test_target_met_when_score_reaches_target():
    config = RewardConfig(xp_base_reward=40, coins_base_reward=10, target_score=70)
    result = compute_reward(config, Performance(score=70))
    assert (result.xp, result.coins) == (40, 10)
    assert result.target_met is True


def test_unknown_difficulty_uses_neutral_multiplier(full_config):
    result = compute_reward(full_config, Performance(difficulty="nightmare"))
    assert result.xp == 100
    assert result.bonuses["difficulty"] == 1.0


def test_time_bonus_curve_is_capped_and_decreasing(full_config):
    assert time_bonus_percent(full_config, None) == 0
    assert time_bonus_percent(full_config, 0.1) == 20
    assert time_bonus_percent(full_config, 0.5) == 20
    assert time_bonus_percent(full_config, 0.75) == Decimal("10")
    assert time_bonus_percent(full_config, 1.0) == 0
    assert time_bonus_percent(full_config, 2.0) == 0
    ratios = [0.5, 0.6, 0.7, 0.8, 0.9, 1.0]
    bonuses = [time_bonus_percent(full_config, r) for r in ratios]
    assert bonuses == sorted(bonuses, reverse=True)


def test_disabled_bonuses_contribute_nothing():
    config = RewardConfig(xp_base_reward=10, coins_base_reward=1)
    assert time_bonus_percent(config, 0.1) == 0
    assert streak_bonus_percent(config, 30) == 0


def test_streak_bonus_capped(full_config):
    assert streak_bonus_percent(full_config, 0) == 0
    assert streak_bonus_percent(full_config, 3) == 15
    assert streak_bonus_percent(full_config, 40) == 50


def test_missing_base_reward_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        RewardConfig.from_mapping({"coins_base_reward": 5})


def test_unknown_difficulty_key_in_config_rejected():
    with pytest.raises(ConfigurationError):
        RewardConfig.from_mapping(
            {"xp_base_reward": 1, "coins_base_reward": 1, "difficulty_multipliers": {"insane": 3}}
        )


def test_non_mapping_config_rejected():
    with pytest.raises(ConfigurationError):
        RewardConfig.from_mapping(None)


@pytest.mark.parametrize(
    "value, expected",
    [(0.5, 1), (1.5, 2), (2.5, 3), (22.5, 23), (127.5, 128), (2.49, 2), (-0.5, -1)],
)
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected
