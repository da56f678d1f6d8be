"""Typed reward configuration and reward results."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as SchemaValidationError

from gameia.core.errors import ConfigurationError


class DifficultyMultipliers(BaseModel):
    model_config = ConfigDict(extra="forbid")

    easy: Optional[float] = Field(default=None, ge=0)
    medium: Optional[float] = Field(default=None, ge=0)
    hard: Optional[float] = Field(default=None, ge=0)

    def for_difficulty(self, difficulty: Optional[str]) -> float:
        value = getattr(self, difficulty, None) if difficulty in ("easy", "medium", "hard") else None
        return 1.0 if value is None else value


class TimeBonusConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    enabled: bool = False
    max_bonus_percent: int = Field(default=0, ge=0)


class StreakBonusConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    enabled: bool = False
    bonus_per_day: int = Field(default=0, ge=0)
    max_bonus: int = Field(default=0, ge=0)


class RewardConfig(BaseModel):
    """Per-activity reward policy. Base rewards are required: there is no silent default."""

    model_config = ConfigDict(frozen=True)

    xp_base_reward: int = Field(ge=0)
    coins_base_reward: int = Field(ge=0)
    xp_multiplier: float = Field(default=1.0, ge=0)
    coins_multiplier: float = Field(default=1.0, ge=0)
    difficulty_multipliers: DifficultyMultipliers = Field(default_factory=DifficultyMultipliers)
    time_bonus_config: TimeBonusConfig = Field(default_factory=TimeBonusConfig)
    streak_bonus_config: StreakBonusConfig = Field(default_factory=StreakBonusConfig)
    participation_xp: int = Field(default=0, ge=0)
    participation_coins: int = Field(default=0, ge=0)
    target_score: Optional[float] = Field(default=None, ge=0, le=100)
    is_repeatable: bool = True
    max_attempts_per_day: Optional[int] = Field(default=None, ge=1)

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "RewardConfig":
        if not isinstance(data, Mapping):
            raise ConfigurationError("Reward config must be an object")
        try:
            return cls.model_validate(dict(data))
        except SchemaValidationError as exc:
            raise ConfigurationError(
                "Invalid reward config",
                details={"errors": exc.errors(include_url=False, include_context=False, include_input=False)},
            ) from exc


class Performance(BaseModel):
    difficulty: Optional[str] = None
    score: Optional[float] = Field(default=None, ge=0, le=100)
    streak_days: int = Field(default=0, ge=0)
    completion_time_ratio: Optional[float] = Field(default=None, ge=0)
    met_target: Optional[bool] = None

    def target_met(self, config: RewardConfig) -> bool:
        if self.met_target is not None:
            return self.met_target
        if config.target_score is None or self.score is None:
            return True
        return self.score >= config.target_score


class RewardResult(BaseModel):
    xp: int
    coins: int
    target_met: bool
    participation: bool = False
    multiplier: float = 1.0
    bonuses: Dict[str, float] = Field(default_factory=dict)


class RewardPreviewRequest(BaseModel):
    activity_type: str = Field(min_length=1, max_length=128)
    difficulty: Optional[str] = None
    score: Optional[float] = Field(default=None, ge=0, le=100)
    streak_days: Optional[int] = Field(default=None, ge=0)
    completion_time_ratio: Optional[float] = Field(default=None, ge=0)
    met_target: Optional[bool] = None


class RewardTransactionResponse(BaseModel):
    id: int
    source_type: str
    source_id: str
    attempt_id: Optional[str]
    xp: int
    coins: int
    target_met: bool
    participation: bool
    reason: Optional[str]
    created_at: datetime


class BalanceResponse(BaseModel):
    xp: int
    coins: int
    current_streak: int
    longest_streak: int
