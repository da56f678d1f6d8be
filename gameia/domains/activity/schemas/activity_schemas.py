"""Canonical activity event and its enums."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class EventType(str, Enum):
    GAME_COMPLETED = "game_completed"
    TEST_COMPLETED = "test_completed"
    TRAINING_COMPLETED = "training_completed"
    MODULE_COMPLETED = "module_completed"
    FEEDBACK_GIVEN = "feedback_given"
    PDI_CHECKIN = "pdi_checkin"
    ONE_ON_ONE_ACTION_COMPLETED = "one_on_one_action_completed"
    CHALLENGE_COMPLETED = "challenge_completed"


class SourceType(str, Enum):
    GAME = "game"
    COGNITIVE_TEST = "cognitive_test"
    TRAINING = "training"
    MODULE = "module"
    CHALLENGE = "challenge"
    FEEDBACK_360 = "feedback_360"
    PDI_GOAL = "pdi_goal"
    ONE_ON_ONE = "one_on_one"


SOURCE_BY_EVENT: Dict[EventType, SourceType] = {
    EventType.GAME_COMPLETED: SourceType.GAME,
    EventType.TEST_COMPLETED: SourceType.COGNITIVE_TEST,
    EventType.TRAINING_COMPLETED: SourceType.TRAINING,
    EventType.MODULE_COMPLETED: SourceType.MODULE,
    EventType.CHALLENGE_COMPLETED: SourceType.CHALLENGE,
    EventType.FEEDBACK_GIVEN: SourceType.FEEDBACK_360,
    EventType.PDI_CHECKIN: SourceType.PDI_GOAL,
    EventType.ONE_ON_ONE_ACTION_COMPLETED: SourceType.ONE_ON_ONE,
}
EVENT_BY_SOURCE: Dict[SourceType, EventType] = {v: k for k, v in SOURCE_BY_EVENT.items()}

FEEDBACK_RELATIONSHIPS = ("peer", "manager", "self", "direct_report")


class ActivityEvent(BaseModel):
    """Immutable fact of something a user completed."""

    model_config = ConfigDict(frozen=True, use_enum_values=False)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    user_id: str = Field(min_length=1, max_length=64)
    organization_id: Optional[str] = Field(default=None, max_length=64)
    event_type: EventType
    source_type: SourceType
    source_id: str = Field(min_length=1, max_length=128)
    source_name: Optional[str] = Field(default=None, max_length=255)
    score: Optional[float] = Field(default=None, ge=0, le=100)
    skill_ids: Tuple[str, ...] = ()
    occurred_at: datetime = Field(default_factory=datetime.utcnow)
    attempt_id: Optional[str] = Field(default=None, max_length=128)
    difficulty: Optional[str] = Field(default=None, max_length=32)
    completion_time_ratio: Optional[float] = Field(default=None, ge=0)
    relationship: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("relationship")
    @classmethod
    def _known_relationship(cls, value: Optional[str]):
        if value is not None and value not in FEEDBACK_RELATIONSHIPS:
            raise ValueError(f"relationship must be one of {', '.join(FEEDBACK_RELATIONSHIPS)}")
        return value

    @property
    def idempotency_key(self) -> Optional[str]:
        if not self.attempt_id:
            return None
        return f"{self.user_id}:{self.source_type.value}:{self.source_id}:{self.attempt_id}"

    @property
    def reward_key(self) -> str:
        """Reward configs are keyed by game type for games, by source type otherwise."""
        if self.source_type is SourceType.GAME:
            return self.source_id
        return self.source_type.value


class RewardSummary(BaseModel):
    xp: int
    coins: int
    target_met: bool
    participation: bool
    reason: Optional[str] = None


class GoalUpdateResponse(BaseModel):
    goal_id: int
    status: str
    match_reason: Optional[str]
    progress_before: Optional[int]
    progress_after: Optional[int]
    progress_delta: int
    xp_earned: int
    error: Optional[str] = None


class ActivityOutcomeResponse(BaseModel):
    event_id: str
    event_type: str
    source_type: str
    source_id: str
    score: Optional[float]
    streak_days: int
    reward: Optional[RewardSummary]
    impact_ids: List[int]
    goal_updates: List[GoalUpdateResponse]
    goals_xp_earned: int


class ActivityEventRecordResponse(BaseModel):
    id: str
    event_type: str
    source_type: str
    source_id: str
    source_name: Optional[str]
    score: Optional[float]
    skill_ids: List[str]
    attempt_id: Optional[str]
    occurred_at: datetime
