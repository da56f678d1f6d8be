"""Skill impact schemas and DTOs."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from gameia.domains.activity.schemas.activity_schemas import SourceType


class ImpactType(str, Enum):
    XP_GAIN = "xp_gain"
    ASSESSMENT = "assessment"
    PEER_FEEDBACK = "peer_feedback"
    MANAGER_FEEDBACK = "manager_feedback"
    SELF_ASSESSMENT = "self_assessment"
    GOAL_COMPLETION = "goal_completion"
    TEST_SCORE = "test_score"


class ImpactCreate(BaseModel):
    skill_id: str = Field(min_length=1, max_length=64)
    source_type: SourceType
    source_id: Optional[str] = Field(default=None, max_length=128)
    impact_type: ImpactType
    impact_value: float
    metadata: Dict[str, Any] = Field(default_factory=dict)


class ImpactResponse(BaseModel):
    id: int
    skill_id: str
    source_type: str
    source_id: Optional[str]
    impact_type: str
    impact_value: float
    normalized_score: Optional[float]
    metadata: Dict[str, Any]
    created_at: datetime


class ImpactBreakdown(BaseModel):
    avg_score: Optional[float]
    count: int
    total_xp: float


class ConsolidatedSkillScore(BaseModel):
    """Computed view; recomputed from the impact log on every call."""

    skill_id: str
    user_id: str
    period_days: int
    consolidated_score: Optional[float]
    breakdown: Dict[str, ImpactBreakdown]
    total_events: int
    last_activity: Optional[datetime]


class ScoreQuery(BaseModel):
    period_days: Optional[int] = Field(default=None, ge=1, le=3650)
