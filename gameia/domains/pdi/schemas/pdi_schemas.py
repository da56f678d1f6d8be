"""Request/response DTOs for development plans."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

GoalPriority = Literal["low", "medium", "high"]


class PlanCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None


class GoalCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    skill_id: Optional[str] = Field(default=None, max_length=64)
    target_date: Optional[date] = None
    priority: GoalPriority = "medium"
    linked_training_ids: List[str] = Field(default_factory=list)
    linked_challenge_ids: List[str] = Field(default_factory=list)
    linked_cognitive_test_ids: List[str] = Field(default_factory=list)
    related_games: List[str] = Field(default_factory=list)
    auto_progress_enabled: bool = True
    xp_reward: Optional[int] = Field(default=None, ge=0)
    weight: float = Field(default=1.0, ge=0)


class CheckinRequest(BaseModel):
    progress: int = Field(ge=0, le=100)
    note: Optional[str] = Field(default=None, max_length=2000)


class LinkedActionCreate(BaseModel):
    action_type: str = Field(min_length=1, max_length=32)
    action_id: Optional[str] = Field(default=None, max_length=128)
    action_name: str = Field(min_length=1, max_length=255)
    priority: int = Field(default=2, ge=1, le=5)
    expected_progress_impact: Optional[int] = Field(default=None, ge=0, le=100)


class GoalResponse(BaseModel):
    id: int
    plan_id: int
    skill_id: Optional[str]
    title: str
    target_date: Optional[date]
    priority: str
    status: str
    progress: int
    linked_training_ids: List[str]
    linked_challenge_ids: List[str]
    linked_cognitive_test_ids: List[str]
    related_games: List[str]
    auto_progress_enabled: bool
    xp_reward: Optional[int]
    weight: float
    last_auto_update: Optional[datetime]
    stagnant_since: Optional[datetime]


class PlanResponse(BaseModel):
    id: int
    title: str
    description: Optional[str]
    status: str
    created_at: datetime
    goals: List[GoalResponse]


class ProgressEventResponse(BaseModel):
    id: int
    goal_id: int
    source_type: str
    source_id: Optional[str]
    source_name: Optional[str]
    progress_before: int
    progress_after: int
    progress_delta: int
    xp_earned: int
    metadata: Dict[str, Any]
    created_at: datetime


class LinkedActionResponse(BaseModel):
    id: int
    goal_id: int
    action_type: str
    action_id: Optional[str]
    action_name: str
    priority: int
    expected_progress_impact: Optional[int]
    suggested_at: datetime
    completed_at: Optional[datetime]
    dismissed_at: Optional[datetime]
