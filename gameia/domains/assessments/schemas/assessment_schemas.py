"""Assessment request/response DTOs."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field


class AssessmentType(str, Enum):
    CONTEXTUAL = "contextual"
    MANAGER = "manager"
    SELF = "self"
    PEER = "peer"
    FEEDBACK_360 = "feedback_360"


class ConsequenceType(str, Enum):
    PDI_GOAL = "pdi_goal"
    TRAINING_SUGGESTION = "training_suggestion"
    CHALLENGE = "challenge"
    ONE_ON_ONE = "one_on_one"
    INSIGHT = "insight"
    ASSESSMENT_REQUEST = "assessment_request"


class ResponseItem(BaseModel):
    value: Union[float, str]
    comment: Optional[str] = None
    skill_id: Optional[str] = None


class AssessmentSubmit(BaseModel):
    assessment_type: AssessmentType
    responses: Dict[str, ResponseItem] = Field(min_length=1)
    skill_ids: List[str] = Field(default_factory=list)
    evaluated_user_id: Optional[str] = Field(default=None, max_length=64)
    context_id: Optional[str] = Field(default=None, max_length=128)


class SubmissionResponse(BaseModel):
    id: int
    user_id: str
    evaluator_id: Optional[str]
    assessment_type: str
    total_score: Optional[float]
    skill_scores: Dict[str, float]
    created_at: datetime


class ConsequenceResponse(BaseModel):
    id: int
    consequence_type: str
    target_type: Optional[str]
    target_id: Optional[str]
    title: str
    description: Optional[str]
    priority: int
    skill_ids: List[str]
    status: str
    created_at: datetime


class AssessmentSuggestion(BaseModel):
    """A computed, unpersisted prompt to assess skills in context."""

    suggestion_type: str
    context_type: str
    context_id: str
    priority: int
    reason: str
    skill_ids: List[str]


class AssessmentRequestCreate(BaseModel):
    context_type: str = Field(min_length=1, max_length=32)
    context_id: Optional[str] = Field(default=None, max_length=128)
    skill_ids: List[str] = Field(min_length=1)
    assessment_type: AssessmentType = AssessmentType.SELF


class AssessmentRequestResponse(BaseModel):
    id: int
    origin_type: str
    origin_id: Optional[str]
    assessment_type: str
    skill_ids: List[str]
    consequence_id: Optional[int]
    assessment_id: Optional[int]
    status: str
    created_at: datetime
    completed_at: Optional[datetime]
