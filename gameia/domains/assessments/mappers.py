"""DTO mappers for the assessments domain."""

from __future__ import annotations

from gameia.domains.assessments.models.assessment_models import (
    AssessmentConsequence,
    AssessmentSubmission,
    ContextualAssessmentRequest,
)
from gameia.domains.assessments.schemas.assessment_schemas import (
    AssessmentRequestResponse,
    ConsequenceResponse,
    SubmissionResponse,
)


def map_submission_response(submission: AssessmentSubmission) -> SubmissionResponse:
    return SubmissionResponse(
        id=submission.id,
        user_id=submission.user_id,
        evaluator_id=submission.evaluator_id,
        assessment_type=submission.assessment_type,
        total_score=submission.total_score,
        skill_scores=submission.skill_scores or {},
        created_at=submission.created_at,
    )


def map_consequence_response(consequence: AssessmentConsequence) -> ConsequenceResponse:
    return ConsequenceResponse(
        id=consequence.id,
        consequence_type=consequence.consequence_type,
        target_type=consequence.target_type,
        target_id=consequence.target_id,
        title=consequence.title,
        description=consequence.description,
        priority=consequence.priority,
        skill_ids=consequence.skill_ids or [],
        status=consequence.status,
        created_at=consequence.created_at,
    )


def map_request_response(request: ContextualAssessmentRequest) -> AssessmentRequestResponse:
    return AssessmentRequestResponse(
        id=request.id,
        origin_type=request.origin_type,
        origin_id=request.origin_id,
        assessment_type=request.assessment_type,
        skill_ids=request.skill_ids or [],
        consequence_id=request.consequence_id,
        assessment_id=request.assessment_id,
        status=request.status,
        created_at=request.created_at,
        completed_at=request.completed_at,
    )
