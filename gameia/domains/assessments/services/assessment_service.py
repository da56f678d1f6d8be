"""Assessment submission with best-effort consequence generation."""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from gameia.core.errors import PersistenceError, ValidationError
from gameia.domains.activity.schemas.activity_schemas import SourceType
from gameia.domains.assessments.events import ASSESSMENTS_ASSESSMENT_SUBMITTED
from gameia.domains.assessments.models.assessment_models import (
    AssessmentConsequence,
    AssessmentSubmission,
)
from gameia.domains.assessments.schemas.assessment_schemas import AssessmentType
from gameia.domains.assessments.services.consequence_service import generate_consequences
from gameia.domains.assessments.services.request_service import complete_requests
from gameia.domains.skills.schemas.skill_schemas import ImpactType
from gameia.domains.skills.services.impact_service import record_impact
from gameia.extensions import db
from gameia.platform.outbox import enqueue as enqueue_outbox

logger = logging.getLogger(__name__)

_IMPACT_BY_ASSESSMENT = {
    AssessmentType.MANAGER.value: ImpactType.MANAGER_FEEDBACK,
    AssessmentType.SELF.value: ImpactType.SELF_ASSESSMENT,
    AssessmentType.PEER.value: ImpactType.PEER_FEEDBACK,
    AssessmentType.FEEDBACK_360.value: ImpactType.PEER_FEEDBACK,
    AssessmentType.CONTEXTUAL.value: ImpactType.ASSESSMENT,
}


def _to_percent(value: float) -> float:
    """1-5 scale answers become 20-100; anything above 5 is already 0-100."""
    if value <= 5:
        return value * 20
    return min(value, 100.0)


def score_responses(
    responses: Mapping[str, Any],
    skill_ids: Optional[Iterable[str]] = None,
) -> Tuple[Optional[float], Dict[str, float]]:
    """
    Return ``(total_score, skill_scores)`` from ``{question_id: {value, skill_id}}``.

    Text answers are ignored. Answers without a ``skill_id`` count toward the
    total, and toward the submission's skills when exactly one is given.
    """
    skill_ids = list(skill_ids or [])
    fallback_skill = skill_ids[0] if len(skill_ids) == 1 else None
    values: List[float] = []
    by_skill: Dict[str, List[float]] = {}
    for item in responses.values():
        entry = item if isinstance(item, Mapping) else {"value": item}
        raw = entry.get("value")
        if isinstance(raw, bool) or not isinstance(raw, (int, float)):
            continue
        if raw < 0:
            raise ValidationError("Response values must be positive", details={"field": "responses"})
        percent = _to_percent(float(raw))
        values.append(percent)
        skill_id = entry.get("skill_id") or fallback_skill
        if skill_id:
            by_skill.setdefault(skill_id, []).append(percent)

    total = round(sum(values) / len(values), 2) if values else None
    skill_scores = {skill: round(sum(v) / len(v), 2) for skill, v in by_skill.items()}
    return total, skill_scores


def submit_assessment(
    user_id: str,
    assessment_type: str,
    responses: Mapping[str, Any],
    skill_ids: Optional[Iterable[str]] = None,
    *,
    evaluator_id: Optional[str] = None,
    organization_id: Optional[str] = None,
    context_id: Optional[str] = None,
) -> Tuple[AssessmentSubmission, List[AssessmentConsequence]]:
    """
    Persist the submission and its skill impacts, then generate follow-ups.
    A ``context_id`` closes the user's open requests for that context.

    The submission is committed before the generator runs. Generator errors
    and timeouts are logged and yield an empty consequence list; they never
    fail or roll back the submission.
    """
    try:
        assessment_type = AssessmentType(assessment_type).value
    except ValueError:
        raise ValidationError(
            f"Unknown assessment_type: {assessment_type}", details={"field": "assessment_type"}
        ) from None
    if not responses:
        raise ValidationError("responses are required", details={"field": "responses"})
    skill_ids = list(dict.fromkeys(skill_ids or []))
    total_score, skill_scores = score_responses(responses, skill_ids)

    submission = AssessmentSubmission(
        user_id=user_id,
        evaluator_id=evaluator_id or user_id,
        organization_id=organization_id,
        assessment_type=assessment_type,
        context_id=context_id,
        responses={k: (dict(v) if isinstance(v, Mapping) else v) for k, v in responses.items()},
        total_score=total_score,
        skill_scores=skill_scores,
        skill_ids=skill_ids,
    )
    try:
        db.session.add(submission)
        db.session.flush()
        impact_type = _IMPACT_BY_ASSESSMENT[assessment_type]
        for skill_id, score in skill_scores.items():
            record_impact(
                user_id,
                skill_id,
                SourceType.FEEDBACK_360.value,
                f"assessment:{submission.id}",
                impact_type.value,
                score,
                {"assessment_type": assessment_type, "evaluator_id": submission.evaluator_id},
                organization_id=organization_id,
                commit=False,
            )
        if context_id:
            complete_requests(user_id, context_id, submission.id, organization_id=organization_id)
        enqueue_outbox(
            ASSESSMENTS_ASSESSMENT_SUBMITTED,
            {
                "assessment_id": submission.id,
                "user_id": user_id,
                "evaluator_id": submission.evaluator_id,
                "assessment_type": assessment_type,
                "total_score": total_score,
                "skill_scores": skill_scores,
            },
            user_id=user_id,
            organization_id=organization_id,
        )
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Assessment submission failed (user=%s)", user_id)
        raise PersistenceError("Assessment not saved") from exc

    consequences: List[AssessmentConsequence] = []
    deadline = time.monotonic() + float(current_app.config.get("CONSEQUENCE_TIMEOUT_SECONDS", 2.0))
    try:
        with db.session.begin_nested():
            consequences = generate_consequences(
                user_id,
                assessment_type,
                submission.id,
                skill_scores,
                total_score,
                skill_ids,
                organization_id=organization_id,
                deadline=deadline,
            )
        db.session.commit()
    except Exception:  # noqa: BLE001 - follow-ups are best effort
        logger.exception("Consequence generation failed for assessment %s", submission.id)
        db.session.rollback()
        consequences = []
    return submission, consequences
