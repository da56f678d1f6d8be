"""DTO mappers for the skills domain."""

from __future__ import annotations

from gameia.domains.skills.models.skill_impact import SkillImpactEvent
from gameia.domains.skills.schemas.skill_schemas import ImpactResponse


def map_impact_response(impact: SkillImpactEvent) -> ImpactResponse:
    return ImpactResponse(
        id=impact.id,
        skill_id=impact.skill_id,
        source_type=impact.source_type,
        source_id=impact.source_id,
        impact_type=impact.impact_type,
        impact_value=impact.impact_value,
        normalized_score=impact.normalized_score,
        metadata=impact.meta or {},
        created_at=impact.created_at,
    )
