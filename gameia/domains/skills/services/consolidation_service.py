"""Skill score consolidation: a windowed, weighted read over the impact log."""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Mapping, Optional

from flask import current_app

from gameia.core.errors import ValidationError
from gameia.core.utils.validation import clamp_score
from gameia.domains.skills.models.skill_impact import SkillImpactEvent
from gameia.domains.skills.schemas.skill_schemas import (
    ConsolidatedSkillScore,
    ImpactBreakdown,
    ImpactType,
)


def _usable_score(impact: SkillImpactEvent) -> Optional[float]:
    # Raw XP rows and unscored impacts carry no normalized score.
    return clamp_score(impact.normalized_score)


def summarize_impacts(impacts: Iterable[SkillImpactEvent]) -> Dict[str, ImpactBreakdown]:
    """Group impacts by type into ``avg_score`` / ``count`` / ``total_xp``."""
    scores: Dict[str, List[float]] = defaultdict(list)
    counts: Dict[str, int] = defaultdict(int)
    xp: Dict[str, float] = defaultdict(float)
    for impact in impacts:
        key = impact.impact_type
        counts[key] += 1
        if key == ImpactType.XP_GAIN.value:
            xp[key] += float(impact.impact_value or 0)
        score = _usable_score(impact)
        if score is not None:
            scores[key].append(score)

    breakdown = {}
    for key in sorted(counts):
        values = scores.get(key) or []
        breakdown[key] = ImpactBreakdown(
            avg_score=round(sum(values) / len(values), 2) if values else None,
            count=counts[key],
            total_xp=xp.get(key, 0.0),
        )
    return breakdown


def weighted_score(breakdown: Mapping[str, ImpactBreakdown], weights: Mapping[str, float]) -> Optional[float]:
    """
    Weighted mean of per-type averages.

    Types with weight 0 (XP gains by default) or without a usable average are
    left out. Returns None when nothing is left, so "no assessment signal" is
    never reported as a zero score.
    """
    numerator = 0.0
    denominator = 0.0
    for impact_type, group in breakdown.items():
        weight = float(weights.get(impact_type, 0) or 0)
        if weight <= 0 or group.avg_score is None:
            continue
        numerator += weight * group.avg_score
        denominator += weight
    if denominator == 0:
        return None
    return round(numerator / denominator, 2)


def _window_query(user_id: str, skill_id: str, period_days: int, now: Optional[datetime]):
    if period_days is None or int(period_days) < 1:
        raise ValidationError("period_days must be positive", details={"field": "period_days"})
    since = (now or datetime.utcnow()) - timedelta(days=int(period_days))
    query = SkillImpactEvent.query.filter(
        SkillImpactEvent.user_id == user_id,
        SkillImpactEvent.skill_id == skill_id,
        SkillImpactEvent.created_at >= since,
    )
    if now is not None:
        query = query.filter(SkillImpactEvent.created_at <= now)
    return query.order_by(SkillImpactEvent.created_at.asc(), SkillImpactEvent.id.asc())


def get_consolidated_score(
    user_id: str,
    skill_id: str,
    period_days: Optional[int] = None,
    *,
    now: Optional[datetime] = None,
    weights: Optional[Mapping[str, float]] = None,
) -> ConsolidatedSkillScore:
    """Recompute the consolidated score for ``(user, skill)`` from the log."""
    if period_days is None:
        period_days = current_app.config.get("SKILL_SCORE_DEFAULT_PERIOD_DAYS", 90)
    if weights is None:
        weights = current_app.config["SKILL_IMPACT_WEIGHTS"]

    impacts = _window_query(user_id, skill_id, period_days, now).all()
    breakdown = summarize_impacts(impacts)
    return ConsolidatedSkillScore(
        skill_id=skill_id,
        user_id=user_id,
        period_days=int(period_days),
        consolidated_score=weighted_score(breakdown, weights),
        breakdown=breakdown,
        total_events=len(impacts),
        last_activity=max((i.created_at for i in impacts), default=None),
    )


def get_skill_sources(user_id: str, skill_id: str, period_days: Optional[int] = None) -> Dict[str, ImpactBreakdown]:
    return get_consolidated_score(user_id, skill_id, period_days).breakdown
