"""Pure parts of goal auto-progress and score weighting."""

import pytest

pytestmark = pytest.mark.unit

from gameia.config import DEFAULT_PDI_PROGRESS_IMPACT, DEFAULT_SKILL_IMPACT_WEIGHTS
from gameia.domains.activity.schemas.activity_schemas import ActivityEvent, EventType, SourceType
from gameia.domains.pdi.models.pdi_models import DevelopmentGoal
from gameia.domains.pdi.services.progress_engine import (
    SKILL_MATCH,
    compute_progress_delta,
    goal_xp,
    match_reason,
)
from gameia.domains.skills.schemas.skill_schemas import ImpactBreakdown
from gameia.domains.skills.services.consolidation_service import weighted_score


def _event(source_type=SourceType.TRAINING, source_id="T1", score=None, skill_ids=()):
    event_type = {
        SourceType.TRAINING: EventType.TRAINING_COMPLETED,
        SourceType.GAME: EventType.GAME_COMPLETED,
        SourceType.CHALLENGE: EventType.CHALLENGE_COMPLETED,
        SourceType.MODULE: EventType.MODULE_COMPLETED,
    }[source_type]
    return ActivityEvent(
        user_id="u-1",
        event_type=event_type,
        source_type=source_type,
        source_id=source_id,
        score=score,
        skill_ids=tuple(skill_ids),
    )


def _goal(**fields):
    defaults = dict(
        linked_training_ids=[],
        linked_challenge_ids=[],
        linked_cognitive_test_ids=[],
        related_games=[],
        skill_id=None,
    )
    defaults.update(fields)
    return DevelopmentGoal(**defaults)


def test_training_delta_rounds_half_up_and_xp_is_proportional():
    delta = compute_progress_delta(SourceType.TRAINING, 90, DEFAULT_PDI_PROGRESS_IMPACT)
    assert delta == 23
    after = min(60 + delta, 100)
    assert after == 83
    assert goal_xp(after - 60, 200) == 46


def test_delta_without_score_uses_base():
    assert compute_progress_delta(SourceType.MODULE, None, DEFAULT_PDI_PROGRESS_IMPACT) == 8


def test_delta_multiplier_capped_then_source_max_applies():
    # 25 * 1.5 = 37.5 -> 38, under the max of 40
    assert compute_progress_delta(SourceType.TRAINING, 150, DEFAULT_PDI_PROGRESS_IMPACT) == 38
    table = {"training": {"base": 40, "max": 30}}
    assert compute_progress_delta("training", 100, table) == 30


def test_unknown_source_moves_nothing():
    assert compute_progress_delta(SourceType.FEEDBACK_360, 100, DEFAULT_PDI_PROGRESS_IMPACT) == 0


def test_zero_score_gives_zero_delta():
    assert compute_progress_delta(SourceType.GAME, 0, DEFAULT_PDI_PROGRESS_IMPACT) == 0


@pytest.mark.parametrize("actual, reward, expected", [(10, 100, 10), (23, 200, 46), (5, 50, 3), (0, 500, 0)])
def test_goal_xp(actual, reward, expected):
    assert goal_xp(actual, reward) == expected


def test_explicit_link_wins_over_skill_overlap():
    goal = _goal(linked_training_ids=["T1"], skill_id="s-1")
    assert match_reason(goal, _event(skill_ids=["s-1"])) == "linked_training"


def test_modules_match_by_skill_only():
    goal = _goal(linked_training_ids=["M7"], skill_id="s-1")
    assert match_reason(goal, _event(SourceType.MODULE, "M7")) is None
    assert match_reason(goal, _event(SourceType.MODULE, "M7", skill_ids=["s-1"])) == "skill_match"


def test_skill_overlap_matches():
    goal = _goal(skill_id="s-1")
    assert match_reason(goal, _event(SourceType.GAME, "g-1", skill_ids=["s-2", "s-1"])) == SKILL_MATCH


def test_no_match():
    goal = _goal(linked_challenge_ids=["T1"], skill_id="s-9")
    assert match_reason(goal, _event(skill_ids=["s-1"])) is None


def test_weighted_score_ignores_zero_weight_types():
    breakdown = {
        "manager_feedback": ImpactBreakdown(avg_score=80, count=1, total_xp=0),
        "self_assessment": ImpactBreakdown(avg_score=50, count=2, total_xp=0),
        "xp_gain": ImpactBreakdown(avg_score=100, count=4, total_xp=300),
    }
    # (3 * 80 + 1 * 50) / 4
    assert weighted_score(breakdown, DEFAULT_SKILL_IMPACT_WEIGHTS) == 72.5


def test_weighted_score_is_none_without_assessment_signal():
    breakdown = {"xp_gain": ImpactBreakdown(avg_score=None, count=3, total_xp=120)}
    assert weighted_score(breakdown, DEFAULT_SKILL_IMPACT_WEIGHTS) is None
    assert weighted_score({}, DEFAULT_SKILL_IMPACT_WEIGHTS) is None
