"""DTO mappers for the PDI domain."""

from __future__ import annotations

from gameia.domains.pdi.models.pdi_models import (
    DevelopmentGoal,
    DevelopmentPlan,
    GoalProgressEvent,
    PDILinkedAction,
)
from gameia.domains.pdi.schemas.pdi_schemas import (
    GoalResponse,
    LinkedActionResponse,
    PlanResponse,
    ProgressEventResponse,
)


def map_goal_response(goal: DevelopmentGoal) -> GoalResponse:
    return GoalResponse(
        id=goal.id,
        plan_id=goal.plan_id,
        skill_id=goal.skill_id,
        title=goal.title,
        target_date=goal.target_date,
        priority=goal.priority,
        status=goal.status,
        progress=goal.progress,
        linked_training_ids=goal.linked_training_ids or [],
        linked_challenge_ids=goal.linked_challenge_ids or [],
        linked_cognitive_test_ids=goal.linked_cognitive_test_ids or [],
        related_games=goal.related_games or [],
        auto_progress_enabled=goal.auto_progress_enabled is not False,
        xp_reward=goal.xp_reward,
        weight=goal.weight,
        last_auto_update=goal.last_auto_update,
        stagnant_since=goal.stagnant_since,
    )


def map_plan_response(plan: DevelopmentPlan) -> PlanResponse:
    return PlanResponse(
        id=plan.id,
        title=plan.title,
        description=plan.description,
        status=plan.status,
        created_at=plan.created_at,
        goals=[map_goal_response(g) for g in plan.goals],
    )


def map_progress_event(event: GoalProgressEvent) -> ProgressEventResponse:
    return ProgressEventResponse(
        id=event.id,
        goal_id=event.goal_id,
        source_type=event.source_type,
        source_id=event.source_id,
        source_name=event.source_name,
        progress_before=event.progress_before,
        progress_after=event.progress_after,
        progress_delta=event.progress_delta,
        xp_earned=event.xp_earned,
        metadata=event.meta or {},
        created_at=event.created_at,
    )


def map_linked_action(action: PDILinkedAction) -> LinkedActionResponse:
    return LinkedActionResponse(
        id=action.id,
        goal_id=action.goal_id,
        action_type=action.action_type,
        action_id=action.action_id,
        action_name=action.action_name,
        priority=action.priority,
        expected_progress_impact=action.expected_progress_impact,
        suggested_at=action.suggested_at,
        completed_at=action.completed_at,
        dismissed_at=action.dismissed_at,
    )
