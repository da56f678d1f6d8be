"""PDI API controllers: plans, goals, check-ins and linked actions."""

from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required
from pydantic import ValidationError

from gameia.core.errors import GameiaError
from gameia.core.utils.decorators import csrf_protected
from gameia.core.utils.identity import current_identity
from gameia.core.utils.pagination import parse_limit
from gameia.core.utils.responses import error_response, schema_error_response
from gameia.domains.pdi.mappers import (
    map_goal_response,
    map_linked_action,
    map_plan_response,
    map_progress_event,
)
from gameia.domains.pdi.schemas.pdi_schemas import (
    CheckinRequest,
    GoalCreate,
    LinkedActionCreate,
    PlanCreate,
)
from gameia.domains.pdi.services.plan_service import (
    add_linked_action,
    complete_action,
    create_goal,
    create_plan,
    dismiss_action,
    get_progress_history,
    list_pending_actions,
    list_plans,
    manual_checkin,
)

pdi_api_bp = Blueprint("pdi_api", __name__)


@pdi_api_bp.post("/plans")
@jwt_required()
@csrf_protected
def create_plan_endpoint():
    payload = request.get_json(silent=True) or {}
    try:
        data = PlanCreate.model_validate(payload)
    except ValidationError as exc:
        return schema_error_response(exc)
    user_id, org_id = current_identity()
    try:
        plan = create_plan(user_id, org_id, **data.model_dump())
    except GameiaError as exc:
        return error_response(exc)
    return jsonify({"ok": True, "plan": map_plan_response(plan).model_dump(mode="json")}), 201


@pdi_api_bp.get("/plans")
@jwt_required()
def list_plans_endpoint():
    user_id, _ = current_identity()
    plans = list_plans(user_id, status=request.args.get("status"))
    return jsonify({"ok": True, "plans": [map_plan_response(p).model_dump(mode="json") for p in plans]})


@pdi_api_bp.post("/plans/<int:plan_id>/goals")
@jwt_required()
@csrf_protected
def create_goal_endpoint(plan_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        data = GoalCreate.model_validate(payload)
    except ValidationError as exc:
        return schema_error_response(exc)
    user_id, _ = current_identity()
    try:
        goal = create_goal(user_id, plan_id, **data.model_dump())
    except GameiaError as exc:
        return error_response(exc)
    return jsonify({"ok": True, "goal": map_goal_response(goal).model_dump(mode="json")}), 201


@pdi_api_bp.post("/goals/<int:goal_id>/checkin")
@jwt_required()
@csrf_protected
def checkin_endpoint(goal_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        data = CheckinRequest.model_validate(payload)
    except ValidationError as exc:
        return schema_error_response(exc)
    user_id, org_id = current_identity()
    try:
        goal = manual_checkin(user_id, goal_id, data.progress, data.note, organization_id=org_id)
    except GameiaError as exc:
        return error_response(exc)
    return jsonify({"ok": True, "goal": map_goal_response(goal).model_dump(mode="json")})


@pdi_api_bp.get("/goals/<int:goal_id>/history")
@jwt_required()
def goal_history_endpoint(goal_id: int):
    user_id, _ = current_identity()
    try:
        events = get_progress_history(user_id, goal_id, limit=parse_limit(request.args.get("limit")))
    except GameiaError as exc:
        return error_response(exc)
    return jsonify({"ok": True, "events": [map_progress_event(e).model_dump(mode="json") for e in events]})


@pdi_api_bp.post("/goals/<int:goal_id>/actions")
@jwt_required()
@csrf_protected
def add_action_endpoint(goal_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        data = LinkedActionCreate.model_validate(payload)
    except ValidationError as exc:
        return schema_error_response(exc)
    user_id, org_id = current_identity()
    try:
        action = add_linked_action(user_id, goal_id, organization_id=org_id, **data.model_dump())
    except GameiaError as exc:
        return error_response(exc)
    return jsonify({"ok": True, "action": map_linked_action(action).model_dump(mode="json")}), 201


@pdi_api_bp.get("/actions")
@jwt_required()
def pending_actions_endpoint():
    user_id, _ = current_identity()
    goal_id = request.args.get("goal_id", type=int)
    actions = list_pending_actions(user_id, goal_id=goal_id, limit=parse_limit(request.args.get("limit")))
    return jsonify({"ok": True, "actions": [map_linked_action(a).model_dump(mode="json") for a in actions]})


@pdi_api_bp.post("/actions/<int:action_id>/complete")
@jwt_required()
@csrf_protected
def complete_action_endpoint(action_id: int):
    user_id, _ = current_identity()
    try:
        action = complete_action(user_id, action_id)
    except GameiaError as exc:
        return error_response(exc)
    return jsonify({"ok": True, "action": map_linked_action(action).model_dump(mode="json")})


@pdi_api_bp.post("/actions/<int:action_id>/dismiss")
@jwt_required()
@csrf_protected
def dismiss_action_endpoint(action_id: int):
    user_id, _ = current_identity()
    try:
        action = dismiss_action(user_id, action_id)
    except GameiaError as exc:
        return error_response(exc)
    return jsonify({"ok": True, "action": map_linked_action(action).model_dump(mode="json")})
