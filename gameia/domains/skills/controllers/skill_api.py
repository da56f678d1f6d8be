"""Skill impact API controllers (thin, service-backed)."""

from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required
from pydantic import ValidationError

from gameia.core.errors import GameiaError
from gameia.core.utils.decorators import csrf_protected
from gameia.core.utils.identity import current_identity, has_role
from gameia.core.utils.pagination import parse_limit
from gameia.core.utils.responses import error_response, schema_error_response
from gameia.domains.skills.mappers import map_impact_response
from gameia.domains.skills.schemas.skill_schemas import ImpactCreate, ImpactType, ScoreQuery
from gameia.domains.skills.services.consolidation_service import get_consolidated_score
from gameia.domains.skills.services.impact_service import (
    get_impact_history,
    get_skill_history,
    record_impact,
)

skill_api_bp = Blueprint("skill_api", __name__)

# Anything else is someone else's judgement and needs the manager role.
_SELF_REPORTED = {ImpactType.XP_GAIN, ImpactType.SELF_ASSESSMENT}


@skill_api_bp.post("/impacts")
@jwt_required()
@csrf_protected
def record_impact_endpoint():
    payload = request.get_json(silent=True) or {}
    try:
        data = ImpactCreate.model_validate(payload)
    except ValidationError as exc:
        return schema_error_response(exc)
    user_id, org_id = current_identity()
    if data.impact_type not in _SELF_REPORTED and not has_role("manager"):
        return jsonify({"ok": False, "error": "forbidden"}), 403
    try:
        impact_id = record_impact(
            user_id,
            data.skill_id,
            data.source_type.value,
            data.source_id,
            data.impact_type.value,
            data.impact_value,
            data.metadata,
            organization_id=org_id,
        )
    except GameiaError as exc:
        return error_response(exc)
    return jsonify({"ok": True, "impact_id": impact_id}), 201


@skill_api_bp.get("/impacts")
@jwt_required()
def list_impacts_endpoint():
    user_id, _ = current_identity()
    impacts = get_impact_history(user_id, limit=parse_limit(request.args.get("limit"), default=100))
    return jsonify({"ok": True, "impacts": [map_impact_response(i).model_dump(mode="json") for i in impacts]})


@skill_api_bp.get("/<skill_id>/history")
@jwt_required()
def skill_history_endpoint(skill_id: str):
    user_id, _ = current_identity()
    impacts = get_skill_history(user_id, skill_id, limit=parse_limit(request.args.get("limit")))
    return jsonify({"ok": True, "impacts": [map_impact_response(i).model_dump(mode="json") for i in impacts]})


@skill_api_bp.get("/<skill_id>/score")
@jwt_required()
def skill_score_endpoint(skill_id: str):
    try:
        query = ScoreQuery.model_validate(request.args.to_dict())
    except ValidationError as exc:
        return schema_error_response(exc)
    user_id, _ = current_identity()
    try:
        score = get_consolidated_score(user_id, skill_id, query.period_days)
    except GameiaError as exc:
        return error_response(exc)
    return jsonify({"ok": True, "score": score.model_dump(mode="json")})
