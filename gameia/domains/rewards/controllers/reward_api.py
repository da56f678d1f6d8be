"""Reward API controllers."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import jwt_required
from pydantic import ValidationError

from gameia.core.errors import GameiaError
from gameia.core.utils.identity import current_identity
from gameia.core.utils.pagination import parse_limit
from gameia.core.utils.responses import error_response, schema_error_response
from gameia.domains.rewards.mappers import map_balance_response, map_transaction_response
from gameia.domains.rewards.models.reward_models import UserStreak
from gameia.domains.rewards.schemas.reward_schemas import Performance, RewardPreviewRequest
from gameia.domains.rewards.services.calculator import compute_reward
from gameia.domains.rewards.services.settlement_service import (
    get_balance,
    load_reward_config,
    reward_history,
)
from gameia.domains.rewards.services.streak_service import current_streak

reward_api_bp = Blueprint("reward_api", __name__)


@reward_api_bp.post("/preview")
@jwt_required()
def preview_reward_endpoint():
    """Compute what a completion would pay, without crediting anything."""
    payload = request.get_json(silent=True) or {}
    try:
        data = RewardPreviewRequest.model_validate(payload)
    except ValidationError as exc:
        return schema_error_response(exc)
    user_id, org_id = current_identity()
    try:
        config = load_reward_config(data.activity_type, org_id)
        performance = Performance(
            difficulty=data.difficulty,
            score=data.score,
            streak_days=data.streak_days if data.streak_days is not None else current_streak(user_id),
            completion_time_ratio=data.completion_time_ratio,
            met_target=data.met_target,
        )
        result = compute_reward(
            config, performance, full_ratio=current_app.config.get("TIME_BONUS_FULL_RATIO", 0.5)
        )
    except GameiaError as exc:
        return error_response(exc)
    return jsonify({"ok": True, "reward": result.model_dump()})


@reward_api_bp.get("/balance")
@jwt_required()
def balance_endpoint():
    user_id, _ = current_identity()
    streak = UserStreak.query.filter_by(user_id=user_id).first()
    return jsonify({"ok": True, "balance": map_balance_response(get_balance(user_id), streak).model_dump()})


@reward_api_bp.get("/history")
@jwt_required()
def history_endpoint():
    user_id, _ = current_identity()
    rows = reward_history(user_id, limit=parse_limit(request.args.get("limit")))
    return jsonify(
        {"ok": True, "transactions": [map_transaction_response(r).model_dump(mode="json") for r in rows]}
    )
