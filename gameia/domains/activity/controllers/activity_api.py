"""Activity ingest API: producers post completions here."""

from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required

from gameia.core.errors import GameiaError
from gameia.core.utils.decorators import csrf_protected
from gameia.core.utils.identity import current_identity
from gameia.core.utils.pagination import parse_limit
from gameia.core.utils.responses import error_response
from gameia.domains.activity.mappers import map_event_record
from gameia.domains.activity.services.ingest_service import ingest
from gameia.domains.activity.services.pipeline_service import process_activity, recent_events

activity_api_bp = Blueprint("activity_api", __name__)


@activity_api_bp.post("/events")
@jwt_required()
@csrf_protected
def submit_event_endpoint():
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({"ok": False, "error": "validation_error"}), 400
    user_id, org_id = current_identity()
    # Identity comes from the token, never from the body.
    payload = {**payload, "user_id": user_id, "organization_id": org_id}
    try:
        event = ingest(payload)
        outcome = process_activity(event)
    except GameiaError as exc:
        return error_response(exc)
    return jsonify({"ok": True, "outcome": outcome.to_response().model_dump(mode="json")}), 201


@activity_api_bp.get("/events")
@jwt_required()
def list_events_endpoint():
    user_id, _ = current_identity()
    records = recent_events(user_id, limit=parse_limit(request.args.get("limit")))
    return jsonify({"ok": True, "events": [map_event_record(r).model_dump(mode="json") for r in records]})
