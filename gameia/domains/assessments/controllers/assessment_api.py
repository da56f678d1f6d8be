"""Assessment API controllers."""

from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required
from pydantic import ValidationError

from gameia.core.errors import GameiaError
from gameia.core.utils.decorators import csrf_protected
from gameia.core.utils.identity import current_identity, has_role
from gameia.core.utils.pagination import parse_limit
from gameia.core.utils.responses import error_response, schema_error_response
from gameia.domains.assessments.mappers import (
    map_consequence_response,
    map_request_response,
    map_submission_response,
)
from gameia.domains.assessments.schemas.assessment_schemas import AssessmentRequestCreate, AssessmentSubmit
from gameia.domains.assessments.services.assessment_service import submit_assessment
from gameia.domains.assessments.services.consequence_service import (
    accept_consequence,
    dismiss_consequence,
    list_consequences,
)
from gameia.domains.assessments.services.request_service import (
    create_request,
    list_requests,
    suggest_assessments,
)

assessment_api_bp = Blueprint("assessment_api", __name__)


@assessment_api_bp.post("")
@jwt_required()
@csrf_protected
def submit_assessment_endpoint():
    payload = request.get_json(silent=True) or {}
    try:
        data = AssessmentSubmit.model_validate(payload)
    except ValidationError as exc:
        return schema_error_response(exc)
    caller_id, org_id = current_identity()
    subject_id = data.evaluated_user_id or caller_id
    if subject_id != caller_id and not has_role("manager"):
        return jsonify({"ok": False, "error": "forbidden"}), 403
    try:
        submission, consequences = submit_assessment(
            subject_id,
            data.assessment_type.value,
            {key: item.model_dump() for key, item in data.responses.items()},
            data.skill_ids,
            evaluator_id=caller_id,
            organization_id=org_id,
            context_id=data.context_id,
        )
    except GameiaError as exc:
        return error_response(exc)
    return (
        jsonify(
            {
                "ok": True,
                "assessment": map_submission_response(submission).model_dump(mode="json"),
                "consequences": [map_consequence_response(c).model_dump(mode="json") for c in consequences],
            }
        ),
        201,
    )


@assessment_api_bp.get("/consequences")
@jwt_required()
def list_consequences_endpoint():
    user_id, _ = current_identity()
    status = request.args.get("status", "pending")
    if status == "all":
        status = None
    rows = list_consequences(user_id, status=status, limit=parse_limit(request.args.get("limit")))
    return jsonify({"ok": True, "consequences": [map_consequence_response(c).model_dump(mode="json") for c in rows]})


@assessment_api_bp.post("/consequences/<int:consequence_id>/accept")
@jwt_required()
@csrf_protected
def accept_consequence_endpoint(consequence_id: int):
    user_id, org_id = current_identity()
    try:
        consequence = accept_consequence(user_id, consequence_id, organization_id=org_id)
    except GameiaError as exc:
        return error_response(exc)
    return jsonify(
        {
            "ok": True,
            "consequence": map_consequence_response(consequence).model_dump(mode="json"),
            "created": consequence.meta or {},
        }
    )


@assessment_api_bp.post("/consequences/<int:consequence_id>/dismiss")
@jwt_required()
@csrf_protected
def dismiss_consequence_endpoint(consequence_id: int):
    user_id, org_id = current_identity()
    try:
        consequence = dismiss_consequence(user_id, consequence_id, organization_id=org_id)
    except GameiaError as exc:
        return error_response(exc)
    return jsonify({"ok": True, "consequence": map_consequence_response(consequence).model_dump(mode="json")})


@assessment_api_bp.get("/suggestions")
@jwt_required()
def list_suggestions_endpoint():
    user_id, _ = current_identity()
    try:
        suggestions = suggest_assessments(user_id, limit=parse_limit(request.args.get("limit"), default=10))
    except GameiaError as exc:
        return error_response(exc)
    return jsonify({"ok": True, "suggestions": [s.model_dump(mode="json") for s in suggestions]})


@assessment_api_bp.post("/requests")
@jwt_required()
@csrf_protected
def create_request_endpoint():
    """Accept a suggestion: open a contextual assessment request for it."""
    payload = request.get_json(silent=True) or {}
    try:
        data = AssessmentRequestCreate.model_validate(payload)
    except ValidationError as exc:
        return schema_error_response(exc)
    user_id, org_id = current_identity()
    try:
        created = create_request(
            user_id,
            data.context_type,
            data.context_id,
            data.skill_ids,
            assessment_type=data.assessment_type.value,
            organization_id=org_id,
        )
    except GameiaError as exc:
        return error_response(exc)
    return jsonify({"ok": True, "request": map_request_response(created).model_dump(mode="json")}), 201


@assessment_api_bp.get("/requests")
@jwt_required()
def list_requests_endpoint():
    user_id, _ = current_identity()
    status = request.args.get("status", "open")
    if status == "all":
        status = None
    rows = list_requests(user_id, status=status, limit=parse_limit(request.args.get("limit")))
    return jsonify({"ok": True, "requests": [map_request_response(r).model_dump(mode="json") for r in rows]})
