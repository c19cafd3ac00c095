"""HTTP routes for the Flask API."""

from http import HTTPStatus
from typing import Any, Dict

from flask import Blueprint, current_app, jsonify, request
from pydantic import ValidationError

from retireplan.core.projection import (
    apply_inflation_adjustment,
    calculate_retirement,
    generate_monthly_projections,
)
from retireplan.domain.errors import PlanError, PlanValidationError
from retireplan.domain.validation import validate
from retireplan.models import PlanInput
from retireplan.schemas.api import PingResponse, ProjectionRequest

api_bp = Blueprint("api", __name__)


@api_bp.errorhandler(ValidationError)
def _handle_validation_error(exc: ValidationError):
    """Convert Pydantic validation errors into JSON responses."""
    current_app.logger.warning("rejected malformed payload: %s error(s)", exc.error_count())
    return jsonify({"detail": exc.errors(include_url=False, include_context=False)}), HTTPStatus.BAD_REQUEST


@api_bp.errorhandler(PlanValidationError)
def _handle_plan_validation_error(exc: PlanValidationError):
    current_app.logger.warning("plan failed validation: %s", exc)
    return (
        jsonify({"error": str(exc), "errors": [issue.model_dump() for issue in exc.errors]}),
        HTTPStatus.UNPROCESSABLE_ENTITY,
    )


@api_bp.errorhandler(PlanError)
def _handle_plan_error(exc: PlanError):
    current_app.logger.warning("calculation aborted: %s", exc)
    return jsonify({"error": str(exc)}), HTTPStatus.UNPROCESSABLE_ENTITY


def _settings():
    return current_app.config["RETIREPLAN_SETTINGS"]


@api_bp.get("/ping")
def ping() -> Any:
    """Health-check endpoint."""
    return jsonify(PingResponse(message="pong").model_dump())


@api_bp.post("/validate")
def validate_plan() -> Any:
    raw_payload: Dict[str, Any] = request.get_json(force=True, silent=False)
    return jsonify(validate(raw_payload).model_dump())


@api_bp.post("/calculate")
def calculate() -> Any:
    """Summary figures for a plan."""
    raw_payload: Dict[str, Any] = request.get_json(force=True, silent=False)
    plan = PlanInput.model_validate(raw_payload)
    result = calculate_retirement(plan, max_age=plan.maxAge or _settings().default_max_age)
    return jsonify(result.model_dump())


@api_bp.post("/projections")
def projections() -> Any:
    """Monthly series, optionally in today's money."""
    raw_payload: Dict[str, Any] = request.get_json(force=True, silent=False)
    payload = ProjectionRequest.model_validate(raw_payload)

    report = validate(payload.plan)
    if not report.isValid:
        raise PlanValidationError(report.errors)

    series = generate_monthly_projections(payload.plan, max_age=payload.maxAge)
    if payload.inflationAdjusted:
        series = apply_inflation_adjustment(series, payload.plan.inflationRate)
    return jsonify([point.model_dump() for point in series])
