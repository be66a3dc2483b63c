"""Unit calculator API with standardized responses."""

from __future__ import annotations

from datetime import timedelta
from typing import Any, Literal

import pydantic
from flask import Blueprint, Response, current_app, request

from common.errors import AppError, NotFoundAppError, UnprocessableAppError, ValidationAppError
from common.responses import fail, ok
from common.validation import SchemaModel, ValidationError, parse_model

from ..core import (
    CalculationError,
    ExpressionSyntaxError,
    SessionNotFound,
    SessionStore,
    SnapshotError,
    Workspace,
    build_workspace,
    describe_result,
    list_domains,
    list_unit_sets,
    workspace_from_json,
    workspace_to_json,
)

DomainName = Literal["real", "complex"]


class CalculatorSettings(SchemaModel):
    """Plugin settings from ``config.yml``."""

    default_domain: DomainName = "real"
    unit_sets: list[str] = ["common"]
    answer_variable: str = "ans"
    max_expression_length: int = pydantic.Field(default=1000, ge=1)
    max_call_depth: int = pydantic.Field(default=64, ge=1)
    session_ttl_minutes: float = pydantic.Field(default=30, gt=0)
    max_sessions: int = pydantic.Field(default=256, ge=1)
    precision: int = pydantic.Field(default=12, ge=1, le=17)


class EvaluatePayload(SchemaModel):
    expression: str
    session_id: str | None = None
    domain: DomainName | None = None
    unit_sets: list[str] | None = None


class SessionPayload(SchemaModel):
    domain: DomainName | None = None
    unit_sets: list[str] | None = None


class InputUnitPayload(SchemaModel):
    name: str
    expression: str


class OutputUnitPayload(SchemaModel):
    unit: str
    expression: str


class ImportPayload(SchemaModel):
    snapshot: dict[str, Any]


api_bp = Blueprint("unit_calculator_api", __name__, url_prefix="/api/unit_calculator")

_SESSIONS = SessionStore()


def _settings() -> CalculatorSettings:
    raw = current_app.config.get("PLUGIN_SETTINGS", {}).get("unit_calculator", {}) or {}
    return CalculatorSettings.model_validate(raw)


def _sessions(settings: CalculatorSettings) -> SessionStore:
    _SESSIONS.configure(
        ttl=timedelta(minutes=settings.session_ttl_minutes),
        max_sessions=settings.max_sessions,
    )
    return _SESSIONS


def _invalid_request(exc: ValidationError) -> Response:
    return fail(
        ValidationAppError(
            message=str(exc),
            code="calc.invalid_request",
            details={"errors": getattr(exc, "details", None)},
        )
    )


def _session_not_found(session_id: str) -> Response:
    return fail(
        NotFoundAppError(
            message=f"Session '{session_id}' expired or not found",
            code="calc.session_not_found",
        )
    )


def _evaluation_error(exc: CalculationError) -> Response:
    if isinstance(exc, ExpressionSyntaxError):
        return fail(ValidationAppError(message=str(exc), code="calc.syntax_error"))
    return fail(UnprocessableAppError(message=str(exc), code="calc.evaluation_error"))


def _new_workspace(settings: CalculatorSettings, domain: str | None, unit_sets: list[str] | None) -> Workspace:
    return build_workspace(
        domain or settings.default_domain,
        unit_sets if unit_sets is not None else settings.unit_sets,
        answer_variable=settings.answer_variable,
        max_call_depth=settings.max_call_depth,
    )


def _unknown_unit_sets(names: list[str] | None) -> list[str]:
    return [name for name in names or [] if name not in list_unit_sets()]


def _listing(workspace: Workspace) -> dict[str, Any]:
    domain = workspace.domain
    return {
        "variables": [
            {
                "name": name,
                "value": domain.to_json_scalar(variable.value.scalar),
                "unit": str(variable.value.unit),
                "display": workspace.format_quantity(variable.value),
                "description": variable.description,
            }
            for name, variable in workspace.variables.items()
        ],
        "constants": [
            {
                "name": name,
                "display": workspace.format_quantity(variable.value),
                "description": variable.description,
            }
            for name, variable in workspace.constants.items()
        ],
    }


def _units(workspace: Workspace) -> dict[str, Any]:
    domain = workspace.domain
    return {
        "input_units": [
            {
                "name": name,
                "factor": domain.to_json_scalar(quantity.scalar),
                "base": str(quantity.unit),
            }
            for name, quantity in sorted(workspace.input_units.items())
        ],
        "output_units": [
            {
                "unit": str(entry.unit),
                "base": str(entry.base),
                "factor": domain.to_json_scalar(entry.factor),
            }
            for entry in workspace.output_units
        ],
    }


def _functions(workspace: Workspace) -> dict[str, Any]:
    return {
        "user_functions": [
            {"name": function.name, "parameters": list(function.parameters), "body": function.body_text}
            for function in workspace.user_functions
        ],
        "builtin_functions": [
            {"name": function.name, "arity": function.arity, "description": function.description}
            for function in sorted(workspace.builtin_functions, key=lambda item: (item.name, item.arity))
        ],
    }


@api_bp.get("/domains")
def domains() -> Response:
    return ok({"domains": list_domains(), "default": _settings().default_domain})


@api_bp.get("/unit-sets")
def unit_sets() -> Response:
    return ok({"unit_sets": list_unit_sets(), "default": _settings().unit_sets})


@api_bp.post("/evaluate")
def evaluate_endpoint() -> Response:
    raw_payload = request.get_json(silent=True) or {}
    try:
        payload = parse_model(EvaluatePayload, raw_payload)
    except ValidationError as exc:
        return _invalid_request(exc)

    settings = _settings()
    if len(payload.expression) > settings.max_expression_length:
        return fail(
            ValidationAppError(
                message=f"Expressions are limited to {settings.max_expression_length} characters",
                code="calc.invalid_request",
            )
        )
    unknown = _unknown_unit_sets(payload.unit_sets)
    if unknown:
        return fail(
            ValidationAppError(message=f"Unknown unit set(s): {', '.join(unknown)}", code="calc.invalid_request")
        )

    if payload.session_id is None:
        workspace = _new_workspace(settings, payload.domain, payload.unit_sets)
        result = workspace.evaluate(payload.expression)
        data = describe_result(workspace, payload.expression, result, settings.precision)
        return ok(data, meta={"domain": workspace.domain.name})

    try:
        with _sessions(settings).use(payload.session_id) as session:
            workspace = session.workspace
            if payload.domain is not None and payload.domain != workspace.domain.name:
                return fail(
                    ValidationAppError(
                        message=f"Session '{session.session_id}' uses the {workspace.domain.name} domain",
                        code="calc.invalid_request",
                    )
                )
            result = workspace.evaluate(payload.expression)
            data = describe_result(workspace, payload.expression, result, settings.precision)
    except SessionNotFound:
        return _session_not_found(payload.session_id)
    return ok(data, meta={"domain": workspace.domain.name, "session_id": payload.session_id})


@api_bp.post("/sessions")
def create_session() -> Response:
    raw_payload = request.get_json(silent=True) or {}
    try:
        payload = parse_model(SessionPayload, raw_payload)
    except ValidationError as exc:
        return _invalid_request(exc)
    unknown = _unknown_unit_sets(payload.unit_sets)
    if unknown:
        return fail(
            ValidationAppError(message=f"Unknown unit set(s): {', '.join(unknown)}", code="calc.invalid_request")
        )

    settings = _settings()
    names = payload.unit_sets if payload.unit_sets is not None else settings.unit_sets
    workspace = _new_workspace(settings, payload.domain, names)
    session = _sessions(settings).create(workspace, tuple(names))
    return ok(session.describe(), status=201)


@api_bp.get("/sessions/<session_id>")
def get_session(session_id: str) -> Response:
    try:
        with _sessions(_settings()).use(session_id) as session:
            data = session.describe()
    except SessionNotFound:
        return _session_not_found(session_id)
    return ok(data)


@api_bp.delete("/sessions/<session_id>")
def delete_session(session_id: str) -> Response:
    if not _sessions(_settings()).delete(session_id):
        return _session_not_found(session_id)
    return ok({"session_id": session_id, "deleted": True})


def _read_session(session_id: str, render) -> Response:
    try:
        with _sessions(_settings()).use(session_id) as session:
            data = render(session.workspace)
    except SessionNotFound:
        return _session_not_found(session_id)
    return ok({"session_id": session_id, **data})


@api_bp.get("/sessions/<session_id>/variables")
def session_variables(session_id: str) -> Response:
    return _read_session(session_id, _listing)


@api_bp.get("/sessions/<session_id>/units")
def session_units(session_id: str) -> Response:
    return _read_session(session_id, _units)


@api_bp.get("/sessions/<session_id>/functions")
def session_functions(session_id: str) -> Response:
    return _read_session(session_id, _functions)


@api_bp.post("/sessions/<session_id>/units/input")
def define_input_unit(session_id: str) -> Response:
    raw_payload = request.get_json(silent=True) or {}
    try:
        payload = parse_model(InputUnitPayload, raw_payload)
    except ValidationError as exc:
        return _invalid_request(exc)
    try:
        with _sessions(_settings()).use(session_id) as session:
            workspace = session.workspace
            quantity = workspace.define_input_unit(payload.name, payload.expression)
            data = {
                "name": payload.name,
                "factor": workspace.domain.to_json_scalar(quantity.scalar),
                "base": str(quantity.unit),
            }
    except SessionNotFound:
        return _session_not_found(session_id)
    except CalculationError as exc:
        return _evaluation_error(exc)
    return ok(data, status=201)


@api_bp.post("/sessions/<session_id>/units/output")
def define_output_unit(session_id: str) -> Response:
    raw_payload = request.get_json(silent=True) or {}
    try:
        payload = parse_model(OutputUnitPayload, raw_payload)
    except ValidationError as exc:
        return _invalid_request(exc)
    try:
        with _sessions(_settings()).use(session_id) as session:
            workspace = session.workspace
            entry = workspace.define_output_unit(payload.unit, payload.expression)
            data = {
                "unit": str(entry.unit),
                "base": str(entry.base),
                "factor": workspace.domain.to_json_scalar(entry.factor),
            }
    except SessionNotFound:
        return _session_not_found(session_id)
    except CalculationError as exc:
        return _evaluation_error(exc)
    return ok(data, status=201)


@api_bp.get("/sessions/<session_id>/export")
def export_session(session_id: str) -> Response:
    return _read_session(session_id, lambda workspace: {"snapshot": workspace_to_json(workspace)})


@api_bp.post("/sessions/import")
def import_session() -> Response:
    raw_payload = request.get_json(silent=True) or {}
    try:
        payload = parse_model(ImportPayload, raw_payload)
    except ValidationError as exc:
        return _invalid_request(exc)
    try:
        workspace = workspace_from_json(payload.snapshot)
    except SnapshotError as exc:
        return fail(AppError(message=str(exc), code="calc.invalid_snapshot"))
    session = _sessions(_settings()).create(workspace)
    return ok(session.describe(), status=201)


blueprints = [api_bp]


__all__ = [
    "CalculatorSettings",
    "blueprints",
    "create_session",
    "define_input_unit",
    "define_output_unit",
    "delete_session",
    "domains",
    "evaluate_endpoint",
    "export_session",
    "get_session",
    "import_session",
    "session_functions",
    "session_units",
    "session_variables",
    "unit_sets",
]
