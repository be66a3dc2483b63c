"""Standardized JSON response helpers."""

from __future__ import annotations

from typing import Any, Mapping

from flask import Response, jsonify

from .errors import AppError


def ok(data: Any, *, status: int = 200, meta: Mapping[str, Any] | None = None) -> Response:
    """Return a success envelope, optionally with a ``meta`` block."""

    payload: dict[str, Any] = {"success": True, "data": data}
    if meta:
        payload["meta"] = dict(meta)
    response = jsonify(payload)
    response.status_code = status
    return response


def fail(error: AppError | Mapping[str, Any], *, status: int | None = None) -> Response:
    """Return a standardized failure envelope."""

    if isinstance(error, AppError):
        body = dict(error.to_dict())
        status = status or error.status_code
    else:
        body = dict(error)
        status = status or 400
    response = jsonify({"success": False, "error": body})
    response.status_code = status
    return response


__all__ = ["ok", "fail"]
