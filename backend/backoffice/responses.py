# Overview: JSON envelope helpers used by every API route.

"""
Response envelope: {success: bool, data?: any, error?: str}

Routes return ok(...) on success and fail(...) / error_response(exc)
on failure so clients can branch on `success` alone.
"""

from __future__ import annotations

from flask import jsonify

from .errors import BackofficeError, InsufficientStockError
from .quantities import decimal_str


def ok(data=None, status: int = 200):
    body = {"success": True}
    if data is not None:
        body["data"] = data
    return jsonify(body), status


def fail(error: str, status: int = 400, **extra):
    body = {"success": False, "error": error}
    body.update(extra)
    return jsonify(body), status


def error_response(exc: BackofficeError):
    """Map a domain exception to its envelope response and status code."""
    if isinstance(exc, InsufficientStockError):
        return fail(
            str(exc),
            exc.status_code,
            details={
                "ingredient_id": exc.ingredient_id,
                "ingredient_name": exc.ingredient_name,
                "location_id": exc.location_id,
                "required": decimal_str(exc.required),
                "available": decimal_str(exc.available),
            },
        )
    return fail(str(exc), exc.status_code)
