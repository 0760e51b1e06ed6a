# Overview: Domain error taxonomy shared by services and routes.

"""
Back-office error taxonomy.

Services raise these; routes turn them into envelope responses via
responses.error_response(). Each class carries the HTTP status it maps to.

    ValidationError           400  bad input, checked before any mutation
    PermissionDeniedError     403  authenticated but not allowed
    NotFoundError             404  referenced entity does not exist
    ConflictError             409  business rule conflict (duplicate, in use)
      InvalidTransitionError  409  status change not allowed from current state
    InsufficientStockError    409  ledger cannot cover a deduction
    InternalError             500  unexpected failure
"""

from __future__ import annotations

from decimal import Decimal


class BackofficeError(Exception):
    """Base class for expected, client-visible failures."""
    status_code = 500


class ValidationError(BackofficeError, ValueError):
    """400-level input problem."""
    status_code = 400


class PermissionDeniedError(BackofficeError):
    """403-level authorization failure inside a service."""
    status_code = 403


class NotFoundError(BackofficeError):
    """404-level missing entity."""
    status_code = 404


class ConflictError(BackofficeError, ValueError):
    """409-level business rule conflict (e.g., duplicate name, entity in use)."""
    status_code = 409


class InvalidTransitionError(ConflictError):
    """Raised when a status change is not allowed from the current status."""

    def __init__(self, message: str, *, current_status: str | None = None, target_status: str | None = None):
        super().__init__(message)
        self.current_status = current_status
        self.target_status = target_status


class InsufficientStockError(BackofficeError):
    """
    Raised when the ledger cannot cover a deduction.

    Carries enough detail for the caller to show which ingredient is short.
    """
    status_code = 409

    def __init__(
        self,
        *,
        ingredient_id: int,
        ingredient_name: str,
        location_id: int,
        required: Decimal,
        available: Decimal,
        unit: str | None = None,
    ):
        self.ingredient_id = ingredient_id
        self.ingredient_name = ingredient_name
        self.location_id = location_id
        self.required = required
        self.available = available
        self.unit = unit
        unit_str = f" {unit}" if unit else ""
        super().__init__(
            f"Insufficient stock for {ingredient_name}: "
            f"required {required}{unit_str}, available {available}{unit_str}"
        )


class InternalError(BackofficeError):
    """500-level failure that should never reach a client with details."""
    status_code = 500
