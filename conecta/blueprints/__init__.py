"""
Conecta Tool
Blueprint registry and the helpers every API blueprint shares.
"""

import logging

from flask import request

from conecta.core.exceptions import (
    ConflictError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from conecta.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def json_body():
    """Request JSON as a dict, or None when the body is missing or not an object."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else None


def missing_body():
    return api_error(E.VALIDATION_REQUIRED, "JSON body is required")


def register_service_errors(bp):
    """Map service-layer exceptions to JSON responses for one blueprint."""

    @bp.errorhandler(NotFoundError)
    def _handle_not_found(error: NotFoundError):
        return api_error(E.NOT_FOUND, str(error))

    @bp.errorhandler(ValidationError)
    def _handle_validation(error: ValidationError):
        return api_error(
            error.code or E.VALIDATION_RULE,
            str(error),
            status=422,
            details=error.details,
        )

    @bp.errorhandler(ConflictError)
    def _handle_conflict(error: ConflictError):
        return api_error(E.CONFLICT_DUPLICATE, str(error), details={"field": error.field})

    @bp.errorhandler(PersistenceError)
    def _handle_persistence(error: PersistenceError):
        logger.error(
            "Persistence failure in %s endpoint=%s: %s",
            bp.name, request.endpoint, error.cause,
        )
        return api_error(E.DATABASE, str(error))

    return bp
