"""Centralised error handling and custom exceptions.

This module defines custom exception classes and provides
Flask error handlers that serialise them into JSON responses.
Services raise these exceptions to signal specific error
conditions without coupling themselves to HTTP response codes.
The Flask app registers the handlers during application factory
initialisation.
"""
from __future__ import annotations

import logging

from flask import jsonify
from marshmallow import ValidationError as SchemaValidationError

logger = logging.getLogger(__name__)


class PortalError(Exception):
    """Base class for errors that map onto an HTTP response."""

    code = "ERROR"
    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def payload(self) -> dict:
        return {"code": self.code, "message": self.message}

    def to_response(self, status_code: int | None = None):
        return jsonify({"error": self.payload()}), status_code or self.status_code


class ValidationError(PortalError):
    """Raised when input validation fails."""

    code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(self, message: str, fields: dict | None = None) -> None:
        super().__init__(message)
        self.fields = fields or {}

    def payload(self) -> dict:
        data = super().payload()
        data["fields"] = self.fields
        return data


class ForbiddenError(PortalError):
    """Raised when the current role may not perform an action."""

    code = "FORBIDDEN"
    status_code = 403

    def __init__(self, message: str = "Forbidden") -> None:
        super().__init__(message)


class NotFoundError(PortalError):
    """Raised when a requested resource cannot be found."""

    code = "NOT_FOUND"
    status_code = 404


class ConflictError(PortalError):
    """Raised when a uniqueness, workflow or eligibility conflict occurs."""

    code = "CONFLICT"
    status_code = 409


def register_error_handlers(app) -> None:
    """Register custom error handlers on the given Flask app."""
    @app.errorhandler(PortalError)
    def handle_portal_error(err: PortalError):
        if err.status_code >= 403:
            logger.warning("%s: %s", err.code, err.message)
        return err.to_response()

    @app.errorhandler(SchemaValidationError)
    def handle_schema_error(err: SchemaValidationError):
        messages = err.messages if isinstance(err.messages, dict) else {"_schema": err.messages}
        return ValidationError("Invalid input.", fields=messages).to_response()
