"""
quotedesk/errors.py

Typed failures raised by services and the access gate.

Every failure carries:
- status_code: HTTP status used by the JSON error handler
- code: stable machine-readable identifier
- message: human-readable text

Routes never catch these; the handler registered in create_app() renders them.
"""

from __future__ import annotations

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException


class AppError(Exception):
    """Base class for all expected application failures."""

    status_code = 400
    code = "error"
    default_message = "Request failed."

    def __init__(self, message: str | None = None, *, details: list[str] | None = None):
        self.message = message or self.default_message
        self.details = details or []
        super().__init__(self.message)

    def to_dict(self) -> dict:
        payload = {"error": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(AppError):
    status_code = 400
    code = "validation_error"
    default_message = "Invalid input."


class InvalidCredentials(AppError):
    status_code = 401
    code = "invalid_credentials"
    default_message = "Invalid email or password."


class AccountInactive(AppError):
    status_code = 403
    code = "account_inactive"
    default_message = "Account is not active."


class Forbidden(AppError):
    status_code = 403
    code = "forbidden"
    default_message = "You do not have access to this resource."


class NotFound(AppError):
    status_code = 404
    code = "not_found"
    default_message = "Not found."


class InvalidOrExpiredToken(AppError):
    status_code = 400
    code = "invalid_or_expired_token"
    default_message = "Invalid or expired reset token."


class Conflict(AppError):
    status_code = 409
    code = "conflict"
    default_message = "Resource already exists."


def register_error_handlers(app: Flask) -> None:
    """Render AppError and HTTP errors as JSON."""

    @app.errorhandler(AppError)
    def _app_error(exc: AppError):
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(HTTPException)
    def _http_error(exc: HTTPException):
        code = (exc.name or "error").lower().replace(" ", "_")
        return jsonify({"error": code, "message": exc.description}), exc.code
