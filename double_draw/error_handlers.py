"""Centralized error handlers."""

from __future__ import annotations

import logging

from flask import Flask
from marshmallow import ValidationError as MarshmallowValidationError
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException

from double_draw.db import mark_session_failed
from double_draw.errors import AppError, ConflictError, NotFoundError, ValidationError
from double_draw.utils.responses import fail

logger = logging.getLogger(__name__)


def register_error_handlers(app: Flask) -> None:
    """Register error handlers for the Flask app.

    Every handled error also rolls back the request's transaction.
    """

    @app.errorhandler(AppError)
    def _handle_app_error(exc: AppError):
        mark_session_failed()
        logger.info("Request rejected: %s (%s)", exc.code, exc.message)
        return fail(exc.code, exc.message, exc.status_code, exc.details)

    @app.errorhandler(MarshmallowValidationError)
    def _handle_schema_error(exc: MarshmallowValidationError):
        mark_session_failed()
        # exc.messages is a dict of field -> list[str]
        wrapped = ValidationError(details=exc.messages)
        return fail(wrapped.code, wrapped.message, wrapped.status_code, wrapped.details)

    @app.errorhandler(IntegrityError)
    def _handle_integrity_error(exc: IntegrityError):
        mark_session_failed()
        logger.info("Integrity error", exc_info=exc)
        wrapped = ConflictError(details=str(exc.orig) if exc.orig else str(exc))
        return fail(wrapped.code, wrapped.message, wrapped.status_code, wrapped.details)

    @app.errorhandler(HTTPException)
    def _handle_http_exception(exc: HTTPException):
        mark_session_failed()
        status = int(getattr(exc, "code", 500) or 500)
        if status == 404:
            wrapped = NotFoundError()
            return fail(wrapped.code, wrapped.message, wrapped.status_code)

        return fail(
            "http_error",
            getattr(exc, "description", "HTTP error"),
            status,
            details={"name": getattr(exc, "name", "HTTPException")},
        )

    @app.errorhandler(Exception)
    def _handle_unexpected(exc: Exception):
        mark_session_failed()
        logger.exception("Unhandled exception")
        return fail("internal_error", "Internal server error", 500)
