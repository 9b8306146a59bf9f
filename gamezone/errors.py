"""Error taxonomy and centralized FastAPI error handlers.

Every handler renders ``{"success": false, "message": ...}`` so callers
see one error shape no matter where the failure started.
"""
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

log = logging.getLogger(__name__)


class GameZoneError(Exception):
    """Base exception with HTTP status code."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(GameZoneError):
    status_code = 400


class AuthenticationError(GameZoneError):
    status_code = 401


class NotFoundError(GameZoneError):
    status_code = 404


class ConflictError(GameZoneError):
    status_code = 409


class ConfigurationError(GameZoneError):
    status_code = 500


class UpstreamFailure(GameZoneError):
    """Upstream call failed in a way that is not a legitimate empty state."""

    status_code = 500


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"success": False, "message": message}, status_code=status_code)


def register_error_handlers(app: FastAPI) -> None:
    """Register centralized exception handlers on the FastAPI app."""

    @app.exception_handler(GameZoneError)
    async def handle_gamezone_error(_request: Request, exc: GameZoneError):
        return _error(exc.message, exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(_request: Request, exc: RequestValidationError):
        log.info("Rejected request body: %s", exc.errors())
        return _error("Invalid request data", 400)

    @app.exception_handler(Exception)
    async def handle_unexpected(_request: Request, exc: Exception):
        log.exception("Unhandled error: %s", exc)
        return _error("Internal server error", 500)
