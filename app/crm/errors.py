"""
Error taxonomy + the single boundary mapper.

Repositories and schemas raise typed errors; `register_error_handlers` turns
them into a status code and a JSON body:

    ValidationError     422  {"errors": [...]}
    Unauthorized        401  {"message": ...}
    Forbidden           403  {"message": ...}
    NotFound            404  {"message": ...}   (405 is collapsed into 404)
    AlreadyExists       400  {"message": ...}
    BadRequest          400  {"message": ...}
    ServiceUnavailable  503  {"message": ...}
    anything else       500  {"message": "ERROR"}
"""
from __future__ import annotations

import logging

from flask import Flask, g
from sqlalchemy.exc import InterfaceError, OperationalError
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)


class ApiError(Exception):
    status_code = 500
    default_message = "ERROR"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class BadRequest(ApiError):
    status_code = 400
    default_message = "Bad request"


class AlreadyExists(BadRequest):
    default_message = "Already exists"

    @classmethod
    def for_entity(cls, entity: str) -> "AlreadyExists":
        return cls(f"{entity} already exists")


class Unauthorized(ApiError):
    status_code = 401
    default_message = "Authentication required"


class Forbidden(ApiError):
    status_code = 403
    default_message = "Access denied"


class NotFound(ApiError):
    status_code = 404
    default_message = "Not found"

    @classmethod
    def for_key(cls, key: str) -> "NotFound":
        return cls(f"{key} not found")


class ServiceUnavailable(ApiError):
    status_code = 503
    default_message = "Service unavailable"


class ValidationError(Exception):
    """All field errors of one input, collected in a single pass."""

    status_code = 422

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__(self.message)

    @property
    def message(self) -> str:
        if len(self.errors) == 1:
            return self.errors[0]
        return f"{len(self.errors)} errors occurred"


def _json(body: dict, status: int):
    return body, status


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ValidationError)
    def _validation_error(e: ValidationError):  # type: ignore[no-redef]
        return _json({"errors": e.errors}, e.status_code)

    @app.errorhandler(ApiError)
    def _api_error(e: ApiError):  # type: ignore[no-redef]
        if isinstance(e, (Unauthorized, Forbidden)):
            logger.warning("%s: %s (request_id=%s)", type(e).__name__, e.message, getattr(g, "request_id", None))
        return _json({"message": e.message}, e.status_code)

    @app.errorhandler(HTTPException)
    def _http_error(e: HTTPException):  # type: ignore[no-redef]
        status = e.code or 500
        if status in (404, 405):
            return _json({"message": e.description or "Not found"}, 404)
        if status >= 500:
            return _json({"message": "ERROR"}, status)
        return _json({"message": e.description or e.name}, status)

    @app.errorhandler(OperationalError)
    @app.errorhandler(InterfaceError)
    def _db_unavailable(e: Exception):  # type: ignore[no-redef]
        logger.error("Database unavailable (request_id=%s): %s", getattr(g, "request_id", None), e)
        return _json({"message": ServiceUnavailable.default_message}, ServiceUnavailable.status_code)

    @app.errorhandler(Exception)
    def _unexpected(e: Exception):  # type: ignore[no-redef]
        cause = e.__cause__
        if isinstance(cause, ValidationError):
            return _json({"message": cause.message}, cause.status_code)
        logger.exception("Unhandled 500 (request_id=%s)", getattr(g, "request_id", None))
        return _json({"message": "ERROR"}, 500)
