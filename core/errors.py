from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class OriginationError(Exception):
    """Base for errors that map onto an HTTP response."""

    status_code = 500
    code = "internal_server_error"

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationFailed(OriginationError):
    status_code = 400
    code = "validation_error"


class NotFound(OriginationError):
    status_code = 404
    code = "not_found"


class Conflict(OriginationError):
    status_code = 409
    code = "conflict"


class WorkflowError(OriginationError):
    """Decision rejected by the stage workflow; details let the caller resync."""

    status_code = 400

    def __init__(self, message: str, *, current_stage: Any, attempted_stage: Any = None, decision: Any = None) -> None:
        super().__init__(
            message,
            currentStage=_value(current_stage),
            attemptedStage=_value(attempted_stage),
            decision=_value(decision),
        )
        self.current_stage = current_stage
        self.attempted_stage = attempted_stage
        self.decision = decision


class StageMismatch(WorkflowError):
    code = "stage_mismatch"


class InvalidTransition(WorkflowError):
    code = "invalid_transition"


class AlreadyFinal(WorkflowError):
    code = "already_final"


def _value(v: Any) -> Any:
    return getattr(v, "value", v)


def _default_code(status_code: int) -> str:
    mapping = {
        400: "bad_request",
        404: "not_found",
        405: "method_not_allowed",
        409: "conflict",
    }
    return mapping.get(status_code, "http_error")


def _default_message(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Request failed"


def _normalize_details(details: Any) -> dict:
    if details is None:
        return {}
    if isinstance(details, dict):
        return details
    if isinstance(details, list):
        return {"errors": details}
    return {"detail": str(details)}


def _build_response(
    status_code: int,
    code: str,
    message: str,
    details: Any | None = None,
) -> JSONResponse:
    payload = {
        "code": code,
        "message": message,
        "data": None,
        "details": _normalize_details(details),
    }
    return JSONResponse(status_code=status_code, content=jsonable_encoder(payload))


async def origination_error_handler(request: Request, exc: OriginationError) -> JSONResponse:
    if isinstance(exc, WorkflowError):
        logger.warning("Workflow violation on %s: %s %s", request.url.path, exc.code, exc.details)
    return _build_response(exc.status_code, exc.code, exc.message, exc.details)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if isinstance(exc.detail, str):
        message = exc.detail
    else:
        message = _default_message(exc.status_code)
    return _build_response(exc.status_code, _default_code(exc.status_code), message, exc.detail)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    message = "Validation failed"
    if errors:
        first = errors[0] or {}
        loc = first.get("loc") or []
        msg = first.get("msg") or "Validation failed"
        # Drop the request section (body/query/path) from the location
        loc_parts = [str(part) for part in loc if part not in {"body", "query", "path"}]
        if loc_parts:
            message = f"{'.'.join(loc_parts)}: {msg}"
        else:
            message = str(msg)
    return _build_response(
        status_code=400,
        code="validation_error",
        message=message,
        details={"errors": [{k: v for k, v in e.items() if k != "ctx"} for e in errors]},
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _build_response(
        status_code=500,
        code="internal_server_error",
        message="Internal server error",
        details={},
    )


def register_exception_handlers(app) -> None:
    app.add_exception_handler(OriginationError, origination_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
