from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, cast

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException

from ...engine.errors import EngineError, GameOver


logger = logging.getLogger(__name__)

# Starlette renamed the 422 constant; the number is stable
HTTP_422 = 422


def error_envelope(
    *,
    code: str,
    message: str,
    err_type: str,
    request_id: str,
    field_errors: list[dict[str, str]] | None = None,
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "error": {
            "code": code,
            "message": message,
            "type": err_type,
            "request_id": request_id,
        }
    }
    if field_errors:
        payload["error"]["field_errors"] = field_errors
    return payload


def _respond(
    request: Request,
    status_code: int,
    *,
    code: str,
    message: str,
    field_errors: list[dict[str, str]] | None = None,
    headers: Optional[Mapping[str, str]] = None,
) -> JSONResponse:
    payload = error_envelope(
        code=code,
        message=message,
        err_type="client_error" if 400 <= status_code < 500 else "server_error",
        request_id=getattr(request.state, "request_id", ""),
        field_errors=field_errors,
    )
    return JSONResponse(status_code=status_code, content=payload, headers=headers)


async def http_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    http_exc = cast(StarletteHTTPException, exc)
    detail = http_exc.detail if isinstance(http_exc.detail, str) else str(http_exc.detail)
    return _respond(
        request,
        http_exc.status_code,
        code=_status_to_code(http_exc.status_code),
        message=detail,
        headers=http_exc.headers,
    )


async def engine_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render rule violations (illegal move, empty undo, bad FEN...) as client errors.

    A finished game answers 409 since the request conflicts with game state;
    everything else is a 400 carrying the error's own ``code``.
    """
    err = cast(EngineError, exc)
    status_code = (
        status.HTTP_409_CONFLICT if isinstance(err, GameOver) else status.HTTP_400_BAD_REQUEST
    )
    logger.info(
        "rejected: %s",
        err,
        extra={"request_id": getattr(request.state, "request_id", ""), "error_code": err.code},
    )
    return _respond(request, status_code, code=err.code, message=str(err))


async def exception_handler(request: Request, exc: Exception) -> JSONResponse:
    # Anything reaching here is a bug (including InvariantViolation): log it
    logger.exception(
        "Unhandled exception", extra={"request_id": getattr(request.state, "request_id", "")}
    )
    return _respond(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        code="internal_error",
        message="Internal Server Error",
    )


async def request_validation_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    # Map Pydantic/FastAPI validation errors to our structured envelope with 422
    errors = []
    for e in cast(RequestValidationError, exc).errors():
        loc = ".".join(str(p) for p in e.get("loc", []) if p is not None)
        errors.append(
            {
                "field": loc,
                "code": e.get("type", "value_error"),
                "message": e.get("msg", "invalid value"),
            }
        )
    return _respond(
        request,
        HTTP_422,
        code="unprocessable_entity",
        message="Validation error",
        field_errors=errors or None,
    )


def _status_to_code(status_code: int) -> str:
    if status_code == status.HTTP_404_NOT_FOUND:
        return "not_found"
    if status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        return "method_not_allowed"
    if status_code == status.HTTP_400_BAD_REQUEST:
        return "bad_request"
    if status_code == status.HTTP_409_CONFLICT:
        return "conflict"
    if status_code == HTTP_422:
        return "unprocessable_entity"
    if 500 <= status_code < 600:
        return "internal_error"
    return "error"
