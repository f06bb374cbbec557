"""Render every failure in the uniform ``{"error": {...}}`` envelope."""

from __future__ import annotations

import logging
import uuid

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from shieldgate.gateway.errors import InternalError, RequestInvalid, ShieldGateError
from shieldgate.gateway.logging import current_trace_id

logger = logging.getLogger(__name__)

TRACE_HEADER = "X-Trace-Id"

_STATUS_TO_CODE: dict[int, str] = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
}


def request_trace_id(request: Request) -> str:
    # The catch-all handler runs outside the trace middleware, so fall back to request state.
    trace_id = current_trace_id() or getattr(request.state, "trace_id", None)
    if not trace_id:
        trace_id = str(uuid.uuid4())
        request.state.trace_id = trace_id
    return trace_id


def _envelope(request: Request, error: ShieldGateError) -> JSONResponse:
    trace_id = request_trace_id(request)
    return JSONResponse(
        status_code=error.status_code,
        content=jsonable_encoder(error.to_json(trace_id=trace_id)),
        headers={**error.headers, TRACE_HEADER: trace_id},
    )


def shieldgate_error_handler(request: Request, exc: ShieldGateError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "Request failed",
            extra={"code": exc.code, "path": request.url.path, "error": exc.message},
        )
    else:
        logger.info(
            "Request rejected",
            extra={"code": exc.code, "path": request.url.path, "status": exc.status_code},
        )
    return _envelope(request, exc)


def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _envelope(
        request,
        RequestInvalid(
            details=[
                {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
                for err in exc.errors()
            ]
        ),
    )


def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    error = ShieldGateError(message, headers=dict(exc.headers or {}))
    error.code = _STATUS_TO_CODE.get(exc.status_code, InternalError.code)
    error.status_code = exc.status_code
    return _envelope(request, error)


def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled exception",
        exc_info=exc,
        extra={"path": request.url.path, "method": request.method},
    )
    return _envelope(request, InternalError())


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ShieldGateError, shieldgate_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_error_handler)
