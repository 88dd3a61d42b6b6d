"""Response envelopes and the exception handlers that produce them.

    success: {"data": ...}
    error:   {"error": {"code": "E_...", "message": "...", "request_id": "..."}}

Every error path (ApiError, framework HTTP errors, request validation,
malformed JSON, unhandled exceptions) ends in error_json() so clients see a
single shape. request_id comes from the logging context bound by
RequestIDMiddleware.
"""

import json
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import RequestResponseEndpoint
from starlette.responses import Response

from valentine.errors import ERROR_CODE_TO_STATUS, ApiError, ApiErrorCode
from valentine.logging import get_logger, get_request_id

logger = get_logger(__name__)

# Framework status codes without a dedicated ApiErrorCode fall back to E_INTERNAL
_HTTP_STATUS_CODES = {
    400: ApiErrorCode.E_INVALID_REQUEST,
    404: ApiErrorCode.E_NOT_FOUND,
    405: ApiErrorCode.E_INVALID_REQUEST,
    422: ApiErrorCode.E_INVALID_REQUEST,
}

_JSON_METHODS = frozenset({"POST", "PUT", "PATCH"})


def success_response(data: Any) -> dict[str, Any]:
    return {"data": data}


def error_response(
    code: ApiErrorCode, message: str, request_id: str | None = None
) -> dict[str, Any]:
    """Build the error envelope; request_id defaults to the current request's."""
    error = {"code": code.value, "message": message}
    request_id = request_id or get_request_id()
    if request_id:
        error["request_id"] = request_id
    return {"error": error}


def error_json(code: ApiErrorCode, message: str, status_code: int | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code or ERROR_CODE_TO_STATUS.get(code, 500),
        content=error_response(code, message),
    )


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return error_json(exc.code, exc.message, exc.status_code)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Unknown routes, wrong methods and other framework-raised HTTP errors."""
    code = _HTTP_STATUS_CODES.get(exc.status_code, ApiErrorCode.E_INTERNAL)
    return error_json(code, str(exc.detail or "An error occurred"), exc.status_code)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Body or parameter validation failures are 400, not FastAPI's 422."""
    logger.info("request_validation_failed", error_count=len(exc.errors()))
    return error_json(ApiErrorCode.E_INVALID_REQUEST, "Invalid request body", 400)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """500 with E_INTERNAL. The exception is logged, never sent to the client."""
    logger.exception("unhandled_exception", error_type=type(exc).__name__)
    return error_json(ApiErrorCode.E_INTERNAL, "Internal server error", 500)


async def reject_malformed_json(request: Request, call_next: RequestResponseEndpoint) -> Response:
    """HTTP middleware answering undecodable JSON bodies before routing.

    Empty bodies pass through; validation decides whether a body was required.
    """
    if request.method in _JSON_METHODS and "application/json" in request.headers.get(
        "content-type", ""
    ):
        body = await request.body()
        if body:
            try:
                json.loads(body)
            except json.JSONDecodeError:
                return error_json(ApiErrorCode.E_INVALID_REQUEST, "Malformed JSON body", 400)
    return await call_next(request)
