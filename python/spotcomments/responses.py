"""Error envelope and exception handlers.

Success bodies are bare JSON in the shapes the extension consumes. Every
error, whatever raised it, leaves the API as:

    {"error": {"code": "E_...", "message": "...", "request_id": "..."}}
"""

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from spotcomments.errors import ApiError, ApiErrorCode
from spotcomments.logging import get_logger, get_request_id

logger = get_logger(__name__)

# Framework-raised HTTP errors (unknown route, wrong method) by status
HTTP_STATUS_CODES: dict[int, ApiErrorCode] = {
    400: ApiErrorCode.E_INVALID_REQUEST,
    401: ApiErrorCode.E_UNAUTHENTICATED,
    403: ApiErrorCode.E_FORBIDDEN,
    404: ApiErrorCode.E_NOT_FOUND,
    405: ApiErrorCode.E_INVALID_REQUEST,
}


def error_response(code: ApiErrorCode, message: str) -> dict[str, Any]:
    """Build the error envelope, stamped with the current request id."""
    error: dict[str, Any] = {"code": code.value, "message": message}
    request_id = get_request_id()
    if request_id:
        error["request_id"] = request_id
    return {"error": error}


def error_json(status_code: int, code: ApiErrorCode, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error_response(code, message))


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("api_error", code=exc.code.value, error=exc.message)
    return error_json(exc.status_code, exc.code, exc.message)


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    code = HTTP_STATUS_CODES.get(exc.status_code, ApiErrorCode.E_INTERNAL)
    return error_json(exc.status_code, code, str(exc.detail or "An error occurred"))


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Body or query failed schema validation. Details stay server-side."""
    logger.info("request_validation_failed", errors=len(exc.errors()))
    return error_json(400, ApiErrorCode.E_INVALID_REQUEST, "Invalid request")


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_exception", error_type=type(exc).__name__)
    return error_json(500, ApiErrorCode.E_INTERNAL, "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
