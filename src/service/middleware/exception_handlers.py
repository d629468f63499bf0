import logging
from fastapi import Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.exception_handlers import http_exception_handler
from fastapi_sessions.backends.session_backend import BackendError

from auth.session import CorruptedSessionData, MalformedSessionValue
from schema import ErrorResponse

logger = logging.getLogger('counter.service.middleware')


def _error_response(status_code: int, error: str, error_code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, error_code=error_code, message=message).model_dump(),
    )


async def malformed_session_value_handler(request: Request, exc: MalformedSessionValue):
    """Corrupt stored state is a server fault, never defaulted away"""
    logger.error(f"MALFORMED_SESSION_VALUE: {request.method} {request.url.path} - key '{exc.key}' expected {exc.expected}: {exc.reason}")
    return _error_response(
        500,
        error="Session data could not be read",
        error_code="session_corrupted",
        message="The stored session is invalid. Please log in again.",
    )


async def corrupted_session_data_handler(request: Request, exc: CorruptedSessionData):
    logger.error(f"CORRUPTED_SESSION_DATA: {request.method} {request.url.path} - {exc}")
    return _error_response(
        500,
        error="Session data could not be read",
        error_code="session_corrupted",
        message="The stored session is invalid. Please log in again.",
    )


async def session_backend_error_handler(request: Request, exc: BackendError):
    logger.error(f"SESSION_STORE_ERROR: {request.method} {request.url.path} - {exc}")
    return _error_response(
        500,
        error="Session store unavailable",
        error_code="store_unavailable",
        message="Session storage could not be reached. Please try again later.",
    )


async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Invalid request bodies are client errors (400)"""
    # loc is ("body", field, ...); positions inside malformed JSON are ints and not worth reporting
    fields = sorted({
        ".".join(part for part in err.get("loc", ())[1:] if isinstance(part, str)) or "body"
        for err in exc.errors()
    })
    logger.info(f"INVALID_PAYLOAD: {request.method} {request.url.path} - fields: {fields}")
    return _error_response(
        400,
        error="Invalid request payload",
        error_code="invalid_payload",
        message=f"Missing or invalid fields: {', '.join(fields)}",
    )


async def custom_http_exception_handler(request: Request, exc: HTTPException):
    logger.error(f"HTTP_EXCEPTION: {exc.status_code} - {exc.detail}")
    return await http_exception_handler(request, exc)
