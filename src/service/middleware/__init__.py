import logging as log
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi_sessions.backends.session_backend import BackendError

from auth.session import CorruptedSessionData, MalformedSessionValue
from .logging import RequestResponseLoggingMiddleware
from .error_handling import ErrorHandlingMiddleware
from .session import SessionMiddleware
from .exception_handlers import (
    corrupted_session_data_handler,
    custom_http_exception_handler,
    malformed_session_value_handler,
    request_validation_handler,
    session_backend_error_handler,
)

logger = log.getLogger('counter.service.middleware')


def setup_middleware(app: FastAPI, cookie_name: str = "session"):
    """
    Setup exception handlers and middleware for the FastAPI application.

    Middleware are added in reverse order (last added = first executed).
    Current order of execution:
    1. ErrorHandlingMiddleware (catches unhandled errors, including failed session commits)
    2. RequestResponseLoggingMiddleware (access log)
    3. SessionMiddleware (commits session changes after the handler returned)

    Args:
        app: FastAPI application instance
        cookie_name: Name of the session cookie, for request logging
    """
    app.add_exception_handler(HTTPException, custom_http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(MalformedSessionValue, malformed_session_value_handler)
    # Handlers resolve by MRO, so this subclass wins over the generic store error
    app.add_exception_handler(CorruptedSessionData, corrupted_session_data_handler)
    app.add_exception_handler(BackendError, session_backend_error_handler)

    app.add_middleware(SessionMiddleware)
    app.add_middleware(RequestResponseLoggingMiddleware, cookie_name=cookie_name)
    app.add_middleware(ErrorHandlingMiddleware)

    logger.debug("Middleware configured")


__all__ = [
    'setup_middleware',
    'RequestResponseLoggingMiddleware',
    'ErrorHandlingMiddleware',
    'SessionMiddleware',
    'corrupted_session_data_handler',
    'custom_http_exception_handler',
    'malformed_session_value_handler',
    'request_validation_handler',
    'session_backend_error_handler',
]
