import logging
from starlette.middleware.base import BaseHTTPMiddleware
from fastapi import Request, HTTPException

from .exception_handlers import _error_response

logger = logging.getLogger('counter.service.middleware')


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Last line of defence: whatever no exception handler claimed becomes a bare 500"""

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except HTTPException:
            raise
        except Exception as exc:
            # Details go to the log only, the client gets the fixed error body
            logger.error(f"UNHANDLED_ERROR: {request.method} {request.url.path} - {type(exc).__name__}: {exc}", exc_info=True)
            return _error_response(
                500,
                error="Internal server error",
                error_code="internal_error",
                message="The request could not be completed.",
            )
