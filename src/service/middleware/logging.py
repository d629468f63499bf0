import logging
import time
from starlette.middleware.base import BaseHTTPMiddleware
from fastapi import Request, HTTPException

logger = logging.getLogger('counter.service.access')


class RequestResponseLoggingMiddleware(BaseHTTPMiddleware):
    """One access log line per request, plus cookie details at debug level"""

    def __init__(self, app, cookie_name: str = "session"):
        super().__init__(app)
        self.cookie_name = cookie_name

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        client = request.client.host if request.client else "-"

        session_cookie_value = request.cookies.get(self.cookie_name)
        logger.debug(f"REQUEST_DEBUG: {request.method} {request.url.path} - session cookie present: {bool(session_cookie_value)}")

        try:
            response = await call_next(request)
        except HTTPException as exc:
            logger.error(f"HTTP_EXCEPTION_DEBUG: Status {exc.status_code}, Detail: {exc.detail}")
            raise
        except Exception as exc:
            logger.error(f"UNEXPECTED_EXCEPTION_DEBUG: {type(exc)}: {str(exc)}")
            raise

        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(f'{client} "{request.method} {request.url.path}" {response.status_code} {elapsed_ms:.1f}ms')
        if "set-cookie" in response.headers:
            logger.debug(f"RESPONSE_DEBUG: session cookie updated for {request.url.path}")

        return response
