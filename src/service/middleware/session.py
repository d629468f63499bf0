import logging
from starlette.middleware.base import BaseHTTPMiddleware
from fastapi import Request
from fastapi_sessions.backends.session_backend import BackendError

from .exception_handlers import session_backend_error_handler

logger = logging.getLogger('counter.service.middleware')


class SessionMiddleware(BaseHTTPMiddleware):
    """Commits the request's SessionContext once the response is ready.

    Only successful responses are committed, a failed request leaves the
    stored session untouched.
    """

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        session = getattr(request.state, 'session', None)
        if session is None:
            return response

        if response.status_code >= 400:
            logger.debug(f"Not committing session for failed request: {response.status_code} {request.url.path}")
            return response

        try:
            await session.commit(response)
        except BackendError as exc:
            # The handler's response is discarded, its cookie would point at state that was never stored
            return await session_backend_error_handler(request, exc)
        return response
