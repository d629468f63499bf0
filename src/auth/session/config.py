import logging
from typing import Literal
from uuid import UUID

from fastapi_sessions.frontends.implementations import SessionCookie, CookieParameters
from fastapi_sessions.frontends.implementations.cookie import SameSiteEnum
from fastapi_sessions.backends.implementations import InMemoryBackend
from fastapi_sessions.backends.session_backend import SessionBackend
from pydantic import BaseModel

from service.redis_client import get_redis_client
from .backends.redis_backend import RedisBackend, DEFAULT_TTL_SECONDS
from .models import SessionRecord

logger = logging.getLogger('counter.session.config')


class SessionConfig(BaseModel):
    secret_key: str
    backend: Literal["redis", "memory"] = "redis"
    redis_url: str = "redis://localhost:6379"
    ttl_seconds: int = DEFAULT_TTL_SECONDS
    secure_cookies: bool = False
    cookie_name: str = "session"


def build_session_cookie(config: SessionConfig) -> SessionCookie:
    """Signed cookie carrying the session UUID.

    ``auto_error`` is off: a missing or badly signed cookie is an anonymous
    caller, not a failed request.
    """
    cookie_params = CookieParameters(
        max_age=config.ttl_seconds,
        secure=config.secure_cookies,
        httponly=True,
        samesite=SameSiteEnum.lax,
        domain=None,
        path="/",
    )
    return SessionCookie(
        cookie_name=config.cookie_name,
        identifier="session_context",
        auto_error=False,
        secret_key=config.secret_key,
        cookie_params=cookie_params,
    )


def build_backend(config: SessionConfig) -> SessionBackend[UUID, SessionRecord]:
    if config.backend == "memory":
        logger.warning("Using InMemoryBackend for sessions, state is lost on restart and not shared between workers")
        return InMemoryBackend[UUID, SessionRecord]()

    redis_client = get_redis_client(config.redis_url)
    return RedisBackend[UUID, SessionRecord](
        redis_client=redis_client,
        session_model=SessionRecord,
        ttl_seconds=config.ttl_seconds,
    )
