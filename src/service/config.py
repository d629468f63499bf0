"""
Configuration setup for the counter service.

All settings come from environment variables (a ``.env`` file is loaded by
``run_service.py`` before anything here is called):

- Bind address and drain period for the HTTP server
- Session store address, backend and expiry
- Cookie signing key
- Log verbosity
"""
import os
import logging
import secrets

from pydantic import BaseModel

from auth.session import SessionConfig
from auth.session.backends.redis_backend import DEFAULT_TTL_SECONDS

logger = logging.getLogger('counter.service.config')

VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


class ServerConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8080
    shutdown_grace_seconds: int = 30


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


def get_log_level() -> str:
    """
    Read LOG_LEVEL, falling back to INFO for unknown values.

    Returns:
        One of VALID_LOG_LEVELS
    """
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    if log_level not in VALID_LOG_LEVELS:
        logger.warning(f"Invalid LOG_LEVEL '{log_level}'. Using INFO instead. Valid levels: {', '.join(VALID_LOG_LEVELS)}")
        log_level = "INFO"
    return log_level


def get_redis_url() -> str:
    return os.getenv("REDIS_URL", "redis://localhost:6379")


def get_secret_key() -> str:
    """
    Cookie signing key from SESSION_SECRET_KEY.

    Without it a random key is generated, so cookies issued by this process
    stop verifying after a restart.
    """
    if secret_key := os.getenv("SESSION_SECRET_KEY"):
        return secret_key
    logger.warning("SESSION_SECRET_KEY not set, generating a random key; sessions will not survive a restart")
    return secrets.token_urlsafe(64)


def get_session_config() -> SessionConfig:
    backend = os.getenv("SESSION_BACKEND", "redis").lower()
    if backend not in ("redis", "memory"):
        raise ValueError(f"Unsupported SESSION_BACKEND: {backend}. Supported backends: ['redis', 'memory']")

    return SessionConfig(
        secret_key=get_secret_key(),
        backend=backend,
        redis_url=get_redis_url(),
        ttl_seconds=int(os.getenv("SESSION_TTL_SECONDS", DEFAULT_TTL_SECONDS)),
        secure_cookies=_env_flag("SECURE_COOKIES", "false"),
    )


def get_server_config() -> ServerConfig:
    return ServerConfig(
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", 8080)),
        shutdown_grace_seconds=int(os.getenv("SHUTDOWN_GRACE_SECONDS", 30)),
    )


__all__ = [
    'ServerConfig',
    'get_log_level',
    'get_redis_url',
    'get_secret_key',
    'get_session_config',
    'get_server_config',
]
