from typing import Generic, Type
from fastapi_sessions.backends.session_backend import (
    BackendError,
    SessionBackend,
    SessionModel,
)
import redis.asyncio as aioredis
from redis import RedisError, ConnectionError as RedisConnectionError
from pydantic import ValidationError
import logging
from fastapi_sessions.frontends.session_frontend import ID

from ..errors import CorruptedSessionData, StoreUnavailable

logger = logging.getLogger('counter.session.backend')

KEY_PREFIX = "session:"
DEFAULT_TTL_SECONDS = 7 * 24 * 60 * 60


class RedisBackend(Generic[ID, SessionModel], SessionBackend[ID, SessionModel]):
    """Stores each session as a Redis hash whose fields are the record entries.

    Every write replaces the whole hash and refreshes its expiry, so the key
    disappears on its own once a session has been idle for ``ttl_seconds``.
    """

    def __init__(
        self,
        redis_client: aioredis.Redis,
        session_model: Type[SessionModel],
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
    ):
        self.redis_client = redis_client
        self.session_model = session_model
        self.ttl_seconds = ttl_seconds

    def _key(self, session_id: ID) -> str:
        return f"{KEY_PREFIX}{session_id}"

    def _handle_redis_error(self, operation: str, session_id: ID, error: Exception) -> None:
        """Centralized error handling for Redis operations."""
        if isinstance(error, RedisConnectionError):
            logger.error(f"Redis connection failed during {operation} for session {session_id}: {error}")
            raise StoreUnavailable(f"Session store connection error during {operation}") from error
        elif isinstance(error, RedisError):
            logger.error(f"Redis error during {operation} for session {session_id}: {error}")
            raise StoreUnavailable(f"Session store error during {operation}") from error
        else:
            logger.error(f"Unexpected error during {operation} for session {session_id}: {error}")
            raise BackendError(f"Unexpected error during {operation}") from error

    async def _write(self, session_id: ID, data: SessionModel) -> None:
        key = self._key(session_id)
        entries = data.model_dump()["entries"]
        async with self.redis_client.pipeline(transaction=True) as pipe:
            pipe.delete(key)
            # HSET rejects an empty mapping, an empty record is just a missing key
            if entries:
                pipe.hset(key, mapping=entries)
                pipe.expire(key, self.ttl_seconds)
            await pipe.execute()

    async def create(self, session_id: ID, data: SessionModel) -> None:
        try:
            await self._write(session_id, data)
            logger.debug(f"Session {session_id} created successfully")
        except Exception as e:
            self._handle_redis_error("session creation", session_id, e)

    async def update(self, session_id: ID, data: SessionModel) -> None:
        try:
            await self._write(session_id, data)
            logger.debug(f"Session {session_id} updated successfully")
        except Exception as e:
            self._handle_redis_error("session update", session_id, e)

    async def read(self, session_id: ID) -> SessionModel | None:
        try:
            entries = await self.redis_client.hgetall(self._key(session_id))  # type: ignore[misc]
        except UnicodeDecodeError as e:
            # The client decodes replies as UTF-8, so foreign bytes fail before validation
            logger.error(f"Undecodable session data for session {session_id}: {e}")
            raise CorruptedSessionData("Corrupted session data") from e
        except Exception as e:
            self._handle_redis_error("session read", session_id, e)
            raise  # Never reached, but helps type checker

        if not entries:
            logger.debug(f"Session {session_id} not found in store")
            return None

        try:
            return self.session_model.model_validate({"entries": entries})
        except ValidationError as e:
            logger.error(f"Invalid session data format for session {session_id}: {e}")
            raise CorruptedSessionData("Corrupted session data") from e

    async def delete(self, session_id: ID) -> None:
        try:
            deleted_count = await self.redis_client.delete(self._key(session_id))
        except Exception as e:
            self._handle_redis_error("session deletion", session_id, e)
            return

        if deleted_count == 0:
            logger.warning(f"Session {session_id} was not deleted, may have expired or been removed concurrently")
        else:
            logger.debug(f"Session {session_id} deleted successfully")
