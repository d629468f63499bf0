"""
Per-request session access.

A ``SessionContext`` is created once per request from the signed session
cookie. Handlers read typed values with ``get``/``lookup`` and stage changes
with ``insert``, ``remove``, ``renew`` and ``purge``. Nothing touches the store
until ``commit`` runs when the response is final, so a request produces at
most one store write (or one delete) whatever the handler did.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Any, Generic, Optional, Type, TypeVar, Union
from uuid import UUID, uuid4

from fastapi import Request, Response
from fastapi_sessions.backends.session_backend import SessionBackend
from fastapi_sessions.frontends.implementations import SessionCookie
from pydantic import TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError, to_json

from .errors import MalformedSessionValue
from .models import SessionRecord

logger = logging.getLogger('counter.session')

T = TypeVar("T")


@dataclass(frozen=True)
class Anonymous:
    """No verified cookie, or the cookie points at a session the store no longer has."""


@dataclass(frozen=True)
class Bound:
    session_id: UUID


SessionRef = Union[Anonymous, Bound]


class SessionStatus(str, Enum):
    UNCHANGED = "unchanged"
    CHANGED = "changed"
    RENEWED = "renewed"
    PURGED = "purged"


class ValueStatus(str, Enum):
    ABSENT = "absent"
    VALID = "valid"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class SessionValue(Generic[T]):
    """Outcome of reading one key: absent, present and valid, or present and malformed."""
    key: str
    status: ValueStatus
    value: Optional[T] = None
    error: Optional[str] = None
    expected: str = ""

    def unwrap(self) -> Optional[T]:
        """The value, ``None`` when absent, ``MalformedSessionValue`` when corrupt."""
        if self.status is ValueStatus.MALFORMED:
            raise MalformedSessionValue(self.key, self.expected, self.error or "invalid value")
        return self.value


@lru_cache(maxsize=None)
def _adapter(type_: Any) -> TypeAdapter:
    return TypeAdapter(type_)


def _type_name(type_: Any) -> str:
    return getattr(type_, "__name__", repr(type_))


class SessionContext:
    def __init__(
        self,
        ref: SessionRef,
        record: SessionRecord,
        backend: SessionBackend[UUID, SessionRecord],
        cookie: SessionCookie,
    ):
        self._ref = ref
        self._record = record
        self._backend = backend
        self._cookie = cookie
        self._status = SessionStatus.UNCHANGED
        self._committed = False

    @classmethod
    async def load(
        cls,
        request: Request,
        backend: SessionBackend[UUID, SessionRecord],
        cookie: SessionCookie,
    ) -> "SessionContext":
        """Resolve the request cookie to a ``SessionRef`` and fetch its state."""
        resolved = cookie(request)
        if not isinstance(resolved, UUID):
            logger.debug(f"No valid session cookie: {resolved}")
            return cls(Anonymous(), SessionRecord(), backend, cookie)

        record = await backend.read(resolved)
        if record is None:
            logger.debug(f"Session {resolved} has no stored state, treating caller as anonymous")
            return cls(Anonymous(), SessionRecord(), backend, cookie)

        return cls(Bound(resolved), record, backend, cookie)

    @property
    def ref(self) -> SessionRef:
        return self._ref

    @property
    def status(self) -> SessionStatus:
        return self._status

    def lookup(self, key: str, type_: Type[T]) -> SessionValue[T]:
        expected = _type_name(type_)
        raw = self._record.entries.get(key)
        if raw is None:
            return SessionValue(key=key, status=ValueStatus.ABSENT, expected=expected)
        try:
            value = _adapter(type_).validate_json(raw, strict=True)
        except ValidationError as e:
            logger.error(f"Stored session value for '{key}' does not validate as {expected}")
            return SessionValue(
                key=key,
                status=ValueStatus.MALFORMED,
                error=str(e.errors()[0]["msg"]) if e.errors() else str(e),
                expected=expected,
            )
        return SessionValue(key=key, status=ValueStatus.VALID, value=value, expected=expected)

    def get(self, key: str, type_: Type[T]) -> Optional[T]:
        return self.lookup(key, type_).unwrap()

    def insert(self, key: str, value: Any) -> None:
        try:
            encoded = to_json(value).decode()
        except PydanticSerializationError as e:
            raise TypeError(f"Session value for '{key}' is not JSON serializable: {e}") from e
        self._record.entries[key] = encoded
        self._mark(SessionStatus.CHANGED)

    def remove(self, key: str) -> None:
        if self._record.entries.pop(key, None) is not None:
            self._mark(SessionStatus.CHANGED)

    def renew(self) -> None:
        self._mark(SessionStatus.RENEWED)

    def purge(self) -> None:
        self._status = SessionStatus.PURGED

    def _mark(self, status: SessionStatus) -> None:
        # purge wins over everything, renew over a plain change
        if self._status is SessionStatus.PURGED:
            return
        if self._status is SessionStatus.RENEWED and status is SessionStatus.CHANGED:
            return
        self._status = status

    async def commit(self, response: Response) -> None:
        """Apply the staged changes to the store and the response cookie, once."""
        if self._committed:
            return
        self._committed = True

        if self._status is SessionStatus.UNCHANGED:
            return

        if self._status is SessionStatus.PURGED:
            if isinstance(self._ref, Bound):
                await self._backend.delete(self._ref.session_id)
                logger.info("Session purged")
                logger.debug(f"Purged session id: {self._ref.session_id}")
            self._cookie.delete_from_response(response)
            self._ref = Anonymous()
            return

        record = self._record.model_copy(deep=True)

        if self._status is SessionStatus.RENEWED:
            # Old id goes first: a failed renewal must not leave an orphaned record behind
            if isinstance(self._ref, Bound):
                await self._backend.delete(self._ref.session_id)
            new_id = uuid4()
            await self._backend.create(new_id, record)
            logger.debug(f"Session renewed: {self._ref} -> {new_id}")
            self._cookie.attach_to_response(response, new_id)
            self._ref = Bound(new_id)
            return

        if isinstance(self._ref, Bound):
            await self._backend.update(self._ref.session_id, record)
            # Re-sign so the cookie age tracks the store TTL, which every write refreshes
            self._cookie.attach_to_response(response, self._ref.session_id)
            return

        new_id = uuid4()
        await self._backend.create(new_id, record)
        self._cookie.attach_to_response(response, new_id)
        self._ref = Bound(new_id)
        logger.debug(f"Session created: {new_id}")
