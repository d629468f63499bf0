"""Cookie-bound sessions backed by an external key/value store."""

from .config import SessionConfig, build_session_cookie, build_backend
from .context import (
    Anonymous,
    Bound,
    SessionContext,
    SessionRef,
    SessionStatus,
    SessionValue,
    ValueStatus,
)
from .errors import CorruptedSessionData, MalformedSessionValue, StoreUnavailable
from .models import SessionRecord

__all__ = [
    "SessionConfig",
    "build_session_cookie",
    "build_backend",
    "Anonymous",
    "Bound",
    "SessionContext",
    "SessionRef",
    "SessionStatus",
    "SessionValue",
    "ValueStatus",
    "MalformedSessionValue",
    "StoreUnavailable",
    "CorruptedSessionData",
    "SessionRecord",
]
