from .session import (
    SessionConfig,
    SessionContext,
    MalformedSessionValue,
    StoreUnavailable,
)

__all__ = [
    "SessionConfig",
    "SessionContext",
    "MalformedSessionValue",
    "StoreUnavailable",
]
