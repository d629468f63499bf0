from fastapi_sessions.backends.session_backend import BackendError


class MalformedSessionValue(Exception):
    """A stored session value does not match the type the handler expects."""

    def __init__(self, key: str, expected: str, reason: str):
        self.key = key
        self.expected = expected
        self.reason = reason
        super().__init__(f"Session value for '{key}' is not a valid {expected}: {reason}")


class StoreUnavailable(BackendError):
    """The session store could not be reached or refused the operation."""


class CorruptedSessionData(BackendError):
    """The store returned a record that cannot be decoded into session state."""
