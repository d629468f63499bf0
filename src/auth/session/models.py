from pydantic import BaseModel, Field


class SessionRecord(BaseModel):
    """Session state as persisted in the store.

    Every entry maps a session key to the JSON encoding of its value, so the
    record can be written to a Redis hash field by field and each value is
    only decoded when a handler asks for it with an expected type.
    """
    entries: dict[str, str] = Field(default_factory=dict)
