from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class IndexResponse(BaseModel):
    """Current view of the caller's session."""

    user_id: Optional[str] = Field(
        default=None,
        description="Identifier of the logged in user, null for anonymous sessions.",
        examples=["alice", None],
    )
    counter: int = Field(
        default=0,
        description="Number of times /do_something was called in this session.",
        examples=[0, 7],
    )


class Identity(BaseModel):
    """Login payload."""

    model_config = ConfigDict(strict=True)

    user_id: str = Field(
        description="Identifier to bind to the session.",
        examples=["alice"],
    )


class ErrorResponse(BaseModel):
    """Body returned for every failed request."""

    error: str
    error_code: str
    message: str
