from typing import Annotated, Optional
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from auth.session import SessionContext
from schema import Identity, IndexResponse
from ..dependencies import get_session

logger = logging.getLogger('counter.service.routers.counter')

router = APIRouter(
    tags=["counter"],
)


@router.get("/")
async def index(session: Annotated[SessionContext, Depends(get_session)]) -> IndexResponse:
    """Current user and counter of the caller's session."""
    user_id: Optional[str] = session.get("user_id", str)
    counter: int = session.get("counter", int) or 0

    return IndexResponse(user_id=user_id, counter=counter)


@router.post("/do_something")
async def do_something(session: Annotated[SessionContext, Depends(get_session)]) -> IndexResponse:
    """
    Increment the session counter.

    Read-modify-write is not atomic across requests: two overlapping
    increments on the same session can both store the same value.
    """
    user_id: Optional[str] = session.get("user_id", str)
    counter: int = (session.get("counter", int) or 0) + 1
    session.insert("counter", counter)

    return IndexResponse(user_id=user_id, counter=counter)


@router.post("/login")
async def login(identity: Identity, session: Annotated[SessionContext, Depends(get_session)]) -> IndexResponse:
    """Bind a user to the session and rotate the session id."""
    user_id = identity.user_id
    session.insert("user_id", user_id)
    session.renew()

    counter: int = session.get("counter", int) or 0
    logger.info(f"User logged in: {user_id}")

    return IndexResponse(user_id=user_id, counter=counter)


@router.post("/logout", response_class=PlainTextResponse)
async def logout(session: Annotated[SessionContext, Depends(get_session)]) -> str:
    user_id: Optional[str] = session.get("user_id", str)
    if user_id is None:
        return "Could not log out anonymous user"

    session.purge()
    logger.info(f"User logged out: {user_id}")
    return f"Logged out: {user_id}"
