"""
FastAPI dependencies for the counter service.

Everything a handler needs is looked up on ``app.state``, where
``create_app`` stored it, so tests can build applications with their own
store and shutdown channel.
"""
from uuid import UUID

from fastapi import Depends, Request
from fastapi_sessions.backends.session_backend import SessionBackend
from fastapi_sessions.frontends.implementations import SessionCookie

from auth.session import SessionContext, SessionRecord
from .shutdown import ShutdownSender


def get_session_backend(request: Request) -> SessionBackend[UUID, SessionRecord]:
    return request.app.state.session_backend


def get_session_cookie(request: Request) -> SessionCookie:
    return request.app.state.session_cookie


async def get_session(
    request: Request,
    backend: SessionBackend[UUID, SessionRecord] = Depends(get_session_backend),
    cookie: SessionCookie = Depends(get_session_cookie),
) -> SessionContext:
    """
    Resolve the caller's session for this request.

    The context is also stored on ``request.state`` so SessionMiddleware can
    commit it once the response is ready.
    """
    session = await SessionContext.load(request, backend, cookie)
    request.state.session = session
    return session


def get_shutdown_sender(request: Request) -> ShutdownSender:
    return request.app.state.shutdown_sender
