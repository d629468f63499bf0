import logging
from typing import Optional

from fastapi import FastAPI

from auth.session import SessionConfig, build_backend, build_session_cookie
from .config import get_session_config
from .lifecycle import lifespan
from .middleware import setup_middleware
from .routers import control, counter
from .shutdown import ShutdownCoordinator

logger = logging.getLogger('counter.service')


def create_app(
    session_config: Optional[SessionConfig] = None,
    coordinator: Optional[ShutdownCoordinator] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        session_config: Session settings, read from the environment when omitted
        coordinator: Shutdown channel; the caller keeps it to run the watcher
            next to the server. A private one is created when omitted, in
            which case /stop has no effect.
    """
    session_config = session_config or get_session_config()
    coordinator = coordinator or ShutdownCoordinator()

    app = FastAPI(title="Session counter", lifespan=lifespan)

    app.state.session_cookie = build_session_cookie(session_config)
    app.state.session_backend = build_backend(session_config)
    app.state.shutdown_sender = coordinator.sender()

    setup_middleware(app, cookie_name=session_config.cookie_name)

    app.include_router(counter.router)
    app.include_router(control.router)

    logger.info(f"Application created with {session_config.backend} session backend")
    return app
