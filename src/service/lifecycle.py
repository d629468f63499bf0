import logging
from typing import AsyncGenerator
from fastapi import FastAPI
from contextlib import asynccontextmanager

from .redis_client import close_redis_clients

logger = logging.getLogger("counter.service.lifecycle")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    logger.info(f"Session backend: {type(app.state.session_backend).__name__}")
    yield

    # Runs after uvicorn has drained in-flight requests
    logger.info("Closing session store connections")
    await close_redis_clients()
