import sys
from pathlib import Path
import logging

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from asgi_lifespan import LifespanManager

# Make the packages under src/ importable without installing the project
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from auth.session import SessionConfig  # noqa: E402
from service.service import create_app  # noqa: E402
from service.shutdown import ShutdownCoordinator  # noqa: E402

TEST_SECRET_KEY = "test-secret-key-not-for-production"


@pytest.fixture(scope="session", autouse=True)
def configure_logging():
    """Configure logging for tests."""
    logging.basicConfig(level=logging.INFO)


@pytest.fixture
def session_config() -> SessionConfig:
    return SessionConfig(secret_key=TEST_SECRET_KEY, backend="memory")


@pytest.fixture
def coordinator() -> ShutdownCoordinator:
    return ShutdownCoordinator()


@pytest.fixture
def app(session_config, coordinator):
    return create_app(session_config=session_config, coordinator=coordinator)


@pytest_asyncio.fixture
async def client(app):
    async with LifespanManager(app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
            yield client
