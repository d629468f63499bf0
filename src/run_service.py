import asyncio
import logging

import uvicorn
from dotenv import load_dotenv

load_dotenv()

from service.config import get_log_level, get_server_config  # noqa: E402
from service.service import create_app  # noqa: E402
from service.shutdown import ShutdownCoordinator, run_server  # noqa: E402

# Configure logging with environment variable control and validation
log_level = get_log_level()

logging.basicConfig(
    level=getattr(logging, log_level),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger('counter')


def main() -> None:
    server_config = get_server_config()
    coordinator = ShutdownCoordinator()
    app = create_app(coordinator=coordinator)

    logger.info(f"Session counter service starting on {server_config.host}:{server_config.port}")
    logger.info(f"Log level: {log_level}")
    logger.info(
        f"Tip: stop the service with `curl -X POST http://127.0.0.1:{server_config.port}/stop` "
        "or Ctrl-C."
    )

    config = uvicorn.Config(
        app,
        host=server_config.host,
        port=server_config.port,
        log_level=log_level.lower(),
        timeout_graceful_shutdown=server_config.shutdown_grace_seconds,
    )
    asyncio.run(run_server(uvicorn.Server(config), coordinator))


if __name__ == "__main__":
    main()
