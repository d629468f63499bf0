"""
Graceful shutdown triggered from inside the application.

Request handlers hold a ``ShutdownSender``; the only receiver is the watcher
task started next to the uvicorn server by ``run_server``. On the first signal
the watcher flips ``Server.should_exit``: uvicorn closes its listening sockets,
lets requests already in flight finish (bounded by
``timeout_graceful_shutdown``), runs the lifespan shutdown and returns from
``serve()``.
"""

import asyncio
import logging

import uvicorn

logger = logging.getLogger('counter.shutdown')


class ShutdownSender:
    """Producer side of the shutdown channel. Safe to share between requests."""

    def __init__(self, queue: asyncio.Queue):
        self._queue = queue

    def send(self) -> bool:
        """
        Signal the watcher without waiting for anything.

        Returns:
            True if the signal was queued, False if one was already pending
        """
        try:
            self._queue.put_nowait(None)
        except asyncio.QueueFull:
            logger.debug("Shutdown already requested, ignoring signal")
            return False
        logger.info("Shutdown requested")
        return True


class ShutdownCoordinator:
    """Single-slot shutdown channel plus the watcher that consumes it."""

    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=1)
        self._sender = ShutdownSender(self._queue)

    def sender(self) -> ShutdownSender:
        return self._sender

    async def wait(self) -> None:
        await self._queue.get()

    async def watch(self, server: uvicorn.Server) -> None:
        """Block until a signal arrives, then ask the server to drain and exit."""
        await self.wait()
        logger.info("Shutdown signal received, stopping server gracefully")
        server.should_exit = True


async def run_server(server: uvicorn.Server, coordinator: ShutdownCoordinator) -> None:
    """
    Serve until stopped, either by the shutdown channel or by a process signal.

    Args:
        server: Configured uvicorn server, not yet started
        coordinator: Channel shared with the application's request handlers
    """
    watcher = asyncio.create_task(coordinator.watch(server))
    try:
        await server.serve()
    finally:
        watcher.cancel()
        try:
            await watcher
        except asyncio.CancelledError:
            logger.debug("Shutdown watcher cancelled")
    logger.info("Server stopped")
