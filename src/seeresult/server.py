"""
Process lifecycle for the relay: uvicorn server plus a shutdown manager that
drains in-flight requests and force-exits when the grace period runs out.
"""

from __future__ import annotations

import asyncio
import os
from typing import Any, Callable, Dict, Optional

import structlog
import uvicorn

from seeresult.config import Config
from seeresult.observability import configure_logging
from seeresult.web import create_app

logger = structlog.get_logger(__name__)


class ShutdownManager:
    """Handles graceful shutdown after an uncaught fault."""

    def __init__(
        self,
        server: uvicorn.Server,
        grace_period: float,
        exit_func: Callable[[int], Any] = os._exit,
    ) -> None:
        self.server = server
        self.grace_period = grace_period
        self.is_shutting_down = False
        self.exit_code = 0
        self._exit_func = exit_func
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._force_exit_handle: Optional[asyncio.TimerHandle] = None

    def install(self, loop: asyncio.AbstractEventLoop) -> None:
        """Route uncaught event-loop exceptions through :meth:`handle_loop_exception`."""
        self._loop = loop
        loop.set_exception_handler(self.handle_loop_exception)

    def handle_loop_exception(self, loop: asyncio.AbstractEventLoop, context: Dict[str, Any]) -> None:
        exc = context.get("exception")
        logger.error(
            "Uncaught exception in event loop",
            message=context.get("message"),
            error=repr(exc) if exc else None,
            exc_info=exc,
        )
        self.trigger("uncaught_exception", exit_code=1)

    def trigger(self, reason: str, exit_code: int = 0) -> None:
        """Stop accepting connections and arm the forced exit."""
        if self.is_shutting_down:
            return
        self.is_shutting_down = True
        self.exit_code = exit_code
        logger.warning("Initiating graceful shutdown", reason=reason, grace_period=self.grace_period)

        self.server.should_exit = True
        if self._loop is not None:
            self._force_exit_handle = self._loop.call_later(self.grace_period, self.force_exit)

    def force_exit(self) -> None:
        """Grace period elapsed with requests still in flight."""
        logger.error("Graceful shutdown timed out, forcing exit", exit_code=self.exit_code or 1)
        self._exit_func(self.exit_code or 1)

    def cancel(self) -> None:
        """Disarm the forced exit once the server stopped on its own."""
        if self._force_exit_handle is not None:
            self._force_exit_handle.cancel()
            self._force_exit_handle = None


def build_server(config: Config) -> uvicorn.Server:
    app = create_app(config)
    server_config = uvicorn.Config(
        app,
        host=config.server.host,
        port=config.server.port,
        log_config=None,
        timeout_graceful_shutdown=int(config.server.shutdown_grace_seconds),
        proxy_headers=config.server.trust_proxy,
    )
    return uvicorn.Server(server_config)


async def serve(config: Config) -> int:
    """
    Run the relay until a signal or an uncaught fault stops it.

    Returns:
        Process exit code
    """
    configure_logging(config.monitoring)
    server = build_server(config)
    shutdown = ShutdownManager(server, grace_period=config.server.shutdown_grace_seconds)
    shutdown.install(asyncio.get_running_loop())

    logger.info("SEE result API listening", host=config.server.host, port=config.server.port)
    try:
        await server.serve()
    finally:
        shutdown.cancel()
    return shutdown.exit_code
