#!/usr/bin/env python3
"""
Production entry point for the SEE result relay.

``python main.py`` serves the API; ``python main.py health`` probes a running
instance for container health checks.
"""

from __future__ import annotations

import asyncio
import os
import sys

import structlog

from seeresult.cli import check_health
from seeresult.config import load_config
from seeresult.server import serve

logger = structlog.get_logger(__name__)


async def main() -> int:
    """Main entry point."""
    config = load_config()

    if len(sys.argv) > 1 and sys.argv[1] == "health":
        base_url = os.getenv("SEE_RESULT_HEALTH_URL", f"http://127.0.0.1:{config.server.port}")
        return 0 if await check_health(base_url) else 1

    try:
        return await serve(config)
    except Exception as e:
        logger.error("Unhandled exception in main", error=str(e), exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
