"""
aiohttp client for the third-party results site.

Each call makes exactly one attempt bounded by the configured timeout.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import aiohttp
import structlog

from seeresult.config.config import UpstreamConfig
from seeresult.errors import UpstreamError, UpstreamTimeout
from seeresult.observability.metrics import increment, observe

logger = structlog.get_logger(__name__)

SEARCH_HEADERS = {
    "Accept": "*/*",
    "Accept-Language": "en-US,en;q=0.9",
    "Origin": "https://results.ekantipur.com",
    "Referer": "https://results.ekantipur.com/",
    "X-Requested-With": "XMLHttpRequest",
}


@dataclass
class UpstreamResponse:
    """Gradesheet document plus timing."""

    status: int
    text: str
    url: str
    start_ts: float
    end_ts: float

    @property
    def elapsed(self) -> float:
        return self.end_ts - self.start_ts


class UpstreamClient:
    """Form-posting client for the gradesheet and search endpoints."""

    def __init__(self, config: UpstreamConfig):
        self.config = config
        self.session: Optional[aiohttp.ClientSession] = None
        self._is_initialized = False

        if not config.verify_tls:
            logger.warning("Upstream TLS verification disabled", url=config.gradesheet_url)

    async def initialize(self) -> None:
        """Open the HTTP session."""
        if self.session is None:
            connector = aiohttp.TCPConnector(ssl=self.config.verify_tls)
            self.session = aiohttp.ClientSession(
                connector=connector,
                headers={"User-Agent": self.config.user_agent},
            )
            self._is_initialized = True
            logger.info(
                "Upstream client initialized",
                gradesheet_url=self.config.gradesheet_url,
                timeout=self.config.request_timeout,
                verify_tls=self.config.verify_tls,
            )

    async def close(self) -> None:
        """Close the HTTP session."""
        if self.session:
            await self.session.close()
            self.session = None
        self._is_initialized = False
        logger.info("Upstream client closed")

    async def __aenter__(self) -> "UpstreamClient":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def fetch_gradesheet(self, symbol: str, dob: str) -> UpstreamResponse:
        """
        Post the gradesheet form and return the HTML answer.

        Args:
            symbol: Exam symbol number
            dob: Date of birth as submitted

        Returns:
            UpstreamResponse with the decoded document

        Raises:
            UpstreamTimeout: no answer within ``request_timeout``
            UpstreamError: network failure or non-2xx status
        """
        form = {"symbol": symbol, "dob": dob, "submit": "Search Result"}
        url = self.config.gradesheet_url
        start_time = time.time()

        async def _read(response: aiohttp.ClientResponse) -> str:
            return await response.text(errors="replace")

        status, text = await self._post("gradesheet", url, form, _read)
        return UpstreamResponse(status=status, text=text, url=url, start_ts=start_time, end_ts=time.time())

    async def search_results(self, symbol: str) -> Any:
        """Query the symbol-only search endpoint and return its JSON body."""

        async def _read(response: aiohttp.ClientResponse) -> Any:
            return await response.json(content_type=None)

        _, payload = await self._post("search", self.config.search_url, {"symbol": symbol}, _read, SEARCH_HEADERS)
        return payload

    async def _post(
        self,
        operation: str,
        url: str,
        form: Dict[str, str],
        read,
        headers: Optional[Dict[str, str]] = None,
    ) -> tuple[int, Any]:
        if not self._is_initialized or self.session is None:
            raise RuntimeError("Upstream client not initialized. Call initialize() first.")

        timeout = self.config.request_timeout
        start_time = time.time()
        outcome = "error"
        try:
            async with asyncio.timeout(timeout):
                async with self.session.post(url, data=form, headers=headers) as response:
                    if response.status >= 400:
                        raise UpstreamError(status=response.status, url=url)
                    body = await read(response)
                    outcome = "success"
                    return response.status, body
        except TimeoutError as e:
            outcome = "timeout"
            logger.warning("Upstream request timed out", operation=operation, url=url, timeout=timeout)
            raise UpstreamTimeout(timeout=timeout, url=url) from e
        except UpstreamError as e:
            logger.warning("Upstream returned an error status", operation=operation, **e.details)
            raise
        except (aiohttp.ClientError, ValueError) as e:
            logger.warning("Upstream request failed", operation=operation, url=url, error=str(e))
            raise UpstreamError(url=url, error=str(e)) from e
        finally:
            increment("upstream_requests_total", {"operation": operation, "outcome": outcome})
            observe("upstream_latency_seconds", {"operation": operation}, time.time() - start_time)
