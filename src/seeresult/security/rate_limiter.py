"""
Per client IP rate limiting for the relay.

Implements a sliding window over request timestamps held in memory, which is
enough for a single-process deployment.
"""

from __future__ import annotations

import asyncio
import math
import time
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Any, Callable, Deque, Dict, Iterable, Optional

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

logger = structlog.get_logger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests, please try again later."


@dataclass
class RateLimitResult:
    """Result of rate limit check."""

    allowed: bool
    remaining: int
    limit: int
    reset_after: int
    retry_after: int = 0

    def headers(self) -> Dict[str, str]:
        headers = {
            "RateLimit-Limit": str(self.limit),
            "RateLimit-Remaining": str(self.remaining),
            "RateLimit-Reset": str(self.reset_after),
        }
        if not self.allowed:
            headers["Retry-After"] = str(self.retry_after)
        return headers


class SlidingWindowRateLimiter:
    """
    In-memory sliding window limiter.

    Each identifier may make ``max_requests`` requests within any
    ``window_seconds`` span. Rejected requests are not recorded.
    """

    def __init__(
        self,
        max_requests: int = 60,
        window_seconds: int = 600,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_requests <= 0 or window_seconds <= 0:
            raise ValueError("max_requests and window_seconds must be positive")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._request_history: Dict[str, Deque[float]] = defaultdict(deque)
        self._lock = asyncio.Lock()
        self._last_sweep = clock()

        logger.info("Rate limiter initialized", max_requests=max_requests, window_seconds=window_seconds)

    async def check(self, identifier: str) -> RateLimitResult:
        """Record a request for ``identifier`` if it fits in the window.

        At most once per window, identifiers with no request inside the
        window are dropped so the history does not grow with every new IP.
        """
        async with self._lock:
            now = self._clock()
            if now - self._last_sweep >= self.window_seconds:
                self._sweep(now)

            history = self._request_history[identifier]

            cutoff_time = now - self.window_seconds
            while history and history[0] <= cutoff_time:
                history.popleft()

            allowed = len(history) < self.max_requests
            if allowed:
                history.append(now)

            # The oldest entry leaving the window frees the next slot.
            reset_after = max(0, math.ceil(history[0] + self.window_seconds - now)) if history else 0
            return RateLimitResult(
                allowed=allowed,
                remaining=max(0, self.max_requests - len(history)),
                limit=self.max_requests,
                reset_after=reset_after,
                retry_after=reset_after if not allowed else 0,
            )

    async def reset(self, identifier: str) -> bool:
        """Forget the history of one identifier."""
        async with self._lock:
            if identifier in self._request_history:
                del self._request_history[identifier]
                logger.info("Reset rate limit", identifier=identifier)
                return True
        return False

    async def cleanup(self) -> int:
        """Drop identifiers whose whole history is outside the window."""
        async with self._lock:
            return self._sweep(self._clock())

    def _sweep(self, now: float) -> int:
        # Caller holds the lock.
        cutoff_time = now - self.window_seconds
        stale = [key for key, history in self._request_history.items() if not history or history[-1] <= cutoff_time]
        for key in stale:
            del self._request_history[key]
        self._last_sweep = now
        if stale:
            logger.debug("Cleaned up rate limit entries", expired_count=len(stale))
        return len(stale)

    def get_stats(self) -> Dict[str, Any]:
        return {
            "tracked_clients": len(self._request_history),
            "max_requests": self.max_requests,
            "window_seconds": self.window_seconds,
        }


def client_ip(request: Request, trust_proxy: bool = False) -> str:
    """Client address, optionally taken from the first X-Forwarded-For hop."""
    if trust_proxy:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            first_hop = forwarded.split(",")[0].strip()
            if first_hop:
                return first_hop
    if request.client:
        return request.client.host
    return "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Enforces the limiter per client IP and adds the standard
    ``RateLimit-*`` headers to every limited response.
    """

    def __init__(
        self,
        app,
        rate_limiter: SlidingWindowRateLimiter,
        exempt_paths: Optional[Iterable[str]] = None,
        trust_proxy: bool = False,
    ):
        super().__init__(app)
        self.rate_limiter = rate_limiter
        self.exempt_paths = set(exempt_paths or ())
        self.trust_proxy = trust_proxy

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in self.exempt_paths or request.method == "OPTIONS":
            return await call_next(request)

        identifier = f"ip:{client_ip(request, self.trust_proxy)}"
        result = await self.rate_limiter.check(identifier)

        if not result.allowed:
            logger.warning("Rate limit exceeded", identifier=identifier, path=request.url.path)
            return JSONResponse(
                status_code=429,
                content={"error": RATE_LIMIT_MESSAGE},
                headers=result.headers(),
            )

        response = await call_next(request)
        response.headers.update(result.headers())
        return response
