"""
Request hardening: input validation, rate limiting and security headers.
"""

from .headers import SecurityHeadersMiddleware
from .rate_limiter import RateLimitMiddleware, RateLimitResult, SlidingWindowRateLimiter, client_ip
from .validation import ResultQuery, validate_result_query, validate_symbol

__all__ = [
    "SecurityHeadersMiddleware",
    "RateLimitMiddleware",
    "RateLimitResult",
    "SlidingWindowRateLimiter",
    "client_ip",
    "ResultQuery",
    "validate_result_query",
    "validate_symbol",
]
