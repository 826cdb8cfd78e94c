"""
Response hardening headers, equivalent to helmet's defaults for an express app.
"""

from __future__ import annotations

from typing import Callable, Dict, Mapping, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

DEFAULT_CSP: Dict[str, str] = {
    "default-src": "'self'",
    "base-uri": "'self'",
    "font-src": "'self' https: data:",
    "form-action": "'self'",
    "frame-ancestors": "'self'",
    "img-src": "'self' data:",
    "object-src": "'none'",
    "script-src": "'self'",
    "script-src-attr": "'none'",
    "style-src": "'self' https: 'unsafe-inline'",
    "upgrade-insecure-requests": "",
}

HIDDEN_HEADERS = ("Server", "X-Powered-By")


def render_csp(directives: Mapping[str, str]) -> str:
    """Join CSP directives; an empty value renders the bare directive name."""
    return "; ".join(f"{name} {value}".rstrip() for name, value in directives.items())


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Adds a fixed set of security headers to every response and hides
    server identification headers.
    """

    def __init__(
        self,
        app,
        csp_directives: Optional[Mapping[str, str]] = None,
        enable_hsts: bool = True,
        hsts_max_age: int = 15552000,  # 180 days
    ):
        super().__init__(app)
        self.security_headers: Dict[str, str] = {
            "Content-Security-Policy": render_csp(csp_directives or DEFAULT_CSP),
            "Cross-Origin-Opener-Policy": "same-origin",
            "Cross-Origin-Resource-Policy": "same-origin",
            "Origin-Agent-Cluster": "?1",
            "Referrer-Policy": "no-referrer",
            "X-Content-Type-Options": "nosniff",
            "X-DNS-Prefetch-Control": "off",
            "X-Download-Options": "noopen",
            "X-Frame-Options": "SAMEORIGIN",
            "X-Permitted-Cross-Domain-Policies": "none",
            "X-XSS-Protection": "0",
        }
        if enable_hsts:
            self.security_headers["Strict-Transport-Security"] = f"max-age={hsts_max_age}; includeSubDomains"

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        response.headers.update(self.security_headers)
        for name in HIDDEN_HEADERS:
            if name in response.headers:
                del response.headers[name]
        return response
