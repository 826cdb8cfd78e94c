"""
FastAPI application for the SEE result relay.

Services are built once per application by :func:`create_app` and handed to
route handlers through dependencies, so tests can swap any of them.
"""

from __future__ import annotations

import json
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, AsyncGenerator, Callable, Dict, Mapping
from uuid import uuid4

import structlog
from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from seeresult import __version__
from seeresult.config import Config
from seeresult.errors import PayloadTooLarge, RequestValidationFailed, SeeResultError
from seeresult.extractor import ResultExtractor
from seeresult.observability import export_prometheus, increment
from seeresult.security import (
    RateLimitMiddleware,
    SecurityHeadersMiddleware,
    SlidingWindowRateLimiter,
    client_ip,
    validate_result_query,
    validate_symbol,
)
from seeresult.upstream import UpstreamClient

logger = structlog.get_logger(__name__)

# Path to the HTML landing page
HTML_TEMPLATE_PATH = Path(__file__).parent / "templates" / "index.html"

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


# --- Dependencies ---


def get_config(request: Request) -> Config:
    return request.app.state.config


def get_upstream(request: Request) -> UpstreamClient:
    return request.app.state.upstream


def get_extractor(request: Request) -> ResultExtractor:
    return request.app.state.extractor


async def read_lookup_body(request: Request, config: Config = Depends(get_config)) -> Mapping[str, Any]:
    """Read a JSON or form body, enforcing the size limit."""
    limit = config.server.max_body_bytes
    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > limit:
        raise PayloadTooLarge(size=int(declared), limit=limit)

    body = await request.body()
    if len(body) > limit:
        raise PayloadTooLarge(size=len(body), limit=limit)
    if not body:
        return {}

    content_type = request.headers.get("content-type", "")
    if content_type.startswith(FORM_CONTENT_TYPES):
        form = await request.form()
        return {key: value for key, value in form.items() if isinstance(value, str)}

    try:
        data = json.loads(body)
    except ValueError as e:
        raise RequestValidationFailed([{"field": "body", "message": "Malformed JSON body", "value": None}]) from e
    if not isinstance(data, dict):
        raise RequestValidationFailed([{"field": "body", "message": "Body must be a JSON object", "value": None}])
    return data


# --- Application factory ---


def create_app(config: Config | None = None) -> FastAPI:
    """Build the relay application and its services."""
    config = config or Config()
    upstream = UpstreamClient(config.upstream)
    rate_limiter = SlidingWindowRateLimiter(
        max_requests=config.rate_limit.max_requests,
        window_seconds=config.rate_limit.window_seconds,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Open and close the upstream session with the application."""
        app.state.start_time = time.time()
        await upstream.initialize()
        logger.info("SEE result API starting", version=__version__, port=config.server.port)
        try:
            yield
        finally:
            await upstream.close()
            logger.info("SEE result API stopped")

    app = FastAPI(title="SEE Result API", version=__version__, lifespan=lifespan)
    app.state.config = config
    app.state.upstream = upstream
    app.state.extractor = ResultExtractor()
    app.state.rate_limiter = rate_limiter

    # Innermost first: request context sits closest to the routes.
    app.middleware("http")(_request_context)
    if config.rate_limit.enabled:
        app.add_middleware(
            RateLimitMiddleware,
            rate_limiter=rate_limiter,
            exempt_paths=config.rate_limit.exempt_paths,
            trust_proxy=config.server.trust_proxy,
        )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.allowed_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-ID"],
    )

    app.add_exception_handler(SeeResultError, _handle_relay_error)
    app.add_exception_handler(StarletteHTTPException, _handle_http_error)

    app.include_router(_build_router())
    return app


def _build_router() -> APIRouter:
    router = APIRouter()

    @router.get("/health")
    async def health_check() -> Dict[str, Any]:
        """Liveness probe."""
        return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}

    @router.get("/", response_class=HTMLResponse)
    async def landing_page() -> str:
        """Serves the static landing page."""
        return HTML_TEMPLATE_PATH.read_text(encoding="utf-8")

    @router.get("/metrics")
    async def prometheus_metrics() -> Response:
        """Endpoint for Prometheus to scrape."""
        return Response(export_prometheus(), media_type="text/plain; version=0.0.4")

    @router.post("/api/see-result")
    async def see_result(
        body: Mapping[str, Any] = Depends(read_lookup_body),
        upstream: UpstreamClient = Depends(get_upstream),
        extractor: ResultExtractor = Depends(get_extractor),
    ) -> Dict[str, Any]:
        """Validate, fetch the gradesheet and return the extracted record."""
        query = validate_result_query(body)

        response = await upstream.fetch_gradesheet(query.symbol, query.dob)
        record = await extractor.extract_async(response.text, query.symbol, query.dob)

        increment("results_extracted_total", {"has_gpa": str(record.gpa is not None).lower()})
        logger.info(
            "Result extracted",
            symbol=record.symbol,
            subjects=len(record.subjects),
            has_gpa=record.gpa is not None,
            upstream_seconds=round(response.elapsed, 3),
        )
        return record.to_dict()

    @router.get("/api/result")
    async def search_result(
        symbol: str | None = Query(default=None),
        upstream: UpstreamClient = Depends(get_upstream),
    ) -> Any:
        """Relay a symbol-only search to the secondary results endpoint."""
        return await upstream.search_results(validate_symbol(symbol))

    return router


# --- Middleware and error handlers ---


async def _request_context(request: Request, call_next: Callable) -> Response:
    """Bind request context for logging and turn unexpected failures into a 500."""
    start_time = time.time()
    request_id = request.headers.get("x-request-id") or str(uuid4())
    trust_proxy = request.app.state.config.server.trust_proxy

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        request_id=request_id,
        method=request.method,
        path=request.url.path,
        client_ip=client_ip(request, trust_proxy),
    )

    try:
        response = await call_next(request)
    except Exception:
        logger.exception("Unhandled error while processing request")
        response = JSONResponse(
            status_code=500,
            content={"error": "Internal Server Error", "code": "INTERNAL_SERVER_ERROR"},
        )

    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = f"{process_time:.4f}"
    response.headers["X-Request-ID"] = request_id

    route = request.scope.get("route")
    path_label = getattr(route, "path", "unmatched")
    increment(
        "http_requests_total",
        {"method": request.method, "path": path_label, "status": str(response.status_code)},
    )
    logger.info("Request completed", status_code=response.status_code, duration_ms=round(process_time * 1000, 2))
    return response


async def _handle_relay_error(request: Request, exc: SeeResultError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Upstream failure", error=str(exc), status_code=exc.status_code)
    else:
        logger.info("Request rejected", error=str(exc), status_code=exc.status_code)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


async def _handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404:
        return JSONResponse(status_code=404, content={"error": "Not Found", "code": "ROUTE_NOT_FOUND"})
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)
