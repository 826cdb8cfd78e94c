"""Command-line interface for the SEE result relay."""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import aiohttp
import click
import structlog

from seeresult import __version__
from seeresult.config import Config, load_config
from seeresult.errors import SeeResultError
from seeresult.extractor import ResultExtractor
from seeresult.observability import configure_logging
from seeresult.security import validate_result_query
from seeresult.server import serve as serve_app
from seeresult.upstream import UpstreamClient

logger = structlog.get_logger(__name__)


def _echo_json(payload: Any) -> None:
    click.echo(json.dumps(payload, indent=2, ensure_ascii=False))


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "-c", type=click.Path(exists=True, dir_okay=False), help="Configuration file path")
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Logging level",
)
@click.pass_context
def cli(ctx: click.Context, config: Optional[str], log_level: Optional[str]) -> None:
    """SEE result relay."""
    ctx.ensure_object(dict)
    loaded = load_config(Path(config) if config else None)
    if log_level:
        loaded.monitoring.log_level = log_level
    ctx.obj["config"] = loaded


@cli.command()
@click.option("--host", default=None, help="Host to bind to")
@click.option("--port", default=None, type=int, help="Port to bind to")
@click.pass_context
def serve(ctx: click.Context, host: Optional[str], port: Optional[int]) -> None:
    """Run the HTTP API."""
    config: Config = ctx.obj["config"]
    if host:
        config.server.host = host
    if port:
        config.server.port = port
    sys.exit(asyncio.run(serve_app(config)))


@cli.command()
@click.argument("symbol")
@click.argument("dob")
@click.pass_context
def lookup(ctx: click.Context, symbol: str, dob: str) -> None:
    """Fetch and print the gradesheet for SYMBOL and DOB."""
    config: Config = ctx.obj["config"]
    configure_logging(config.monitoring)

    async def run_lookup() -> Dict[str, Any]:
        query = validate_result_query({"symbol": symbol, "dob": dob})
        async with UpstreamClient(config.upstream) as upstream:
            response = await upstream.fetch_gradesheet(query.symbol, query.dob)
        return ResultExtractor().extract(response.text, query.symbol, query.dob).to_dict()

    try:
        _echo_json(asyncio.run(run_lookup()))
    except SeeResultError as e:
        _echo_json(e.to_payload())
        sys.exit(1)


@cli.command()
@click.argument("html_file", type=click.File("r", encoding="utf-8"))
@click.option("--symbol", required=True, help="Symbol number submitted for this page")
@click.option("--dob", required=True, help="Date of birth submitted for this page")
def extract(html_file, symbol: str, dob: str) -> None:
    """Run the extractor on a saved gradesheet page."""
    _echo_json(ResultExtractor().extract(html_file.read(), symbol, dob).to_dict())


@cli.command()
@click.option("--url", default=None, help="Base URL of a running instance")
@click.pass_context
def health(ctx: click.Context, url: Optional[str]) -> None:
    """Probe a running instance."""
    config: Config = ctx.obj["config"]
    base_url = url or f"http://127.0.0.1:{config.server.port}"
    ok = asyncio.run(check_health(base_url))
    sys.exit(0 if ok else 1)


async def check_health(base_url: str, timeout: float = 5.0) -> bool:
    """Return True when ``/health`` answers with status ok."""
    try:
        async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=timeout)) as session:
            async with session.get(f"{base_url.rstrip('/')}/health") as response:
                payload = await response.json(content_type=None)
                _echo_json(payload)
                return response.status == 200 and payload.get("status") == "ok"
    except (aiohttp.ClientError, TimeoutError, ValueError) as e:
        _echo_json({"status": "unreachable", "error": str(e)})
        return False


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
