from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import structlog
import uvicorn

from streamfinder.domain.entities.streams import FetchPolicy, StreamDefaults
from streamfinder.domain.exceptions import ConfigurationError
from streamfinder.infrastructure.config import AppConfig, load_config
from streamfinder.infrastructure.logging.setup import configure_logging
from streamfinder.interfaces.api.streams.router import record_to_dict
from streamfinder.interfaces.app import create_app
from streamfinder.interfaces.composition import open_services

log = structlog.get_logger(__name__)


def _parse_args(argv: Iterable[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="streamfinder")

    # Config wiring flags (no business logic)
    parser.add_argument(
        "--config",
        default=None,
        help="Path to YAML config file.",
    )
    parser.add_argument(
        "--dotenv",
        default=None,
        help="Path to .env file.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override log level.",
    )
    parser.add_argument(
        "--log-format",
        default=None,
        choices=["json", "console"],
        help="Override log format.",
    )

    sub = parser.add_subparsers(dest="command")

    serve = sub.add_parser("serve", help="Run the HTTP API (default).")
    serve.add_argument("--host", default=None, help="Bind host (overrides HOST env).")
    serve.add_argument(
        "--port", default=None, type=int, help="Bind port (overrides PORT env)."
    )

    resolve = sub.add_parser("resolve", help="Resolve an embed URL to a stream URL.")
    resolve.add_argument("embed_url")
    resolve.add_argument(
        "--all", action="store_true", help="Print every candidate, best first."
    )

    streams = sub.add_parser("streams", help="List provider streams for a match.")
    streams.add_argument("source")
    streams.add_argument("match_id")
    streams.add_argument(
        "--single", action="store_true", help="Stop at the first answering endpoint."
    )

    domain = sub.add_parser("domain", help="Show or verify the working embed domain.")
    domain.add_argument(
        "--verify", action="store_true", help="Check domains instead of reading state."
    )

    return parser.parse_args(argv)


def _print_json(data: Any) -> None:
    sys.stdout.write(json.dumps(data, indent=2) + "\n")


async def _run_resolve(config: AppConfig, embed_url: str, show_all: bool) -> int:
    async with open_services(config) as services:
        if show_all:
            streams = await services.extractor.extract_all(embed_url)
            _print_json([{"url": s.url, "type": s.kind.value} for s in streams])
            return 0 if streams else 1

        stream = await services.extractor.resolve(embed_url)
        if stream is None:
            _print_json({"embedUrl": embed_url, "streamUrl": None})
            return 1
        _print_json(
            {"embedUrl": embed_url, "streamUrl": stream.url, "type": stream.kind.value}
        )
        return 0


async def _run_streams(
    config: AppConfig, source: str, match_id: str, single: bool
) -> int:
    async with open_services(config) as services:
        domains = services.embed_domains
        domain = await domains.current_domain()
        records = await services.providers.fetch_from_providers(
            match_id,
            source,
            policy=FetchPolicy.FIRST_SUCCESS if single else FetchPolicy.COLLECT_ALL,
            defaults=StreamDefaults(
                embed_url_factory=lambda s, mid, n: domains.embed_url(domain, s, mid, n)
            ),
        )
        _print_json([record_to_dict(r) for r in records])
        return 0 if records else 1


async def _run_domain(config: AppConfig, verify: bool) -> int:
    async with open_services(config) as services:
        manager = services.embed_domains
        if verify:
            await manager.resolve_working_domain()
        status = await manager.status()
        _print_json(
            {
                "currentDomain": status.current_domain,
                "failedDomains": status.failed_domains,
                "availability": status.availability,
            }
        )
        return 0


def _serve(config: AppConfig, args: argparse.Namespace) -> int:
    host = getattr(args, "host", None) or os.getenv("HOST", "0.0.0.0")
    port = int(getattr(args, "port", None) or os.getenv("PORT", "8080"))

    uvicorn.run(
        create_app(config),
        host=host,
        port=port,
        log_config=None,
    )
    return 0


def start(argv: Iterable[str] | None = None) -> int:
    """
    Process entrypoint.

    Loads config exactly once, then dispatches to the sub-command.
    """

    if argv is None:
        argv = sys.argv[1:]

    args = _parse_args(argv)

    config_path = Path(args.config) if args.config else None
    dotenv_path = Path(args.dotenv) if args.dotenv else None

    cli_overrides: dict[str, Any] = {}
    if args.log_level:
        cli_overrides["log_level"] = args.log_level
    if args.log_format:
        cli_overrides["log_format"] = args.log_format

    config = load_config(
        config_path=config_path,
        dotenv_path=dotenv_path,
        cli_overrides=cli_overrides,
    )

    configure_logging(config)

    try:
        if args.command == "resolve":
            return asyncio.run(_run_resolve(config, args.embed_url, args.all))
        if args.command == "streams":
            return asyncio.run(
                _run_streams(config, args.source, args.match_id, args.single)
            )
        if args.command == "domain":
            return asyncio.run(_run_domain(config, args.verify))
        return _serve(config, args)
    except ConfigurationError as e:
        log.error("configuration_error", error=str(e))
        return 2


if __name__ == "__main__":
    raise SystemExit(start())
