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

from linksweep.infrastructure.config import AppConfig, load_config
from linksweep.infrastructure.logging.setup import configure_logging
from linksweep.interfaces.app import create_app
from linksweep.interfaces.composition import (
    build_prober,
    open_http_clients,
    open_resources,
)

log = structlog.get_logger(__name__)


def _add_config_flags(parser: argparse.ArgumentParser) -> None:
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
        "--database-url",
        default=None,
        help="Override the link store database URL.",
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


def _parse_args(argv: Iterable[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="linksweep")
    commands = parser.add_subparsers(dest="command", required=True)

    serve = commands.add_parser("serve", help="Run the API and the sweep scheduler.")
    serve.add_argument(
        "--host",
        default=None,
        help="Bind host (overrides HOST env).",
    )
    serve.add_argument(
        "--port",
        default=None,
        type=int,
        help="Bind port (overrides PORT env).",
    )
    _add_config_flags(serve)

    sweep = commands.add_parser("sweep", help="Run one full sweep and exit.")
    _add_config_flags(sweep)

    probe = commands.add_parser("probe", help="Probe a single URL and exit.")
    probe.add_argument("url", help="Absolute http(s) URL to probe.")
    _add_config_flags(probe)

    return parser.parse_args(list(argv) if argv is not None else None)


def _load(args: argparse.Namespace) -> AppConfig:
    cli_overrides: dict[str, Any] = {}
    if args.database_url:
        cli_overrides["database_url"] = args.database_url
    if args.log_level:
        cli_overrides["log_level"] = args.log_level
    if args.log_format:
        cli_overrides["log_format"] = args.log_format

    return load_config(
        config_path=Path(args.config) if args.config else None,
        dotenv_path=Path(args.dotenv) if args.dotenv else None,
        cli_overrides=cli_overrides,
    )


async def _sweep(config: AppConfig) -> dict[str, Any]:
    async with open_resources(config) as resources:
        result = await resources.link_checker.check_all()
    return result.to_dict()


async def _probe(config: AppConfig, url: str) -> dict[str, Any]:
    # No link store: a one-off check never reads or writes stored links.
    async with open_http_clients(config) as (http_client, proxy_client):
        prober = build_prober(
            config, http_client=http_client, proxy_client=proxy_client
        )
        result = await prober.check_link(url)
    return result.to_dict()


def _serve(args: argparse.Namespace, config: AppConfig, log_config: dict[str, Any]) -> int:
    host = args.host or os.getenv("HOST", "0.0.0.0")
    port = int(args.port or os.getenv("PORT", "8080"))

    uvicorn.run(
        create_app(config),
        host=host,
        port=port,
        log_config=log_config,
    )
    return 0


def start(argv: Iterable[str] | None = None) -> int:
    """
    Process entrypoint.

    Config is loaded exactly once here, then handed to the selected command.
    """
    if argv is None:
        argv = sys.argv[1:]

    args = _parse_args(argv)
    config = _load(args)
    log_config = configure_logging(config)

    if args.command == "serve":
        return _serve(args, config, log_config)

    if args.command == "sweep":
        output = asyncio.run(_sweep(config))
        print(json.dumps(output, indent=2))
        return 0

    output = asyncio.run(_probe(config, args.url))
    print(json.dumps(output, indent=2))
    return 0 if output["status"] == "live" else 1


if __name__ == "__main__":
    raise SystemExit(start())
