"""Command-line interface for the hotel reservation API."""

from __future__ import annotations
import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Sequence

from hotel_api.config import Settings, load_settings

logger = logging.getLogger("hotel_api.main")


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Hotel reservation API utilities")
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve", config=None)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        default=None,
        help="Path to a YAML configuration file (defaults to HOTEL_API_CONFIG)",
    )

    serve_parser = subparsers.add_parser("serve", parents=[common], help="Start the HTTP API")
    serve_parser.add_argument("--host", default=None, help="Bind address (default: HOST or 0.0.0.0)")
    serve_parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Listening port (default: PORT or 3001)",
    )

    subparsers.add_parser(
        "routes",
        parents=[common],
        help="List the API routes and whether they require a token",
    )

    args_list = list(argv) if argv is not None else sys.argv[1:]
    known_commands = {"serve", "routes"}

    if not args_list:
        args_list = ["serve"]
    else:
        first = args_list[0]
        if first in ("-h", "--help"):
            return parser.parse_args(args_list)
        if first not in known_commands:
            if any(flag in args_list for flag in ("-h", "--help")):
                return parser.parse_args(args_list)
            args_list = ["serve", *args_list]

    return parser.parse_args(args_list)


def _serve(settings: Settings, *, host: str | None, port: int | None) -> None:
    from hotel_api.service import create_app
    import uvicorn

    bind_host = host or settings.host
    bind_port = port or settings.port
    logger.info("Starting hotel reservation API on http://%s:%s%s", bind_host, bind_port, settings.api_prefix)

    app = create_app(settings=settings)
    uvicorn.run(
        app,
        host=bind_host,
        port=bind_port,
        log_level=settings.log_level,
    )


def _print_routes(settings: Settings) -> None:
    from hotel_api.service import create_app, describe_routes

    app = create_app(settings=settings)
    for method, path, gated in describe_routes(app):
        marker = "token" if gated else "public"
        print(f"{method:<7} {path:<40} {marker}")
    asyncio.run(app.state.store.aclose())


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point for CLI usage."""

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")

    args = _parse_args(argv)
    config_path = Path(args.config).expanduser() if args.config else None
    try:
        settings = load_settings(config_path)
    except (OSError, ValueError) as exc:
        raise SystemExit(f"Invalid configuration: {exc}") from exc

    logging.getLogger().setLevel(settings.log_level.upper())

    if args.command == "serve":
        _serve(settings, host=args.host, port=args.port)
    elif args.command == "routes":
        _print_routes(settings)


if __name__ == "__main__":
    main()
