"""Command-line interface for the userhub API service."""

from __future__ import annotations
import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Sequence


def _running_in_virtualenv() -> bool:
    """Return ``True`` when the current interpreter is executing inside a venv."""

    base_prefix = getattr(sys, "base_prefix", sys.prefix)
    return sys.prefix != base_prefix


def _bootstrap_virtualenv() -> None:
    """Re-exec the script using the bundled virtualenv interpreter when available."""

    if _running_in_virtualenv():
        return

    root = Path(__file__).resolve().parent
    venv_dir = root / ".venv"
    if not venv_dir.is_dir():
        return

    candidates = (
        venv_dir / "bin" / "python",
        venv_dir / "bin" / "python3",
        venv_dir / "Scripts" / "python.exe",
        venv_dir / "Scripts" / "python",
    )

    script = str(Path(__file__).resolve())
    for candidate in candidates:
        if candidate.exists():
            os.execv(str(candidate), [str(candidate), script, *sys.argv[1:]])


if __name__ == "__main__":
    _bootstrap_virtualenv()

from userhub.api import build_proxy, create_app
from userhub.config import Settings, load_settings
from userhub.proxy import DataServiceProxy

logger = logging.getLogger("userhub.main")

KNOWN_COMMANDS = {"serve", "check", "users"}


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        default=None,
        help="Path to a YAML configuration file (default: $USERHUB_CONFIG or config/userhub.yaml)",
    )
    parser.add_argument(
        "--service-url",
        default=None,
        help="Base URL of the external data service (default: http://localhost:3001)",
    )


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="userhub API utilities")
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP API")
    _add_common_arguments(serve_parser)
    serve_parser.add_argument("--host", default=None, help="Bind address for the API")
    serve_parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port for the HTTP API (default: 8080)",
    )

    check_parser = subparsers.add_parser("check", help="Check that the data service is reachable")
    _add_common_arguments(check_parser)

    users_parser = subparsers.add_parser("users", help="List users known to the data service")
    _add_common_arguments(users_parser)

    args_list = list(argv) if argv is not None else sys.argv[1:]

    if not args_list:
        args_list = ["serve"]
    else:
        first = args_list[0]
        if first in ("-h", "--help"):
            return parser.parse_args(args_list)
        if first not in KNOWN_COMMANDS:
            if any(flag in args_list for flag in ("-h", "--help")):
                return parser.parse_args(args_list)
            args_list = ["serve", *args_list]

    return parser.parse_args(args_list)


def _resolve_settings(args: argparse.Namespace) -> Settings:
    config_path = Path(args.config).expanduser() if getattr(args, "config", None) else None
    settings = load_settings(config_path)

    overrides = {}
    if getattr(args, "service_url", None):
        overrides["service_url"] = args.service_url
    if getattr(args, "host", None):
        overrides["host"] = args.host
    if getattr(args, "port", None) is not None:
        overrides["port"] = args.port
    if overrides:
        settings = Settings.from_dict(overrides, base=settings)
    return settings


def _serve(settings: Settings) -> None:
    import uvicorn

    logger.info("Starting userhub API on http://%s:%s", settings.host, settings.port)
    logger.info("Forwarding requests to %s", settings.service_url)

    app = create_app(settings=settings)
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level="info",
    )


def _check_service(proxy: DataServiceProxy) -> int:
    print(f"Connecting to data service at {proxy.service_url}...")
    if proxy.connect():
        print("Connected to data service.")
        return 0
    print("Could not connect to data service. Is it running?")
    return 1


def _list_users(proxy: DataServiceProxy) -> int:
    result = proxy.try_find_many_users()
    if result.unavailable:
        print(f"Failed to contact data service: {result.detail}")
        return 1

    users = result.value or []
    if not users:
        print("No users are currently registered.")
        return 0

    print(f"{len(users)} user(s) found:")
    print(f"{'ID':>4}  {'Name':<24}  {'Email':<32}  Created")
    print("-" * 80)
    for user in users:
        name = user.name or "<no name>"
        print(f"{user.id:>4}  {name:<24}  {user.email:<32}  {user.created_at}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for CLI usage."""

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")

    args = _parse_args(argv)
    try:
        settings = _resolve_settings(args)
    except (OSError, ValueError) as exc:
        raise SystemExit(f"Invalid configuration: {exc}") from exc

    if args.command == "serve":
        _serve(settings)
        return 0
    if args.command == "check":
        return _check_service(build_proxy(settings))
    if args.command == "users":
        return _list_users(build_proxy(settings))
    return 0


if __name__ == "__main__":
    sys.exit(main())
