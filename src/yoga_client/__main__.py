"""
Yoga API client - command line entry point

Usage:
    yoga-client --status               # Probe endpoints and show the active one
    yoga-client --login EMAIL          # Sign in (prompts for the password)
    yoga-client --whoami               # Verify the stored session
    yoga-client --logout               # Forget the stored session
"""

import argparse
import asyncio
import getpass
import json
import logging
import sys
from typing import Optional

from .auth import AuthService
from .client import ApiClient
from .config import APP_NAME, APP_VERSION, Config, ensure_app_dirs, get_log_path, get_storage_path
from .endpoints import ConnectivityStatus
from .errors import ApiError
from .session import TokenStore

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False, level: str = "INFO", console: bool = True) -> None:
    """Set up file logging plus an optional console handler."""
    from logging.handlers import TimedRotatingFileHandler

    root_logger = logging.getLogger()
    if verbose:
        root_logger.setLevel(logging.DEBUG)
    else:
        root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    if console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
        root_logger.addHandler(console_handler)

    try:
        ensure_app_dirs()
        file_handler = TimedRotatingFileHandler(
            get_log_path(),
            when="D",
            interval=1,
            backupCount=2,
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        root_logger.addHandler(file_handler)
    except OSError as e:
        logger.warning(f"File logging disabled: {e}")

    # Silence noisy third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, default=str))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="yoga-client",
        description=f"{APP_NAME} - API client for the yoga pose detection backend",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  yoga-client --status                     Show which API endpoint is in use
  yoga-client --login me@example.com       Sign in and store the session token
  yoga-client --progress                   Show practice progress

Status values:
  primary-active   - Production API reachable
  fallback-active  - Production down, local API in use
  offline          - Neither endpoint reachable
        """,
    )

    mode_group = parser.add_mutually_exclusive_group()
    mode_group.add_argument("--status", action="store_true", help="Probe endpoints and print the status")
    mode_group.add_argument("--login", metavar="EMAIL", help="Sign in with email and password")
    mode_group.add_argument("--register", metavar="EMAIL", help="Create an account and sign in")
    mode_group.add_argument("--logout", action="store_true", help="Forget the stored session token")
    mode_group.add_argument("--whoami", action="store_true", help="Verify the stored session token")
    mode_group.add_argument("--progress", action="store_true", help="Print practice progress")
    mode_group.add_argument("--stats", action="store_true", help="Print practice statistics")

    parser.add_argument("--password", help="Password (prompted if omitted)")
    parser.add_argument("--name", help="Display name for --register")
    parser.add_argument("--api-url", help="Production API base URL (env: YOGA_API_URL)")
    parser.add_argument("--local-api-url", help="Local API base URL (env: YOGA_LOCAL_API_URL)")
    parser.add_argument(
        "--native",
        action="store_true",
        default=None,
        help="Use the native-shell transport (env: YOGA_NATIVE_SHELL)",
    )
    parser.add_argument("--ca-bundle", help="Custom CA certificate file (env: YOGA_CA_BUNDLE)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"{APP_NAME} {APP_VERSION}")
    return parser


def load_config(args: argparse.Namespace) -> Config:
    """Config file, then environment, then command line flags."""
    config = Config.load().apply_env()
    if args.api_url:
        config.api_url = args.api_url
    if args.local_api_url:
        config.local_api_url = args.local_api_url
    if args.native is not None:
        config.native_shell = args.native
    if args.ca_bundle:
        config.ca_bundle = args.ca_bundle
    return config


async def run(args: argparse.Namespace, config: Config, store: TokenStore) -> int:
    """Execute the selected command. Returns the process exit code."""
    async with ApiClient.from_config(config, store) as client:
        service = AuthService(client, store)

        if args.logout:
            service.logout()
            print("Signed out.")
            return 0

        status = await service.initialize()

        if args.login or args.register:
            password = args.password or getpass.getpass("Password: ")
            if args.login:
                result = await service.login(args.login, password)
            else:
                data = {"email": args.register, "password": password}
                if args.name:
                    data["name"] = args.name
                result = await service.register(data)
            print(result.message or ("Signed in." if result.success else "Sign-in failed."))
            return 0 if result.success else 1

        if args.whoami:
            if not service.is_authenticated:
                print("Not signed in.")
                return 1
            _print_json(service.user)
            return 0

        if args.progress or args.stats:
            data = await (service.get_progress() if args.progress else service.get_stats())
            if data is None:
                print(service.error or "No data available.", file=sys.stderr)
                return 1
            _print_json(data)
            return 0

        print(f"Status: {status.value}")
        print(f"API:    {service.current_api_url}")
        return 0 if status != ConnectivityStatus.OFFLINE else 2


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point for the yoga-client command."""
    parser = build_parser()
    args = parser.parse_args(argv)
    config = load_config(args)
    setup_logging(verbose=args.verbose, level=config.log_level)

    store = TokenStore(get_storage_path())
    try:
        return asyncio.run(run(args, config, store))
    except ApiError as e:
        logger.error(f"{e.kind.value} error: {e}")
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
