"""
=============================================================================
COMMAND-LINE INTERFACE
=============================================================================

Entry point for running the clinic server from the command line.

Usage:
    python -m clinicserver [options]
    clinic-server [options]

Examples:
    # Defaults: 0.0.0.0:8080, 4 workers, DATABASE_URL from env or .env
    python -m clinicserver

    # One connection at a time, like the first deployment
    python -m clinicserver --workers 0 --legacy-routing

    # Another database
    python -m clinicserver --database-url postgresql+psycopg://clinic@db/clinic

=============================================================================
STARTUP SEQUENCE
=============================================================================

    .env ──► ServerConfig.from_env() ──► CLI overrides ──► validate()
                                                              │
                       bootstrap schema (exit 1 on failure) ◄─┘
                                │
                       bind port (exit 1 on failure)
                                │
                       serve until SIGINT / SIGTERM

=============================================================================
"""

import argparse
import logging
import sys
from typing import Optional, Sequence

from dotenv import load_dotenv

from . import __version__
from .app import create_app, create_store
from .config import LOG_FORMATS, ServerConfig
from .server import configure_logging
from .store import StoreError

logger = logging.getLogger("clinicserver")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="clinic-server",
        description="Record-keeping server for doctors, patients and prescriptions",
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--host", "-H", help="Host to bind to (default: 0.0.0.0)")
    parser.add_argument("--port", "-p", type=int, help="Port to listen on (default: 8080)")

    # ─────────────────────────────────────────────────────────────────────
    # BEHAVIOUR ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--workers", "-w",
        type=int,
        help="Worker threads; 0 handles one connection at a time (default: 4)",
    )
    parser.add_argument(
        "--legacy-routing",
        action="store_true",
        default=None,
        help="Match routes by path prefix, as older clients expect",
    )
    parser.add_argument(
        "--database-url", "-d",
        help="SQLAlchemy URL of the record store (default: $DATABASE_URL)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    parser.add_argument("--log-format", choices=LOG_FORMATS, help="Access log format (default: text)")

    parser.add_argument("--version", "-v", action="version", version=f"clinicserver {__version__}")
    return parser


def load_config(args: argparse.Namespace) -> ServerConfig:
    """Environment first, then any flag that was given on top."""
    config = ServerConfig.from_env()

    overrides = {
        "host": args.host,
        "port": args.port,
        "workers": args.workers,
        "legacy_routing": args.legacy_routing,
        "database_url": args.database_url,
        "log_level": args.log_level,
        "log_format": args.log_format,
    }
    for name, value in overrides.items():
        if value is not None:
            setattr(config, name, value)

    return config


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    load_dotenv()

    try:
        config = load_config(args)
        config.validate()
    except ValueError as e:
        parser.error(str(e))

    configure_logging(config.log_level)

    # ─────────────────────────────────────────────────────────────────────
    # SCHEMA BOOTSTRAP
    # ─────────────────────────────────────────────────────────────────────
    try:
        store = create_store(config)
    except StoreError as e:
        logger.critical(str(e))
        return 1

    try:
        store.bootstrap()
    except StoreError as e:
        logger.critical(f"Cannot prepare record store: {e}")
        store.dispose()
        return 1

    # ─────────────────────────────────────────────────────────────────────
    # BIND AND SERVE
    # ─────────────────────────────────────────────────────────────────────
    server = create_app(config, store)
    try:
        server.bind()
    except OSError as e:
        logger.critical(f"Cannot listen on {config.host}:{config.port}: {e}")
        store.dispose()
        return 1

    try:
        server.run()
    finally:
        store.dispose()
    return 0


if __name__ == "__main__":
    sys.exit(main())
