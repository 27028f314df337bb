"""``dirstore`` command: load configuration and serve with uvicorn."""

import argparse
import logging
import sys
from pathlib import Path

import uvicorn

from dirstore import __version__
from dirstore.config import DirStoreConfig, load_config
from dirstore.logging_config import configure_logging
from dirstore.server import create_app

logger = logging.getLogger("dirstore")

DEFAULT_CONFIG = Path("dirstore.yaml")
LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dirstore",
        description="Serve a local directory tree as S3-compatible object storage.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--config",
        type=Path,
        help=f"YAML configuration file (default: {DEFAULT_CONFIG} when it exists)",
    )

    listen = parser.add_argument_group("listening")
    listen.add_argument("--addr", help="HOST:PORT or :PORT to listen on")
    listen.add_argument("--host", help="bind address; applied after --addr")
    listen.add_argument("--port", type=int, help="TCP port; applied after --addr")
    listen.add_argument(
        "--shutdown-timeout",
        type=int,
        metavar="SECONDS",
        help="how long to let in-flight requests finish on SIGINT/SIGTERM",
    )

    storage = parser.add_argument_group("storage")
    storage.add_argument("--root", help="directory holding one subdirectory per bucket")
    storage.add_argument(
        "--lock-mode",
        choices=["bucket", "global"],
        help="one lock per bucket, or one lock for the whole tree",
    )

    logs = parser.add_argument_group("logging")
    logs.add_argument("--log-level", choices=LOG_LEVELS)
    logs.add_argument("--log-format", choices=["text", "json"])
    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments (``sys.argv[1:]`` when ``argv`` is None)."""
    return build_parser().parse_args(argv)


def split_addr(addr: str) -> tuple[str, int]:
    """Split ``HOST:PORT`` or ``:PORT``; an empty host means all interfaces.

    Raises:
        ValueError: If there is no port or it is not a number.
    """
    host, sep, port = addr.rpartition(":")
    if not sep:
        raise ValueError(f"invalid listen address: {addr!r}")
    return host or "0.0.0.0", int(port)


def resolve_config(args: argparse.Namespace) -> DirStoreConfig:
    """Load configuration and apply command-line overrides.

    Without ``--config`` the default file is read if present, otherwise the
    built-in defaults are used. The storage root is made absolute.

    Raises:
        FileNotFoundError: If the file named by ``--config`` is missing.
        ValueError: If ``--addr`` is malformed.
    """
    if args.config is not None:
        config = load_config(args.config)
    elif DEFAULT_CONFIG.exists():
        config = load_config(DEFAULT_CONFIG)
    else:
        config = DirStoreConfig()

    server, storage = config.server, config.storage
    if args.addr is not None:
        server.host, server.port = split_addr(args.addr)

    overrides = [
        (server, "host", args.host),
        (server, "port", args.port),
        (server, "shutdown_timeout", args.shutdown_timeout),
        (server, "log_level", args.log_level),
        (server, "log_format", args.log_format),
        (storage, "root", args.root),
        (storage, "lock_mode", args.lock_mode),
    ]
    for section, field, value in overrides:
        if value is not None:
            setattr(section, field, value)

    storage.root = str(Path(storage.root).resolve())
    return config


def main(argv: list[str] | None = None) -> None:
    """Run the server until interrupted.

    Exits with status 1 if the configuration cannot be loaded.
    """
    args = parse_args(argv)

    try:
        config = resolve_config(args)
    except FileNotFoundError as exc:
        print(f"dirstore: config file not found: {exc.filename}", file=sys.stderr)
        sys.exit(1)
    except Exception as exc:
        print(f"dirstore: invalid configuration: {exc}", file=sys.stderr)
        sys.exit(1)

    configure_logging(level=config.server.log_level, fmt=config.server.log_format)

    host, port = config.server.host, config.server.port
    logger.info("DirStore %s listening on %s:%d", __version__, host, port)
    logger.info("Storage root: %s", config.storage.root)
    logger.info("Health check: http://%s:%d/health", host, port)

    uvicorn.run(
        create_app(config),
        host=host,
        port=port,
        log_config=None,
        log_level=config.server.log_level.lower(),
        access_log=False,
        timeout_graceful_shutdown=config.server.shutdown_timeout,
    )
    logger.info("Server stopped")


if __name__ == "__main__":
    main()
