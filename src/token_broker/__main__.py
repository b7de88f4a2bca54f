"""
Entry point for running the token broker.

Usage:
    # Settings from environment (ARCADE_API_KEY, ARCADE_CONFIG_DIRECTORY, ...)
    python -m token_broker

    # Settings from a YAML file, port override
    python -m token_broker --config config/config.yaml --port 8080

    # Verbose console logs
    LOG_FORMAT=console python -m token_broker --log-level DEBUG
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from dotenv import load_dotenv

from config.config import BrokerConfig, load_config
from core.errors.exceptions import ConfigurationError
from core.logging import log_service_startup, setup_logging
from token_broker.registry import load_registry_from_dir
from token_broker.server import TokenBrokerServer

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Token broker: issues upstream access tokens to local clients",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML configuration file (default: config/config.yaml if present)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="HTTP port (default: $PORT or 1982)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Log level (default: $LOG_LEVEL or INFO)",
    )
    return parser.parse_args(argv)


def setup_signal_handlers(loop: asyncio.AbstractEventLoop, shutdown_event: asyncio.Event):
    """Set shutdown_event on SIGINT/SIGTERM.

    Note: Signal handlers not supported on Windows - KeyboardInterrupt used instead."""

    def handle_signal(sig):
        logger.info(
            "Received signal, initiating graceful shutdown", extra={"signal": sig.name}
        )
        shutdown_event.set()

    if sys.platform == "win32":
        return

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, lambda s=sig: handle_signal(s))


async def run(config: BrokerConfig) -> None:
    """Build the registry, serve until a shutdown signal, then clean up."""
    registry = load_registry_from_dir(
        config.config_directory,
        timeout=config.timeout_seconds,
        default_provider=config.default_provider,
    )

    log_service_startup(
        logger,
        "token broker",
        providers=registry.names(),
        extra_config={
            "config_directory": config.config_directory,
            "listen": f"{config.host}:{config.port}",
            "timeout_seconds": config.timeout_seconds,
            "default_provider": config.default_provider,
        },
    )

    server = TokenBrokerServer(
        registry,
        api_key=config.api_key,
        host=config.host,
        port=config.port,
    )

    shutdown_event = asyncio.Event()
    setup_signal_handlers(asyncio.get_running_loop(), shutdown_event)

    try:
        await server.start()
        await shutdown_event.wait()
    finally:
        await server.stop()
        await registry.close()


def main(argv=None):
    load_dotenv(PROJECT_ROOT / ".env")
    args = parse_args(argv)

    try:
        config = load_config(
            args.config,
            overrides={"port": args.port, "log_level": args.log_level},
        )
    except (ConfigurationError, FileNotFoundError) as e:
        setup_logging(json_format=False)
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    setup_logging(
        component="token-broker",
        json_format=config.log_format == "json",
        console_level=config.log_level,
        log_file=Path(config.log_file) if config.log_file else None,
    )

    try:
        asyncio.run(run(config))
    except (ConfigurationError, OSError) as e:
        logger.error(f"Failed to start token broker: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")


if __name__ == "__main__":
    main()
