#!/usr/bin/env python3
"""netreg - registry of blockchain network configurations.

Entry point for the netreg service and CLI.
"""

import asyncio
import signal
import sys

from netreg.cli import create_parser, run_cli
from netreg.config import NetregConfig
from netreg.observability.health import DatabaseHealthCheck, HealthServer
from netreg.observability.logging import configure_logging, get_logger
from netreg.registry import Database, NetworkRegistry, RedisEventPublisher, SqlNetworkStore


def parse_args(argv: list[str] | None = None):
    """Parse command line arguments."""
    return create_parser().parse_args(argv)


def build_registry(
    config: NetregConfig,
) -> tuple[Database, RedisEventPublisher, NetworkRegistry]:
    """Wire the database, publisher and registry from configuration."""
    database = Database(
        config.database_url.get_secret_value(),
        pool_size=config.database_pool_size,
        pool_timeout=config.database_pool_timeout,
        echo=config.database_echo,
    )
    publisher = RedisEventPublisher(config.events_redis_url, channel=config.events_channel)
    registry = NetworkRegistry(SqlNetworkStore(database), publisher)
    return database, publisher, registry


async def run_service(config: NetregConfig | None = None) -> None:
    """Run the netreg service (long-running mode).

    Wires up and starts all service components:
    - Database connection (process-wide engine)
    - Redis event publisher (disabled when no URL is configured)
    - HealthServer for probes and Prometheus scraping

    The registry itself is driven by the embedding transport layer; this
    process owns the shared resources and their lifecycle.
    """
    config = config or NetregConfig()
    configure_logging(level=config.log_level, log_format=config.log_format.value)

    logger = get_logger(__name__)
    logger.info("netreg starting", events_enabled=config.events_enabled)

    shutdown_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def on_shutdown_signal(sig_name: str) -> None:
        logger.info("Received signal, initiating shutdown", signal=sig_name)
        shutdown_event.set()

    loop.add_signal_handler(signal.SIGTERM, lambda: on_shutdown_signal("SIGTERM"))
    loop.add_signal_handler(signal.SIGINT, lambda: on_shutdown_signal("SIGINT"))

    database, publisher, _registry = build_registry(config)

    health_server = HealthServer(port=config.metrics_port)
    health_server.add_check(DatabaseHealthCheck(database))
    await health_server.start()

    try:
        await database.connect()
        await publisher.connect()
        logger.info("netreg service ready")

        await shutdown_event.wait()
    finally:
        logger.info("netreg shutting down")
        await publisher.close()
        await database.close()
        await health_server.stop()
        logger.info("netreg shutdown complete")


def run(argv: list[str] | None = None) -> None:
    """Main entry point for netreg."""
    args = parse_args(argv)

    if args.command and args.command != "run":
        exit_code = run_cli(args)
        if exit_code >= 0:
            sys.exit(exit_code)
        create_parser().print_help()
        sys.exit(0)

    asyncio.run(run_service())


if __name__ == "__main__":
    run()
