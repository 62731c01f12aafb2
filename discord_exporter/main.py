"""Main entry point and CLI for the Discord exporter.

Runs the Discord gateway connection and the HTTP server in one event loop.
Arguments override environment-based configuration selectively.
"""

import argparse
import asyncio
import contextlib
import sys

import uvicorn
from pydantic import ValidationError

from discord_exporter.core.config import ExporterConfig
from discord_exporter.di.container import Container
from discord_exporter.observability.logging_config import get_logger, setup_logging


def _build_parser() -> argparse.ArgumentParser:
    """Build the CLI parser."""
    parser = argparse.ArgumentParser(
        prog="discord-exporter",
        description=(
            "Export Discord guild activity as Prometheus metrics, an RSS feed "
            "and a live photo gallery."
        ),
    )
    parser.add_argument(
        "--host", dest="http_host", help="HTTP bind address (overrides HTTP_HOST)"
    )
    parser.add_argument(
        "--port",
        dest="http_port",
        type=int,
        help="HTTP port (overrides HTTP_PORT)",
    )
    parser.add_argument(
        "--event-policy",
        dest="resync_event_policy",
        choices=["replay", "discard"],
        help="What to do with live events seen during a resync "
        "(overrides RESYNC_EVENT_POLICY)",
    )
    parser.add_argument(
        "--log-level",
        dest="log_level",
        help="Logging level (overrides LOG_LEVEL)",
    )
    return parser


def _load_config(args: argparse.Namespace) -> ExporterConfig | None:
    """Load configuration from environment and apply CLI overrides.

    Returns None if validation/loading failed (errors are printed).
    """
    overrides = {
        k: v
        for k, v in {
            "http_host": args.http_host,
            "http_port": args.http_port,
            "resync_event_policy": args.resync_event_policy,
            "log_level": args.log_level,
        }.items()
        if v is not None
    }
    try:
        return ExporterConfig(**overrides)
    except ValidationError as e:
        print(f"Configuration validation error:\n{e}", file=sys.stderr)
        return None


async def _serve(container: Container, config: ExporterConfig) -> int:
    """Run gateway and HTTP server until either of them stops."""
    logger = get_logger(__name__)
    gateway = container.provide_gateway()
    server = uvicorn.Server(
        uvicorn.Config(
            container.provide_app(),
            host=config.http_host,
            port=config.http_port,
            log_config=None,
        )
    )

    gateway_task = asyncio.create_task(gateway.start(config.discord_token))
    server_task = asyncio.create_task(server.serve())
    logger.info(
        "Listening",
        extra={"host": config.http_host, "port": config.http_port},
    )

    done, _ = await asyncio.wait(
        {gateway_task, server_task}, return_when=asyncio.FIRST_COMPLETED
    )

    server.should_exit = True
    await gateway.close()
    with contextlib.suppress(asyncio.CancelledError):
        await asyncio.gather(gateway_task, server_task, return_exceptions=True)

    if gateway.fatal_error is not None:
        return 1
    for task in done:
        if not task.cancelled() and task.exception() is not None:
            logger.error(
                "Service stopped with an error",
                exc_info=task.exception(),
            )
            return 1
    return 0


async def main(argv: list[str] | None = None) -> int:
    """Main application entry point with CLI support.

    Args:
        argv: Optional list of arguments to parse; defaults to sys.argv[1:]

    Returns:
        Exit code (0 for success, 1 for error)
    """
    args = _build_parser().parse_args(argv)

    config = _load_config(args)
    if config is None:
        return 1

    setup_logging(
        level=config.log_level,
        log_format=config.log_format,
        service_name=config.service_name,
    )
    logger = get_logger(__name__)
    logger.info(
        "Starting Discord Exporter",
        extra={
            "guild_id": config.discord_guild_id,
            "event_policy": config.resync_event_policy,
            "enable_metrics": config.enable_metrics,
        },
    )

    container = Container(config=config)
    container.initialize_runtime()
    try:
        return await _serve(container, config)
    except Exception as e:
        logger.exception(f"Fatal error in exporter: {e}")
        return 1


def cli() -> None:
    """Synchronous CLI entrypoint for console_scripts."""
    try:
        exit_code = asyncio.run(main())
    except KeyboardInterrupt:
        exit_code = 0
    sys.exit(exit_code)


if __name__ == "__main__":
    cli()
