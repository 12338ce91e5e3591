"""
Watcher entrypoint: wiring, supervisor and graceful shutdown.

Startup builds every component once from WatchSettings:
1. The shared Snapshot (one Measurement per configured source).
2. One ConnectionSlot per Modbus inverter.
3. The WebBox gateway path, resolved once by device name. If it cannot be
   resolved the gateway stays disabled for the lifetime of the process.
4. The SQL production sink.
5. The snapshot API on its own thread.

The acquisition loop is run under a supervisor: if ``Scheduler.run`` ever
exits with an exception it is logged and the loop (not the process) is
restarted. SIGTERM/SIGINT set a shared asyncio.Event; the loop finishes its
current tick, the API thread is stopped and the sink engine is disposed.

Structured JSON logging is used for all events.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import logging
import signal
import sys
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from smawatch.src.exceptions import SinkError
from smawatch.src.health import HealthWriter

if TYPE_CHECKING:
    from smawatch.src.config import WatchSettings
    from smawatch.src.scheduler import Scheduler

logger = logging.getLogger(__name__)

RESTART_DELAY_S: float = 1.0
"""Pause before restarting an acquisition loop that exited with an error."""


# ---------------------------------------------------------------------------
# Structured JSON logging setup
# ---------------------------------------------------------------------------


def configure_logging(verbose: bool = False) -> None:
    """Configure structured JSON logging for the watcher.

    Sets up the root logger with a JSON-formatted handler writing to stderr.

    Args:
        verbose: Log at DEBUG (every reading) instead of INFO.
    """

    class _JsonFormatter(logging.Formatter):
        """Minimal JSON log formatter."""

        def format(self, record: logging.LogRecord) -> str:
            log_entry = {
                "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
                "level": record.levelname,
                "logger": record.name,
                "msg": record.getMessage(),
            }
            if record.exc_info and record.exc_info[1] is not None:
                log_entry["exception"] = self.formatException(record.exc_info)
            return json.dumps(log_entry)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_JsonFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.INFO)


def _masked_database_url(url: str) -> str:
    """Return the database URL with its password hidden."""
    try:
        return make_url(url).render_as_string(hide_password=True)
    except ArgumentError:
        return "<unparseable>"


# ---------------------------------------------------------------------------
# Startup config logging
# ---------------------------------------------------------------------------


def log_config_summary(settings: WatchSettings) -> None:
    """Log a config summary at startup, excluding secrets.

    Args:
        settings: A WatchSettings instance (or any object with the same attrs).
    """
    logger.info(
        "Watcher starting with config: "
        "inverter_hosts=%s, inverter_port=%s, inverter_slave_id=%s, "
        "register_group_indices=%s, string_registers=%s, "
        "gateway_url=%s, gateway_device_match=%s, "
        "gateway_source_indices=%s, source_names=%s, "
        "tick_interval_s=%s, flush_every_n_ticks=%s, "
        "api_host=%s, api_port=%s, database_url=%s, verbose=%s",
        settings.inverter_hosts,
        settings.inverter_port,
        settings.inverter_slave_id,
        settings.register_group_indices,
        settings.string_registers,
        settings.gateway_url,
        settings.gateway_device_match,
        settings.gateway_source_indices,
        settings.source_names,
        settings.tick_interval_s,
        settings.flush_every_n_ticks,
        settings.api_host,
        settings.api_port,
        _masked_database_url(settings.database_url),
        settings.verbose,
    )


# ---------------------------------------------------------------------------
# Supervisor
# ---------------------------------------------------------------------------


async def supervise(
    scheduler: Scheduler,
    shutdown_event: asyncio.Event,
    restart_delay_s: float = RESTART_DELAY_S,
) -> None:
    """Run the acquisition loop, restarting it if it exits with an error.

    Args:
        scheduler: The scheduler whose ``run`` is supervised.
        shutdown_event: Event to signal graceful shutdown.
        restart_delay_s: Pause before each restart.
    """
    running = False
    while not shutdown_event.is_set():
        if running:
            logger.warning("Restarting acquisition loop after error")
        else:
            logger.info("Starting acquisition loop")
        running = True

        try:
            await scheduler.run(shutdown_event)
        except Exception:
            logger.error("Acquisition loop exited unexpectedly", exc_info=True)
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(shutdown_event.wait(), timeout=restart_delay_s)


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


async def async_main(settings: WatchSettings) -> None:
    """Async entrypoint: build components, run the loop until shutdown.

    Sets up SIGTERM/SIGINT handlers to trigger graceful shutdown.
    """
    from smawatch.src.api.main import ApiServerThread, create_app
    from smawatch.src.gateway import GatewayPath, WebBoxClient
    from smawatch.src.scheduler import Scheduler
    from smawatch.src.sink import ProductionSink
    from smawatch.src.slot import ConnectionSlot
    from smawatch.src.snapshot import Snapshot

    shutdown_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(
            sig,
            lambda: _handle_signal(shutdown_event),
        )

    snapshot = Snapshot(settings.source_names)

    slots = [
        ConnectionSlot(
            name=group.name,
            host=group.host,
            port=group.port,
            source_indices=group.source_indices,
            slave_id=settings.inverter_slave_id,
            timeout_s=settings.modbus_timeout_s,
            decimals=settings.scale_decimals(),
            sanity_ceiling=settings.sanity_ceiling,
            strings=settings.string_map(),
        )
        for group in settings.inverter_groups()
    ]

    health: HealthWriter | None = None
    if settings.health_path:
        health = HealthWriter(settings.health_path)

    webbox = WebBoxClient(settings.gateway_url, timeout_s=settings.gateway_timeout_s)
    gateway = GatewayPath(
        webbox,
        device_match=settings.gateway_device_match,
        source_indices=settings.gateway_source_indices,
    )
    gateway_enabled = await gateway.resolve()
    if health is not None:
        try:
            health.set_gateway_enabled(gateway_enabled)
        except OSError:
            logger.warning("Failed to write health file", exc_info=True)

    sink = ProductionSink(settings.database_url, settings.source_names)
    try:
        await sink.init_schema()
    except SinkError as exc:
        logger.error("Production table not verified, writes may fail: %s", exc)

    scheduler = Scheduler(
        slots=slots,
        snapshot=snapshot,
        sink=sink,
        gateway=gateway,
        tick_interval_s=settings.tick_interval_s,
        flush_every_n_ticks=settings.flush_every_n_ticks,
        health=health,
    )

    api = ApiServerThread(create_app(snapshot), settings.api_host, settings.api_port)
    api.start()

    try:
        await supervise(scheduler, shutdown_event)
    finally:
        api.stop()
        await webbox.aclose()
        await sink.close()
        logger.info("Shutdown complete")


def _handle_signal(shutdown_event: asyncio.Event) -> None:
    """Handle SIGTERM/SIGINT by setting the shutdown event.

    Args:
        shutdown_event: The event to set for graceful shutdown.
    """
    logger.info("Received shutdown signal, initiating graceful shutdown")
    shutdown_event.set()


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    p = argparse.ArgumentParser(
        description="SMA Watch -- monitors the Sunny Boy inverter strings"
    )
    p.add_argument(
        "-v", "--verbose", action="store_true", default=None,
        help="Log every reading as it is read",
    )
    p.add_argument("--port", type=int, default=None, help="Port for the snapshot API")
    return p.parse_args(argv)


def load_settings(args: argparse.Namespace) -> WatchSettings:
    """Build settings from the environment, with CLI flags taking priority."""
    from smawatch.src.config import WatchSettings

    overrides: dict[str, object] = {}
    if args.verbose is not None:
        overrides["verbose"] = args.verbose
    if args.port is not None:
        overrides["api_port"] = args.port
    return WatchSettings(**overrides)


def main(argv: Sequence[str] | None = None) -> None:
    """Synchronous entrypoint for the watcher."""
    args = parse_args(argv)
    settings = load_settings(args)
    configure_logging(settings.verbose)
    log_config_summary(settings)
    asyncio.run(async_main(settings))


if __name__ == "__main__":
    main()
