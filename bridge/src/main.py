"""
Bridge daemon main loop for BL-NET-to-home-automation forwarding.

Runs one asyncio poll loop.  Each iteration opens a fresh BL-NET session,
fetches the latest snapshot, decodes it into a SensorReading, and publishes
it as a UDP datagram.  Any failure abandons the current cycle: nothing is
published, the error is logged, and the loop waits for the next interval.
Graceful shutdown on SIGTERM/SIGINT sets an asyncio.Event that ends the
loop between cycles.

Structured JSON logging is used for all events. A HealthWriter instance
tracks last_poll_ts, last_publish_ts, and consecutive_failures.

CHANGELOG:
- 2026-10-19: Type log_config_summary against BridgeSettings
- 2026-09-28: Log the raw snapshot bytes at debug level
- 2026-09-15: Track cycle outcome in HealthWriter (STORY-008)
- 2026-09-14: Initial creation (STORY-007)

TODO:
- None
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import signal
import sys
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from bridge.src.decoder import decode_snapshot
from bridge.src.errors import BlnetError
from bridge.src.health import HealthWriter
from bridge.src.query import DEFAULT_TIMEOUT_S, poll_snapshot

if TYPE_CHECKING:
    from bridge.src.config import BridgeSettings
    from bridge.src.publisher import UdpPublisher
    from bridge.src.query import BlnetConnection

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Structured JSON logging setup
# ---------------------------------------------------------------------------


def configure_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging for the bridge daemon.

    Sets up the root logger with a JSON-formatted handler writing to stderr.

    Args:
        level: Root logging level name.
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
    root.setLevel(level)


# ---------------------------------------------------------------------------
# Startup config logging
# ---------------------------------------------------------------------------


def log_config_summary(settings: BridgeSettings) -> None:
    """Log a config summary at startup.

    Args:
        settings: Validated bridge settings.
    """
    logger.info(
        "Bridge daemon starting with config: "
        "blnet_host=%s, blnet_port=%s, response_length=%s, frame_size=%s, "
        "read_timeout_s=%s, max_retries=%s, poll_interval_s=%s, "
        "publish_host=%s, publish_port=%s, health_path=%s, log_level=%s",
        settings.blnet_host,
        settings.blnet_port,
        settings.response_length,
        settings.frame_size,
        settings.read_timeout_s,
        settings.max_retries,
        settings.poll_interval_s,
        settings.publish_host,
        settings.publish_port,
        settings.health_path,
        settings.log_level,
    )


# ---------------------------------------------------------------------------
# Single-iteration function (easily testable)
# ---------------------------------------------------------------------------


async def _poll_once(
    *,
    connection: BlnetConnection,
    publisher: UdpPublisher,
    health: HealthWriter | None,
    max_retries: int,
    timeout_s: float = DEFAULT_TIMEOUT_S,
) -> bool:
    """Execute a single fetch-decode-publish cycle.

    Catches all exceptions so that the caller's loop is never broken.
    A reading is only published when every step before it succeeded.

    Args:
        connection: Descriptor for this cycle's BL-NET session.
        publisher: UDP publisher for decoded readings.
        health: HealthWriter instance, or None to skip health writes.
        max_retries: Snapshot requests allowed while the device is not ready.
        timeout_s: Connect and per-read timeout in seconds.

    Returns:
        True if a reading was published, False otherwise.
    """
    ok = False
    try:
        raw = await poll_snapshot(
            connection,
            max_retries=max_retries,
            timeout_s=timeout_s,
        )
        logger.debug("Raw snapshot (%d bytes): %s", len(raw), raw.hex(" "))

        reading = decode_snapshot(raw, ts=datetime.now(tz=UTC))
        await publisher.publish(reading)
        logger.info(
            "Poll success: analog=%s energy_kwh=%.1f",
            [round(v, 1) for v in reading.analog],
            reading.energy_kwh,
        )
        ok = True
    except BlnetError as exc:
        logger.warning(
            "Poll cycle abandoned (%s): %s",
            type(exc).__name__,
            exc,
        )
    except Exception:
        logger.error("Poll cycle error", exc_info=True)

    if health is not None:
        try:
            if ok:
                health.record_success()
            else:
                health.record_failure()
        except OSError:
            logger.warning("Failed to write health file", exc_info=True)

    return ok


# ---------------------------------------------------------------------------
# Loop runner
# ---------------------------------------------------------------------------


async def run_loop(
    *,
    connection: BlnetConnection,
    publisher: UdpPublisher,
    poll_interval_s: float,
    shutdown_event: asyncio.Event,
    health: HealthWriter | None = None,
    max_retries: int,
    timeout_s: float = DEFAULT_TIMEOUT_S,
) -> None:
    """Run the poll loop until shutdown_event is set.

    Executes _poll_once, then sleeps for poll_interval_s, checking the
    shutdown event between iterations.  Cycles never overlap.

    Args:
        connection: Descriptor used for every cycle's BL-NET session.
        publisher: UDP publisher for decoded readings.
        poll_interval_s: Seconds between poll cycles.
        shutdown_event: Event to signal graceful shutdown.
        health: HealthWriter instance, or None to skip health writes.
        max_retries: Snapshot requests allowed while the device is not ready.
        timeout_s: Connect and per-read timeout in seconds.
    """
    logger.info("Poll loop started (interval=%ss)", poll_interval_s)
    while not shutdown_event.is_set():
        await _poll_once(
            connection=connection,
            publisher=publisher,
            health=health,
            max_retries=max_retries,
            timeout_s=timeout_s,
        )
        # Use wait with timeout so we can check shutdown between sleeps
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(
                shutdown_event.wait(),
                timeout=poll_interval_s,
            )
    logger.info("Poll loop stopped")


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


async def async_main() -> None:
    """Async entrypoint: load config, build components, run the loop.

    Sets up SIGTERM/SIGINT handlers to trigger graceful shutdown.
    """
    from bridge.src.config import BridgeSettings
    from bridge.src.publisher import UdpPublisher

    settings = BridgeSettings()
    configure_logging(settings.log_level)
    log_config_summary(settings)

    shutdown_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(
            sig,
            lambda: _handle_signal(shutdown_event),
        )

    publisher = UdpPublisher(settings.publish_host, settings.publish_port)
    health = HealthWriter(settings.health_path) if settings.health_path else None

    await run_loop(
        connection=settings.connection(),
        publisher=publisher,
        poll_interval_s=settings.poll_interval_s,
        shutdown_event=shutdown_event,
        health=health,
        max_retries=settings.max_retries,
        timeout_s=settings.read_timeout_s,
    )
    logger.info("Shutdown complete")


def _handle_signal(shutdown_event: asyncio.Event) -> None:
    """Handle SIGTERM/SIGINT by setting the shutdown event.

    Args:
        shutdown_event: The event to set for graceful shutdown.
    """
    logger.info("Received shutdown signal, initiating graceful shutdown")
    shutdown_event.set()


def main() -> None:
    """Synchronous entrypoint for the bridge daemon."""
    asyncio.run(async_main())


if __name__ == "__main__":
    main()
