"""
UDP publisher that forwards decoded readings to the home-automation controller.

Each reading becomes one ASCII datagram of ``key=value`` pairs separated by
semicolons, terminated by a NUL byte::

    sensor_0=61.2;sensor_1=38.5;sensor_2=55.0;sensor_3=40.1;sensor_4=35.9;energy=2005.0

The receiving side (a Loxone virtual UDP input) matches on the key names, so
the key order and the one-decimal formatting are part of the contract.

Operations:
- format_payload(reading): Build the datagram bytes for a reading.
- UdpPublisher.publish(reading): Send one datagram.

CHANGELOG:
- 2026-09-14: Initial creation (STORY-006)

TODO:
- None
"""

from __future__ import annotations

import asyncio
import logging

from bridge.src.errors import PublishError
from bridge.src.models import SensorReading

logger = logging.getLogger(__name__)

DEFAULT_PUBLISH_PORT: int = 7000


def format_payload(reading: SensorReading) -> bytes:
    """Render *reading* as the NUL-terminated datagram payload."""
    parts = [f"sensor_{i}={value:.1f}" for i, value in enumerate(reading.analog)]
    parts.append(f"energy={reading.energy_kwh:.1f}")
    return ";".join(parts).encode("ascii") + b"\x00"


class UdpPublisher:
    """Fire-and-forget UDP sender for sensor readings.

    A fresh datagram endpoint is created for every publish and closed right
    after the send, so no socket outlives a poll cycle.

    Args:
        host: Receiver IP address or hostname.
        port: Receiver UDP port (default 7000).

    Usage::

        publisher = UdpPublisher("192.168.90.55", 7000)
        await publisher.publish(reading)
    """

    def __init__(self, host: str, port: int = DEFAULT_PUBLISH_PORT) -> None:
        self._host = host
        self._port = port

    async def publish(self, reading: SensorReading) -> None:
        """Send *reading* as a single datagram.

        Raises:
            PublishError: If the endpoint cannot be created or the send fails.
        """
        payload = format_payload(reading)
        loop = asyncio.get_running_loop()

        try:
            transport, _ = await loop.create_datagram_endpoint(
                asyncio.DatagramProtocol,
                remote_addr=(self._host, self._port),
            )
        except OSError as exc:
            raise PublishError(
                f"Could not open UDP endpoint to {self._host}:{self._port}: {exc}"
            ) from exc

        try:
            transport.sendto(payload)
        except OSError as exc:
            raise PublishError(
                f"Failed to send reading to {self._host}:{self._port}: {exc}"
            ) from exc
        finally:
            transport.close()

        logger.debug(
            "Published %d bytes to %s:%d: %s",
            len(payload),
            self._host,
            self._port,
            payload[:-1].decode("ascii"),
        )
