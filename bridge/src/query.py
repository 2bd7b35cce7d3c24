"""
Async request/response engine for the BL-NET binary TCP protocol.

Opens a TCP session to the BL-NET, sends single-byte command frames, reads
fixed-length replies, and verifies the trailing checksum byte.  The
"latest snapshot" read polls until the first byte of the reply is no longer
the WAIT_TIME status byte, failing after a bounded number of attempts.

- One request outstanding at a time, strictly request-then-response.
- Every read is bounded by the session timeout.
- Errors are raised as typed :mod:`bridge.src.errors` exceptions; nothing is
  retried here except the not-ready loop in :meth:`fetch_latest_snapshot`.

CHANGELOG:
- 2026-10-19: Not-ready replies are full checksummed frames; add async
  context manager support
- 2026-09-21: Read and log the device mode before each snapshot
- 2026-09-14: Initial creation (STORY-004)

TODO:
- None
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace

from bridge.src import protocol
from bridge.src.errors import (
    ChecksumError,
    ProtocolError,
    RetriesExhaustedError,
    TransportError,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_TIMEOUT_S: float = 10.0
"""Timeout in seconds for connecting and for each send/receive."""


# ---------------------------------------------------------------------------
# Connection descriptor
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class BlnetConnection:
    """Endpoint and protocol parameters for one BL-NET session.

    Attributes:
        host: BL-NET IP address or hostname.
        port: TCP port of the bootloader interface.
        response_length: Expected reply length for the current mode.
        frame_size: Largest frame the device declares for a reply.
    """

    host: str
    port: int = protocol.DEFAULT_PORT
    response_length: int = protocol.SNAPSHOT_LENGTH
    frame_size: int = protocol.FRAME_SIZE

    def __post_init__(self) -> None:
        if not 1 <= self.port <= 65535:
            raise ValueError(f"port must be between 1 and 65535, got {self.port}")
        if self.frame_size < 1:
            raise ValueError(f"frame_size must be >= 1, got {self.frame_size}")
        if not 1 <= self.response_length <= self.frame_size:
            raise ValueError(
                f"response_length must be between 1 and frame_size "
                f"({self.frame_size}), got {self.response_length}"
            )

    def with_response_length(self, length: int) -> BlnetConnection:
        """Return a copy of this descriptor expecting *length* byte replies."""
        return replace(self, response_length=length)


# ---------------------------------------------------------------------------
# Checksum
# ---------------------------------------------------------------------------


def checksum_valid(buffer: bytes) -> bool:
    """Check the trailing checksum byte of a device reply.

    Single-byte replies are status bytes and carry no checksum.  For longer
    replies the last byte must equal the low 8 bits of the sum of all
    preceding bytes.
    """
    if len(buffer) == 1:
        return True
    if not buffer:
        return False
    return sum(buffer[:-1]) % 256 == buffer[-1]


# ---------------------------------------------------------------------------
# Query engine
# ---------------------------------------------------------------------------


class QueryEngine:
    """Checksummed request/response exchange over an open BL-NET session.

    Args:
        reader: Stream reader of an open TCP connection.
        writer: Stream writer of the same connection.
        timeout_s: Timeout in seconds applied to every send and receive.
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        *,
        timeout_s: float = DEFAULT_TIMEOUT_S,
    ) -> None:
        self._reader = reader
        self._writer = writer
        self._timeout_s = timeout_s

    @classmethod
    async def connect(
        cls,
        connection: BlnetConnection,
        *,
        timeout_s: float = DEFAULT_TIMEOUT_S,
    ) -> QueryEngine:
        """Open a TCP session to the device described by *connection*.

        Raises:
            TransportError: If the connection is refused, fails, or times out.
        """
        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(connection.host, connection.port),
                timeout=timeout_s,
            )
        except TimeoutError as exc:
            raise TransportError(
                f"Timed out connecting to BL-NET at "
                f"{connection.host}:{connection.port}"
            ) from exc
        except OSError as exc:
            raise TransportError(
                f"Could not connect to BL-NET at "
                f"{connection.host}:{connection.port}: {exc}"
            ) from exc

        logger.info("Connected to BL-NET at %s:%d", connection.host, connection.port)
        return cls(reader, writer, timeout_s=timeout_s)

    async def close(self) -> None:
        """Close the session.  Safe to call more than once."""
        if self._writer.is_closing():
            return
        self._writer.close()
        try:
            await self._writer.wait_closed()
        except OSError:
            logger.debug("Error while closing BL-NET connection", exc_info=True)

    async def __aenter__(self) -> QueryEngine:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # -- Primitive exchange ---------------------------------------------------

    async def send_command(self, frame: bytes) -> None:
        """Transmit *frame* verbatim.

        Raises:
            ValueError: If *frame* is empty.
            TransportError: If the bytes cannot be written.
        """
        if not frame:
            raise ValueError("Command frame must not be empty")
        try:
            self._writer.write(frame)
            await asyncio.wait_for(self._writer.drain(), timeout=self._timeout_s)
        except TimeoutError as exc:
            raise TransportError(f"Timed out sending command {frame.hex()}") from exc
        except OSError as exc:
            raise TransportError(
                f"Failed to send command {frame.hex()}: {exc}"
            ) from exc
        logger.debug("Sent command %s", frame.hex())

    async def receive_response(self, expected_length: int) -> bytes:
        """Read exactly *expected_length* bytes from the device.

        Raises:
            ValueError: If *expected_length* is smaller than 1.
            ProtocolError: If the device closes the stream early.
            TransportError: If the read fails or times out.
        """
        if expected_length < 1:
            raise ValueError(f"expected_length must be >= 1, got {expected_length}")
        try:
            data = await asyncio.wait_for(
                self._reader.readexactly(expected_length),
                timeout=self._timeout_s,
            )
        except asyncio.IncompleteReadError as exc:
            raise ProtocolError(
                f"Expected {expected_length} bytes, connection closed after "
                f"{len(exc.partial)}"
            ) from exc
        except TimeoutError as exc:
            raise TransportError(
                f"Timed out waiting for {expected_length} bytes"
            ) from exc
        except OSError as exc:
            raise TransportError(f"Failed to receive response: {exc}") from exc
        return data

    async def query(self, frame: bytes, expected_length: int) -> bytes:
        """Send *frame* and return the checksum-verified reply.

        The whole *expected_length* reply is always consumed, so the next
        query starts on a frame boundary.

        Raises:
            ChecksumError: If the reply fails the checksum law.
            ProtocolError, TransportError: From the underlying exchange.
        """
        await self.send_command(frame)
        response = await self.receive_response(expected_length)

        if not checksum_valid(response):
            raise ChecksumError(
                f"Checksum mismatch for command {frame.hex()}: "
                f"expected {sum(response[:-1]) % 256:#04x}, got {response[-1]:#04x}"
            )
        return response

    # -- Commands -------------------------------------------------------------

    async def get_mode(self) -> int:
        """Return the device's current logging mode byte."""
        response = await self.query(protocol.GET_MODE_FRAME, 1)
        mode = response[0]
        name = protocol.MODE_NAMES.get(mode)
        if name is None:
            logger.warning("BL-NET reported unknown mode 0x%02X", mode)
        else:
            logger.debug("BL-NET mode: %s (0x%02X)", name, mode)
        return mode

    async def fetch_latest_snapshot(
        self,
        expected_length: int = protocol.SNAPSHOT_LENGTH,
        max_retries: int = protocol.MAX_RETRIES,
    ) -> bytes:
        """Request the latest snapshot, retrying while the device is not ready.

        Args:
            expected_length: Length of a full snapshot reply.
            max_retries: Total number of requests allowed.

        Returns:
            The first reply whose leading byte is not WAIT_TIME.

        Raises:
            RetriesExhaustedError: If every attempt reported not ready.
        """
        if max_retries < 1:
            raise ValueError(f"max_retries must be >= 1, got {max_retries}")

        for attempt in range(1, max_retries + 1):
            response = await self.query(protocol.GET_LATEST_FRAME, expected_length)
            if response[0] != protocol.WAIT_TIME:
                logger.debug(
                    "Latest snapshot received on attempt %d/%d",
                    attempt,
                    max_retries,
                )
                return response
            logger.debug("BL-NET not ready (attempt %d/%d)", attempt, max_retries)

        raise RetriesExhaustedError(
            f"BL-NET still not ready after {max_retries} attempts"
        )


# ---------------------------------------------------------------------------
# Single-session snapshot read
# ---------------------------------------------------------------------------


async def poll_snapshot(
    connection: BlnetConnection,
    *,
    max_retries: int = protocol.MAX_RETRIES,
    timeout_s: float = DEFAULT_TIMEOUT_S,
) -> bytes:
    """Run one complete device session and return the raw snapshot.

    Opens a fresh connection, reads the device mode, fetches the latest
    snapshot, and closes the connection again, also on error.

    Args:
        connection: Endpoint and protocol parameters for this session.
        max_retries: Attempts allowed while the device is not ready.
        timeout_s: Connect and per-read timeout in seconds.

    Returns:
        The validated snapshot reply of ``connection.response_length`` bytes.
    """
    async with await QueryEngine.connect(connection, timeout_s=timeout_s) as engine:
        await engine.get_mode()
        return await engine.fetch_latest_snapshot(
            connection.response_length,
            max_retries,
        )
