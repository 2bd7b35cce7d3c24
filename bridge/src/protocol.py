"""
BL-NET wire protocol constants -- single source of truth.

Defines command opcodes, status bytes, frame sizes, the byte layout of the
"latest snapshot" reply, and the analog type tags with their masks and
scaling factors.  Both the query engine and the decoder import from here so
that a layout change only ever touches this file.

All multi-byte fields in the snapshot are little-endian.

References:
    - Technische Alternative BL-NET bootloader protocol (latest-data query)

CHANGELOG:
- 2026-09-21: Add device mode bytes for session logging
- 2026-09-14: Initial creation (STORY-002)

TODO:
- None
"""

from __future__ import annotations

from dataclasses import dataclass

# ---------------------------------------------------------------------------
# Command opcodes and status bytes
# ---------------------------------------------------------------------------

GET_MODE: int = 0x81
"""Ask the device for its current logging mode (1-byte reply)."""

GET_LATEST: int = 0xAB
"""Ask the device for the most recent sample ("latest snapshot")."""

WAIT_TIME: int = 0xBA
"""First byte of a reply when the device has not finished acquiring yet."""

GET_MODE_FRAME: bytes = bytes([GET_MODE])
GET_LATEST_FRAME: bytes = bytes([GET_LATEST])

# Logging modes reported by GET_MODE.
DL_MODE: int = 0xA8
DL2_MODE: int = 0xD1
CAN_MODE: int = 0xDC

MODE_NAMES: dict[int, str] = {
    DL_MODE: "DL",
    DL2_MODE: "DL2",
    CAN_MODE: "CAN",
}

# ---------------------------------------------------------------------------
# Session parameters
# ---------------------------------------------------------------------------

DEFAULT_PORT: int = 40000
SNAPSHOT_LENGTH: int = 55
"""Length of a latest-snapshot reply in the production configuration."""

FRAME_SIZE: int = 65
"""Largest frame the device declares for a single reply."""

MAX_RETRIES: int = 10
"""Attempts allowed while the device keeps answering WAIT_TIME."""

# ---------------------------------------------------------------------------
# Snapshot field layout
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FieldDef:
    """A fixed-offset field inside the snapshot reply.

    Attributes:
        name: Identifier used in logs and error messages.
        offset: Byte offset from the start of the reply.
        fmt: :mod:`struct` format (little-endian) of the field.
        size: Number of bytes the field occupies.
    """

    name: str
    offset: int
    fmt: str
    size: int

    @property
    def end(self) -> int:
        return self.offset + self.size


ANALOG_COUNT: int = 6

ANALOG_FIELD = FieldDef(name="analog", offset=1, fmt="<6H", size=2 * ANALOG_COUNT)
POWER_FIELD = FieldDef(name="power", offset=34, fmt="<I", size=4)
KWH_FIELD = FieldDef(name="kwh", offset=38, fmt="<H", size=2)
MWH_FIELD = FieldDef(name="mwh", offset=40, fmt="<H", size=2)

SNAPSHOT_FIELDS: tuple[FieldDef, ...] = (
    ANALOG_FIELD,
    POWER_FIELD,
    KWH_FIELD,
    MWH_FIELD,
)

MIN_SNAPSHOT_LENGTH: int = max(f.end for f in SNAPSHOT_FIELDS)
"""Shortest reply that still covers every decoded field (42 bytes)."""

ANALOG_CHANNELS: tuple[str, ...] = (
    "collector",
    "tank_bottom",
    "tank_top",
    "circulation",
    "return_flow",
)
"""SensorReading field names for analog channels 0..4, in wire order."""

# ---------------------------------------------------------------------------
# Analog encoding
# ---------------------------------------------------------------------------

SIGN_BIT: int = 0x8000
TYPE_MASK: int = 0x7000
POSITIVE_VALUE_MASK: int = 0x0FFF
RAS_POSITIVE_MASK: int = 0x01FF
INT16_POSITIVE_MASK: int = 0xFFFF
INT32_MASK: int = 0xFFFFFFFF
INT32_SIGN: int = 0x80000000

TYPE_NONE: int = 0x0000
TYPE_DIGITAL: int = 0x1000
TYPE_TEMP: int = 0x2000
TYPE_VOLUME: int = 0x3000
TYPE_RADIATION: int = 0x4000
TYPE_RAS: int = 0x7000


@dataclass(frozen=True, slots=True)
class AnalogType:
    """Mask and scale applied to an analog field carrying a given type tag."""

    name: str
    mask: int
    scale: float


ANALOG_TYPES: dict[int, AnalogType] = {
    TYPE_NONE: AnalogType("none", POSITIVE_VALUE_MASK, 1),
    TYPE_TEMP: AnalogType("temperature", POSITIVE_VALUE_MASK, 0.1),
    TYPE_VOLUME: AnalogType("volume", POSITIVE_VALUE_MASK, 4),
    TYPE_RADIATION: AnalogType("radiation", POSITIVE_VALUE_MASK, 1),
    TYPE_RAS: AnalogType("ras", RAS_POSITIVE_MASK, 0.1),
}
"""Sign-magnitude rules per type tag.  Unlisted tags use ``TYPE_NONE``.

``TYPE_DIGITAL`` has no entry: digital fields carry a boolean in the sign
bit and are handled separately by the decoder.
"""

ENERGY_KWH_SCALE: float = 0.1
POWER_SCALE: float = 1 / 2560

SPEED_ACTIVE: int = 0x80
SPEED_MASK: int = 0x1F

NOT_INSTALLED: float = -1.0
"""Reported for an inactive speed step or a power channel that is not fitted."""
