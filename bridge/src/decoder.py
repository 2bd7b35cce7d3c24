"""
Pure decoder that converts a raw BL-NET snapshot reply into a SensorReading.

Extracts the fixed-offset fields defined in :mod:`bridge.src.protocol`,
dispatches each analog field on its type tag, and applies the device's
sign-magnitude rule with the tag-specific mask and scale.

The sign-magnitude rule is *not* native two's complement of the full word:
when the sign bit is set, the bits under the mask are inverted and one is
added, and the result is negated.  It is reproduced with plain Python ints
so the width of the mask is the only width that matters.

This module performs no I/O and does not read the clock.

CHANGELOG:
- 2026-10-02: Add digital, speed, and power decoders (not wired into snapshots)
- 2026-09-14: Initial creation (STORY-005)

TODO:
- None
"""

from __future__ import annotations

import logging
import struct
from datetime import datetime

from bridge.src import protocol
from bridge.src.errors import DecodeError
from bridge.src.models import SensorReading

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Value conversion helpers
# ---------------------------------------------------------------------------


def sign_magnitude(value: int, mask: int, sign_bit: int, scale: float) -> float:
    """Decode a sign-magnitude field and apply *scale*.

    Args:
        value: Raw unsigned field value.
        mask: Bits that carry the magnitude.
        sign_bit: Bit that marks a negative value.
        scale: Multiplier applied to the signed integer result.
    """
    result = value & mask
    if value & sign_bit:
        result = -((result ^ mask) + 1)
    return result * scale


def decode_analog(raw: int) -> float:
    """Convert a 16-bit analog field into its calibrated value.

    Bits 12-14 hold the type tag.  Digital fields report the sign bit as
    ``1.0``/``0.0``; every other tag selects a mask and scale from
    :data:`~bridge.src.protocol.ANALOG_TYPES`, falling back to the untyped
    rule for unknown tags.
    """
    tag = raw & protocol.TYPE_MASK
    if tag == protocol.TYPE_DIGITAL:
        return 1.0 if raw & protocol.SIGN_BIT else 0.0

    analog_type = protocol.ANALOG_TYPES.get(
        tag, protocol.ANALOG_TYPES[protocol.TYPE_NONE]
    )
    return sign_magnitude(raw, analog_type.mask, protocol.SIGN_BIT, analog_type.scale)


def decode_energy(mwh: int, kwh: int) -> float:
    """Combine the MWh and kWh heat meter sub-fields into kWh.

    The kWh sub-field has no type tag: all 16 bits are magnitude.
    """
    return mwh * 1000 + sign_magnitude(
        kwh,
        protocol.INT16_POSITIVE_MASK,
        protocol.SIGN_BIT,
        protocol.ENERGY_KWH_SCALE,
    )


def decode_power(raw: int, active_flags: int, channel_index: int) -> float:
    """Convert a 32-bit heat meter power field, or report it not installed."""
    if active_flags & (1 << channel_index):
        return sign_magnitude(
            raw,
            protocol.INT32_MASK,
            protocol.INT32_SIGN,
            protocol.POWER_SCALE,
        )
    return protocol.NOT_INSTALLED


def decode_digital(status_word: int, position: int) -> int:
    """Return ``1`` if output *position* is on in *status_word*, else ``0``."""
    return 1 if status_word & (1 << position) else 0


def decode_speed(raw: int) -> float:
    """Convert a pump speed byte; inactive steps report ``-1.0``."""
    if raw & protocol.SPEED_ACTIVE:
        return protocol.NOT_INSTALLED
    return float(raw & protocol.SPEED_MASK)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def _unpack(field: protocol.FieldDef, raw: bytes) -> tuple[int, ...]:
    return struct.unpack_from(field.fmt, raw, field.offset)


def decode_snapshot(raw: bytes, *, ts: datetime | None = None) -> SensorReading:
    """Decode a validated latest-snapshot reply.

    Analog channels 0..4 become the five named analog values; the MWh and
    kWh sub-fields become ``energy_kwh``.  The sixth analog channel and the
    raw power field are read from the wire but not reported.

    Args:
        raw: Checksum-verified snapshot reply.
        ts: Optional timestamp to embed in the reading.

    Raises:
        DecodeError: If *raw* is shorter than the field layout requires.
    """
    if len(raw) < protocol.MIN_SNAPSHOT_LENGTH:
        raise DecodeError(
            f"Snapshot too short: need at least {protocol.MIN_SNAPSHOT_LENGTH} "
            f"bytes, got {len(raw)}"
        )

    analog = _unpack(protocol.ANALOG_FIELD, raw)
    (power_raw,) = _unpack(protocol.POWER_FIELD, raw)
    (kwh,) = _unpack(protocol.KWH_FIELD, raw)
    (mwh,) = _unpack(protocol.MWH_FIELD, raw)

    logger.debug(
        "Snapshot fields: analog=%s power=%#010x kwh=%#06x mwh=%d",
        [f"{a:#06x}" for a in analog],
        power_raw,
        kwh,
        mwh,
    )

    values = {
        name: decode_analog(field)
        for name, field in zip(protocol.ANALOG_CHANNELS, analog)
    }
    return SensorReading(
        **values,
        energy_kwh=decode_energy(mwh, kwh),
        ts=ts,
    )
