"""
Tests for the snapshot decoder -- converts raw BL-NET fields to SensorReading.

Verifies the sign-magnitude rule, type-tag dispatch for analog fields, the
energy, power, digital, and speed decoders, and end-to-end decoding of a
synthetic 55-byte snapshot.

CHANGELOG:
- 2026-10-02: Cover digital, speed, and power decoders
- 2026-09-16: Initial creation -- TDD tests written first (STORY-005)

TODO:
- None
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

import pytest
from bridge.src.decoder import (
    decode_analog,
    decode_digital,
    decode_energy,
    decode_power,
    decode_snapshot,
    decode_speed,
    sign_magnitude,
)
from bridge.src.errors import DecodeError
from bridge.src.models import SensorReading
from pydantic import ValidationError

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _encode(value: int, mask: int, sign_bit: int) -> int:
    """Encode a signed integer the way the device does for a given mask."""
    if value >= 0:
        return value
    return sign_bit | ((mask + 1 + value) & mask)


# ===========================================================================
# Sign-magnitude rule
# ===========================================================================


class TestSignMagnitude:
    """The device's sign-magnitude rule, independent of type tags."""

    @pytest.mark.parametrize(
        ("mask", "sign_bit", "value"),
        [
            (0x0FFF, 0x8000, 0),
            (0x0FFF, 0x8000, 4095),
            (0x0FFF, 0x8000, -1),
            (0x0FFF, 0x8000, -50),
            (0x0FFF, 0x8000, -4096),
            (0x01FF, 0x8000, 511),
            (0x01FF, 0x8000, -512),
            (0xFFFF, 0x8000, 0x7FFF),
            (0xFFFF, 0x8000, -0x8000),
            (0xFFFFFFFF, 0x80000000, 0x7FFFFFFF),
            (0xFFFFFFFF, 0x80000000, -2560),
        ],
    )
    def test_decodes_encoded_value(self, mask: int, sign_bit: int, value: int) -> None:
        raw = _encode(value, mask, sign_bit)
        assert sign_magnitude(raw, mask, sign_bit, 1) == value

    def test_negation_is_confined_to_mask_width(self) -> None:
        """Bits outside the mask never leak into the magnitude."""
        # 0xF001: sign set, tag bits set, magnitude 1 -> -((1 ^ 0xFFF) + 1)
        assert sign_magnitude(0xF001, 0x0FFF, 0x8000, 1) == -4095

    def test_scale_is_applied_after_sign(self) -> None:
        assert sign_magnitude(0x8FCE, 0x0FFF, 0x8000, 0.1) == pytest.approx(-5.0)


# ===========================================================================
# Analog type-tag dispatch
# ===========================================================================


class TestDecodeAnalog:
    """Analog fields dispatch on bits 12-14 of the 16-bit word."""

    def test_temperature_positive(self) -> None:
        assert decode_analog(0x2000 | 100) == pytest.approx(10.0)

    def test_temperature_sign_bit_set(self) -> None:
        value = decode_analog(0x8000 | 0x2000 | 100)
        assert value < 0
        assert value == pytest.approx(-((100 ^ 0x0FFF) + 1) * 0.1)

    def test_temperature_negative_five_degrees(self) -> None:
        assert decode_analog(0xAFCE) == pytest.approx(-5.0)

    def test_volume_scales_by_four(self) -> None:
        assert decode_analog(0x3000 | 25) == pytest.approx(100.0)

    def test_ras_uses_nine_bit_mask(self) -> None:
        assert decode_analog(0x7000 | 215) == pytest.approx(21.5)
        # Bits 9-11 are outside the RAS magnitude.
        assert decode_analog(0x7000 | 0x0E00 | 215) == pytest.approx(21.5)

    def test_ras_negative(self) -> None:
        assert decode_analog(0xF1F1) == pytest.approx(-1.5)

    def test_radiation_is_unscaled(self) -> None:
        assert decode_analog(0x4000 | 250) == 250

    def test_untyped_is_unscaled(self) -> None:
        assert decode_analog(0x0000 | 1234) == 1234

    @pytest.mark.parametrize("tag", [0x5000, 0x6000])
    def test_unknown_tag_falls_back_to_untyped(self, tag: int) -> None:
        assert decode_analog(tag | 7) == 7
        assert decode_analog(0x8000 | tag | 0x0FFE) == -2

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            (0x9000, 1.0),
            (0x9FFF, 1.0),
            (0x1000, 0.0),
            (0x1FFF, 0.0),
        ],
    )
    def test_digital_reads_sign_bit_only(self, raw: int, expected: float) -> None:
        assert decode_analog(raw) == expected


# ===========================================================================
# Energy, power, digital, speed
# ===========================================================================


class TestDecodeEnergy:
    def test_combines_mwh_and_kwh(self) -> None:
        assert decode_energy(mwh=2, kwh=0x0032) == pytest.approx(2005.0)

    def test_kwh_uses_full_sixteen_bits(self) -> None:
        """Bits 12-14 are magnitude for the kWh sub-field, not a type tag."""
        assert decode_energy(mwh=0, kwh=0x7000) == pytest.approx(0x7000 * 0.1)

    def test_negative_kwh(self) -> None:
        # 0xFFF6 -> -10 -> -1.0 kWh
        assert decode_energy(mwh=1, kwh=0xFFF6) == pytest.approx(999.0)


class TestDecodePower:
    def test_active_channel_is_scaled(self) -> None:
        value = decode_power(2560, active_flags=0b01, channel_index=0)
        assert value == pytest.approx(1.0)

    def test_second_channel_uses_second_bit(self) -> None:
        value = decode_power(5120, active_flags=0b10, channel_index=1)
        assert value == pytest.approx(2.0)

    def test_inactive_channel_reports_not_installed(self) -> None:
        assert decode_power(2560, active_flags=0b10, channel_index=0) == -1.0

    def test_negative_power(self) -> None:
        raw = _encode(-2560, 0xFFFFFFFF, 0x80000000)
        assert decode_power(raw, active_flags=1, channel_index=0) == pytest.approx(-1.0)


class TestDecodeDigitalAndSpeed:
    @pytest.mark.parametrize(
        ("position", "expected"),
        [(0, 1), (1, 0), (2, 1), (8, 1)],
    )
    def test_digital_bit(self, position: int, expected: int) -> None:
        assert decode_digital(0b1_0000_0101, position) == expected

    def test_speed_inactive(self) -> None:
        assert decode_speed(0x85) == -1.0

    def test_speed_keeps_low_five_bits(self) -> None:
        assert decode_speed(0x1F) == 31.0
        assert decode_speed(0x65) == 5.0


# ===========================================================================
# End-to-end snapshot decoding
# ===========================================================================


class TestDecodeSnapshot:
    def test_decodes_default_snapshot(self, default_snapshot: bytes) -> None:
        reading = decode_snapshot(default_snapshot)

        assert reading.collector == pytest.approx(61.2, abs=1e-9)
        assert reading.tank_bottom == pytest.approx(-5.0, abs=1e-9)
        assert reading.tank_top == pytest.approx(55.0, abs=1e-9)
        assert reading.circulation == pytest.approx(100.0, abs=1e-9)
        assert reading.return_flow == pytest.approx(-1.5, abs=1e-9)
        assert reading.energy_kwh == pytest.approx(12345.6, abs=1e-9)

    def test_analog_tuple_is_in_wire_order(self, default_snapshot: bytes) -> None:
        reading = decode_snapshot(default_snapshot)
        assert reading.analog == pytest.approx((61.2, -5.0, 55.0, 100.0, -1.5))

    def test_sixth_channel_and_power_are_not_reported(
        self, build_snapshot: Callable[..., bytes]
    ) -> None:
        a = decode_snapshot(build_snapshot(power=0))
        b = decode_snapshot(
            build_snapshot(
                analog=(0x2264, 0xAFCE, 0x2226, 0x3019, 0xF1F1, 0x2001),
                power=0xFFFFFFFF,
            )
        )
        assert a.model_dump(exclude={"ts"}) == b.model_dump(exclude={"ts"})

    def test_reserved_slots_stay_empty(self, default_snapshot: bytes) -> None:
        reading = decode_snapshot(default_snapshot)
        assert reading.digital == ()
        assert reading.speed == ()
        assert reading.power_kw == ()

    def test_ts_passed_through(self, default_snapshot: bytes) -> None:
        ts = datetime(2026, 9, 16, 12, 0, 0, tzinfo=UTC)
        assert decode_snapshot(default_snapshot, ts=ts).ts == ts
        assert decode_snapshot(default_snapshot).ts is None

    def test_minimum_length_is_accepted(
        self, build_snapshot: Callable[..., bytes]
    ) -> None:
        reading = decode_snapshot(build_snapshot(length=55)[:42])
        assert reading.energy_kwh == pytest.approx(12345.6)

    def test_short_buffer_raises_decode_error(self, default_snapshot: bytes) -> None:
        with pytest.raises(DecodeError, match="at least 42"):
            decode_snapshot(default_snapshot[:41])

    def test_empty_buffer_raises_decode_error(self) -> None:
        with pytest.raises(DecodeError):
            decode_snapshot(b"")


class TestSensorReadingModel:
    def test_reading_is_immutable(self, default_snapshot: bytes) -> None:
        reading = decode_snapshot(default_snapshot)
        with pytest.raises(ValidationError):
            reading.collector = 0.0  # type: ignore[misc]

    def test_reading_is_pydantic_model(self) -> None:
        from pydantic import BaseModel

        assert issubclass(SensorReading, BaseModel)
