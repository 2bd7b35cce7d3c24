"""
Pydantic model for a decoded BL-NET sensor reading.

Defines the SensorReading model that represents one snapshot of the
solar-thermal controller after the raw reply has been converted to
calibrated physical values.

CHANGELOG:
- 2026-09-14: Initial creation (STORY-005)

TODO:
- None
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class SensorReading(BaseModel):
    """A single decoded reading from the BL-NET latest-snapshot reply.

    Values are in engineering units after type-tag dispatch and scaling.
    The timestamp is injected by the caller, keeping the decoder a pure
    function.

    Attributes:
        collector: Analog channel 0, collector temperature.
        tank_bottom: Analog channel 1, lower storage tank temperature.
        tank_top: Analog channel 2, upper storage tank temperature.
        circulation: Analog channel 3, circulation line.
        return_flow: Analog channel 4, return flow.
        energy_kwh: Heat meter total in kWh (MWh and kWh sub-fields combined).
        digital: Reserved for digital output states; not populated.
        speed: Reserved for pump speed steps; not populated.
        power_kw: Reserved for heat meter power channels; not populated.
        ts: Timestamp of the sample, if the caller supplied one.
    """

    model_config = ConfigDict(frozen=True)

    collector: float
    tank_bottom: float
    tank_top: float
    circulation: float
    return_flow: float
    energy_kwh: float
    digital: tuple[int, ...] = ()
    speed: tuple[float, ...] = ()
    power_kw: tuple[float, ...] = ()
    ts: datetime | None = None

    @property
    def analog(self) -> tuple[float, float, float, float, float]:
        """The five analog channels in wire order."""
        return (
            self.collector,
            self.tank_bottom,
            self.tank_top,
            self.circulation,
            self.return_flow,
        )
