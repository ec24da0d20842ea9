"""Per-type physical plausibility rules for sensor readings."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Optional

from models.records import (
    AirQualityMeasurements,
    EnergyMeasurements,
    EnvironmentalMeasurements,
    LightMeasurements,
    Measurements,
    MotionMeasurements,
    SensorType,
    WaterMeasurements,
)
from services.exceptions import ReadingValidationError


@dataclass(frozen=True)
class ValidationResult:
    ok: bool
    reason: str = ""

    def raise_for_violation(self) -> None:
        if not self.ok:
            raise ReadingValidationError(self.reason)


VALID = ValidationResult(ok=True)

_Rule = Callable[[Measurements], Optional[str]]


def format_value(value: float) -> str:
    """Render a measurement for error messages: ``150`` rather than ``150.0``."""

    number = float(value)
    if number.is_integer():
        return str(int(number))
    return repr(number)


# Comparisons are written as ``not (bound holds)`` so NaN is always rejected.


def _environmental(m: EnvironmentalMeasurements) -> Optional[str]:
    if m.temperature is not None and not -100 <= m.temperature <= 100:
        return f"Temperature out of range: {format_value(m.temperature)}°C"
    if m.humidity is not None and not 0 <= m.humidity <= 100:
        return f"Humidity out of range: {format_value(m.humidity)}%"
    return None


def _air_quality(m: AirQualityMeasurements) -> Optional[str]:
    if m.co2 is not None and not m.co2 >= 0:
        return f"CO2 level cannot be negative: {format_value(m.co2)}"
    if m.pm25 is not None and not m.pm25 >= 0:
        return f"PM2.5 level cannot be negative: {format_value(m.pm25)}"
    if m.pm10 is not None and not m.pm10 >= 0:
        return f"PM10 level cannot be negative: {format_value(m.pm10)}"
    return None


def _water(m: WaterMeasurements) -> Optional[str]:
    if m.ph is not None and not 0 <= m.ph <= 14:
        return f"pH out of valid range (0-14): {format_value(m.ph)}"
    return None


def _energy(m: EnergyMeasurements) -> Optional[str]:
    if m.voltage is not None and not m.voltage >= 0:
        return f"Voltage cannot be negative: {format_value(m.voltage)}V"
    if m.power_consumption is not None and not m.power_consumption >= 0:
        return f"Power consumption cannot be negative: {format_value(m.power_consumption)}W"
    return None


def _motion(m: MotionMeasurements) -> Optional[str]:
    for axis, value in (
        ("X", m.acceleration_x),
        ("Y", m.acceleration_y),
        ("Z", m.acceleration_z),
    ):
        if value is not None and not abs(value) <= 50:
            return f"{axis}-axis acceleration too extreme: {format_value(value)}m/s²"
    return None


def _light(m: LightMeasurements) -> Optional[str]:
    if m.uv_index is not None and not m.uv_index <= 11:
        return f"UV Index out of range (0-11): {format_value(m.uv_index)}"
    return None


_RULES: Dict[SensorType, _Rule] = {
    SensorType.environmental: _environmental,  # type: ignore[dict-item]
    SensorType.air_quality: _air_quality,  # type: ignore[dict-item]
    SensorType.water: _water,  # type: ignore[dict-item]
    SensorType.energy: _energy,  # type: ignore[dict-item]
    SensorType.motion: _motion,  # type: ignore[dict-item]
    SensorType.light: _light,  # type: ignore[dict-item]
}


def validate(sensor_type: SensorType, measurements: Measurements) -> ValidationResult:
    """Check ``measurements`` against the rules of ``sensor_type``.

    Rules are evaluated in a fixed order and the first violation wins. Fields
    that are absent are not checked.
    """

    if measurements.sensor_type is not sensor_type:
        raise TypeError(
            f"{type(measurements).__name__} cannot be validated as {sensor_type.value}"
        )
    reason = _RULES[sensor_type](measurements)
    if reason is None:
        return VALID
    return ValidationResult(ok=False, reason=reason)
