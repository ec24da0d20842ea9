"""Unit tests for the per-type plausibility rules."""

from __future__ import annotations

import math

import pytest

from models.records import (
    AirQualityMeasurements,
    EnergyMeasurements,
    EnvironmentalMeasurements,
    LightMeasurements,
    MotionMeasurements,
    SensorType,
    WaterMeasurements,
)
from services.exceptions import ReadingValidationError
from services.validation import format_value, validate


@pytest.mark.parametrize(
    ("sensor_type", "measurements"),
    [
        (SensorType.environmental, EnvironmentalMeasurements(temperature=22.5, humidity=45.0, pressure=1013.25)),
        (SensorType.environmental, EnvironmentalMeasurements(temperature=-100.0, humidity=100.0)),
        (SensorType.air_quality, AirQualityMeasurements(co2=0.0, voc=12.0, pm25=0.0, pm10=0.0)),
        (SensorType.water, WaterMeasurements(ph=7.2, turbidity=0.8)),
        (SensorType.energy, EnergyMeasurements(voltage=230.0, current=-1.0, power_consumption=0.0)),
        (SensorType.motion, MotionMeasurements(acceleration_x=-50.0, acceleration_y=50.0, acceleration_z=0.0)),
        (SensorType.light, LightMeasurements(uv_index=11.0, illuminance=500.0)),
        (SensorType.light, LightMeasurements(uv_index=-3.0)),
        (SensorType.water, WaterMeasurements()),
    ],
)
def test_plausible_readings_pass(sensor_type: SensorType, measurements) -> None:
    result = validate(sensor_type, measurements)

    assert result.ok
    assert result.reason == ""


@pytest.mark.parametrize(
    ("sensor_type", "measurements", "reason"),
    [
        (
            SensorType.environmental,
            EnvironmentalMeasurements(temperature=-273.16, humidity=150.0),
            "Temperature out of range: -273.16°C",
        ),
        (
            SensorType.environmental,
            EnvironmentalMeasurements(temperature=20.0, humidity=150.0),
            "Humidity out of range: 150%",
        ),
        (
            SensorType.air_quality,
            AirQualityMeasurements(co2=-5.0, pm25=-1.0),
            "CO2 level cannot be negative: -5",
        ),
        (
            SensorType.air_quality,
            AirQualityMeasurements(co2=400.0, pm25=-1.5, pm10=-2.0),
            "PM2.5 level cannot be negative: -1.5",
        ),
        (
            SensorType.air_quality,
            AirQualityMeasurements(pm10=-2.0),
            "PM10 level cannot be negative: -2",
        ),
        (
            SensorType.water,
            WaterMeasurements(ph=14.5),
            "pH out of valid range (0-14): 14.5",
        ),
        (
            SensorType.energy,
            EnergyMeasurements(voltage=-230.0),
            "Voltage cannot be negative: -230V",
        ),
        (
            SensorType.energy,
            EnergyMeasurements(voltage=230.0, power_consumption=-0.25),
            "Power consumption cannot be negative: -0.25W",
        ),
        (
            SensorType.motion,
            MotionMeasurements(acceleration_x=1.0, acceleration_y=-50.5, acceleration_z=80.0),
            "Y-axis acceleration too extreme: -50.5m/s²",
        ),
        (
            SensorType.motion,
            MotionMeasurements(acceleration_z=51.0),
            "Z-axis acceleration too extreme: 51m/s²",
        ),
        (
            SensorType.light,
            LightMeasurements(uv_index=11.5),
            "UV Index out of range (0-11): 11.5",
        ),
    ],
)
def test_violations_report_first_failing_rule(sensor_type: SensorType, measurements, reason: str) -> None:
    result = validate(sensor_type, measurements)

    assert not result.ok
    assert result.reason == reason


def test_nan_is_rejected() -> None:
    result = validate(SensorType.water, WaterMeasurements(ph=math.nan))

    assert not result.ok
    assert result.reason.startswith("pH out of valid range")


def test_raise_for_violation_carries_reason() -> None:
    result = validate(SensorType.water, WaterMeasurements(ph=-1.0))

    with pytest.raises(ReadingValidationError) as excinfo:
        result.raise_for_violation()

    assert excinfo.value.reason == "pH out of valid range (0-14): -1"


def test_mismatched_variant_is_a_programming_error() -> None:
    with pytest.raises(TypeError):
        validate(SensorType.energy, WaterMeasurements(ph=7.0))


def test_format_value_drops_trailing_zero_only_for_integral_values() -> None:
    assert format_value(150.0) == "150"
    assert format_value(-273.16) == "-273.16"
    assert format_value(0.1) == "0.1"
