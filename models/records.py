"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import datetime
from enum import Enum
from typing import ClassVar, Dict, Mapping, Optional, Tuple, Type, Union


class SensorType(str, Enum):
    """Closed set of sensor categories; each owns a fixed set of measurements."""

    environmental = "Environmental"
    air_quality = "AirQuality"
    water = "Water"
    energy = "Energy"
    motion = "Motion"
    light = "Light"


@dataclass(frozen=True, slots=True)
class EnvironmentalMeasurements:
    sensor_type: ClassVar[SensorType] = SensorType.environmental

    temperature: Optional[float] = None
    humidity: Optional[float] = None
    pressure: Optional[float] = None


@dataclass(frozen=True, slots=True)
class AirQualityMeasurements:
    sensor_type: ClassVar[SensorType] = SensorType.air_quality

    co2: Optional[float] = None
    voc: Optional[float] = None
    pm25: Optional[float] = None
    pm10: Optional[float] = None


@dataclass(frozen=True, slots=True)
class WaterMeasurements:
    sensor_type: ClassVar[SensorType] = SensorType.water

    ph: Optional[float] = None
    turbidity: Optional[float] = None
    dissolved_oxygen: Optional[float] = None
    conductivity: Optional[float] = None


@dataclass(frozen=True, slots=True)
class EnergyMeasurements:
    sensor_type: ClassVar[SensorType] = SensorType.energy

    voltage: Optional[float] = None
    current: Optional[float] = None
    power_consumption: Optional[float] = None


@dataclass(frozen=True, slots=True)
class MotionMeasurements:
    sensor_type: ClassVar[SensorType] = SensorType.motion

    acceleration_x: Optional[float] = None
    acceleration_y: Optional[float] = None
    acceleration_z: Optional[float] = None
    vibration: Optional[float] = None


@dataclass(frozen=True, slots=True)
class LightMeasurements:
    sensor_type: ClassVar[SensorType] = SensorType.light

    illuminance: Optional[float] = None
    uv_index: Optional[float] = None
    color_temperature: Optional[float] = None


Measurements = Union[
    EnvironmentalMeasurements,
    AirQualityMeasurements,
    WaterMeasurements,
    EnergyMeasurements,
    MotionMeasurements,
    LightMeasurements,
]

MEASUREMENT_TYPES: Dict[SensorType, Type[Measurements]] = {
    SensorType.environmental: EnvironmentalMeasurements,
    SensorType.air_quality: AirQualityMeasurements,
    SensorType.water: WaterMeasurements,
    SensorType.energy: EnergyMeasurements,
    SensorType.motion: MotionMeasurements,
    SensorType.light: LightMeasurements,
}


def measurement_fields(sensor_type: SensorType) -> Tuple[str, ...]:
    """Names of the measurement fields that are meaningful for ``sensor_type``."""

    return tuple(item.name for item in fields(MEASUREMENT_TYPES[sensor_type]))


ALL_MEASUREMENT_FIELDS: Tuple[str, ...] = tuple(
    name for sensor_type in SensorType for name in measurement_fields(sensor_type)
)


def build_measurements(
    sensor_type: SensorType, values: Mapping[str, Optional[float]]
) -> Measurements:
    """Build the variant for ``sensor_type``, ignoring fields owned by other types."""

    variant = MEASUREMENT_TYPES[sensor_type]
    own_fields = measurement_fields(sensor_type)
    return variant(**{name: values.get(name) for name in own_fields})


def measurement_values(measurements: Measurements) -> Dict[str, Optional[float]]:
    return {item.name: getattr(measurements, item.name) for item in fields(measurements)}


@dataclass(frozen=True, slots=True)
class Reading:
    """A single timestamped measurement event from one sensor."""

    sensor_id: str
    timestamp: datetime
    measurements: Measurements
    processed: bool = False
    id: Optional[int] = None

    @property
    def sensor_type(self) -> SensorType:
        return self.measurements.sensor_type


@dataclass(frozen=True, slots=True)
class SensorErrorRecord:
    """Aggregated history of rejected readings for one (sensor_id, sensor_type)."""

    sensor_id: str
    sensor_type: SensorType
    error_count: int
    last_error_timestamp: datetime
    last_error_message: str

    @property
    def key(self) -> Tuple[str, SensorType]:
        return (self.sensor_id, self.sensor_type)


@dataclass(frozen=True, slots=True)
class SummaryEntry:
    """Most recent reading of one (sensor_id, sensor_type) group."""

    sensor_id: str
    sensor_type: SensorType
    latest_timestamp: datetime
    measurements: Measurements
    reading_id: Optional[int] = None
