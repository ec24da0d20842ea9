"""Wire format for readings travelling through the broker."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from models.records import Reading, SensorType, build_measurements, measurement_values

# Acronym fields keep the casing the dashboard reads.
_WIRE_NAMES = {
    "co2": "cO2",
    "pm25": "pM25",
    "pm10": "pM10",
    "latest_co2": "latestCO2",
    "latest_voc": "latestVOC",
    "latest_pm25": "latestPM25",
    "latest_pm10": "latestPM10",
    "latest_ph": "latestPH",
    "latest_uv_index": "latestUVIndex",
}


def to_wire_name(field_name: str) -> str:
    return _WIRE_NAMES.get(field_name) or to_camel(field_name)


class SensorDataMessage(BaseModel):
    """JSON message published by the generator and consumed by ingestion.

    Keys are camelCase on the wire. Measurement fields that do not belong to
    ``sensor_type`` are accepted but dropped when converting to a ``Reading``.
    """

    model_config = ConfigDict(
        alias_generator=to_wire_name,
        populate_by_name=True,
        extra="ignore",
    )

    sensor_id: Optional[str] = None
    sensor_type: SensorType
    timestamp: datetime

    temperature: Optional[float] = None
    humidity: Optional[float] = None
    pressure: Optional[float] = None

    co2: Optional[float] = None
    voc: Optional[float] = None
    pm25: Optional[float] = None
    pm10: Optional[float] = None

    ph: Optional[float] = None
    turbidity: Optional[float] = None
    dissolved_oxygen: Optional[float] = None
    conductivity: Optional[float] = None

    voltage: Optional[float] = None
    current: Optional[float] = None
    power_consumption: Optional[float] = None

    acceleration_x: Optional[float] = None
    acceleration_y: Optional[float] = None
    acceleration_z: Optional[float] = None
    vibration: Optional[float] = None

    illuminance: Optional[float] = None
    uv_index: Optional[float] = None
    color_temperature: Optional[float] = None

    @field_validator("timestamp")
    @classmethod
    def _ensure_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @classmethod
    def from_reading(cls, reading: Reading) -> "SensorDataMessage":
        return cls(
            sensor_id=reading.sensor_id,
            sensor_type=reading.sensor_type,
            timestamp=reading.timestamp,
            **measurement_values(reading.measurements),
        )

    def to_reading(self, processed: bool = False, reading_id: Optional[int] = None) -> Reading:
        values = self.model_dump()
        return Reading(
            sensor_id=self.sensor_id or "",
            timestamp=self.timestamp,
            measurements=build_measurements(self.sensor_type, values),
            processed=processed,
            id=reading_id,
        )

    def to_json_bytes(self) -> bytes:
        return self.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8")


class StoredReadingDocument(SensorDataMessage):
    """On-disk representation of a persisted reading (one JSON line each)."""

    id: Optional[int] = Field(default=None)
    processed: bool = False

    @classmethod
    def from_reading(cls, reading: Reading) -> "StoredReadingDocument":
        return cls(
            id=reading.id,
            processed=reading.processed,
            sensor_id=reading.sensor_id,
            sensor_type=reading.sensor_type,
            timestamp=reading.timestamp,
            **measurement_values(reading.measurements),
        )

    def to_reading(self, processed: Optional[bool] = None, reading_id: Optional[int] = None) -> Reading:
        return super().to_reading(
            processed=self.processed if processed is None else processed,
            reading_id=self.id if reading_id is None else reading_id,
        )
