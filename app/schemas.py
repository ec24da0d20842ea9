"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from models.messages import to_wire_name
from models.records import (
    Reading,
    SensorErrorRecord,
    SensorType,
    SummaryEntry,
    measurement_values,
)
from services.aggregator import SummaryPage


class ApiModel(BaseModel):
    """Base model rendering camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_wire_name, populate_by_name=True)


class SensorReadingOut(ApiModel):
    """A stored reading; fields not meaningful for its type are null."""

    id: Optional[int] = None
    sensor_id: str
    sensor_type: SensorType
    timestamp: datetime
    processed: bool

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

    @classmethod
    def from_reading(cls, reading: Reading) -> "SensorReadingOut":
        return cls(
            id=reading.id,
            sensor_id=reading.sensor_id,
            sensor_type=reading.sensor_type,
            timestamp=reading.timestamp,
            processed=reading.processed,
            **measurement_values(reading.measurements),
        )


class SensorSummaryItem(ApiModel):
    """Latest values of one sensor, with every field prefixed ``latest``."""

    sensor_id: str
    sensor_type: SensorType
    latest_timestamp: datetime

    latest_temperature: Optional[float] = None
    latest_humidity: Optional[float] = None
    latest_pressure: Optional[float] = None

    latest_co2: Optional[float] = None
    latest_voc: Optional[float] = None
    latest_pm25: Optional[float] = None
    latest_pm10: Optional[float] = None

    latest_ph: Optional[float] = None
    latest_turbidity: Optional[float] = None
    latest_dissolved_oxygen: Optional[float] = None
    latest_conductivity: Optional[float] = None

    latest_voltage: Optional[float] = None
    latest_current: Optional[float] = None
    latest_power_consumption: Optional[float] = None

    latest_acceleration_x: Optional[float] = None
    latest_acceleration_y: Optional[float] = None
    latest_acceleration_z: Optional[float] = None
    latest_vibration: Optional[float] = None

    latest_illuminance: Optional[float] = None
    latest_uv_index: Optional[float] = None
    latest_color_temperature: Optional[float] = None

    @classmethod
    def from_entry(cls, entry: SummaryEntry) -> "SensorSummaryItem":
        latest = {
            f"latest_{name}": value
            for name, value in measurement_values(entry.measurements).items()
        }
        return cls(
            sensor_id=entry.sensor_id,
            sensor_type=entry.sensor_type,
            latest_timestamp=entry.latest_timestamp,
            **latest,
        )


class SensorSummaryResponse(ApiModel):
    """Paginated envelope for the latest-per-sensor summary."""

    total_count: int = Field(..., ge=0)
    total_pages: int = Field(..., ge=0)
    current_page: int = Field(..., ge=1)
    page_size: int = Field(..., ge=1)
    data: List[SensorSummaryItem] = Field(default_factory=list)

    @classmethod
    def from_page(cls, page: SummaryPage) -> "SensorSummaryResponse":
        return cls(
            total_count=page.total_count,
            total_pages=page.total_pages,
            current_page=page.current_page,
            page_size=page.page_size,
            data=[SensorSummaryItem.from_entry(entry) for entry in page.data],
        )


class SensorErrorOut(ApiModel):
    sensor_id: str
    sensor_type: SensorType
    error_count: int = Field(..., ge=1)
    last_error_timestamp: datetime
    last_error_message: str

    @classmethod
    def from_record(cls, record: SensorErrorRecord) -> "SensorErrorOut":
        return cls(
            sensor_id=record.sensor_id,
            sensor_type=record.sensor_type,
            error_count=record.error_count,
            last_error_timestamp=record.last_error_timestamp,
            last_error_message=record.last_error_message,
        )
