"""Read-side aggregation over stored readings and error records."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from datastore.error_table import SensorErrorTable
from datastore.readings_table import ReadingsTable
from models.records import Reading, SensorErrorRecord, SensorType, SummaryEntry

DEFAULT_LATEST_LIMIT = 10
DEFAULT_RECENT_LIMIT = 100
DEFAULT_FILTER_LIMIT = 50
DEFAULT_PAGE_SIZE = 6
DEFAULT_TOP_ERRORS = 3


@dataclass
class SummaryPage:
    """One page of latest-per-sensor entries."""

    total_count: int = 0
    total_pages: int = 0
    current_page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE
    data: List[SummaryEntry] = field(default_factory=list)


def latest_per_group(readings: Iterable[Reading]) -> List[SummaryEntry]:
    """Pick the newest reading of every (sensor_id, sensor_type) group.

    The maximum timestamp wins; equal timestamps go to the highest id. Groups
    come back sorted by sensor id, then sensor type.
    """

    latest: Dict[Tuple[str, SensorType], Reading] = {}
    for reading in readings:
        key = (reading.sensor_id, reading.sensor_type)
        current = latest.get(key)
        if current is None or (reading.timestamp, reading.id or 0) > (
            current.timestamp,
            current.id or 0,
        ):
            latest[key] = reading

    return [
        SummaryEntry(
            sensor_id=reading.sensor_id,
            sensor_type=reading.sensor_type,
            latest_timestamp=reading.timestamp,
            measurements=reading.measurements,
            reading_id=reading.id,
        )
        for _, reading in sorted(latest.items(), key=lambda item: (item[0][0], item[0][1].value))
    ]


def paginate(entries: List[SummaryEntry], page: int, page_size: int) -> SummaryPage:
    if page < 1:
        raise ValueError("page must be 1 or greater.")
    if page_size < 1:
        raise ValueError("pageSize must be 1 or greater.")
    total = len(entries)
    start = (page - 1) * page_size
    return SummaryPage(
        total_count=total,
        total_pages=math.ceil(total / page_size),
        current_page=page,
        page_size=page_size,
        data=entries[start : start + page_size],
    )


class QueryAggregator:
    """Answers dashboard queries from snapshots of the stores; never blocks ingestion."""

    def __init__(self, readings: ReadingsTable, errors: SensorErrorTable) -> None:
        self.readings = readings
        self.errors = errors

    def recent(self, limit: int = DEFAULT_RECENT_LIMIT) -> List[Reading]:
        return self.readings.query_readings(limit=limit)

    def latest(self, limit: int = DEFAULT_LATEST_LIMIT) -> List[Reading]:
        return self.readings.query_readings(limit=limit)

    def by_sensor(self, sensor_id: str, limit: int = DEFAULT_FILTER_LIMIT) -> List[Reading]:
        rows = self.readings.query_readings(sensor_id=sensor_id, limit=limit)
        if not rows:
            raise KeyError(f"No data found for sensor ID: {sensor_id}")
        return rows

    def by_type(self, sensor_type: SensorType, limit: int = DEFAULT_FILTER_LIMIT) -> List[Reading]:
        rows = self.readings.query_readings(sensor_type=sensor_type, limit=limit)
        if not rows:
            raise KeyError(f"No data found for sensor type: {sensor_type.value}")
        return rows

    def summary(
        self,
        sensor_type: Optional[SensorType] = None,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> SummaryPage:
        rows = self.readings.scan()
        if sensor_type is not None:
            rows = [row for row in rows if row.sensor_type is sensor_type]
        return paginate(latest_per_group(rows), page=page, page_size=page_size)

    def top_errors(self, limit: int = DEFAULT_TOP_ERRORS) -> List[SensorErrorRecord]:
        return self.errors.query_errors(limit=limit)
