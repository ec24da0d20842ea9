"""Per-sensor aggregation of rejected readings."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from datastore.error_table import SensorErrorTable
from models.records import SensorErrorRecord, SensorType

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ErrorAggregator:
    """Records validation failures as one counter per (sensor_id, sensor_type).

    Counts only ever grow; a sensor that recovers keeps its history.
    """

    def __init__(
        self,
        table: SensorErrorTable,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.table = table
        self._clock = clock or _utcnow

    def record_failure(
        self, sensor_id: str, sensor_type: SensorType, message: str
    ) -> SensorErrorRecord:
        record = self.table.upsert_error(
            sensor_id=sensor_id,
            sensor_type=sensor_type,
            message=message,
            timestamp=self._clock(),
        )
        logger.warning(
            "Rejected reading: %s",
            message,
            extra={
                "sensor_id": sensor_id,
                "sensor_type": sensor_type,
                "error_count": record.error_count,
            },
        )
        return record
