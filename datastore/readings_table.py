from __future__ import annotations

import itertools
import json
import logging
from dataclasses import replace
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import List, Optional

from pydantic import ValidationError

from models.messages import StoredReadingDocument
from models.records import Reading, SensorType
from settings import get_settings

logger = logging.getLogger(__name__)


def newest_first(readings: List[Reading]) -> List[Reading]:
    """Order by timestamp descending; equal timestamps put the latest insert first."""

    return sorted(readings, key=lambda item: (item.timestamp, item.id or 0), reverse=True)


class ReadingsTable:
    """Append-only time-series table of readings.

    Every insert gets a new monotonically increasing id, so inserting the same
    payload twice yields two rows. When ``persistence_path`` is set each row is
    appended to it as a JSON line and reloaded on construction.
    """

    def __init__(self, name: str, persistence_path: Optional[Path] = None) -> None:
        self.name = name
        self._rows: List[Reading] = []
        self._ids = itertools.count(1)
        self.persistence_path = persistence_path
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def insert_reading(self, reading: Reading) -> Reading:
        with self._lock:
            stored = replace(reading, id=next(self._ids))
            self._append_to_disk(stored)
            self._rows.append(stored)
        return stored

    def query_readings(
        self,
        sensor_id: Optional[str] = None,
        sensor_type: Optional[SensorType] = None,
        limit: Optional[int] = None,
    ) -> List[Reading]:
        """Return matching readings, newest first, capped at ``limit``."""

        rows = self.scan()
        if sensor_id is not None:
            rows = [row for row in rows if row.sensor_id == sensor_id]
        if sensor_type is not None:
            rows = [row for row in rows if row.sensor_type is sensor_type]
        ordered = newest_first(rows)
        if limit is not None:
            return ordered[:limit]
        return ordered

    def scan(self) -> List[Reading]:
        """Snapshot of every stored reading in insertion order."""

        with self._lock:
            return list(self._rows)

    def __len__(self) -> int:
        with self._lock:
            return len(self._rows)

    def _append_to_disk(self, reading: Reading) -> None:
        if not self.persistence_path:
            return
        document = StoredReadingDocument.from_reading(reading)
        line = document.model_dump_json(by_alias=True, exclude_none=True)
        with self.persistence_path.open("a", encoding="utf-8") as handle:
            handle.write(line + "\n")

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            lines = self.persistence_path.read_text(encoding="utf-8").splitlines()
        except OSError:
            lines = []

        highest_id = 0
        for line_number, line in enumerate(lines, start=1):
            if not line.strip():
                continue
            try:
                document = StoredReadingDocument.model_validate(json.loads(line))
            except (json.JSONDecodeError, ValidationError):
                logger.warning(
                    "Skipping unreadable reading at %s:%d", self.persistence_path, line_number
                )
                continue
            reading = document.to_reading()
            self._rows.append(reading)
            highest_id = max(highest_id, reading.id or 0)
        self._ids = itertools.count(highest_id + 1)


@lru_cache
def build_default_readings_table(
    name: Optional[str] = None,
    path: Optional[str] = None,
) -> ReadingsTable:
    settings = get_settings()
    table_name = "sensor_data" if name is None else name
    table_path = settings.readings_persistence_path if path is None else path
    persistence = Path(table_path) if table_path else None
    return ReadingsTable(name=table_name, persistence_path=persistence)
