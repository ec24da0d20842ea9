from __future__ import annotations

import json
import logging
from datetime import datetime
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Dict, List, Optional, Tuple

from models.records import SensorErrorRecord, SensorType
from settings import get_settings

logger = logging.getLogger(__name__)

ErrorKey = Tuple[str, SensorType]


def rank_errors(records: List[SensorErrorRecord]) -> List[SensorErrorRecord]:
    """Highest ``error_count`` first; ties go to the most recent failure."""

    return sorted(
        records,
        key=lambda record: (record.error_count, record.last_error_timestamp),
        reverse=True,
    )


class SensorErrorTable:
    """Error records keyed by (sensor_id, sensor_type) with atomic upserts.

    Mutations for the same key are serialised by a lock dedicated to that key;
    failures for unrelated sensors only share the disk write.
    """

    def __init__(self, name: str, persistence_path: Optional[Path] = None) -> None:
        self.name = name
        self._items: Dict[ErrorKey, SensorErrorRecord] = {}
        self._key_locks: Dict[ErrorKey, Lock] = {}
        self._registry_lock = Lock()
        self._persist_lock = Lock()
        self.persistence_path = persistence_path
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def upsert_error(
        self,
        sensor_id: str,
        sensor_type: SensorType,
        message: str,
        timestamp: datetime,
        delta: int = 1,
    ) -> SensorErrorRecord:
        """Create the record with ``error_count=delta`` or add ``delta`` to it."""

        if delta < 1:
            raise ValueError("delta must be a positive increment.")
        key = (sensor_id, sensor_type)
        with self._lock_for(key):
            current = self._items.get(key)
            count = delta if current is None else current.error_count + delta
            updated = SensorErrorRecord(
                sensor_id=sensor_id,
                sensor_type=sensor_type,
                error_count=count,
                last_error_timestamp=timestamp,
                last_error_message=message,
            )
            self._commit(updated)
        return updated

    def get_item(self, sensor_id: str, sensor_type: SensorType) -> Optional[SensorErrorRecord]:
        with self._registry_lock:
            return self._items.get((sensor_id, sensor_type))

    def scan(self) -> List[SensorErrorRecord]:
        with self._registry_lock:
            return list(self._items.values())

    def query_errors(self, limit: Optional[int] = None) -> List[SensorErrorRecord]:
        ranked = rank_errors(self.scan())
        if limit is not None:
            return ranked[:limit]
        return ranked

    def _lock_for(self, key: ErrorKey) -> Lock:
        with self._registry_lock:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = self._key_locks[key] = Lock()
            return lock

    def _commit(self, record: SensorErrorRecord) -> None:
        """Write the table with ``record`` applied, then publish it in memory.

        A failed write leaves the in-memory record untouched.
        """

        with self._persist_lock:
            if self.persistence_path:
                snapshot = {item.key: item for item in self.scan()}
                snapshot[record.key] = record
                self._persist(list(snapshot.values()))
            with self._registry_lock:
                self._items[record.key] = record

    def _persist(self, records: List[SensorErrorRecord]) -> None:
        if self.persistence_path:
            payload = [
                {
                    "sensorId": record.sensor_id,
                    "sensorType": record.sensor_type.value,
                    "errorCount": record.error_count,
                    "lastErrorTimestamp": record.last_error_timestamp.isoformat(),
                    "lastErrorMessage": record.last_error_message,
                }
                for record in records
            ]
            self.persistence_path.write_text(
                json.dumps(payload, indent=2, sort_keys=True, ensure_ascii=False),
                encoding="utf-8",
            )

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text(encoding="utf-8") or "[]"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError):
            data = []

        for payload in data:
            try:
                record = SensorErrorRecord(
                    sensor_id=payload["sensorId"],
                    sensor_type=SensorType(payload["sensorType"]),
                    error_count=int(payload["errorCount"]),
                    last_error_timestamp=datetime.fromisoformat(payload["lastErrorTimestamp"]),
                    last_error_message=payload["lastErrorMessage"],
                )
            except (KeyError, TypeError, ValueError):
                logger.warning("Skipping unreadable error record in %s", self.persistence_path)
                continue
            self._items[record.key] = record


@lru_cache
def build_default_error_table(
    name: Optional[str] = None,
    path: Optional[str] = None,
) -> SensorErrorTable:
    settings = get_settings()
    table_name = "sensor_errors" if name is None else name
    table_path = settings.errors_persistence_path if path is None else path
    persistence = Path(table_path) if table_path else None
    return SensorErrorTable(name=table_name, persistence_path=persistence)
