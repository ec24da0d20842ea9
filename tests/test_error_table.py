"""Error record upserts, ranking, and concurrency."""

from __future__ import annotations

import json
import threading
from datetime import datetime, timedelta, timezone

import pytest

from datastore.error_table import SensorErrorTable
from models.records import SensorType
from services.error_aggregator import ErrorAggregator

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


def test_first_failure_creates_record_with_count_one() -> None:
    table = SensorErrorTable(name="sensor_errors")

    record = table.upsert_error("env-001", SensorType.environmental, "boom", BASE_TIME)

    assert record.error_count == 1
    assert table.get_item("env-001", SensorType.environmental) == record


def test_subsequent_failures_increment_and_overwrite_details() -> None:
    table = SensorErrorTable(name="sensor_errors")
    table.upsert_error("env-001", SensorType.environmental, "first", BASE_TIME)

    record = table.upsert_error(
        "env-001", SensorType.environmental, "second", BASE_TIME + timedelta(seconds=1)
    )

    assert record.error_count == 2
    assert record.last_error_message == "second"
    assert record.last_error_timestamp == BASE_TIME + timedelta(seconds=1)
    assert len(table.scan()) == 1


def test_same_sensor_id_with_different_type_is_a_separate_key() -> None:
    table = SensorErrorTable(name="sensor_errors")
    table.upsert_error("s-1", SensorType.water, "a", BASE_TIME)
    table.upsert_error("s-1", SensorType.light, "b", BASE_TIME)

    assert len(table.scan()) == 2


def test_non_positive_delta_is_rejected() -> None:
    table = SensorErrorTable(name="sensor_errors")

    with pytest.raises(ValueError):
        table.upsert_error("s-1", SensorType.water, "a", BASE_TIME, delta=0)


def test_query_errors_ranks_by_count_then_recency() -> None:
    table = SensorErrorTable(name="sensor_errors")
    for index, (sensor_id, count) in enumerate([("a", 3), ("b", 7), ("c", 1), ("d", 5)]):
        for _ in range(count):
            table.upsert_error(sensor_id, SensorType.motion, "x", BASE_TIME + timedelta(minutes=index))
    table.upsert_error("tie-old", SensorType.light, "x", BASE_TIME, delta=5)
    table.upsert_error("tie-new", SensorType.light, "x", BASE_TIME + timedelta(hours=1), delta=5)

    ranked = table.query_errors(limit=4)

    assert [(record.sensor_id, record.error_count) for record in ranked] == [
        ("b", 7),
        ("tie-new", 5),
        ("d", 5),
        ("tie-old", 5),
    ]


def test_concurrent_failures_for_one_key_lose_no_updates() -> None:
    table = SensorErrorTable(name="sensor_errors")
    aggregator = ErrorAggregator(table)
    workers = 16
    per_worker = 50
    barrier = threading.Barrier(workers)

    def fail_repeatedly() -> None:
        barrier.wait(timeout=5)
        for _ in range(per_worker):
            aggregator.record_failure("air-001", SensorType.air_quality, "CO2 level cannot be negative: -1")

    threads = [threading.Thread(target=fail_repeatedly) for _ in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    record = table.get_item("air-001", SensorType.air_quality)
    assert record is not None
    assert record.error_count == workers * per_worker


def test_persists_and_reloads(tmp_path) -> None:
    path = tmp_path / "errors.json"
    table = SensorErrorTable(name="sensor_errors", persistence_path=path)
    table.upsert_error("water-002", SensorType.water, "pH out of valid range (0-14): 15", BASE_TIME)
    table.upsert_error("water-002", SensorType.water, "pH out of valid range (0-14): 16", BASE_TIME)

    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload[0]["errorCount"] == 2
    assert payload[0]["sensorType"] == "Water"

    reloaded = SensorErrorTable(name="sensor_errors", persistence_path=path)
    record = reloaded.get_item("water-002", SensorType.water)
    assert record is not None
    assert record.error_count == 2
    assert record.last_error_message.endswith("16")
    assert record.last_error_timestamp == BASE_TIME


def test_error_aggregator_stamps_with_clock_and_logs(caplog) -> None:
    table = SensorErrorTable(name="sensor_errors")
    aggregator = ErrorAggregator(table, clock=lambda: BASE_TIME)

    with caplog.at_level("WARNING"):
        record = aggregator.record_failure("light-001", SensorType.light, "UV Index out of range (0-11): 12")

    assert record.last_error_timestamp == BASE_TIME
    logged = [entry for entry in caplog.records if entry.name == "services.error_aggregator"]
    assert logged
    assert getattr(logged[0], "sensor_id") == "light-001"
    assert getattr(logged[0], "error_count") == 1


def test_failed_write_leaves_record_unchanged(tmp_path, monkeypatch) -> None:
    table = SensorErrorTable(name="sensor_errors", persistence_path=tmp_path / "errors.json")
    table.upsert_error("water-001", SensorType.water, "first", BASE_TIME)

    def fail(records) -> None:
        raise OSError("disk unavailable")

    monkeypatch.setattr(table, "_persist", fail)
    with pytest.raises(OSError):
        table.upsert_error("water-001", SensorType.water, "second", BASE_TIME + timedelta(seconds=1))
    with pytest.raises(OSError):
        table.upsert_error("water-002", SensorType.water, "new", BASE_TIME)

    record = table.get_item("water-001", SensorType.water)
    assert record is not None
    assert (record.error_count, record.last_error_message) == (1, "first")
    assert table.get_item("water-002", SensorType.water) is None
