"""Unit tests for the query-side aggregation logic."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from datastore.error_table import SensorErrorTable
from datastore.readings_table import ReadingsTable
from models.records import (
    EnvironmentalMeasurements,
    LightMeasurements,
    Reading,
    SensorType,
    WaterMeasurements,
)
from services.aggregator import QueryAggregator, latest_per_group, paginate

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _env(sensor_id: str, minutes: int, temperature: float = 20.0) -> Reading:
    return Reading(
        sensor_id=sensor_id,
        timestamp=BASE_TIME + timedelta(minutes=minutes),
        measurements=EnvironmentalMeasurements(temperature=temperature),
        processed=True,
    )


def _water(sensor_id: str, minutes: int, ph: float = 7.0) -> Reading:
    return Reading(
        sensor_id=sensor_id,
        timestamp=BASE_TIME + timedelta(minutes=minutes),
        measurements=WaterMeasurements(ph=ph),
        processed=True,
    )


@pytest.fixture()
def queries() -> QueryAggregator:
    return QueryAggregator(
        readings=ReadingsTable(name="sensor_data"),
        errors=SensorErrorTable(name="sensor_errors"),
    )


def _seed(queries: QueryAggregator, *readings: Reading) -> None:
    for reading in readings:
        queries.readings.insert_reading(reading)


def test_latest_per_group_picks_max_timestamp_and_sorts_groups(queries: QueryAggregator) -> None:
    _seed(
        queries,
        _env("env-002", 1, temperature=1.0),
        _env("env-001", 5, temperature=5.0),
        _env("env-001", 9, temperature=9.0),
        _env("env-001", 2, temperature=2.0),
        _water("env-001", 0, ph=6.5),
    )

    entries = latest_per_group(queries.readings.scan())

    assert [(entry.sensor_id, entry.sensor_type) for entry in entries] == [
        ("env-001", SensorType.environmental),
        ("env-001", SensorType.water),
        ("env-002", SensorType.environmental),
    ]
    assert entries[0].measurements == EnvironmentalMeasurements(temperature=9.0)
    assert entries[0].latest_timestamp == BASE_TIME + timedelta(minutes=9)


def test_latest_per_group_breaks_timestamp_ties_by_insertion(queries: QueryAggregator) -> None:
    _seed(queries, _env("env-001", 3, temperature=1.0), _env("env-001", 3, temperature=2.0))

    (entry,) = latest_per_group(queries.readings.scan())

    assert entry.measurements == EnvironmentalMeasurements(temperature=2.0)


def test_summary_paginates_over_groups(queries: QueryAggregator) -> None:
    _seed(
        queries,
        _env("env-001", 0),
        _env("env-001", 1),
        _env("env-002", 0),
        _water("water-001", 0),
        _water("water-001", 4),
    )

    first = queries.summary(page=1, page_size=2)
    second = queries.summary(page=2, page_size=2)

    assert (first.total_count, first.total_pages, first.current_page, first.page_size) == (3, 2, 1, 2)
    assert [entry.sensor_id for entry in first.data] == ["env-001", "env-002"]
    assert second.total_count == 3
    assert [entry.sensor_id for entry in second.data] == ["water-001"]


def test_summary_filters_by_type_and_handles_out_of_range_pages(queries: QueryAggregator) -> None:
    _seed(queries, _env("env-001", 0), _water("water-001", 0), _water("water-002", 0))

    filtered = queries.summary(sensor_type=SensorType.water)
    beyond = queries.summary(page=5, page_size=2)

    assert filtered.total_count == 2
    assert {entry.sensor_type for entry in filtered.data} == {SensorType.water}
    assert beyond.data == []
    assert beyond.total_pages == 2


def test_summary_of_empty_store(queries: QueryAggregator) -> None:
    page = queries.summary()

    assert (page.total_count, page.total_pages, page.data) == (0, 0, [])


@pytest.mark.parametrize(("page", "page_size"), [(0, 6), (1, 0), (-1, -1)])
def test_paginate_rejects_non_positive_arguments(page: int, page_size: int) -> None:
    with pytest.raises(ValueError):
        paginate([], page=page, page_size=page_size)


def test_latest_is_capped_and_newest_first(queries: QueryAggregator) -> None:
    _seed(queries, *(_env("env-001", minute) for minute in range(15)))

    latest = queries.latest()

    assert len(latest) == 10
    assert latest[0].timestamp == BASE_TIME + timedelta(minutes=14)
    assert latest[-1].timestamp == BASE_TIME + timedelta(minutes=5)
    assert len(queries.recent()) == 15


def test_by_sensor_and_by_type_raise_key_error_when_empty(queries: QueryAggregator) -> None:
    _seed(queries, _env("env-001", 0))

    assert len(queries.by_sensor("env-001")) == 1
    assert len(queries.by_type(SensorType.environmental)) == 1
    with pytest.raises(KeyError):
        queries.by_sensor("env-404")
    with pytest.raises(KeyError):
        queries.by_type(SensorType.light)


def test_by_sensor_caps_at_fifty(queries: QueryAggregator) -> None:
    _seed(queries, *(_env("env-001", minute) for minute in range(60)))

    assert len(queries.by_sensor("env-001")) == 50


def test_top_errors_orders_counts_and_breaks_ties_by_recency(queries: QueryAggregator) -> None:
    table = queries.errors
    for offset, (sensor_id, count) in enumerate([("c", 3), ("a", 7), ("d", 1), ("b", 5)]):
        table.upsert_error(sensor_id, SensorType.light, "x", BASE_TIME + timedelta(minutes=offset), delta=count)

    top = queries.top_errors()
    assert [record.error_count for record in top] == [7, 5, 3]
    assert [record.error_count for record in queries.top_errors(4)] == [7, 5, 3, 1]

    table.upsert_error("e", SensorType.light, "x", BASE_TIME + timedelta(hours=1), delta=7)
    assert [record.sensor_id for record in queries.top_errors()] == ["e", "a", "b"]


def test_latest_per_group_keeps_only_own_type_fields() -> None:
    reading = Reading(
        sensor_id="light-001",
        timestamp=BASE_TIME,
        measurements=LightMeasurements(uv_index=4.0),
    )

    (entry,) = latest_per_group([reading])

    assert entry.measurements == LightMeasurements(uv_index=4.0)
    assert entry.reading_id is None
