"""HTTP route definitions for the service."""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, TypeVar

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.schemas import (
    SensorErrorOut,
    SensorReadingOut,
    SensorSummaryResponse,
)
from models.records import SensorType
from services.aggregator import DEFAULT_PAGE_SIZE, QueryAggregator
from services.pipeline import build_default_pipeline

logger = logging.getLogger(__name__)

router = APIRouter()

T = TypeVar("T")


def get_queries() -> QueryAggregator:
    return build_default_pipeline().queries


def _run_query(query: Callable[[], T], failure_detail: str) -> T:
    """Map not-found to 404 and bad arguments to 400; never leak store failures."""
    try:
        return query()
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=exc.args[0] if exc.args else str(exc),
        ) from exc
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except Exception as exc:
        logger.exception("Query failed: %s", failure_detail)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=failure_detail,
        ) from exc


@router.get(
    "/api/sensordata",
    response_model=List[SensorReadingOut],
    summary="The 100 most recent readings.",
)
async def get_recent_readings(
    queries: QueryAggregator = Depends(get_queries),
) -> List[SensorReadingOut]:
    readings = _run_query(queries.recent, "An error occurred while retrieving sensor data")
    return [SensorReadingOut.from_reading(reading) for reading in readings]


@router.get(
    "/api/sensordata/latest",
    response_model=List[SensorReadingOut],
    summary="The 10 most recent readings.",
)
async def get_latest_readings(
    queries: QueryAggregator = Depends(get_queries),
) -> List[SensorReadingOut]:
    readings = _run_query(queries.latest, "An error occurred while retrieving latest sensor data")
    return [SensorReadingOut.from_reading(reading) for reading in readings]


@router.get(
    "/api/sensordata/bySensor/{sensor_id}",
    response_model=List[SensorReadingOut],
    summary="Up to 50 most recent readings of one sensor.",
)
async def get_readings_by_sensor(
    sensor_id: str,
    queries: QueryAggregator = Depends(get_queries),
) -> List[SensorReadingOut]:
    readings = _run_query(
        lambda: queries.by_sensor(sensor_id),
        f"An error occurred while retrieving data for sensor ID: {sensor_id}",
    )
    return [SensorReadingOut.from_reading(reading) for reading in readings]


@router.get(
    "/api/sensordata/byType/{sensor_type}",
    response_model=List[SensorReadingOut],
    summary="Up to 50 most recent readings of one sensor type.",
)
async def get_readings_by_type(
    sensor_type: SensorType,
    queries: QueryAggregator = Depends(get_queries),
) -> List[SensorReadingOut]:
    readings = _run_query(
        lambda: queries.by_type(sensor_type),
        f"An error occurred while retrieving sensor data for sensor type: {sensor_type.value}",
    )
    return [SensorReadingOut.from_reading(reading) for reading in readings]


@router.get(
    "/api/sensordata/summary",
    response_model=SensorSummaryResponse,
    summary="Latest reading per sensor, paginated.",
)
async def get_summary(
    sensor_type: Optional[SensorType] = Query(default=None, alias="sensorType"),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, alias="pageSize"),
    queries: QueryAggregator = Depends(get_queries),
) -> SensorSummaryResponse:
    summary_page = _run_query(
        lambda: queries.summary(sensor_type=sensor_type, page=page, page_size=page_size),
        "An error occurred while retrieving sensor data summary",
    )
    return SensorSummaryResponse.from_page(summary_page)


@router.get(
    "/api/sensorerrors",
    response_model=List[SensorErrorOut],
    summary="The three sensors with the most rejected readings.",
)
async def get_sensor_errors(
    queries: QueryAggregator = Depends(get_queries),
) -> List[SensorErrorOut]:
    records = _run_query(queries.top_errors, "An error occurred while retrieving sensor errors")
    return [SensorErrorOut.from_record(record) for record in records]


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
