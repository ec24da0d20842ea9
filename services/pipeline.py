"""Wiring and lifecycle of the producer, broker, consumer, and query side."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from datastore.error_table import SensorErrorTable, build_default_error_table
from datastore.readings_table import ReadingsTable, build_default_readings_table
from messaging.mock_broker import MockBroker, build_default_broker
from services.aggregator import QueryAggregator
from services.error_aggregator import ErrorAggregator
from services.generator import TelemetryGenerator
from services.ingestion import IngestionConsumer
from settings import get_settings

logger = logging.getLogger(__name__)


@dataclass
class TelemetryPipeline:
    broker: MockBroker
    readings: ReadingsTable
    errors: SensorErrorTable
    consumer: IngestionConsumer
    generator: TelemetryGenerator
    queries: QueryAggregator
    generator_enabled: bool = True

    def start(self) -> None:
        self.consumer.start()
        if self.generator_enabled:
            self.generator.start()
        logger.info(
            "Telemetry pipeline started (generator %s)",
            "enabled" if self.generator_enabled else "disabled",
        )

    def shutdown(self) -> None:
        """Stop producing first, then drain in-flight deliveries."""
        self.generator.stop()
        self.broker.stop(drain=True)
        logger.info("Telemetry pipeline stopped")


def build_pipeline(
    broker: MockBroker,
    readings: ReadingsTable,
    errors: SensorErrorTable,
    producer_store: ReadingsTable,
    generator_interval: float = 0.5,
    generator_backoff: float = 5.0,
    generator_enabled: bool = True,
) -> TelemetryPipeline:
    return TelemetryPipeline(
        broker=broker,
        readings=readings,
        errors=errors,
        consumer=IngestionConsumer(
            broker=broker, readings=readings, errors=ErrorAggregator(errors)
        ),
        generator=TelemetryGenerator(
            broker=broker,
            local_store=producer_store,
            interval=generator_interval,
            backoff=generator_backoff,
        ),
        queries=QueryAggregator(readings=readings, errors=errors),
        generator_enabled=generator_enabled,
    )


@lru_cache
def build_default_pipeline(generator_enabled: Optional[bool] = None) -> TelemetryPipeline:
    """Factory that wires the pipeline with the default mocks."""
    settings = get_settings()
    producer_path = settings.producer_persistence_path
    return build_pipeline(
        broker=build_default_broker(),
        readings=build_default_readings_table(),
        errors=build_default_error_table(),
        producer_store=ReadingsTable(
            name="producer_sensor_data",
            persistence_path=Path(producer_path) if producer_path else None,
        ),
        generator_interval=settings.generator_interval,
        generator_backoff=settings.generator_backoff,
        generator_enabled=(
            settings.generator_enabled if generator_enabled is None else generator_enabled
        ),
    )
