"""Broker consumer that validates, stores, or records each inbound reading."""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from enum import Enum
from typing import Any, Mapping, Union

from pydantic import ValidationError

from datastore.readings_table import ReadingsTable
from messaging.mock_broker import MockBroker
from models.messages import SensorDataMessage
from models.records import Reading
from services.error_aggregator import ErrorAggregator
from services.exceptions import MalformedMessageError, ReadingValidationError
from services.validation import validate

logger = logging.getLogger(__name__)

RawMessage = Union[bytes, str, Mapping[str, Any]]


class IngestionOutcome(str, Enum):
    """Terminal result of handling one message; none of these is redelivered."""

    stored = "stored"
    invalid = "invalid"
    malformed = "malformed"


def parse_message(raw: RawMessage) -> Reading:
    """Decode a wire message into an unvalidated ``Reading``.

    Raises ``MalformedMessageError`` when the body is not JSON, does not match
    the message schema, or lacks a sensor id.
    """

    try:
        if isinstance(raw, (bytes, str)):
            payload = json.loads(raw)
        else:
            payload = dict(raw)
        message = SensorDataMessage.model_validate(payload)
    except (json.JSONDecodeError, UnicodeDecodeError, TypeError, ValueError) as exc:
        # pydantic's ValidationError is a ValueError subclass.
        if isinstance(exc, ValidationError):
            reason = "; ".join(
                f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
                for error in exc.errors()
            )
        else:
            reason = str(exc)
        raise MalformedMessageError(f"Unreadable sensor data message: {reason}") from exc

    if not (message.sensor_id or "").strip():
        raise MalformedMessageError("Sensor data message is missing sensorId.")
    return message.to_reading()


class IngestionConsumer:
    """Handles broker deliveries end to end.

    Malformed and invalid messages are terminal and acknowledged. Any other
    exception is logged and re-raised so the broker redelivers the message.
    """

    def __init__(
        self,
        broker: MockBroker,
        readings: ReadingsTable,
        errors: ErrorAggregator,
    ) -> None:
        self.broker = broker
        self.readings = readings
        self.errors = errors

    def start(self) -> None:
        self.broker.subscribe(self.handle)

    def handle(self, raw: RawMessage) -> IngestionOutcome:
        try:
            reading = parse_message(raw)
        except MalformedMessageError as exc:
            logger.error(
                "Discarding malformed message: %s",
                exc,
                extra={"outcome": IngestionOutcome.malformed},
            )
            return IngestionOutcome.malformed

        context = {"sensor_id": reading.sensor_id, "sensor_type": reading.sensor_type}
        logger.debug("Received sensor data", extra=context)

        try:
            return self._process(reading)
        except Exception:
            logger.exception("Error processing sensor data message", extra=context)
            raise

    def _process(self, reading: Reading) -> IngestionOutcome:
        try:
            validate(reading.sensor_type, reading.measurements).raise_for_violation()
        except ReadingValidationError as exc:
            self.errors.record_failure(reading.sensor_id, reading.sensor_type, exc.reason)
            return IngestionOutcome.invalid

        stored = self.readings.insert_reading(replace(reading, processed=True))
        logger.info(
            "Stored sensor data",
            extra={
                "sensor_id": stored.sensor_id,
                "sensor_type": stored.sensor_type,
                "reading_id": stored.id,
                "outcome": IngestionOutcome.stored,
            },
        )
        return IngestionOutcome.stored

