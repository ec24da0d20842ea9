"""Synthetic telemetry producer."""

from __future__ import annotations

import logging
import random
import threading
from datetime import datetime, timezone
from typing import Callable, Dict, Mapping, Optional, Tuple

from datastore.readings_table import ReadingsTable
from messaging.mock_broker import MockBroker
from models.messages import SensorDataMessage
from models.records import Reading, SensorType, build_measurements
from services.exceptions import TransportError

logger = logging.getLogger(__name__)

SENSOR_IDS: Dict[SensorType, Tuple[str, ...]] = {
    SensorType.environmental: ("env-001", "env-002", "env-003"),
    SensorType.air_quality: ("air-001", "air-002"),
    SensorType.water: ("water-001", "water-002"),
    SensorType.energy: ("energy-001", "energy-002", "energy-003"),
    SensorType.motion: ("motion-001", "motion-002"),
    SensorType.light: ("light-001", "light-002"),
}

# Inclusive (low, high) bounds of the synthetic values for each field.
VALUE_RANGES: Dict[SensorType, Mapping[str, Tuple[float, float]]] = {
    SensorType.environmental: {
        "temperature": (-10.0, 30.0),
        "humidity": (0.0, 100.0),
        "pressure": (970.0, 1020.0),
    },
    SensorType.air_quality: {
        "co2": (400.0, 1900.0),
        "voc": (0.0, 1000.0),
        "pm25": (0.0, 50.0),
        "pm10": (0.0, 100.0),
    },
    SensorType.water: {
        "ph": (3.0, 10.0),
        "turbidity": (0.0, 10.0),
        "dissolved_oxygen": (0.0, 15.0),
        "conductivity": (0.0, 1000.0),
    },
    SensorType.energy: {
        "voltage": (220.0, 240.0),
        "current": (0.0, 15.0),
        "power_consumption": (0.0, 3000.0),
    },
    SensorType.motion: {
        "acceleration_x": (-10.0, 10.0),
        "acceleration_y": (-10.0, 10.0),
        "acceleration_z": (-10.0, 10.0),
        "vibration": (0.0, 100.0),
    },
    SensorType.light: {
        "illuminance": (0.0, 10000.0),
        "uv_index": (0.0, 11.0),
        "color_temperature": (2000.0, 7000.0),
    },
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TelemetryGenerator:
    """Produces one random reading per tick, keeps a local copy, and publishes it."""

    def __init__(
        self,
        broker: MockBroker,
        local_store: ReadingsTable,
        interval: float = 0.5,
        backoff: float = 5.0,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.broker = broker
        self.local_store = local_store
        self.interval = interval
        self.backoff = backoff
        self._rng = rng or random.Random()
        self._clock = clock or _utcnow
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def generate_reading(self) -> Reading:
        sensor_type = self._rng.choice(list(SensorType))
        sensor_id = self._rng.choice(SENSOR_IDS[sensor_type])
        values = {
            name: round(self._rng.uniform(low, high), 2)
            for name, (low, high) in VALUE_RANGES[sensor_type].items()
        }
        return Reading(
            sensor_id=sensor_id,
            timestamp=self._clock(),
            measurements=build_measurements(sensor_type, values),
            processed=False,
        )

    def tick(self) -> Reading:
        """Generate, store locally, and publish a single reading."""
        reading = self.local_store.insert_reading(self.generate_reading())
        message = SensorDataMessage.from_reading(reading)
        message_id = self.broker.publish(message.to_json_bytes())
        logger.info(
            "Published sensor data",
            extra={
                "sensor_id": reading.sensor_id,
                "sensor_type": reading.sensor_type,
                "message_id": message_id,
            },
        )
        return reading

    def run(self, stop_event: Optional[threading.Event] = None) -> None:
        """Tick until ``stop_event`` is set; failures back off but never end the loop."""
        stop = stop_event or self._stop_event
        while not stop.is_set():
            try:
                self.tick()
            except TransportError as exc:
                logger.error(
                    "Publishing sensor data failed: %s",
                    exc,
                    extra={"backoff_seconds": self.backoff},
                )
                stop.wait(self.backoff)
            except Exception:
                logger.exception(
                    "Error generating sensor data",
                    extra={"backoff_seconds": self.backoff},
                )
                stop.wait(self.backoff)
            else:
                stop.wait(self.interval)

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self.run, name="telemetry-generator", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: Optional[float] = 10.0) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
