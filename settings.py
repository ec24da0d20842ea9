from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_READINGS_PATH_ENV = "READINGS_PERSISTENCE_PATH"
_ERRORS_PATH_ENV = "SENSOR_ERRORS_PERSISTENCE_PATH"
_PRODUCER_PATH_ENV = "PRODUCER_PERSISTENCE_PATH"
_CONCURRENCY_ENV = "CONSUMER_CONCURRENCY"
_PREFETCH_ENV = "CONSUMER_PREFETCH"
_RETRY_LIMIT_ENV = "CONSUMER_RETRY_LIMIT"
_RETRY_INTERVAL_ENV = "CONSUMER_RETRY_INTERVAL_SECONDS"
_GENERATOR_ENABLED_ENV = "GENERATOR_ENABLED"
_GENERATOR_INTERVAL_ENV = "GENERATOR_INTERVAL_SECONDS"
_GENERATOR_BACKOFF_ENV = "GENERATOR_BACKOFF_SECONDS"
_LOG_LEVEL_ENV = "LOG_LEVEL"

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    readings_persistence_path: Optional[str]
    errors_persistence_path: Optional[str]
    producer_persistence_path: Optional[str]
    consumer_concurrency: int
    consumer_prefetch: int
    retry_limit: int
    retry_interval: float
    generator_enabled: bool
    generator_interval: float
    generator_backoff: float
    log_level: str


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_int(name: str, default: int, minimum: int = 1) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed >= minimum else default


def _read_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed >= 0 else default


def _read_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip().lower()
    if candidate in _TRUTHY:
        return True
    if candidate in _FALSY:
        return False
    return default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        readings_persistence_path=_read_optional_env(_READINGS_PATH_ENV, "./tmp/readings.jsonl"),
        errors_persistence_path=_read_optional_env(_ERRORS_PATH_ENV, "./tmp/sensor_errors.json"),
        producer_persistence_path=_read_optional_env(
            _PRODUCER_PATH_ENV, "./tmp/producer_readings.jsonl"
        ),
        consumer_concurrency=_read_int(_CONCURRENCY_ENV, 8),
        consumer_prefetch=_read_int(_PREFETCH_ENV, 32),
        retry_limit=_read_int(_RETRY_LIMIT_ENV, 3, minimum=0),
        retry_interval=_read_float(_RETRY_INTERVAL_ENV, 1.0),
        generator_enabled=_read_bool(_GENERATOR_ENABLED_ENV, True),
        generator_interval=_read_float(_GENERATOR_INTERVAL_ENV, 0.5),
        generator_backoff=_read_float(_GENERATOR_BACKOFF_ENV, 5.0),
        log_level=_read_log_level("INFO"),
    )
