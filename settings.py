from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_HOST_ENV = "HOST"
_PORT_ENV = "PORT"
_TICK_INTERVAL_ENV = "TICK_INTERVAL_MS"
_QUEUE_SIZE_ENV = "SUBSCRIBER_QUEUE_SIZE"
_SEND_TIMEOUT_ENV = "SUBSCRIBER_SEND_TIMEOUT_MS"
_RANDOM_SEED_ENV = "SENSOR_RANDOM_SEED"
_CHANNELS_ENV = "SENSOR_CHANNELS"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    host: str
    port: int
    tick_interval_ms: int
    subscriber_queue_size: int
    subscriber_send_timeout_ms: int
    random_seed: Optional[int]
    channels_json: Optional[str]
    log_level: str

    @property
    def tick_interval(self) -> float:
        return self.tick_interval_ms / 1000.0

    @property
    def subscriber_send_timeout(self) -> float:
        return self.subscriber_send_timeout_ms / 1000.0


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_int(name: str, default: int) -> int:
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
    return parsed if parsed > 0 else default


def _read_seed(default: Optional[int]) -> Optional[int]:
    candidate = _read_optional_env(_RANDOM_SEED_ENV, None)
    if candidate is None:
        return default
    try:
        return int(candidate)
    except ValueError:
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
        host=_read_str_env(_HOST_ENV, "0.0.0.0"),
        port=_read_positive_int(_PORT_ENV, 3000),
        tick_interval_ms=_read_positive_int(_TICK_INTERVAL_ENV, 2000),
        subscriber_queue_size=_read_positive_int(_QUEUE_SIZE_ENV, 16),
        subscriber_send_timeout_ms=_read_positive_int(_SEND_TIMEOUT_ENV, 1000),
        random_seed=_read_seed(None),
        channels_json=_read_optional_env(_CHANNELS_ENV, None),
        log_level=_read_log_level("INFO"),
    )
