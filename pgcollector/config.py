"""
Collector configuration.

The sampler's polling interval and retention window are the only
caller-configurable settings. Per-extension runtime parameters are fixed
module constants.
"""

import os
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional, Union

from dotenv import load_dotenv

# pg_stat_statements is treated as foundational: track everything
PG_STAT_STATEMENTS_TRACK = "all"
PG_STAT_STATEMENTS_MAX = 10000

# pg_stat_monitor
PG_STAT_MONITOR_NORMALIZE_QUERIES = True
PG_STAT_MONITOR_ENABLE_QUERY_PLAN = True

# pg_wait_sampling
PG_WAIT_SAMPLING_PERIOD = timedelta(milliseconds=10)

DEFAULT_SAMPLE_INTERVAL = timedelta(seconds=1)
DEFAULT_RETENTION_PERIOD = timedelta(hours=1)

ENV_SAMPLE_INTERVAL = "PGCOLLECTOR_SAMPLE_INTERVAL_SECONDS"
ENV_RETENTION = "PGCOLLECTOR_RETENTION_SECONDS"


def to_timedelta(value: Union[timedelta, int, float]) -> timedelta:
    """Accept a timedelta or a number of seconds."""
    if isinstance(value, timedelta):
        return value
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"Expected timedelta or seconds, got {type(value).__name__}")
    return timedelta(seconds=value)


@dataclass
class SamplerConfig:
    """Configuration for the active session sampler."""
    sample_interval: timedelta = DEFAULT_SAMPLE_INTERVAL
    retention_period: timedelta = DEFAULT_RETENTION_PERIOD

    def __post_init__(self):
        self.sample_interval = to_timedelta(self.sample_interval)
        self.retention_period = to_timedelta(self.retention_period)

        if self.sample_interval <= timedelta(0):
            raise ValueError(f"sample_interval must be positive, got {self.sample_interval}")
        if self.retention_period <= timedelta(0):
            raise ValueError(f"retention_period must be positive, got {self.retention_period}")

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "SamplerConfig":
        """
        Build a config from environment variables.

        Loads a .env file first (without overriding variables already set),
        then reads:
            PGCOLLECTOR_SAMPLE_INTERVAL_SECONDS (default 1)
            PGCOLLECTOR_RETENTION_SECONDS (default 3600)

        Raises:
            ValueError: If a variable is set but is not a positive number
        """
        load_dotenv(dotenv_path)

        return cls(
            sample_interval=_seconds_from_env(ENV_SAMPLE_INTERVAL, DEFAULT_SAMPLE_INTERVAL),
            retention_period=_seconds_from_env(ENV_RETENTION, DEFAULT_RETENTION_PERIOD),
        )


def _seconds_from_env(name: str, default: timedelta) -> timedelta:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return timedelta(seconds=float(raw))
    except ValueError as e:
        raise ValueError(f"{name} must be a number of seconds, got {raw!r}") from e
