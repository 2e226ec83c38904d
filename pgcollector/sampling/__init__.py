"""Background sampling of active PostgreSQL sessions."""

from .rwlock import ReadWriteLock
from .sampler import (
    ACTIVE_SESSIONS_QUERY,
    LEGACY_ACTIVE_SESSIONS_QUERY,
    ActiveSessionSampler,
    SamplerStats,
    active_sessions_query,
)

__all__ = [
    "ActiveSessionSampler",
    "SamplerStats",
    "ReadWriteLock",
    "ACTIVE_SESSIONS_QUERY",
    "LEGACY_ACTIVE_SESSIONS_QUERY",
    "active_sessions_query",
]
