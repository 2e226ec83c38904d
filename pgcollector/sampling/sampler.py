"""
ActiveSessionSampler - Background sampling of active PostgreSQL sessions.

Polls pg_stat_activity on a fixed interval and keeps the non-idle backends
in a time-ordered in-memory buffer bounded by a retention window.

Failure policy is skip-tick: if a tick cannot check out a connection, run
the query, or decode a row, that tick's work is discarded, counted in
SamplerStats, and sampling continues on the next scheduled tick.
"""

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Callable, Deque, List, Optional, Union

from ..config import SamplerConfig, to_timedelta
from ..errors import CollectorError, wrap_database_error
from ..models import ActiveSessionSample
from .rwlock import ReadWriteLock

logger = logging.getLogger(__name__)

_ACTIVE_SESSIONS_TEMPLATE = """
    SELECT
        pid,
        usename,
        datname,
        {query_id},
        state,
        wait_event_type,
        wait_event,
        query,
        backend_type,
        %s::timestamptz AS sample_time
    FROM pg_stat_activity
    WHERE state != 'idle'
        AND pid != pg_backend_pid()
"""

ACTIVE_SESSIONS_QUERY = _ACTIVE_SESSIONS_TEMPLATE.format(query_id="query_id")

# pg_stat_activity.query_id first appeared in PostgreSQL 14
LEGACY_ACTIVE_SESSIONS_QUERY = _ACTIVE_SESSIONS_TEMPLATE.format(query_id="NULL::bigint AS query_id")
MIN_QUERY_ID_VERSION = 14


def active_sessions_query(server_version: Optional[int] = None) -> str:
    """Activity query for a server major version (None assumes 14+)."""
    if server_version is not None and server_version < MIN_QUERY_ID_VERSION:
        return LEGACY_ACTIVE_SESSIONS_QUERY
    return ACTIVE_SESSIONS_QUERY


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class SamplerStats:
    """
    Tick counters for observing the skip-tick policy.

    Attributes:
        ticks_completed: Ticks whose batch reached the buffer
        ticks_skipped: Ticks discarded after a failure
        last_error: Description of the most recent skipped tick
    """
    ticks_completed: int = 0
    ticks_skipped: int = 0
    last_error: Optional[str] = None


class ActiveSessionSampler:
    """
    Samples active sessions into a retention-bounded buffer.

    One background thread writes; any number of threads may read through
    get_recent_samples(). Database I/O happens outside the buffer lock, and
    the lock is held exclusively only for the append+evict step.

    pg_stat_activity.query_id exists only on PostgreSQL 14+; pass
    server_version for older servers or every tick fails on that column.

    Usage:
        pool = psycopg2.pool.ThreadedConnectionPool(1, 2, dsn)
        sampler = ActiveSessionSampler(pool, timedelta(seconds=1), timedelta(minutes=10))
        sampler.start()
        ...
        samples = sampler.get_recent_samples()
        sampler.stop()
    """

    def __init__(
        self,
        pool,
        sample_interval: Union[timedelta, float],
        retention_period: Union[timedelta, float],
        clock: Optional[Callable[[], datetime]] = None,
        stop_event: Optional[threading.Event] = None,
        server_version: Optional[int] = None,
    ):
        """
        Initialize the sampler.

        Args:
            pool: Connection pool exposing getconn() and putconn(conn)
            sample_interval: Time between ticks (timedelta or seconds)
            retention_period: How long samples stay in the buffer
            clock: Returns the current aware datetime (default: UTC now)
            stop_event: Cooperative stop signal (default: a private Event)
            server_version: Server major version; below 14 query_id is sampled as NULL
        """
        config = SamplerConfig(
            sample_interval=to_timedelta(sample_interval),
            retention_period=to_timedelta(retention_period),
        )
        self.pool = pool
        self.sample_interval = config.sample_interval
        self.retention_period = config.retention_period
        self._clock = clock or utc_now
        self._stop_event = stop_event or threading.Event()
        self.query = active_sessions_query(server_version)

        self._samples: Deque[ActiveSessionSample] = deque()
        self._lock = ReadWriteLock()
        self._last_capture: Optional[datetime] = None

        self._stats = SamplerStats()
        self._stats_lock = threading.Lock()

        self._thread: Optional[threading.Thread] = None

    @classmethod
    def from_config(cls, pool, config: SamplerConfig, **kwargs) -> "ActiveSessionSampler":
        return cls(pool, config.sample_interval, config.retention_period, **kwargs)

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        """Start background sampling."""
        if self._thread is not None:
            raise RuntimeError("ActiveSessionSampler already started")

        self._thread = threading.Thread(
            target=self._sampling_loop,
            name="active-session-sampler",
            daemon=True,
        )
        self._thread.start()
        logger.info(
            f"Active session sampling started "
            f"(interval={self.sample_interval}, retention={self.retention_period})"
        )

    def stop(self, timeout: Optional[float] = None):
        """
        Signal the loop to stop and wait for the in-flight tick to finish.

        Safe to call more than once, and before start().
        """
        self._stop_event.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.warning("Active session sampler did not stop within timeout")
                return
            logger.info("Active session sampling stopped")

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()

    def _sampling_loop(self):
        """Background loop: tick, then wait until the next deadline or stop."""
        interval = self.sample_interval.total_seconds()
        deadline = time.monotonic()

        while not self._stop_event.is_set():
            try:
                self.tick()
            except Exception as e:
                # Skip-tick applies to anything a tick raises, not only database errors
                self._skip_tick(wrap_database_error(e, "Unexpected error during session sampling"))

            deadline += interval
            delay = deadline - time.monotonic()
            if delay < 0:
                # Fell behind; reschedule from now instead of bursting
                deadline = time.monotonic()
                delay = 0
            if self._stop_event.wait(delay):
                break

    def tick(self) -> int:
        """
        Run one sampling step.

        Returns:
            Number of samples captured (0 when the tick was skipped)
        """
        captured_at = self._capture_timestamp()

        try:
            batch = self._capture_active_sessions(captured_at)
        except CollectorError as e:
            self._skip_tick(e)
            with self._lock.write_locked():
                self._evict_expired()
            return 0

        with self._lock.write_locked():
            self._samples.extend(batch)
            self._evict_expired()

        with self._stats_lock:
            self._stats.ticks_completed += 1

        logger.debug(f"Captured {len(batch)} active sessions at {captured_at.isoformat()}")
        return len(batch)

    def _capture_timestamp(self) -> datetime:
        # Clamp so the buffer stays ordered if the wall clock steps backwards
        now = self._clock()
        if self._last_capture is not None and now < self._last_capture:
            now = self._last_capture
        self._last_capture = now
        return now

    def _capture_active_sessions(self, captured_at: datetime) -> List[ActiveSessionSample]:
        """
        Run the activity query on one pooled connection, returning it to the pool afterwards.

        Raises:
            CollectorError: On checkout, query, or decode failure
        """
        try:
            conn = self.pool.getconn()
        except Exception as e:
            raise wrap_database_error(e, "Failed to acquire connection for session sampling") from e

        query_error = None
        try:
            with conn.cursor() as cur:
                cur.execute(self.query, (captured_at,))
                rows = cur.fetchall()
        except Exception as e:
            query_error = wrap_database_error(e, "Failed to query active sessions")

        release_error = self._release_connection(conn)
        if query_error is not None:
            raise query_error from query_error.cause
        if release_error is not None:
            raise release_error from release_error.cause

        try:
            return [ActiveSessionSample.from_row(row) for row in rows]
        except Exception as e:
            raise wrap_database_error(e, "Failed to decode active session row") from e

    def _release_connection(self, conn) -> Optional[CollectorError]:
        """Return conn to the pool; a failure is reported, never raised."""
        try:
            self.pool.putconn(conn)
        except Exception as e:
            logger.warning(f"Failed to return sampling connection to pool: {e}")
            return wrap_database_error(e, "Failed to return connection to pool")
        return None

    def _evict_expired(self):
        """Drop samples older than the retention window. Caller holds the write lock."""
        cutoff = self._clock() - self.retention_period
        while self._samples and self._samples[0].sample_time < cutoff:
            self._samples.popleft()

    def _skip_tick(self, error: CollectorError):
        with self._stats_lock:
            self._stats.ticks_skipped += 1
            self._stats.last_error = str(error)
        logger.warning(f"Skipping active session sample: {error}")

    def get_recent_samples(self) -> List[ActiveSessionSample]:
        """Get a copy of all samples currently within the retention window."""
        with self._lock.read_locked():
            return list(self._samples)

    def stats(self) -> SamplerStats:
        """Get a copy of the tick counters."""
        with self._stats_lock:
            return replace(self._stats)
