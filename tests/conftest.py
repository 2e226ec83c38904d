"""
Shared test fixtures for pgcollector tests.
"""

import threading
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, Mock

import pytest


class FakeClock:
    """Controllable UTC clock for driving sampler ticks deterministically."""

    def __init__(self, start: datetime = None):
        self.now = start or datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        self._lock = threading.Lock()

    def __call__(self) -> datetime:
        with self._lock:
            return self.now

    def advance(self, **kwargs):
        with self._lock:
            self.now = self.now + timedelta(**kwargs)


def make_cursor(rows=None, error=None):
    """MagicMock cursor usable as a context manager, like psycopg2's."""
    cursor = MagicMock()
    cursor.__enter__ = Mock(return_value=cursor)
    cursor.__exit__ = Mock(return_value=False)
    if error is not None:
        cursor.execute.side_effect = error
    cursor.fetchall.return_value = rows if rows is not None else []
    return cursor


def make_connection(rows=None, error=None):
    connection = MagicMock()
    connection.cursor.return_value = make_cursor(rows=rows, error=error)
    return connection


def activity_row(pid, sample_time, state="active", query="SELECT 1", **overrides):
    """Row in the column order of the sampler's activity query."""
    row = {
        "pid": pid,
        "usename": "app",
        "datname": "appdb",
        "query_id": 1000 + pid,
        "state": state,
        "wait_event_type": None,
        "wait_event": None,
        "query": query,
        "backend_type": "client backend",
        "sample_time": sample_time,
    }
    row.update(overrides)
    return tuple(row.values())


class FakePool:
    """
    Connection pool stand-in that tracks checkouts.

    Each getconn() hands out a connection whose cursor answers the activity
    query with the rows produced by `sessions(sample_time)`. Queue failures
    with fail_next() to simulate a broken tick.
    """

    def __init__(self, sessions=None):
        self.sessions = sessions or (lambda sample_time: [])
        self.checked_out = 0
        self.getconn_calls = 0
        self.putconn_calls = 0
        self.queries = []
        self._failures = []
        self._putconn_failures = []
        self._lock = threading.Lock()

    def fail_next(self, error, on="execute"):
        if on == "putconn":
            self._putconn_failures.append(error)
        else:
            self._failures.append((on, error))

    def getconn(self):
        with self._lock:
            self.getconn_calls += 1
            failure = self._failures.pop(0) if self._failures else None
            if failure and failure[0] == "getconn":
                raise failure[1]
            self.checked_out += 1

        cursor = make_cursor()
        if failure:
            cursor.execute.side_effect = failure[1]
        else:
            def execute(query, params):
                self.queries.append(query)
                cursor.fetchall.return_value = self.sessions(params[0])
            cursor.execute.side_effect = execute

        connection = MagicMock()
        connection.cursor.return_value = cursor
        return connection

    def putconn(self, conn):
        with self._lock:
            self.putconn_calls += 1
            if self._putconn_failures:
                raise self._putconn_failures.pop(0)
            self.checked_out -= 1


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def fake_pool():
    return FakePool()
