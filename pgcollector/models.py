"""
Record types shared by extension detection and session sampling.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Sequence


@dataclass
class ExtensionInfo:
    """
    One installed PostgreSQL extension.

    Attributes:
        name: Extension name (unique within a detection snapshot)
        version: Installed version string as reported by pg_extension
        enabled: Detection implies presence, so this is True for detected entries
    """

    name: str
    version: str
    enabled: bool = True

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "version": self.version,
            "enabled": self.enabled,
        }


@dataclass(frozen=True)
class ActiveSessionSample:
    """
    Snapshot of one non-idle backend captured at a specific instant.

    Attributes:
        process_id: Backend pid
        user_name: Role the backend is connected as
        database_name: Database the backend is connected to
        query_id: Query identifier (None before PG 14 or when compute_query_id is off)
        session_state: pg_stat_activity.state (active, idle in transaction, ...)
        wait_event_type: Wait event class, if waiting
        wait_event: Wait event name, if waiting
        query_text: Text of the current or most recent query
        backend_type: client backend, autovacuum worker, walsender, ...
        sample_time: Capture timestamp shared by every sample of one tick
    """

    process_id: int
    user_name: Optional[str]
    database_name: Optional[str]
    query_id: Optional[int]
    session_state: Optional[str]
    wait_event_type: Optional[str]
    wait_event: Optional[str]
    query_text: Optional[str]
    backend_type: Optional[str]
    sample_time: datetime

    @classmethod
    def from_row(cls, row: Sequence[Any]) -> "ActiveSessionSample":
        """
        Build a sample from a pg_stat_activity result row.

        Expects the column order of the sampler's activity query:
        (pid, usename, datname, query_id, state, wait_event_type,
        wait_event, query, backend_type, sample_time).

        Raises:
            ValueError: If the row does not have exactly ten columns
            TypeError: If pid or sample_time have the wrong type
        """
        if len(row) != 10:
            raise ValueError(f"Expected 10 columns in activity row, got {len(row)}")

        sample_time = row[9]
        if not isinstance(sample_time, datetime):
            raise TypeError(f"sample_time must be a datetime, got {type(sample_time).__name__}")

        return cls(
            process_id=int(row[0]),
            user_name=row[1],
            database_name=row[2],
            query_id=int(row[3]) if row[3] is not None else None,
            session_state=row[4],
            wait_event_type=row[5],
            wait_event=row[6],
            query_text=row[7],
            backend_type=row[8],
            sample_time=sample_time,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "process_id": self.process_id,
            "user_name": self.user_name,
            "database_name": self.database_name,
            "query_id": self.query_id,
            "session_state": self.session_state,
            "wait_event_type": self.wait_event_type,
            "wait_event": self.wait_event,
            "query_text": self.query_text,
            "backend_type": self.backend_type,
            "sample_time": self.sample_time.isoformat(),
        }
