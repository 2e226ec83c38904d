"""
Collector error taxonomy.

Every failure that reaches a caller of extension detection is wrapped in a
single CollectorError that records which layer failed (connection, query
execution, or row decoding) and keeps the underlying exception as its cause.
"""

from enum import Enum
from typing import Any, Dict, Optional

import psycopg2
import psycopg2.pool


class ErrorKind(Enum):
    """Layer at which a database interaction failed."""
    CONNECTION = "CONNECTION"   # Pool exhausted or connection unavailable
    QUERY = "QUERY"             # Statement execution or parse failure
    DECODE = "DECODE"           # Row-to-record mapping failure


# Exceptions raised by our own row mapping code
DECODE_ERRORS = (KeyError, IndexError, TypeError, ValueError)


class CollectorError(Exception):
    """
    Collector-level error wrapping a database-layer failure.

    Attributes:
        kind: ErrorKind describing where the failure happened
        message: Human-readable summary
        cause: The original exception, if any
    """

    def __init__(self, kind: ErrorKind, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        if self.cause is not None:
            return f"[{self.kind.value}] {self.message}: {self.cause}"
        return f"[{self.kind.value}] {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "kind": self.kind.value,
            "message": self.message,
            "cause": type(self.cause).__name__ if self.cause is not None else None,
        }


def classify_database_error(error: BaseException) -> ErrorKind:
    """
    Map an exception raised while talking to PostgreSQL onto an ErrorKind.

    PoolError and the connection-level psycopg2 errors are checked before the
    generic psycopg2.Error since they are subclasses of it.
    """
    if isinstance(error, CollectorError):
        return error.kind
    if isinstance(error, psycopg2.pool.PoolError):
        return ErrorKind.CONNECTION
    if isinstance(error, (psycopg2.OperationalError, psycopg2.InterfaceError)):
        return ErrorKind.CONNECTION
    if isinstance(error, psycopg2.Error):
        return ErrorKind.QUERY
    if isinstance(error, DECODE_ERRORS):
        return ErrorKind.DECODE
    # Anything else coming out of a driver call is treated as a query failure
    return ErrorKind.QUERY


def wrap_database_error(error: BaseException, message: str) -> CollectorError:
    """Wrap an arbitrary exception as a CollectorError, preserving the cause."""
    if isinstance(error, CollectorError):
        return error
    return CollectorError(classify_database_error(error), message, cause=error)
