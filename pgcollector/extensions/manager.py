"""Extension detection for PostgreSQL.

Detects installed extensions and derives the runtime configuration for
extension-specific metric pipelines. Presence alone decides detection; the
compatibility policy decides which installed extensions get enabled.
"""

import json
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, List, Optional

from ..config import (
    PG_STAT_MONITOR_ENABLE_QUERY_PLAN,
    PG_STAT_MONITOR_NORMALIZE_QUERIES,
    PG_STAT_STATEMENTS_MAX,
    PG_STAT_STATEMENTS_TRACK,
    PG_WAIT_SAMPLING_PERIOD,
)
from ..errors import DECODE_ERRORS, CollectorError, ErrorKind, wrap_database_error
from ..models import ExtensionInfo
from .compatibility import CompatibilityMatrix

logger = logging.getLogger(__name__)

PG_STAT_STATEMENTS = "pg_stat_statements"
PG_STAT_MONITOR = "pg_stat_monitor"
PG_WAIT_SAMPLING = "pg_wait_sampling"

EXTENSIONS_QUERY = "SELECT extname, extversion FROM pg_extension"


@dataclass
class PgStatStatementsConfig:
    """Runtime settings for pg_stat_statements."""
    version: str
    track_scope: str = PG_STAT_STATEMENTS_TRACK
    max_tracked: int = PG_STAT_STATEMENTS_MAX

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "track_scope": self.track_scope,
            "max_tracked": self.max_tracked,
        }


@dataclass
class PgStatMonitorConfig:
    """Runtime settings for pg_stat_monitor."""
    version: str
    normalize_queries: bool = PG_STAT_MONITOR_NORMALIZE_QUERIES
    enable_query_plan: bool = PG_STAT_MONITOR_ENABLE_QUERY_PLAN

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "normalize_queries": self.normalize_queries,
            "enable_query_plan": self.enable_query_plan,
        }


@dataclass
class PgWaitSamplingConfig:
    """Runtime settings for pg_wait_sampling."""
    version: str
    sample_period: timedelta = PG_WAIT_SAMPLING_PERIOD

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "sample_period_ms": int(self.sample_period / timedelta(milliseconds=1)),
        }


@dataclass
class ExtensionConfig:
    """
    Runtime configuration derived from installed extensions.

    Attributes:
        pg_stat_statements: Present when pg_stat_statements is installed
        pg_stat_monitor: Present when pg_stat_monitor is installed and compatible
        pg_wait_sampling: Present when pg_wait_sampling is installed
    """

    pg_stat_statements: Optional[PgStatStatementsConfig] = None
    pg_stat_monitor: Optional[PgStatMonitorConfig] = None
    pg_wait_sampling: Optional[PgWaitSamplingConfig] = None

    def enabled_extensions(self) -> List[str]:
        """Names of the extensions that received a configuration."""
        names = []
        if self.pg_stat_statements is not None:
            names.append(PG_STAT_STATEMENTS)
        if self.pg_stat_monitor is not None:
            names.append(PG_STAT_MONITOR)
        if self.pg_wait_sampling is not None:
            names.append(PG_WAIT_SAMPLING)
        return names

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            PG_STAT_STATEMENTS: self.pg_stat_statements.to_dict() if self.pg_stat_statements else None,
            PG_STAT_MONITOR: self.pg_stat_monitor.to_dict() if self.pg_stat_monitor else None,
            PG_WAIT_SAMPLING: self.pg_wait_sampling.to_dict() if self.pg_wait_sampling else None,
        }

    def to_json(self, indent: int = 2) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExtensionConfig":
        """Rebuild a config from the output of to_dict()."""
        config = cls()

        statements = data.get(PG_STAT_STATEMENTS)
        if statements:
            config.pg_stat_statements = PgStatStatementsConfig(
                version=statements["version"],
                track_scope=statements["track_scope"],
                max_tracked=statements["max_tracked"],
            )

        monitor = data.get(PG_STAT_MONITOR)
        if monitor:
            config.pg_stat_monitor = PgStatMonitorConfig(
                version=monitor["version"],
                normalize_queries=monitor["normalize_queries"],
                enable_query_plan=monitor["enable_query_plan"],
            )

        wait_sampling = data.get(PG_WAIT_SAMPLING)
        if wait_sampling:
            config.pg_wait_sampling = PgWaitSamplingConfig(
                version=wait_sampling["version"],
                sample_period=timedelta(milliseconds=wait_sampling["sample_period_ms"]),
            )

        return config


class ExtensionManager:
    """
    Detects installed extensions and derives their runtime configuration.

    Keeps the most recent detection snapshot so pipeline schedulers can feed
    it to EligibilityEvaluator. Each instance is independent.
    """

    def __init__(self, compatibility_matrix: Optional[CompatibilityMatrix] = None):
        if compatibility_matrix is None:
            compatibility_matrix = CompatibilityMatrix()
        self.compatibility_matrix = compatibility_matrix
        self._extensions: Dict[str, ExtensionInfo] = {}

    @property
    def extensions(self) -> Dict[str, ExtensionInfo]:
        """Copy of the last detected extension snapshot."""
        return dict(self._extensions)

    def detect_installed_extensions(self, connection) -> Dict[str, ExtensionInfo]:
        """
        Query pg_extension for every installed extension.

        Args:
            connection: Open psycopg2 connection

        Returns:
            Dict of extension name -> ExtensionInfo

        Raises:
            CollectorError: If the cursor cannot be opened, the query fails,
                or a row cannot be decoded
        """
        try:
            with connection.cursor() as cur:
                cur.execute(EXTENSIONS_QUERY)
                rows = cur.fetchall()
        except Exception as e:
            raise wrap_database_error(e, "Failed to query installed extensions") from e

        extensions: Dict[str, ExtensionInfo] = {}
        try:
            for name, version in rows:
                if not isinstance(name, str) or not isinstance(version, str):
                    raise TypeError(f"Unexpected extension row: {(name, version)!r}")
                extensions[name] = ExtensionInfo(name=name, version=version, enabled=True)
        except DECODE_ERRORS as e:
            raise CollectorError(ErrorKind.DECODE, "Failed to decode pg_extension row", cause=e) from e

        logger.debug(f"Detected {len(extensions)} installed extensions")
        return extensions

    def detect_and_configure(self, connection) -> ExtensionConfig:
        """
        Detect installed extensions and derive the runtime configuration.

        Replaces the stored snapshot with the fresh detection result. On
        failure the previous snapshot is kept and CollectorError propagates.

        The snapshot records what is installed, not what was configured: a
        pg_stat_monitor rejected by the compatibility policy is still stored
        with enabled=True, so individual_query_metrics_eligible() on
        self.extensions reports it eligible. Check the returned config
        (config.pg_stat_monitor) when the policy decision matters.
        """
        installed = self.detect_installed_extensions(connection)
        config = ExtensionConfig()

        statements = installed.get(PG_STAT_STATEMENTS)
        if statements:
            config.pg_stat_statements = PgStatStatementsConfig(version=statements.version)

        monitor = installed.get(PG_STAT_MONITOR)
        if monitor:
            if self.compatibility_matrix.is_compatible(PG_STAT_MONITOR, monitor.version):
                config.pg_stat_monitor = PgStatMonitorConfig(version=monitor.version)
            else:
                logger.warning(
                    f"{PG_STAT_MONITOR} {monitor.version} is installed but not compatible; skipping"
                )

        wait_sampling = installed.get(PG_WAIT_SAMPLING)
        if wait_sampling:
            config.pg_wait_sampling = PgWaitSamplingConfig(version=wait_sampling.version)

        self._extensions = installed
        logger.info(f"Configured extensions: {', '.join(config.enabled_extensions()) or 'none'}")
        return config
