"""
Eligibility gates for extension-dependent metric pipelines.

Pure functions over a detection snapshot (and server major version where
relevant). Missing data always means "not eligible".
"""

from typing import Mapping, Optional

from ..models import ExtensionInfo
from .manager import PG_STAT_MONITOR, PG_STAT_STATEMENTS, PG_WAIT_SAMPLING

# Releases that expose blocking information without pg_stat_statements
BLOCKING_WITHOUT_STATEMENTS_VERSIONS = (12, 13)

MIN_QUERY_MONITORING_VERSION = 12


def _is_enabled(extensions: Optional[Mapping[str, ExtensionInfo]], name: str) -> bool:
    if not extensions:
        return False
    info = extensions.get(name)
    return bool(info is not None and info.enabled)


class EligibilityEvaluator:
    """Decides whether each metric pipeline may run."""

    @staticmethod
    def slow_query_metrics_eligible(extensions: Optional[Mapping[str, ExtensionInfo]]) -> bool:
        """Slow query metrics need pg_stat_statements."""
        return _is_enabled(extensions, PG_STAT_STATEMENTS)

    @staticmethod
    def wait_event_metrics_eligible(extensions: Optional[Mapping[str, ExtensionInfo]]) -> bool:
        """Wait event metrics need both pg_stat_statements and pg_wait_sampling."""
        return (
            _is_enabled(extensions, PG_STAT_STATEMENTS)
            and _is_enabled(extensions, PG_WAIT_SAMPLING)
        )

    @staticmethod
    def blocking_session_metrics_eligible(
        extensions: Optional[Mapping[str, ExtensionInfo]],
        version: Optional[int],
    ) -> bool:
        """
        Blocking session metrics.

        PostgreSQL 12 and 13 are always eligible; other versions need
        pg_stat_statements.
        """
        if version in BLOCKING_WITHOUT_STATEMENTS_VERSIONS:
            return True
        return EligibilityEvaluator.slow_query_metrics_eligible(extensions)

    @staticmethod
    def individual_query_metrics_eligible(extensions: Optional[Mapping[str, ExtensionInfo]]) -> bool:
        """Individual query metrics need pg_stat_monitor."""
        return _is_enabled(extensions, PG_STAT_MONITOR)

    @staticmethod
    def version_supports_query_monitoring(version: Optional[int]) -> bool:
        return version is not None and version >= MIN_QUERY_MONITORING_VERSION
