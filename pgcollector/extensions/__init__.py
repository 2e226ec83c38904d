"""PostgreSQL extension detection, compatibility policy and eligibility gates."""

from .compatibility import CompatibilityMatrix, VersionRule, parse_version
from .eligibility import EligibilityEvaluator
from .manager import (
    ExtensionConfig,
    ExtensionManager,
    PgStatMonitorConfig,
    PgStatStatementsConfig,
    PgWaitSamplingConfig,
)

__all__ = [
    "CompatibilityMatrix",
    "VersionRule",
    "parse_version",
    "EligibilityEvaluator",
    "ExtensionConfig",
    "ExtensionManager",
    "PgStatStatementsConfig",
    "PgStatMonitorConfig",
    "PgWaitSamplingConfig",
]
