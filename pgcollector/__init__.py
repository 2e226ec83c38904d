"""
pgcollector: PostgreSQL capability detection and active session sampling

Detects installed server extensions, derives the runtime configuration for
extension-specific metric pipelines, gates those pipelines on installed
capabilities and server version, and samples active sessions into a
retention-bounded in-memory buffer for an exporter to read.
"""

__version__ = "0.1.0"
__author__ = "pgcollector Team"

from .config import SamplerConfig
from .errors import CollectorError, ErrorKind
from .extensions import (
    CompatibilityMatrix,
    EligibilityEvaluator,
    ExtensionConfig,
    ExtensionManager,
    PgStatMonitorConfig,
    PgStatStatementsConfig,
    PgWaitSamplingConfig,
    VersionRule,
)
from .models import ActiveSessionSample, ExtensionInfo
from .sampling import ActiveSessionSampler, SamplerStats

__all__ = [
    "ExtensionInfo",
    "ActiveSessionSample",
    "ExtensionConfig",
    "PgStatStatementsConfig",
    "PgStatMonitorConfig",
    "PgWaitSamplingConfig",
    "ExtensionManager",
    "EligibilityEvaluator",
    "CompatibilityMatrix",
    "VersionRule",
    "ActiveSessionSampler",
    "SamplerStats",
    "SamplerConfig",
    "CollectorError",
    "ErrorKind",
    "__version__",
]
