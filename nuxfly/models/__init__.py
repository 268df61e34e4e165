"""
nuxfly Domain Models

Clean dataclass-based models for type-safe data handling.
"""

from .config import (
    Instances,
    Volume,
    RuntimeInfo,
    ResolvedConfig,
)
from .buckets import (
    BucketCredentials,
    BucketSummary,
)
from .results import (
    ExecutionResult,
    ValidationResult,
)

__all__ = [
    # Config
    "Instances",
    "Volume",
    "RuntimeInfo",
    "ResolvedConfig",
    # Buckets
    "BucketCredentials",
    "BucketSummary",
    # Results
    "ExecutionResult",
    "ValidationResult",
]
