"""Enhanced delete subsystem for the construction estimate tracker."""

import importlib.metadata
import logging

from estimate_tracker.config import FrozenConfig, ResolvedConfig, resolve_config
from estimate_tracker.core.exceptions import (
    ConfigurationError,
    DeleteFailedError,
    EstimateTrackerError,
    LeakDetectionError,
)
from estimate_tracker.core.types import (
    DeleteStats,
    EntitySnapshot,
    ErrorCategory,
    ErrorGuidance,
    GuidanceAction,
    OperationStats,
    Severity,
)
from estimate_tracker.delete import (
    ConfirmedDeleteFlow,
    DeleteErrorPolicy,
    DeleteOrchestrator,
    DeleteStatisticsCollector,
    OptimisticStateManager,
    RetryPolicy,
    classify_error,
    resolve_delete_error,
)
from estimate_tracker.instrumentation import (
    EventEmitter,
    LeakDetector,
    ListenerRegistry,
    PerformanceMonitor,
)
from estimate_tracker.projects import ProjectRecord
from estimate_tracker.telemetry import (
    InMemoryReporter,
    LoggingReporter,
    TelemetryReporter,
)

try:
    __version__ = importlib.metadata.version("estimate-tracker")
except importlib.metadata.PackageNotFoundError:
    __version__ = "development"

# Set up a null handler for the library's root logger.
# This prevents 'No handler found' errors if the consuming app has no logging configured.
logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [  # noqa: RUF022
    # Orchestration
    "DeleteOrchestrator",
    "ConfirmedDeleteFlow",
    # Building blocks
    "OptimisticStateManager",
    "RetryPolicy",
    "DeleteErrorPolicy",
    "DeleteStatisticsCollector",
    "classify_error",
    "resolve_delete_error",
    # Instrumentation
    "PerformanceMonitor",
    "LeakDetector",
    "ListenerRegistry",
    "EventEmitter",
    # Telemetry (extension points)
    "TelemetryReporter",
    "InMemoryReporter",
    "LoggingReporter",
    # Configuration
    "resolve_config",
    "ResolvedConfig",
    "FrozenConfig",
    # Types
    "EntitySnapshot",
    "ProjectRecord",
    "ErrorCategory",
    "ErrorGuidance",
    "GuidanceAction",
    "Severity",
    "DeleteStats",
    "OperationStats",
    # Exceptions
    "EstimateTrackerError",
    "DeleteFailedError",
    "ConfigurationError",
    "LeakDetectionError",
]
