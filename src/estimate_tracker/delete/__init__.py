"""Enhanced delete: optimistic updates, retry with backoff, rollback, statistics."""

from .classifier import classify_error
from .confirmation import ConfirmationState, ConfirmedDeleteFlow
from .optimistic import OptimisticStateManager
from .orchestrator import DeleteOrchestrator
from .policy import DeleteErrorPolicy, resolve_delete_error
from .retry import RetryPolicy
from .stats import DeleteStatisticsCollector

__all__ = [
    "ConfirmationState",
    "ConfirmedDeleteFlow",
    "DeleteErrorPolicy",
    "DeleteOrchestrator",
    "DeleteStatisticsCollector",
    "OptimisticStateManager",
    "RetryPolicy",
    "classify_error",
    "resolve_delete_error",
]
