"""Exception hierarchy for the estimate tracker."""


class EstimateTrackerError(Exception):
    """Base exception for estimate tracker errors."""


class DeleteFailedError(EstimateTrackerError):
    """Raised when a delete operation resolves without deleting anything.

    The remote delete reported an application-level "not deleted" outcome
    (a falsy result) rather than raising a transport or permission error.
    """

    def __init__(self, entity_id: str, message: str = "Delete operation failed"):
        """Initialize with the id of the entity that was not deleted."""
        self.entity_id = entity_id
        super().__init__(message)


class ConfigurationError(EstimateTrackerError):
    """Raised when configuration values fail validation."""


class LeakDetectionError(EstimateTrackerError):
    """Raised when periodic leak detection cannot be started."""
