"""User-facing guidance for failed deletes.

The guidance table is the single source of truth for retry eligibility:
``RetryPolicy`` consults ``retryable`` here rather than hard-coding
categories.
"""

from __future__ import annotations

from types import MappingProxyType

from estimate_tracker.core.types import (
    ErrorCategory,
    ErrorGuidance,
    GuidanceAction,
    Severity,
)

from .classifier import classify_error

DEFAULT_MESSAGE_TEMPLATE = 'Failed to delete "{label}".'

_GUIDANCE = MappingProxyType(
    {
        ErrorCategory.NETWORK: ErrorGuidance(
            category=ErrorCategory.NETWORK,
            message="A network error occurred. Check your connection and try again.",
            action=GuidanceAction.RETRY,
            severity=Severity.WARNING,
            retryable=True,
        ),
        ErrorCategory.PERMISSION: ErrorGuidance(
            category=ErrorCategory.PERMISSION,
            message="You do not have permission to delete this. Sign in again and retry.",
            action=GuidanceAction.REAUTH,
            severity=Severity.ERROR,
            retryable=False,
        ),
        ErrorCategory.NOT_FOUND: ErrorGuidance(
            category=ErrorCategory.NOT_FOUND,
            message="The project could not be found. Refresh the page.",
            action=GuidanceAction.REFRESH,
            severity=Severity.INFO,
            retryable=False,
        ),
        ErrorCategory.TIMEOUT: ErrorGuidance(
            category=ErrorCategory.TIMEOUT,
            message="The request timed out. Wait a moment and try again.",
            action=GuidanceAction.RETRY,
            severity=Severity.WARNING,
            retryable=True,
        ),
        ErrorCategory.CONFLICT: ErrorGuidance(
            category=ErrorCategory.CONFLICT,
            message="The data was changed by another user. Refresh the page.",
            action=GuidanceAction.REFRESH,
            severity=Severity.WARNING,
            retryable=False,
        ),
    }
)


class DeleteErrorPolicy:
    """Resolves errors to guidance using a fixed per-category table."""

    def guidance_for(
        self, category: ErrorCategory, entity_label: str = ""
    ) -> ErrorGuidance:
        """Return the guidance entry for ``category``.

        The ``default`` entry is built on demand because its message names
        the entity; an empty label leaves an empty placeholder.
        """
        if category in _GUIDANCE:
            return _GUIDANCE[category]
        return ErrorGuidance(
            category=ErrorCategory.DEFAULT,
            message=DEFAULT_MESSAGE_TEMPLATE.format(label=entity_label),
            action=GuidanceAction.NONE,
            severity=Severity.ERROR,
            retryable=True,
        )

    def resolve(
        self, error: BaseException | None, entity_label: str = ""
    ) -> ErrorGuidance:
        """Classify ``error`` and return the matching guidance."""
        return self.guidance_for(classify_error(error), entity_label)

    def is_retryable(self, error: BaseException | None) -> bool:
        """Whether the table allows retrying ``error``."""
        return self.resolve(error).retryable


_default_policy = DeleteErrorPolicy()


def resolve_delete_error(
    error: BaseException | None, entity_label: str = ""
) -> ErrorGuidance:
    """Module-level shortcut for ``DeleteErrorPolicy().resolve``."""
    return _default_policy.resolve(error, entity_label)
