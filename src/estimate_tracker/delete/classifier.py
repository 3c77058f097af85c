"""Classify delete errors into coarse categories by message text."""

from __future__ import annotations

from estimate_tracker.core.types import ErrorCategory

# Checked in order; the first category with a matching token wins.
_CATEGORY_TOKENS: tuple[tuple[ErrorCategory, tuple[str, ...]], ...] = (
    (ErrorCategory.NETWORK, ("network", "fetch", "connection")),
    (ErrorCategory.PERMISSION, ("permission", "unauthorized", "forbidden")),
    (ErrorCategory.NOT_FOUND, ("not found", "404")),
    (ErrorCategory.TIMEOUT, ("timeout",)),
    (ErrorCategory.CONFLICT, ("conflict", "409")),
)


def error_message(error: BaseException | None) -> str:
    """Return the lower-cased message of ``error`` ("" when there is none)."""
    if error is None:
        return ""
    return str(error).lower()


def classify_error(error: BaseException | None) -> ErrorCategory:
    """Map an error to its category.

    Matching is a case-insensitive substring test against the error message.
    Every error classifies; anything unrecognized (including ``None``) is
    ``ErrorCategory.DEFAULT``.
    """
    message = error_message(error)
    for category, tokens in _CATEGORY_TOKENS:
        if any(token in message for token in tokens):
            return category
    return ErrorCategory.DEFAULT
