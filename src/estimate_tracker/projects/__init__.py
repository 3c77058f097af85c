"""Project records and the metrics derived from them."""

from .metrics import (
    ClientAggregate,
    ProjectSummary,
    aggregate_by_client,
    calculate_days_passed,
    calculate_profit_rate,
    format_currency,
    summarize_projects,
)
from .models import ProjectRecord

__all__ = [
    "ClientAggregate",
    "ProjectRecord",
    "ProjectSummary",
    "aggregate_by_client",
    "calculate_days_passed",
    "calculate_profit_rate",
    "format_currency",
    "summarize_projects",
]
