"""Derived financial metrics for project estimates."""

from __future__ import annotations

from collections.abc import Iterable
import dataclasses
from datetime import date, datetime
import math
from typing import Any

from .models import ProjectRecord


def _to_float(value: Any) -> float | None:
    """Coerce a backend amount to float; None for missing or non-numeric."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(number) else number


def _to_date(value: date | datetime | str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.fromisoformat(value).date()


def calculate_profit_rate(customer_amount: Any, net_amount: Any) -> str:
    """Customer amount as a percentage of net amount, one decimal.

    Returns "0.0" when the net amount is zero or missing.
    """
    net = _to_float(net_amount)
    if not net:
        return "0.0"
    customer = _to_float(customer_amount) or 0.0
    return f"{customer / net * 100:.1f}"


def calculate_days_passed(
    submission_date: date | datetime | str, today: date | None = None
) -> int:
    """Whole days since ``submission_date``; time of day is ignored."""
    current = today or date.today()
    return (current - _to_date(submission_date)).days


def format_currency(amount: Any) -> str:
    """Yen amount rounded half up with thousands separators ("¥0" if invalid)."""
    number = _to_float(amount)
    if number is None:
        return "¥0"
    return f"¥{math.floor(number + 0.5):,}"


@dataclasses.dataclass(frozen=True, slots=True)
class ProjectSummary:
    """Totals across all projects."""

    total_projects: int
    total_net_amount: float
    total_customer_amount: float


@dataclasses.dataclass(frozen=True, slots=True)
class ClientAggregate:
    """Per-client totals and the mean of per-project profit rates."""

    client: str
    project_count: int
    total_net_amount: float
    total_customer_amount: float
    average_profit_rate: float


def summarize_projects(projects: Iterable[ProjectRecord]) -> ProjectSummary:
    """Count projects and total their amounts (invalid amounts count as 0)."""
    rows = list(projects)
    return ProjectSummary(
        total_projects=len(rows),
        total_net_amount=sum(_to_float(p.net_amount) or 0.0 for p in rows),
        total_customer_amount=sum(_to_float(p.customer_amount) or 0.0 for p in rows),
    )


def aggregate_by_client(projects: Iterable[ProjectRecord]) -> list[ClientAggregate]:
    """Group projects by client, largest total customer amount first."""
    groups: dict[str, list[ProjectRecord]] = {}
    for project in projects:
        groups.setdefault(project.client, []).append(project)

    aggregates = []
    for client, rows in groups.items():
        rates = [
            float(calculate_profit_rate(p.customer_amount, p.net_amount)) for p in rows
        ]
        aggregates.append(
            ClientAggregate(
                client=client,
                project_count=len(rows),
                total_net_amount=sum(_to_float(p.net_amount) or 0.0 for p in rows),
                total_customer_amount=sum(
                    _to_float(p.customer_amount) or 0.0 for p in rows
                ),
                average_profit_rate=sum(rates) / len(rates),
            )
        )
    return sorted(aggregates, key=lambda a: a.total_customer_amount, reverse=True)
