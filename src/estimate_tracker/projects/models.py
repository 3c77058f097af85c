"""Project records as held by the estimate tables."""

from __future__ import annotations

import dataclasses
from datetime import date, datetime
from decimal import Decimal
from typing import Any


@dataclasses.dataclass(frozen=True, slots=True, weakref_slot=True)
class ProjectRecord:
    """One row of the projects table.

    Amounts are kept as given by the backend (numbers or numeric strings);
    the metric helpers coerce them. ``created_at`` orders rollback
    reinsertion newest-first.
    """

    id: str
    title: str
    client: str = ""
    net_amount: float | Decimal | str | None = None
    customer_amount: float | Decimal | str | None = None
    submission_date: date | str | None = None
    created_at: datetime | str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> ProjectRecord:
        """Build a record from a backend row, ignoring unknown columns."""
        names = {f.name for f in dataclasses.fields(cls)}
        values = {k: v for k, v in row.items() if k in names}
        values["id"] = str(values["id"])
        return cls(**values)
