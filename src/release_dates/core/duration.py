"""Calendar-unit durations and their aggregation across consecutive terms.

A duration such as "2 years 6 months 22 days" has no fixed length in days:
one month from 31 January is 28 days while one month from 28 February is 31.
Lengths are therefore always measured from a start date.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta

from dateutil.relativedelta import relativedelta

from .types import TimeUnit

LARGE_UNITS: frozenset[str] = frozenset({"months", "years"})
SMALL_UNITS: frozenset[str] = frozenset({"days", "weeks"})


def add_units(start: date, count: int, unit: TimeUnit) -> date:
    return start + relativedelta(**{unit: count})


def days_in(start: date, count: int, unit: TimeUnit) -> int:
    """Number of days spanned by ``count`` ``unit`` starting at ``start``."""
    return (add_units(start, count, unit) - start).days


@dataclass(slots=True)
class Duration:
    elements: dict[str, int] = field(default_factory=dict)

    @classmethod
    def of(cls, **units: int) -> Duration:
        """Build from keyword units, keeping the given order and skipping zeros."""
        duration = cls()
        for unit, count in units.items():
            if count:
                duration.append(count, unit)
        return duration

    def append(self, count: int, unit: str) -> None:
        if unit not in ("days", "weeks", "months", "years"):
            raise ValueError(f"unknown duration unit {unit!r}")
        self.elements[unit] = self.elements.get(unit, 0) + count

    def append_all(self, other: Duration) -> Duration:
        for unit, count in other.elements.items():
            self.append(count, unit)
        return self

    def copy(self) -> Duration:
        return Duration(dict(self.elements))

    def is_empty(self) -> bool:
        return not any(self.elements.values())

    def end_date(self, start: date) -> date:
        calculated = start - timedelta(days=1)
        for unit, count in self.elements.items():
            calculated = add_units(calculated, count, unit)
        return calculated

    def length_in_days(self, start: date) -> int:
        return (self.end_date(start) - start).days + 1

    def has_months_or_years(self) -> bool:
        return any(unit in LARGE_UNITS for unit in self.elements)

    def has_days_or_weeks(self) -> bool:
        return any(unit in SMALL_UNITS for unit in self.elements)

    def large_part(self) -> Duration:
        return Duration({u: c for u, c in self.elements.items() if u in LARGE_UNITS and c})

    def small_part(self) -> Duration:
        return Duration({u: c for u, c in self.elements.items() if u in SMALL_UNITS and c})

    def __str__(self) -> str:
        parts = []
        for unit, count in self.elements.items():
            if count:
                parts.append(f"{count} {unit[:-1] if count == 1 else unit}")
        return " ".join(parts) or "0 days"


class DurationAggregator:
    """Aggregates the durations of consecutive terms.

    Runs of months/years merge together, as do runs of days/weeks; a change of
    unit family starts a new block. ``[3m, 3w, 3m, 5m]`` aggregates to
    ``[3m, 3w, 8m]`` and ``[3y, 4m, 5m]`` to ``[3y 9m]``.
    """

    def __init__(self, durations: list[Duration]):
        self.durations = durations

    def aggregate(self) -> list[Duration]:
        aggregated: list[Duration] = []
        working: Duration | None = None
        for duration in self.durations:
            for part, same_family in (
                (duration.large_part(), Duration.has_months_or_years),
                (duration.small_part(), Duration.has_days_or_weeks),
            ):
                if part.is_empty():
                    continue
                if working is None:
                    working = part
                elif same_family(working):
                    working.append_all(part)
                else:
                    aggregated.append(working)
                    working = part
        if working is not None:
            aggregated.append(working)
        return aggregated

    def calculate_days(self, start: date) -> int:
        cursor = start
        for block in self.aggregate():
            cursor = cursor + timedelta(days=block.length_in_days(cursor))
        return (cursor - start).days
