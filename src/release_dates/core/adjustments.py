"""Booking adjustments and the window used to attribute them to a sentence."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable

from .types import AdjustmentType


@dataclass(slots=True, frozen=True)
class Adjustment:
    number_of_days: int
    applies_to_sentences_from: date
    from_date: date | None = None
    to_date: date | None = None


@dataclass(slots=True, frozen=True)
class AdjustmentWindow:
    """Entries count when ``after < applies_to_sentences_from <= before``.

    An open bound is ``None``.
    """

    after: date | None = None
    before: date | None = None

    def contains(self, on: date) -> bool:
        if self.after is not None and on <= self.after:
            return False
        if self.before is not None and on > self.before:
            return False
        return True


class Adjustments:
    def __init__(self, entries: dict[str, list[Adjustment]] | None = None):
        self._entries: dict[str, list[Adjustment]] = {
            adjustment_type: list(values) for adjustment_type, values in (entries or {}).items()
        }

    def add(self, adjustment_type: AdjustmentType, adjustment: Adjustment) -> None:
        self._entries.setdefault(adjustment_type, []).append(adjustment)

    def get(self, adjustment_type: AdjustmentType) -> list[Adjustment]:
        return list(self._entries.get(adjustment_type, []))

    def total_days(
        self,
        types: Iterable[AdjustmentType],
        window: AdjustmentWindow | None = None,
        applies_on_or_before: date | None = None,
    ) -> int:
        total = 0
        for adjustment_type in types:
            for adjustment in self._entries.get(adjustment_type, []):
                if window is not None and not window.contains(adjustment.applies_to_sentences_from):
                    continue
                if applies_on_or_before is not None and adjustment.applies_to_sentences_from > applies_on_or_before:
                    continue
                total += adjustment.number_of_days
        return total

    def __len__(self) -> int:
        return sum(len(v) for v in self._entries.values())
