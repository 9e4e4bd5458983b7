"""Top-up supervision expiry date (TUSED)."""

from __future__ import annotations

from datetime import date, timedelta

from .calculation import SentenceCalculation
from .sentences import Sentence
from .types import TWELVE_MONTHS, Offender, ReleaseDateCalculationBreakdown

ADULT_AGE = 18


def calculate_tused(
    sentence: Sentence,
    calculation: SentenceCalculation,
    offender: Offender,
) -> tuple[date, ReleaseDateCalculationBreakdown] | None:
    """Twelve months of supervision from release, for adults released on short licences."""
    if "TUSED" not in sentence.release_date_types:
        return None
    if offender.age_on(calculation.release_date_without_awarded) < ADULT_AGE:
        return None

    rules = {"TUSED_LICENCE_PERIOD_LT_1Y"}
    if calculation.is_immediate_release():
        rules.add("IMMEDIATE_RELEASE")
        tused = sentence.sentenced_at + TWELVE_MONTHS
    else:
        tused = calculation.unadjusted_release_date + timedelta(days=calculation.adjusted_days) + TWELVE_MONTHS

    return tused, ReleaseDateCalculationBreakdown(
        release_date=tused,
        unadjusted_date=calculation.unadjusted_release_date,
        rules=frozenset(rules),
        rules_with_extra_adjustments={"TUSED_LICENCE_PERIOD_LT_1Y": (12, "months")},
        adjusted_days=calculation.adjusted_days,
    )
