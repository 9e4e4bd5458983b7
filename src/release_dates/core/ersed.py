"""Early removal scheme eligibility date (ERSED)."""

from __future__ import annotations

from datetime import date, timedelta
from math import ceil

from ..config import ErsedConfiguration
from .calculation import SentenceCalculation
from .sentences import Sentence, custodial_length_in_days, is_recall, releases_at_halfway, releases_at_two_thirds
from .types import CalculationOptions, ReleaseDateCalculationBreakdown


def calculate_ersed(
    sentence: Sentence,
    calculation: SentenceCalculation,
    options: CalculationOptions,
    config: ErsedConfiguration,
) -> tuple[date, ReleaseDateCalculationBreakdown] | None:
    if not options.calculate_ersed or is_recall(sentence):
        return None

    if releases_at_halfway(sentence):
        breakdown = _fractional(sentence, calculation, config, config.release_at_halfway_days, 4, "ERSED_HALFWAY")
    elif releases_at_two_thirds(sentence):
        breakdown = _fractional(
            sentence, calculation, config, config.release_at_two_thirds_days, 3, "ERSED_TWO_THIRDS"
        )
    else:
        breakdown = _mixed(sentence, calculation, config)

    if breakdown.release_date < sentence.sentenced_at:
        breakdown = ReleaseDateCalculationBreakdown(
            release_date=sentence.sentenced_at,
            unadjusted_date=sentence.sentenced_at,
            rules=frozenset({"ERSED_BEFORE_SENTENCE_DATE"}),
        )
    return breakdown.release_date, breakdown


def _effective_release(calculation: SentenceCalculation) -> tuple[date, date]:
    """Adjusted and unadjusted release, preferring the parole eligibility date when there is one."""
    if calculation.release_point.days_to_parole_eligibility is not None and calculation.parole_eligibility_date:
        unadjusted = calculation.sentenced_at + timedelta(days=calculation.release_point.days_to_parole_eligibility - 1)
        return calculation.parole_eligibility_date, unadjusted
    return calculation.release_date, calculation.unadjusted_release_date


def _max_period(calculation: SentenceCalculation, config: ErsedConfiguration) -> ReleaseDateCalculationBreakdown:
    release, unadjusted = _effective_release(calculation)
    return ReleaseDateCalculationBreakdown(
        release_date=release - timedelta(days=config.max_period_days),
        unadjusted_date=unadjusted,
        rules=frozenset({"ERSED_MAX_PERIOD"}),
        rules_with_extra_adjustments={"ERSED_MAX_PERIOD": (-config.max_period_days, "days")},
        adjusted_days=(calculation.adjusted_release_date - calculation.unadjusted_release_date).days,
    )


def _adjust(calculation: SentenceCalculation, unadjusted: date) -> date:
    return unadjusted + timedelta(days=calculation.ual_days - calculation.deducted_days + calculation.awarded_days)


def _fractional(
    sentence: Sentence,
    calculation: SentenceCalculation,
    config: ErsedConfiguration,
    threshold_days: int,
    divisor: int,
    rule: str,
) -> ReleaseDateCalculationBreakdown:
    days = custodial_length_in_days(sentence)
    if days >= threshold_days:
        return _max_period(calculation, config)
    unadjusted = sentence.sentenced_at + timedelta(days=ceil(days / divisor))
    ersed = _adjust(calculation, unadjusted)
    return ReleaseDateCalculationBreakdown(
        release_date=ersed,
        unadjusted_date=unadjusted,
        rules=frozenset({rule}),
        adjusted_days=(ersed - unadjusted).days,
    )


def _mixed(
    sentence: Sentence, calculation: SentenceCalculation, config: ErsedConfiguration
) -> ReleaseDateCalculationBreakdown:
    max_period = _max_period(calculation, config)
    _, unadjusted_release = _effective_release(calculation)
    days_until_release = (unadjusted_release - sentence.sentenced_at).days + 1
    unadjusted = sentence.sentenced_at + timedelta(days=ceil(days_until_release / 2))
    ersed = _adjust(calculation, unadjusted)
    if ersed > max_period.release_date:
        return ReleaseDateCalculationBreakdown(
            release_date=ersed,
            unadjusted_date=unadjusted,
            rules=frozenset({"ERSED_MIXED_TERMS"}),
            adjusted_days=(ersed - unadjusted).days,
        )
    return max_period
