"""HDCED under the extended (four years and over) eligibility rules."""

from __future__ import annotations

import logging
from datetime import date, timedelta
from math import ceil

from ..config import Hdced4PlusConfiguration
from .calculation import SentenceCalculation
from .duration import days_in
from .sentences import (
    ConsecutiveSentence,
    duration_is_at_least,
    duration_is_less_than,
    is_dto,
    is_recall,
    is_sds_plus,
    length_in_days,
    total_duration,
)
from .sentences import Sentence
from .types import Offender, ReleaseDateCalculationBreakdown

logger = logging.getLogger(__name__)

MINIMUM_PERIOD_DAYS = 28


def hdced4_applies(sentence: Sentence, offender: Offender, config: Hdced4PlusConfiguration) -> bool:
    return (
        duration_is_at_least(sentence, config.envelope_minimum_weeks, "weeks")
        and not offender.is_active_sex_offender
        and not is_dto(sentence)
        and not is_sds_plus(sentence)
        and not is_recall(sentence)
    )


def calculate_hdced4(
    sentence: Sentence,
    calculation: SentenceCalculation,
    offender: Offender,
    config: Hdced4PlusConfiguration,
) -> tuple[date, ReleaseDateCalculationBreakdown] | None:
    if not hdced4_applies(sentence, offender, config):
        return None
    sentenced_at = sentence.sentenced_at
    minimum_date = sentenced_at + timedelta(days=config.minimum_custodial_period_days)
    if calculation.adjusted_release_date < minimum_date:
        return None

    adjusted = (
        calculation.ual_days
        + calculation.awarded_days
        - calculation.deducted_days
        - calculation.unused_release_ada
    )

    if isinstance(sentence, ConsecutiveSentence) and any(is_sds_plus(s) for s in sentence.ordered_sentences):
        hdced4 = _mixed_sds_plus_chain(sentence, calculation, config)
        return hdced4, ReleaseDateCalculationBreakdown(
            release_date=hdced4,
            unadjusted_date=sentenced_at,
            rules=frozenset({"CONSECUTIVE_SENTENCE_HDCED_CALCULATION"}),
            rules_with_extra_adjustments={
                "HDCED_MINIMUM_CUSTODIAL_PERIOD": (config.minimum_custodial_period_days, "days")
            },
        )

    if duration_is_less_than(sentence, config.envelope_mid_point_months, "months"):
        rule = "HDCED_GE_MIN_PERIOD_LT_MIDPOINT"
        offset = max(MINIMUM_PERIOD_DAYS, ceil(calculation.days_to_expiry / 4))
        hdced4 = sentenced_at + timedelta(days=offset + adjusted)
        breakdown = ReleaseDateCalculationBreakdown(
            release_date=hdced4,
            unadjusted_date=sentenced_at,
            rules=frozenset({rule}),
            rules_with_extra_adjustments={rule: (offset, "days")},
            adjusted_days=adjusted,
        )
    else:
        rule = "HDCED_GE_MIDPOINT_LT_MAX_PERIOD"
        hdced4 = sentenced_at + timedelta(days=calculation.days_to_release - (config.deduction_days + 1) + adjusted)
        breakdown = ReleaseDateCalculationBreakdown(
            release_date=hdced4,
            unadjusted_date=hdced4 + timedelta(days=config.deduction_days),
            rules=frozenset({rule}),
            rules_with_extra_adjustments={rule: (-config.deduction_days, "days")},
            adjusted_days=adjusted,
        )

    if minimum_date >= hdced4:
        return minimum_date, ReleaseDateCalculationBreakdown(
            release_date=minimum_date,
            unadjusted_date=sentenced_at,
            rules=frozenset({"HDCED_MINIMUM_CUSTODIAL_PERIOD", rule}),
            rules_with_extra_adjustments={
                "HDCED_MINIMUM_CUSTODIAL_PERIOD": (config.minimum_custodial_period_days, "days")
            },
        )
    return hdced4, breakdown


def _mixed_sds_plus_chain(
    sentence: ConsecutiveSentence,
    calculation: SentenceCalculation,
    config: Hdced4PlusConfiguration,
) -> date:
    """SDS+ terms are served to a notional CRD first; eligibility runs on the remainder."""
    sds_plus = [s for s in sentence.ordered_sentences if is_sds_plus(s)]
    others = [s for s in sentence.ordered_sentences if not is_sds_plus(s)]
    sds_plus_days = sum(length_in_days(s) for s in sds_plus)
    notional_crd = sentence.sentenced_at - timedelta(days=1) + timedelta(days=ceil(sds_plus_days * 2 / 3))
    remaining_days = sum(total_duration(s).length_in_days(notional_crd) for s in others)
    logger.debug("SDS+ notional CRD %s, %d day(s) remaining", notional_crd, remaining_days)

    midpoint_days = days_in(notional_crd, config.envelope_mid_point_months, "months")
    if remaining_days < midpoint_days:
        offset = max(MINIMUM_PERIOD_DAYS, ceil(remaining_days / 4))
        return notional_crd + timedelta(days=1 + offset - calculation.deducted_days + calculation.ual_days)
    return calculation.release_date - timedelta(days=config.deduction_days)
