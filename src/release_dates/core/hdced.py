"""Home detention curfew eligibility date (HDCED)."""

from __future__ import annotations

import logging
from datetime import date, timedelta
from math import ceil

from ..config import HdcedConfiguration
from .calculation import SentenceCalculation
from .sentences import Sentence, has_sds_plus, is_dto
from .types import Offender, ReleaseDateCalculationBreakdown

logger = logging.getLogger(__name__)


def hdced_applies(sentence: Sentence, offender: Offender) -> bool:
    if offender.is_active_sex_offender:
        logger.debug("HDCED does not apply: sex offender")
        return False
    if is_dto(sentence):
        logger.debug("HDCED does not apply: DTO")
        return False
    if has_sds_plus(sentence):
        logger.debug("HDCED does not apply: SDS+")
        return False
    return True


def added_days(calculation: SentenceCalculation) -> int:
    return (
        calculation.ual_days
        + calculation.awarded_days
        - calculation.unused_release_ada
        - calculation.served_ada_days
    )


def calculate_hdced(
    sentence: Sentence,
    calculation: SentenceCalculation,
    offender: Offender,
    config: HdcedConfiguration,
) -> tuple[date, ReleaseDateCalculationBreakdown] | None:
    """HDCED under the 180 day rules or the 365 day rules.

    The earlier rules stand when they give a date before the 365 day rules
    commenced. Otherwise the later rules apply, but never before their
    commencement date.
    """
    if not hdced_applies(sentence, offender):
        return None

    minimum_date = sentence.sentenced_at + timedelta(days=config.minimum_days_on_hdc)
    if calculation.adjusted_release_date < minimum_date:
        return None
    if calculation.days_to_release < config.minimum_custodial_period_days:
        return None

    pre_hdc365, pre_breakdown = _hdced_under_rules(
        sentence,
        calculation,
        config,
        config.custodial_period_mid_point_days_pre_hdc365,
        config.custodial_period_above_midpoint_deduction_days_pre_hdc365,
        frozenset({"HDC_180"}),
    )
    commencement = config.hdc365_commencement_date
    if pre_hdc365 < commencement:
        return pre_hdc365, pre_breakdown

    post_hdc365, post_breakdown = _hdced_under_rules(
        sentence,
        calculation,
        config,
        config.custodial_period_mid_point_days_post_hdc365,
        config.custodial_period_above_midpoint_deduction_days_post_hdc365,
    )
    if post_hdc365 < commencement:
        logger.debug("%s HDCED %s moved to 365 day commencement", sentence.describe(), post_hdc365)
        post_breakdown.rules = post_breakdown.rules | {"HDCED_ADJUSTED_TO_365_COMMENCEMENT"}
        post_breakdown.release_date = commencement
        return commencement, post_breakdown
    return post_hdc365, post_breakdown


def _hdced_under_rules(
    sentence: Sentence,
    calculation: SentenceCalculation,
    config: HdcedConfiguration,
    mid_point_days: int,
    above_midpoint_deduction_days: int,
    extra_rules: frozenset[str] = frozenset(),
) -> tuple[date, ReleaseDateCalculationBreakdown]:
    custodial_period = calculation.days_to_release
    sentenced_at = sentence.sentenced_at
    minimum_date = sentenced_at + timedelta(days=config.minimum_days_on_hdc)
    added = added_days(calculation)
    adjusted = added - calculation.deducted_days

    if custodial_period < mid_point_days:
        rule = "HDCED_GE_MIN_PERIOD_LT_MIDPOINT"
        offset = max(config.custodial_period_below_midpoint_minimum_deduction_days, ceil(custodial_period / 2))
        hdced = sentenced_at + timedelta(days=offset + adjusted)
        breakdown = ReleaseDateCalculationBreakdown(
            release_date=hdced,
            unadjusted_date=sentenced_at,
            rules=frozenset({rule}) | extra_rules,
            rules_with_extra_adjustments={rule: (offset, "days")},
            adjusted_days=adjusted,
        )
    else:
        rule = "HDCED_GE_MIDPOINT_LT_MAX_PERIOD"
        hdced = sentenced_at + timedelta(days=custodial_period - (above_midpoint_deduction_days + 1) + adjusted)
        breakdown = ReleaseDateCalculationBreakdown(
            release_date=hdced,
            unadjusted_date=hdced + timedelta(days=above_midpoint_deduction_days),
            rules=frozenset({rule}) | extra_rules,
            rules_with_extra_adjustments={rule: (-above_midpoint_deduction_days, "days")},
            adjusted_days=adjusted,
        )

    # Judged before additional days are added back on.
    if minimum_date >= hdced - timedelta(days=added):
        hdced = minimum_date + timedelta(days=added)
        breakdown = ReleaseDateCalculationBreakdown(
            release_date=hdced,
            unadjusted_date=sentenced_at,
            rules=frozenset({"HDCED_MINIMUM_CUSTODIAL_PERIOD", rule}) | extra_rules,
            rules_with_extra_adjustments={"HDCED_MINIMUM_CUSTODIAL_PERIOD": (config.minimum_days_on_hdc, "days")},
            adjusted_days=added,
        )
    return hdced, breakdown
