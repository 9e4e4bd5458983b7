"""Core types shared by the calculators."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Literal

from dateutil.relativedelta import relativedelta

ReleaseDateType = Literal[
    "SLED",
    "SED",
    "LED",
    "CRD",
    "ARD",
    "PED",
    "NPD",
    "NCRD",
    "HDCED",
    "HDCED4PLUS",
    "TUSED",
    "PRRD",
    "ERSED",
    "ESED",
    "MTD",
    "ETD",
    "LTD",
]

SentenceIdentificationTrack = Literal[
    "SDS_BEFORE_CJA_LASPO",
    "SDS_AFTER_CJA_LASPO",
    "SDS_TWO_THIRDS_RELEASE",
    "EDS_AUTOMATIC_RELEASE",
    "EDS_DISCRETIONARY_RELEASE",
    "SOPC_PED_AT_HALFWAY",
    "SOPC_PED_AT_TWO_THIRDS",
    "AFINE_ARD_AT_HALFWAY",
    "AFINE_ARD_AT_FULL_TERM",
    "DTO_BEFORE_PCSC",
    "DTO_AFTER_PCSC",
]

RecallType = Literal["STANDARD_RECALL", "FIXED_TERM_RECALL_14", "FIXED_TERM_RECALL_28"]

SDSEarlyReleaseExclusion = Literal[
    "SEXUAL",
    "VIOLENT",
    "DOMESTIC_ABUSE",
    "NATIONAL_SECURITY",
    "TERRORISM",
    "SEXUAL_T3",
    "VIOLENT_T3",
    "DOMESTIC_ABUSE_T3",
    "NATIONAL_SECURITY_T3",
    "TERRORISM_T3",
    "MURDER_T3",
]

AdjustmentType = Literal[
    "REMAND",
    "TAGGED_BAIL",
    "UNLAWFULLY_AT_LARGE",
    "ADDITIONAL_DAYS_AWARDED",
    "RESTORATION_OF_ADDITIONAL_DAYS_AWARDED",
    "ADDITIONAL_DAYS_SERVED",
    "RELEASE_UNUSED_ADA",
    "LICENSE_UNUSED_ADA",
]

CalculationRule = Literal[
    "IMMEDIATE_RELEASE",
    "UNUSED_ADA",
    "SDS_EARLY_RELEASE",
    "SDS_EARLY_RELEASE_ADJUSTED_TO_TRANCHE_COMMENCEMENT",
    "HDCED_GE_MIN_PERIOD_LT_MIDPOINT",
    "HDCED_GE_MIDPOINT_LT_MAX_PERIOD",
    "HDCED_MINIMUM_CUSTODIAL_PERIOD",
    "HDCED_ADJUSTED_TO_365_COMMENCEMENT",
    "HDC_180",
    "HDCED_ADJUSTED_TO_CONCURRENT_CONDITIONAL_RELEASE",
    "HDCED_ADJUSTED_TO_CONCURRENT_ACTUAL_RELEASE",
    "CONSECUTIVE_SENTENCE_HDCED_CALCULATION",
    "TUSED_LICENCE_PERIOD_LT_1Y",
    "LED_CONSEC_ORA_AND_NON_ORA",
    "ERSED_HALFWAY",
    "ERSED_TWO_THIRDS",
    "ERSED_MAX_PERIOD",
    "ERSED_MIXED_TERMS",
    "ERSED_BEFORE_SENTENCE_DATE",
    "ERSED_ADJUSTED_TO_CONCURRENT_TERM",
    "PED_EQUAL_TO_LATEST_NON_PED_CONDITIONAL_RELEASE",
    "PED_EQUAL_TO_LATEST_NON_PED_ACTUAL_RELEASE",
    "PRRD_FIXED_TERM_RECALL_MIXED_DURATIONS",
]

TimeUnit = Literal["days", "weeks", "months", "years"]

TWELVE_MONTHS = relativedelta(months=12)

# Adjustment families as they feed the release arithmetic.
DEDUCTION_TYPES: tuple[AdjustmentType, ...] = ("REMAND", "TAGGED_BAIL")
AWARDED_TYPES: tuple[AdjustmentType, ...] = ("ADDITIONAL_DAYS_AWARDED",)
RESTORED_TYPES: tuple[AdjustmentType, ...] = ("RESTORATION_OF_ADDITIONAL_DAYS_AWARDED",)


@dataclass(slots=True, frozen=True)
class Offender:
    reference: str
    date_of_birth: date
    is_active_sex_offender: bool = False

    def age_on(self, on: date) -> int:
        return relativedelta(on, self.date_of_birth).years


@dataclass(slots=True, frozen=True)
class Offence:
    committed_at: date
    offence_code: str | None = None
    is_schedule_15: bool = False
    is_schedule_15_maximum_life: bool = False


@dataclass(slots=True, frozen=True)
class CalculationOptions:
    calculate_ersed: bool = False


@dataclass(slots=True)
class ReleaseDateCalculationBreakdown:
    release_date: date
    unadjusted_date: date
    rules: frozenset[str] = frozenset()
    rules_with_extra_adjustments: dict[str, tuple[int, TimeUnit]] = field(default_factory=dict)
    adjusted_days: int = 0


@dataclass(slots=True, frozen=True)
class DateRange:
    start: date
    end: date

    def overlaps(self, other: DateRange) -> bool:
        return self.start <= other.end and other.start <= self.end

    def is_connected(self, other: DateRange) -> bool:
        """Overlapping or abutting ranges."""
        return self.start <= other.end + timedelta(days=1) and other.start <= self.end + timedelta(days=1)

    def as_tuple(self) -> tuple[date, date]:
        return (self.start, self.end)
