"""Per-sentence release and expiry date calculation.

``calculate`` is a full recomputation: every call builds a fresh
``SentenceCalculation`` (breakdown map included) from the sentence, the
booking's adjustments and the adjustment window the timeline walk has
attributed to the sentence.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from fractions import Fraction
from math import ceil
from typing import TYPE_CHECKING, Callable

from dateutil.relativedelta import relativedelta

from ..config import Settings
from .adjustments import Adjustments, AdjustmentWindow
from .duration import Duration, DurationAggregator
from .early_release import EarlyReleaseAllocation, early_release_allocation, early_release_multiplier
from .errors import SentenceExtinguished, UnsupportedCalculation
from .sentences import (
    ConsecutiveSentence,
    ExtendedDeterminateSentence,
    Sentence,
    SopcSentence,
    all_standard_sentences,
    custodial_duration,
    custodial_length_in_days,
    duration_is_at_least,
    duration_is_less_than,
    duration_is_less_than_or_equal_to,
    has_non_ora_sentences,
    has_ora_sentences,
    is_dto,
    is_ora_sentence,
    is_only_after_cja_laspo,
    is_recall,
    length_in_days,
    sentence_parts,
    total_duration,
)
from .types import AWARDED_TYPES, DEDUCTION_TYPES, RESTORED_TYPES, DateRange, ReleaseDateCalculationBreakdown

if TYPE_CHECKING:
    from .booking import Booking

logger = logging.getLogger(__name__)

TWO_THIRDS = Fraction(2, 3)
THREE_QUARTERS = Fraction(3, 4)
PED_GROUP_TRACKS = {"EDS_DISCRETIONARY_RELEASE", "SOPC_PED_AT_HALFWAY", "SOPC_PED_AT_TWO_THIRDS"}

Multiplier = Callable[[Sentence], Fraction]


@dataclass(slots=True)
class ReleasePoint:
    days_to_expiry: int
    days_to_release: int
    days_to_parole_eligibility: int | None = None


@dataclass(slots=True)
class SentenceCalculation:
    sentenced_at: date
    release_point: ReleasePoint
    window: AdjustmentWindow
    unadjusted_expiry_date: date
    unadjusted_release_date: date
    deducted_days: int
    ual_days: int
    awarded_days: int
    served_ada_days: int
    unused_release_ada: int
    unused_licence_ada: int
    ual_after_return_to_custody: int
    release_date_without_awarded: date
    adjusted_release_date: date
    expiry_date: date
    release_date: date
    is_release_date_conditional: bool = False
    unadjusted_post_recall_release_date: date | None = None
    post_recall_release_date: date | None = None
    licence_expiry_date: date | None = None
    non_parole_date: date | None = None
    notional_conditional_release_date: date | None = None
    parole_eligibility_date: date | None = None
    mid_term_date: date | None = None
    early_transfer_date: date | None = None
    latest_transfer_date: date | None = None
    top_up_supervision_date: date | None = None
    home_detention_curfew_eligibility_date: date | None = None
    home_detention_curfew_4plus_eligibility_date: date | None = None
    early_release_scheme_eligibility_date: date | None = None
    early_release: EarlyReleaseAllocation | None = None
    released_at_tranche_commencement: bool = False
    breakdown: dict[str, ReleaseDateCalculationBreakdown] = field(default_factory=dict)

    @property
    def days_to_release(self) -> int:
        return self.release_point.days_to_release

    @property
    def days_to_expiry(self) -> int:
        return self.release_point.days_to_expiry

    @property
    def adjusted_days(self) -> int:
        return self.ual_days - self.deducted_days

    def is_immediate_release(self) -> bool:
        return self.adjusted_release_date == self.sentenced_at


def track_multiplier(settings: Settings) -> Multiplier:
    return lambda part: settings.multiplier_for(part.identification_track)


def release_point(sentence: Sentence, settings: Settings, multiplier: Multiplier | None = None) -> ReleasePoint:
    multiplier = multiplier or track_multiplier(settings)
    if isinstance(sentence, ConsecutiveSentence):
        return _consecutive_release_point(sentence, multiplier)

    custodial_days = custodial_length_in_days(sentence)
    days_to_release = ceil(custodial_days * multiplier(sentence))
    days_to_ped = None
    if isinstance(sentence, ExtendedDeterminateSentence) and "PED" in sentence.release_date_types:
        days_to_ped = ceil(days_to_release * TWO_THIRDS)
    elif isinstance(sentence, SopcSentence):
        fraction = TWO_THIRDS if sentence.identification_track == "SOPC_PED_AT_TWO_THIRDS" else Fraction(1, 2)
        days_to_ped = ceil(custodial_days * fraction)
    return ReleasePoint(length_in_days(sentence), days_to_release, days_to_ped)


def _consecutive_release_point(sentence: ConsecutiveSentence, multiplier: Multiplier) -> ReleasePoint:
    """Release point of a chain, worked through release-fraction groups in turn.

    Parts are grouped by multiplier in order of first appearance, parole
    eligible parts last. Each group starts the day after the notional expiry
    and notional release of the groups before it.
    """
    members = sentence.ordered_sentences
    with_ped = [m for m in members if m.identification_track in PED_GROUP_TRACKS]
    by_multiplier: dict[Fraction, list[Sentence]] = {}
    for member in members:
        if member not in with_ped:
            by_multiplier.setdefault(multiplier(member), []).append(member)
    groups = [*by_multiplier.values(), with_ped]

    notional_sled: date | None = None
    notional_crd: date | None = None
    days_to_expiry = 0
    days_to_release = 0
    days_to_ped = None
    for group in groups:
        if not group:
            continue
        sentence_start = notional_sled + timedelta(days=1) if notional_sled else sentence.sentenced_at
        release_start = notional_crd + timedelta(days=1) if notional_crd else sentence.sentenced_at
        custodial_days = DurationAggregator([custodial_duration(m) for m in group]).calculate_days(release_start)
        total_days = DurationAggregator([total_duration(m) for m in group]).calculate_days(sentence_start)
        if group is with_ped:
            days_to_ped = days_to_release + ceil(custodial_days * TWO_THIRDS)
        group_release = ceil(custodial_days * multiplier(group[0]))
        notional_sled = sentence_start + timedelta(days=total_days - 1)
        notional_crd = release_start + timedelta(days=group_release - 1)
        days_to_expiry += total_days
        days_to_release += group_release
    return ReleasePoint(days_to_expiry, days_to_release, days_to_ped)


def calculate(
    sentence: Sentence,
    booking: Booking,
    settings: Settings,
    window: AdjustmentWindow | None = None,
) -> SentenceCalculation:
    window = window or AdjustmentWindow()
    point = release_point(sentence, settings)
    sentenced_at = sentence.sentenced_at
    latest_part_date = max(p.sentenced_at for p in sentence_parts(sentence))
    adjustments = booking.adjustments

    if window.before is None:
        deduction_window = AdjustmentWindow(after=window.after, before=latest_part_date)
    else:
        deduction_window = window
    deducted = adjustments.total_days(DEDUCTION_TYPES, deduction_window)
    ual = adjustments.total_days(("UNLAWFULLY_AT_LARGE",), window)
    awarded = adjustments.total_days(AWARDED_TYPES, window) - adjustments.total_days(RESTORED_TYPES, window)
    served = adjustments.total_days(("ADDITIONAL_DAYS_SERVED",), window, applies_on_or_before=latest_part_date)
    unused_release = adjustments.total_days(("RELEASE_UNUSED_ADA",), window)
    unused_licence = adjustments.total_days(("LICENSE_UNUSED_ADA",), window)

    ual_after_rtc = 0
    if booking.return_to_custody_date is not None:
        ual_after_rtc = sum(
            a.number_of_days
            for a in adjustments.get("UNLAWFULLY_AT_LARGE")
            if (a.from_date or a.applies_to_sentences_from) > booking.return_to_custody_date
        )

    release_offset = ual - deducted + awarded - served - unused_release
    allocation = early_release_allocation(sentence, booking, settings)
    if allocation is not None:
        standard_release = sentenced_at + timedelta(days=point.days_to_release - 1 + release_offset)
        if allocation.commencement_date is not None and standard_release < allocation.commencement_date:
            # Released under the usual rules before the tranche commenced.
            allocation = None
        else:
            point = release_point(sentence, settings, early_release_multiplier(settings, allocation))

    unadjusted_expiry = sentenced_at + timedelta(days=point.days_to_expiry - 1)
    unadjusted_release = sentenced_at + timedelta(days=point.days_to_release - 1)
    release_without_awarded = unadjusted_release + timedelta(days=ual - deducted)
    uncapped_release = release_without_awarded + timedelta(days=awarded - served)
    expiry = unadjusted_expiry + timedelta(days=ual - deducted)
    if not is_recall(sentence) and uncapped_release < sentenced_at - timedelta(days=1):
        raise SentenceExtinguished(
            sentence.identifier, sentenced_at, uncapped_release, _deduction_causes(adjustments, deduction_window)
        )
    if expiry < sentenced_at:
        raise SentenceExtinguished(
            sentence.identifier, sentenced_at, expiry, _deduction_causes(adjustments, deduction_window)
        )
    adjusted_release = max(uncapped_release - timedelta(days=unused_release), sentenced_at)
    at_commencement = (
        allocation is not None
        and allocation.commencement_date is not None
        and adjusted_release < allocation.commencement_date
    )
    if at_commencement:
        adjusted_release = allocation.commencement_date

    calculation = SentenceCalculation(
        sentenced_at=sentenced_at,
        release_point=point,
        window=window,
        unadjusted_expiry_date=unadjusted_expiry,
        unadjusted_release_date=unadjusted_release,
        deducted_days=deducted,
        ual_days=ual,
        awarded_days=awarded,
        served_ada_days=served,
        unused_release_ada=unused_release,
        unused_licence_ada=unused_licence,
        ual_after_return_to_custody=ual_after_rtc,
        release_date_without_awarded=release_without_awarded,
        adjusted_release_date=adjusted_release,
        expiry_date=expiry,
        release_date=adjusted_release,
        early_release=allocation,
        released_at_tranche_commencement=at_commencement,
    )

    if is_recall(sentence):
        _set_post_recall_release(sentence, booking, calculation)
    _set_release_breakdown(sentence, calculation)
    _set_expiry_breakdown(sentence, calculation)
    if "LED" in sentence.release_date_types:
        _set_licence_expiry(sentence, calculation, settings)
    elif "SLED" in sentence.release_date_types:
        calculation.licence_expiry_date = calculation.expiry_date
    if "NPD" in sentence.release_date_types:
        if "NCRD" in sentence.release_date_types and isinstance(sentence, ConsecutiveSentence):
            _set_npd_from_notional_crd(sentence, calculation)
        else:
            _set_npd(sentence, calculation)
    if "PED" in sentence.release_date_types:
        _set_parole_eligibility(sentence, calculation)
    if is_dto(sentence):
        _set_dto_dates(sentence, calculation)

    logger.debug(
        "%s release %s expiry %s (deducted %s, ual %s, awarded %s, served %s)",
        sentence.describe(),
        calculation.release_date,
        calculation.expiry_date,
        deducted,
        ual,
        awarded,
        served,
    )
    return calculation


def recalculate(sentence: Sentence, booking: Booking, settings: Settings, window: AdjustmentWindow | None = None):
    """Replace the sentence's calculation, keeping its current window unless one is given."""
    if window is None and sentence.calculation is not None:
        window = sentence.calculation.window
    sentence.calculation = calculate(sentence, booking, settings, window)
    return sentence.calculation


def _deduction_causes(adjustments: Adjustments, window: AdjustmentWindow) -> list[str]:
    return [t for t in DEDUCTION_TYPES if adjustments.total_days((t,), window)]


def _set_post_recall_release(sentence: Sentence, booking: Booking, calculation: SentenceCalculation) -> None:
    if sentence.recall_type == "STANDARD_RECALL":
        calculation.unadjusted_post_recall_release_date = calculation.unadjusted_expiry_date
        calculation.post_recall_release_date = calculation.expiry_date
    else:
        if booking.return_to_custody_date is None:
            raise UnsupportedCalculation(
                "A fixed term recall needs a return to custody date", [sentence.identifier]
            )
        days = 14 if sentence.recall_type == "FIXED_TERM_RECALL_14" else 28
        unadjusted = booking.return_to_custody_date + timedelta(days=days - 1)
        adjusted = unadjusted + timedelta(days=calculation.ual_after_return_to_custody + calculation.awarded_days)
        calculation.unadjusted_post_recall_release_date = unadjusted
        calculation.post_recall_release_date = min(adjusted, calculation.expiry_date)
    calculation.release_date = calculation.post_recall_release_date
    calculation.breakdown["PRRD"] = ReleaseDateCalculationBreakdown(
        release_date=calculation.post_recall_release_date,
        unadjusted_date=calculation.unadjusted_post_recall_release_date,
        adjusted_days=(calculation.post_recall_release_date - calculation.unadjusted_post_recall_release_date).days,
    )


def _set_release_breakdown(sentence: Sentence, calculation: SentenceCalculation) -> None:
    types = sentence.release_date_types
    calculation.is_release_date_conditional = "CRD" in types and "ARD" not in types
    rules = {"IMMEDIATE_RELEASE"} if calculation.is_immediate_release() else set()
    if calculation.early_release is not None:
        rules.add("SDS_EARLY_RELEASE")
    if calculation.released_at_tranche_commencement:
        rules.add("SDS_EARLY_RELEASE_ADJUSTED_TO_TRANCHE_COMMENCEMENT")
    extra = {"UNUSED_ADA": (calculation.unused_release_ada, "days")} if calculation.unused_release_ada else {}
    breakdown = ReleaseDateCalculationBreakdown(
        release_date=calculation.adjusted_release_date,
        unadjusted_date=calculation.unadjusted_release_date,
        rules=frozenset(rules),
        rules_with_extra_adjustments=extra,
        adjusted_days=(calculation.adjusted_release_date - calculation.unadjusted_release_date).days,
    )
    if "ARD" in types:
        calculation.breakdown["ARD"] = breakdown
    elif "CRD" in types:
        calculation.breakdown["CRD"] = breakdown


def _set_expiry_breakdown(sentence: Sentence, calculation: SentenceCalculation) -> None:
    key = "SLED" if "SLED" in sentence.release_date_types else "SED"
    calculation.breakdown[key] = ReleaseDateCalculationBreakdown(
        release_date=calculation.expiry_date,
        unadjusted_date=calculation.unadjusted_expiry_date,
        adjusted_days=(calculation.expiry_date - calculation.unadjusted_expiry_date).days,
    )


def _ora_and_non_ora_chain(sentence: Sentence, settings: Settings) -> bool:
    dates = settings.important_dates
    return (
        isinstance(sentence, ConsecutiveSentence)
        and is_only_after_cja_laspo(sentence)
        and has_ora_sentences(sentence, dates)
        and has_non_ora_sentences(sentence, dates)
    )


def _set_licence_expiry(sentence: Sentence, calculation: SentenceCalculation, settings: Settings) -> None:
    if _ora_and_non_ora_chain(sentence, settings):
        ora_duration = Duration()
        for part in sentence.ordered_sentences:
            if is_ora_sentence(part, settings.important_dates):
                ora_duration.append_all(part.duration)
        adjustment = ora_duration.length_in_days(sentence.sentenced_at) // 2
        led = calculation.adjusted_release_date + timedelta(days=adjustment - calculation.unused_licence_ada)
        unused = calculation.unused_release_ada + calculation.unused_licence_ada
        calculation.licence_expiry_date = led
        calculation.breakdown["LED"] = ReleaseDateCalculationBreakdown(
            release_date=led,
            unadjusted_date=calculation.adjusted_release_date,
            rules=frozenset({"LED_CONSEC_ORA_AND_NON_ORA"}),
            rules_with_extra_adjustments={"UNUSED_ADA": (unused, "days")} if unused else {},
            adjusted_days=adjustment,
        )
        return

    days_to_add = 0
    if not is_recall(sentence) and calculation.deducted_days >= calculation.days_to_release:
        days_to_add = calculation.deducted_days - calculation.days_to_release
    unadjusted_days = ceil(calculation.days_to_expiry * THREE_QUARTERS)
    days = unadjusted_days + days_to_add + calculation.adjusted_days
    led = calculation.sentenced_at + timedelta(days=days - 1)
    calculation.licence_expiry_date = led
    calculation.breakdown["LED"] = ReleaseDateCalculationBreakdown(
        release_date=led,
        unadjusted_date=calculation.sentenced_at + timedelta(days=unadjusted_days - 1),
        adjusted_days=days - unadjusted_days,
    )


def _set_npd(sentence: Sentence, calculation: SentenceCalculation) -> None:
    unadjusted_days = ceil(calculation.days_to_expiry * TWO_THIRDS)
    npd = calculation.sentenced_at + timedelta(days=unadjusted_days + calculation.adjusted_days - 1)
    calculation.non_parole_date = npd
    calculation.breakdown["NPD"] = ReleaseDateCalculationBreakdown(
        release_date=npd,
        unadjusted_date=calculation.sentenced_at + timedelta(days=unadjusted_days - 1),
        adjusted_days=calculation.adjusted_days,
    )


def _set_npd_from_notional_crd(sentence: ConsecutiveSentence, calculation: SentenceCalculation) -> None:
    """NPD of a chain mixing pre and post LASPO terms.

    The post-LASPO terms are served first to a notional CRD, then two thirds of
    the pre-LASPO terms run from the day after it.
    """
    if not all_standard_sentences(sentence):
        return
    new_style = Duration()
    old_style = Duration()
    for part in sentence.ordered_sentences:
        if part.identification_track == "SDS_BEFORE_CJA_LASPO":
            old_style.append_all(part.duration)
        else:
            new_style.append_all(part.duration)
    new_days = new_style.length_in_days(sentence.sentenced_at)
    old_days = old_style.length_in_days(sentence.sentenced_at)

    unadjusted_ncrd = sentence.sentenced_at + timedelta(days=ceil(new_days / 2) - 1)
    ncrd = unadjusted_ncrd + timedelta(days=calculation.adjusted_days + calculation.awarded_days)
    npd = ncrd + timedelta(days=ceil(old_days * TWO_THIRDS))
    calculation.notional_conditional_release_date = ncrd
    calculation.non_parole_date = npd
    calculation.breakdown["NCRD"] = ReleaseDateCalculationBreakdown(
        release_date=ncrd,
        unadjusted_date=unadjusted_ncrd,
        adjusted_days=(ncrd - unadjusted_ncrd).days,
    )
    calculation.breakdown["NPD"] = ReleaseDateCalculationBreakdown(
        release_date=npd,
        unadjusted_date=ncrd,
        adjusted_days=(npd - ncrd).days,
    )


def _set_parole_eligibility(sentence: Sentence, calculation: SentenceCalculation) -> None:
    days = calculation.release_point.days_to_parole_eligibility
    if days is None:
        calculation.parole_eligibility_date = calculation.adjusted_release_date
        unadjusted = calculation.unadjusted_release_date
    else:
        unadjusted = calculation.sentenced_at + timedelta(days=days - 1)
        calculation.parole_eligibility_date = unadjusted + timedelta(
            days=calculation.adjusted_days + calculation.awarded_days - calculation.served_ada_days
        )
    calculation.breakdown["PED"] = ReleaseDateCalculationBreakdown(
        release_date=calculation.parole_eligibility_date,
        unadjusted_date=unadjusted,
        adjusted_days=(calculation.parole_eligibility_date - unadjusted).days,
    )


def _set_dto_dates(sentence: Sentence, calculation: SentenceCalculation) -> None:
    mtd = calculation.adjusted_release_date
    calculation.mid_term_date = mtd
    calculation.breakdown["MTD"] = ReleaseDateCalculationBreakdown(
        release_date=mtd,
        unadjusted_date=calculation.unadjusted_release_date,
        adjusted_days=(mtd - calculation.unadjusted_release_date).days,
    )
    if duration_is_at_least(sentence, 8, "months") and duration_is_less_than(sentence, 18, "months"):
        offset = relativedelta(months=1)
    elif duration_is_at_least(sentence, 18, "months") and duration_is_less_than_or_equal_to(sentence, 24, "months"):
        offset = relativedelta(months=2)
    else:
        return
    calculation.early_transfer_date = mtd - offset
    calculation.latest_transfer_date = mtd + offset


def release_date_type(sentence: Sentence) -> str:
    types = sentence.release_date_types
    if "PRRD" in types and is_recall(sentence):
        return "PRRD"
    if is_dto(sentence):
        return "MTD"
    if "PED" in types and "CRD" not in types and "ARD" not in types:
        return "PED"
    if "CRD" in types:
        return "CRD"
    return "ARD"


def range_before_awarded_days(sentence: Sentence) -> DateRange:
    """Custodial range used by the timeline walk, ignoring additional days awarded."""
    calculation = sentence.sentence_calculation
    release = calculation.release_date
    if "PED" in sentence.release_date_types and calculation.non_parole_date is not None:
        release = calculation.non_parole_date
    end = release - timedelta(days=calculation.awarded_days)
    return DateRange(sentence.sentenced_at, max(end, sentence.sentenced_at))


def custodial_range(sentence: Sentence) -> DateRange:
    calculation = sentence.sentence_calculation
    return DateRange(sentence.sentenced_at, max(calculation.release_date, sentence.sentenced_at))
