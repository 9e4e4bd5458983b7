"""Merge the sentences' calculated dates into the booking's single set of dates."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from itertools import combinations

from dateutil.relativedelta import relativedelta

from .booking import Booking
from .calculation import SentenceCalculation, release_date_type
from .errors import ExtractionAmbiguous, NoSentencesProvided
from .recalls import calculate_post_recall_release
from .sentences import Sentence, is_recall
from .types import DateRange, ReleaseDateCalculationBreakdown

logger = logging.getLogger(__name__)

# Release date type to the SentenceCalculation attribute holding it.
DATE_ATTRIBUTES: dict[str, str] = {
    "NPD": "non_parole_date",
    "NCRD": "notional_conditional_release_date",
    "PED": "parole_eligibility_date",
    "HDCED": "home_detention_curfew_eligibility_date",
    "HDCED4PLUS": "home_detention_curfew_4plus_eligibility_date",
    "ERSED": "early_release_scheme_eligibility_date",
    "TUSED": "top_up_supervision_date",
    "MTD": "mid_term_date",
    "ETD": "early_transfer_date",
    "LTD": "latest_transfer_date",
    "PRRD": "post_recall_release_date",
}


@dataclass(slots=True)
class CalculationResult:
    dates: dict[str, date]
    breakdown: dict[str, ReleaseDateCalculationBreakdown] = field(default_factory=dict)
    effective_sentence_length: tuple[int, int, int] = (0, 0, 0)
    sentences_impacting_final_release_date: list[Sentence] = field(default_factory=list)

    @property
    def final_release_date(self) -> date | None:
        for key in ("PRRD", "CRD", "ARD", "PED", "MTD"):
            if key in self.dates:
                return self.dates[key]
        return None


def date_of(calculation: SentenceCalculation, release_type: str) -> date | None:
    return getattr(calculation, DATE_ATTRIBUTES[release_type])


def _release_value(sentence: Sentence) -> tuple[str, date]:
    release_type = release_date_type(sentence)
    calculation = sentence.sentence_calculation
    if release_type in ("CRD", "ARD"):
        return release_type, calculation.release_date
    value = date_of(calculation, release_type)
    return release_type, value if value is not None else calculation.release_date


def effective_sentence_length(sentences: list[Sentence]) -> tuple[int, int, int]:
    earliest = min(s.sentenced_at for s in sentences)
    latest_expiry = max(s.sentence_calculation.unadjusted_expiry_date for s in sentences)
    period = relativedelta(latest_expiry + timedelta(days=1), earliest)
    return period.years, period.months, period.days


def extract(booking: Booking) -> CalculationResult:
    sentences = booking.extractable_sentences()
    if not sentences:
        raise NoSentencesProvided()
    if len(sentences) == 1:
        result = _extract_single(sentences[0])
    else:
        result = _extract_multiple(sentences, booking)
    result.effective_sentence_length = effective_sentence_length(sentences)
    final = result.final_release_date
    result.sentences_impacting_final_release_date = [
        s for s in sentences if final is not None and s.sentence_calculation.release_date == final
    ]
    return result


def _extract_single(sentence: Sentence) -> CalculationResult:
    calculation = sentence.sentence_calculation
    types = sentence.release_date_types
    dates: dict[str, date] = {}
    breakdown: dict[str, ReleaseDateCalculationBreakdown] = {}

    if "SLED" in types and calculation.licence_expiry_date in (None, calculation.expiry_date):
        dates["SLED"] = calculation.expiry_date
    else:
        dates["SED"] = calculation.expiry_date
        if calculation.licence_expiry_date is not None:
            dates["LED"] = calculation.licence_expiry_date

    release_type, release = _release_value(sentence)
    dates[release_type] = release
    for release_type, attribute in DATE_ATTRIBUTES.items():
        value = getattr(calculation, attribute)
        if value is not None and release_type not in dates:
            dates[release_type] = value
    dates["ESED"] = calculation.unadjusted_expiry_date

    for key in dates:
        if key in calculation.breakdown:
            breakdown[key] = calculation.breakdown[key]
    return CalculationResult(dates=dates, breakdown=breakdown)


def _check_concurrent(sentences: list[Sentence]) -> None:
    for first, second in combinations(sentences, 2):
        first_range = DateRange(first.sentenced_at, first.sentence_calculation.unadjusted_expiry_date)
        second_range = DateRange(second.sentenced_at, second.sentence_calculation.unadjusted_expiry_date)
        if not first_range.overlaps(second_range):
            raise ExtractionAmbiguous(first.identifier, second.identifier)


def _latest(sentences: list[Sentence], attribute: str) -> Sentence | None:
    candidates = [s for s in sentences if getattr(s.sentence_calculation, attribute) is not None]
    if not candidates:
        return None
    return max(candidates, key=lambda s: getattr(s.sentence_calculation, attribute))


def _extract_multiple(sentences: list[Sentence], booking: Booking) -> CalculationResult:
    _check_concurrent(sentences)
    dates: dict[str, date] = {}
    breakdown: dict[str, ReleaseDateCalculationBreakdown] = {}

    def take(key: str, sentence: Sentence, value: date) -> None:
        dates[key] = value
        source = sentence.sentence_calculation.breakdown.get(key)
        if source is not None:
            breakdown[key] = source

    latest_expiry = max(sentences, key=lambda s: s.sentence_calculation.expiry_date)
    latest_led = _latest(sentences, "licence_expiry_date")
    expiry = latest_expiry.sentence_calculation.expiry_date
    if (
        "SLED" in latest_expiry.release_date_types
        and latest_led is not None
        and latest_led.sentence_calculation.licence_expiry_date == expiry
    ):
        take("SLED", latest_expiry, expiry)
    else:
        dates["SED"] = expiry
        if latest_led is not None and latest_led.sentence_calculation.licence_expiry_date != expiry:
            take("LED", latest_led, latest_led.sentence_calculation.licence_expiry_date)

    non_recalls = [s for s in sentences if not is_recall(s)]
    recalls = [s for s in sentences if is_recall(s)]
    latest_release = max(sentences, key=lambda s: s.sentence_calculation.release_date)
    release = latest_release.sentence_calculation.release_date

    if recalls:
        latest_recall = max(recalls, key=lambda s: s.sentence_calculation.release_date)
        take("PRRD", latest_recall, latest_recall.sentence_calculation.release_date)
        moved = calculate_post_recall_release(recalls, booking.return_to_custody_date, dates["PRRD"])
        if moved is not None:
            dates["PRRD"], breakdown["PRRD"] = moved

    if non_recalls:
        latest_non_recall = max(non_recalls, key=lambda s: s.sentence_calculation.release_date)
        release_type, value = _release_value(latest_non_recall)
        if release_type in ("CRD", "ARD"):
            all_ard = all(release_date_type(s) == "ARD" for s in non_recalls)
            release_type = "ARD" if all_ard else "CRD"
        take(release_type, latest_non_recall, value)

    for key, attribute in (("NPD", "non_parole_date"), ("NCRD", "notional_conditional_release_date")):
        sentence = _latest(sentences, attribute)
        if sentence is not None:
            take(key, sentence, getattr(sentence.sentence_calculation, attribute))

    _extract_parole_eligibility(sentences, dates, breakdown)
    for key in ("HDCED", "HDCED4PLUS"):
        _extract_eligibility(key, latest_release, sentences, release, dates, breakdown)
    _extract_eligibility("ERSED", latest_release, sentences, release, dates, breakdown)

    tused = _latest(sentences, "top_up_supervision_date")
    if tused is not None:
        tused_date = tused.sentence_calculation.top_up_supervision_date
        licence_end = max(
            s.sentence_calculation.licence_expiry_date or s.sentence_calculation.expiry_date for s in sentences
        )
        if tused_date > licence_end:
            take("TUSED", tused, tused_date)

    dto = _latest(sentences, "mid_term_date")
    if dto is not None:
        for key in ("MTD", "ETD", "LTD"):
            value = date_of(dto.sentence_calculation, key)
            if value is not None:
                take(key, dto, value)

    dates["ESED"] = max(s.sentence_calculation.unadjusted_expiry_date for s in sentences)
    return CalculationResult(dates=dates, breakdown=breakdown)


def _extract_eligibility(
    key: str,
    latest_release: Sentence,
    sentences: list[Sentence],
    release: date,
    dates: dict[str, date],
    breakdown: dict[str, ReleaseDateCalculationBreakdown],
) -> None:
    """An eligibility date of the latest-released sentence, pushed past any concurrent release.

    A concurrent sentence without the eligibility date keeps the prisoner in
    custody until its own release.
    """
    calculation = latest_release.sentence_calculation
    eligible = date_of(calculation, key)
    if eligible is None:
        return
    blocking = [
        s
        for s in sentences
        if s is not latest_release
        and date_of(s.sentence_calculation, key) is None
        and s.sentence_calculation.release_date > eligible
    ]
    if not blocking:
        dates[key] = eligible
        if key in calculation.breakdown:
            breakdown[key] = calculation.breakdown[key]
        return

    blocker = max(blocking, key=lambda s: s.sentence_calculation.release_date)
    adjusted = blocker.sentence_calculation.release_date
    if adjusted >= release:
        logger.debug("%s dropped: a concurrent term releases on or after the final release", key)
        return
    if key == "ERSED":
        rule = "ERSED_ADJUSTED_TO_CONCURRENT_TERM"
    elif blocker.sentence_calculation.is_release_date_conditional:
        rule = "HDCED_ADJUSTED_TO_CONCURRENT_CONDITIONAL_RELEASE"
    else:
        rule = "HDCED_ADJUSTED_TO_CONCURRENT_ACTUAL_RELEASE"
    dates[key] = adjusted
    breakdown[key] = ReleaseDateCalculationBreakdown(
        release_date=adjusted,
        unadjusted_date=eligible,
        rules=frozenset({rule}),
        adjusted_days=(adjusted - eligible).days,
    )


def _extract_parole_eligibility(
    sentences: list[Sentence],
    dates: dict[str, date],
    breakdown: dict[str, ReleaseDateCalculationBreakdown],
) -> None:
    """PED is never earlier than the release of a concurrent term that has none."""
    with_ped = _latest(sentences, "parole_eligibility_date")
    if with_ped is None:
        return
    ped = with_ped.sentence_calculation.parole_eligibility_date
    without_ped = [s for s in sentences if s.sentence_calculation.parole_eligibility_date is None and not is_recall(s)]
    latest_non_ped = max(without_ped, key=lambda s: s.sentence_calculation.release_date, default=None)
    if latest_non_ped is not None and latest_non_ped.sentence_calculation.release_date > ped:
        non_ped_release = latest_non_ped.sentence_calculation.release_date
        if latest_non_ped.sentence_calculation.is_release_date_conditional:
            rule = "PED_EQUAL_TO_LATEST_NON_PED_CONDITIONAL_RELEASE"
        else:
            rule = "PED_EQUAL_TO_LATEST_NON_PED_ACTUAL_RELEASE"
        dates["PED"] = non_ped_release
        breakdown["PED"] = ReleaseDateCalculationBreakdown(
            release_date=non_ped_release,
            unadjusted_date=ped,
            rules=frozenset({rule}),
            adjusted_days=(non_ped_release - ped).days,
        )
        return
    dates["PED"] = ped
    if "PED" in with_ped.sentence_calculation.breakdown:
        breakdown["PED"] = with_ped.sentence_calculation.breakdown["PED"]
