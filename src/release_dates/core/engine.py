"""Run a booking through every calculation pass and extract its release dates."""

from __future__ import annotations

import logging

from ..config import Settings, get_settings
from .booking import Booking
from .calculation import calculate
from .chains import build_consecutive_sentences, build_single_term_sentence
from .errors import NoSentencesProvided
from .ersed import calculate_ersed
from .extraction import CalculationResult, extract
from .hdced import calculate_hdced
from .hdced4 import calculate_hdced4
from .identification import identify_in_place
from .sentences import Sentence
from .timeline import check_overlaps, walk_timeline
from .tused import calculate_tused
from .types import CalculationOptions

logger = logging.getLogger(__name__)


def apply_eligibility_dates(
    sentence: Sentence,
    booking: Booking,
    options: CalculationOptions,
    settings: Settings,
) -> None:
    calculation = sentence.sentence_calculation
    offender = booking.offender

    results = {}
    if "HDCED" in sentence.release_date_types:
        results["HDCED"] = calculate_hdced(sentence, calculation, offender, settings.hdced)
    results["HDCED4PLUS"] = calculate_hdced4(sentence, calculation, offender, settings.hdced4plus)
    results["TUSED"] = calculate_tused(sentence, calculation, offender)
    results["ERSED"] = calculate_ersed(sentence, calculation, options, settings.ersed)

    attributes = {
        "HDCED": "home_detention_curfew_eligibility_date",
        "HDCED4PLUS": "home_detention_curfew_4plus_eligibility_date",
        "TUSED": "top_up_supervision_date",
        "ERSED": "early_release_scheme_eligibility_date",
    }
    for release_type, result in results.items():
        if result is None:
            continue
        eligible, breakdown = result
        setattr(calculation, attributes[release_type], eligible)
        calculation.breakdown[release_type] = breakdown
        sentence.release_date_types.add(release_type)


def calculate_release_dates(
    booking: Booking,
    options: CalculationOptions | None = None,
    settings: Settings | None = None,
) -> CalculationResult:
    """Calculate a booking's release dates.

    The booking is mutated by the calculation and must not be reused.
    """
    options = options or CalculationOptions()
    settings = settings or get_settings()
    if not booking.sentences:
        raise NoSentencesProvided()

    logger.info("Identifying %d sentence(s) for %s", len(booking.sentences), booking.offender.reference)
    for sentence in booking.sentences:
        identify_in_place(sentence, booking.offender, settings)

    booking.consecutive_sentences = build_consecutive_sentences(booking, settings)
    booking.single_term_sentence = build_single_term_sentence(booking, settings)
    extractable = booking.extractable_sentences()
    logger.info(
        "Calculating %d extractable sentence(s), %d consecutive chain(s)",
        len(extractable),
        len(booking.consecutive_sentences),
    )
    for sentence in extractable:
        sentence.calculation = calculate(sentence, booking, settings)

    groups = walk_timeline(booking, settings)
    logger.info("Timeline walk produced %d group(s)", len(groups))
    check_overlaps(booking)

    for sentence in extractable:
        apply_eligibility_dates(sentence, booking, options, settings)

    result = extract(booking)
    logger.info("Extracted %s", ", ".join(f"{k}={v}" for k, v in sorted(result.dates.items())))
    return result
