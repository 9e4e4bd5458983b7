"""SDS early release at forty percent and the tranches that phased it in.

A sentence imposed on or after tranche one commencement is released at the
early release multiplier outright. A sentence imposed earlier is allocated to
a tranche for the whole booking and, if it would still be in custody when
that tranche commences, is released at the early multiplier but no earlier
than the commencement date.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from fractions import Fraction
from typing import TYPE_CHECKING, Callable, Literal

from dateutil.relativedelta import relativedelta

from ..config import EarlyReleaseConfiguration, Settings
from .sentences import (
    AFineSentence,
    Sentence,
    StandardDeterminateSentence,
    is_dto,
    is_recall,
    length_in_days,
    sentence_parts,
)

if TYPE_CHECKING:
    from .booking import Booking

logger = logging.getLogger(__name__)

Tranche = Literal["TRANCHE_1", "TRANCHE_2"]


@dataclass(slots=True, frozen=True)
class EarlyReleaseAllocation:
    calculation_date: date
    tranche: Tranche | None = None
    commencement_date: date | None = None

    @property
    def sentenced_after_commencement(self) -> bool:
        return self.tranche is None


def is_early_release_part(part: Sentence, config: EarlyReleaseConfiguration, on: date) -> bool:
    """Whether a base sentence is released at the early multiplier on the calculation date."""
    if not isinstance(part, StandardDeterminateSentence) or config.multiplier_for(part.identification_track) is None:
        return False
    exclusion = part.early_release_exclusion
    if exclusion is None:
        return True
    return exclusion.endswith("_T3") and on < config.tranche_three_commencement_date


def _whole_years(sentence: Sentence) -> int:
    end = sentence.sentenced_at + timedelta(days=length_in_days(sentence))
    return relativedelta(end, sentence.sentenced_at).years


def _counts_towards_allocation(sentence: Sentence, tranche_one: date) -> bool:
    if is_dto(sentence) or any(isinstance(p, AFineSentence) for p in sentence_parts(sentence)):
        return False
    expiry = sentence.sentenced_at + timedelta(days=length_in_days(sentence) - 1)
    return sentence.sentenced_at < tranche_one <= expiry


def allocate_tranche(booking: Booking, config: EarlyReleaseConfiguration) -> tuple[Tranche, date]:
    """Tranche one unless a sentence running over tranche one is long enough for tranche two."""
    tranche_one = config.tranche_one_commencement_date
    for sentence in booking.extractable_sentences():
        if not _counts_towards_allocation(sentence, tranche_one):
            continue
        if _whole_years(sentence) >= config.tranche_two_minimum_years:
            return "TRANCHE_2", config.tranche_two_commencement_date
    return "TRANCHE_1", tranche_one


def early_release_allocation(sentence: Sentence, booking: Booking, settings: Settings) -> EarlyReleaseAllocation | None:
    config = settings.early_release
    on = booking.calculation_date or date.today()
    if is_recall(sentence) or on < config.tranche_one_commencement_date:
        return None
    if not any(is_early_release_part(p, config, on) for p in sentence_parts(sentence)):
        return None
    if sentence.sentenced_at >= config.tranche_one_commencement_date:
        return EarlyReleaseAllocation(on)

    tranche, commencement = allocate_tranche(booking, config)
    if on < commencement:
        logger.debug("%s allocated to %s, not yet commenced on %s", sentence.describe(), tranche, on)
        return None
    return EarlyReleaseAllocation(on, tranche, commencement)


def early_release_multiplier(settings: Settings, allocation: EarlyReleaseAllocation) -> Callable[[Sentence], Fraction]:
    """Per-part multiplier: the early rate for qualifying parts, the track's usual rate otherwise."""
    config = settings.early_release

    def multiplier(part: Sentence) -> Fraction:
        if is_early_release_part(part, config, allocation.calculation_date):
            return config.multiplier_for(part.identification_track)
        return settings.multiplier_for(part.identification_track)

    return multiplier
