from datetime import date

from release_dates.config import Settings
from release_dates.core.adjustments import Adjustment, Adjustments
from release_dates.core.booking import Booking
from release_dates.core.calculation import calculate
from release_dates.core.duration import Duration
from release_dates.core.identification import identify_in_place
from release_dates.core.sentences import (
    DetentionAndTrainingOrder,
    ExtendedDeterminateSentence,
    StandardDeterminateSentence,
)
from release_dates.core.types import Offence, Offender

SETTINGS = Settings()


def make_offender(**overrides):
    base = {
        "reference": "A1234BC",
        "date_of_birth": date(1980, 1, 1),
        "is_active_sex_offender": False,
    }
    base.update(overrides)
    return Offender(**base)


def make_offence(**overrides):
    base = {"committed_at": date(2021, 6, 1)}
    base.update(overrides)
    return Offence(**base)


def make_sds(duration=None, **overrides):
    base = {
        "sentenced_at": date(2022, 1, 1),
        "offence": make_offence(),
        "duration": duration or Duration.of(years=2),
    }
    base.update(overrides)
    return StandardDeterminateSentence(**base)


def make_eds(custodial=None, extension=None, **overrides):
    base = {
        "sentenced_at": date(2022, 1, 1),
        "offence": make_offence(),
        "custodial_duration": custodial or Duration.of(years=6),
        "extension_duration": extension or Duration.of(years=4),
    }
    base.update(overrides)
    return ExtendedDeterminateSentence(**base)


def make_dto(duration=None, **overrides):
    base = {
        "sentenced_at": date(2021, 1, 1),
        "offence": make_offence(committed_at=date(2020, 6, 1)),
        "duration": duration or Duration.of(months=12),
    }
    base.update(overrides)
    return DetentionAndTrainingOrder(**base)


def make_adjustments(*entries):
    """Entries are ``(type, days, applies_to)`` or ``(type, days, applies_to, from_date, to_date)``."""
    adjustments = Adjustments()
    for entry in entries:
        adjustment_type, days, applies_to, *period = entry
        from_date, to_date = period if period else (None, None)
        adjustments.add(adjustment_type, Adjustment(days, applies_to, from_date, to_date))
    return adjustments


def make_booking(sentences, adjustments=None, offender=None, **overrides):
    return Booking(
        offender=offender or make_offender(),
        sentences=list(sentences),
        adjustments=adjustments or Adjustments(),
        **overrides,
    )


def calculated(sentence, booking=None, settings=SETTINGS):
    """Identify and calculate one sentence against a booking holding only it."""
    booking = booking or make_booking([sentence])
    identify_in_place(sentence, booking.offender, settings)
    sentence.calculation = calculate(sentence, booking, settings)
    return sentence
