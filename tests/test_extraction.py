from datetime import date

import pytest

from factories import make_adjustments, make_booking, make_eds, make_offence, make_sds
from release_dates.core.duration import Duration
from release_dates.core.engine import calculate_release_dates
from release_dates.core.errors import ExtractionAmbiguous, NoSentencesProvided
from release_dates.core.extraction import effective_sentence_length, extract


def test_single_sentence_dates():
    result = calculate_release_dates(make_booking([make_sds()]))
    assert result.dates["SLED"] == date(2023, 12, 31)
    assert result.dates["CRD"] == date(2022, 12, 31)
    assert result.dates["ESED"] == date(2023, 12, 31)
    assert "SED" not in result.dates
    assert result.final_release_date == date(2022, 12, 31)


def test_concurrent_sentences_take_the_latest_dates():
    six_months = make_sds(Duration.of(months=6))
    three_months = make_sds(Duration.of(months=3))
    result = calculate_release_dates(make_booking([six_months, three_months]))

    assert result.dates["SLED"] == date(2022, 6, 30)
    assert result.dates["CRD"] == date(2022, 4, 1)
    assert result.dates["TUSED"] == date(2023, 4, 1)
    assert result.sentences_impacting_final_release_date == [six_months]


def test_concurrent_parole_date_pushed_to_later_release():
    parole = make_eds(Duration.of(years=1), Duration.of(years=1))
    standard = make_sds(Duration.of(years=4))
    result = calculate_release_dates(make_booking([parole, standard]))

    # The EDS PED (2022-09-01) falls before the SDS CRD (2024-01-01).
    assert result.dates["PED"] == date(2024, 1, 1)
    assert result.breakdown["PED"].rules == frozenset({"PED_EQUAL_TO_LATEST_NON_PED_CONDITIONAL_RELEASE"})


def test_pre_cja_sentence_reports_sed_and_led():
    sentence = make_sds(
        Duration.of(years=2),
        sentenced_at=date(2011, 1, 1),
        offence=make_offence(committed_at=date(2004, 1, 1)),
    )
    result = calculate_release_dates(make_booking([sentence]))
    assert result.dates["SED"] == date(2012, 12, 31)
    assert result.dates["LED"] == date(2012, 7, 2)
    assert "SLED" not in result.dates


def test_unrelated_sentences_are_ambiguous():
    early = make_sds(
        Duration.of(months=3),
        sentenced_at=date(2020, 1, 1),
        offence=make_offence(committed_at=date(2019, 6, 1)),
    )
    late = make_sds(Duration.of(months=3))
    with pytest.raises(ExtractionAmbiguous):
        calculate_release_dates(make_booking([early, late]))


def test_empty_booking_has_nothing_to_extract():
    with pytest.raises(NoSentencesProvided):
        extract(make_booking([]))


def test_effective_sentence_length_spans_all_sentences():
    booking = make_booking([make_sds()], make_adjustments(("REMAND", 30, date(2021, 12, 1))))
    calculate_release_dates(booking)
    assert effective_sentence_length(booking.extractable_sentences()) == (2, 0, 0)
