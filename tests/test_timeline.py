from datetime import date

import pytest

from factories import SETTINGS, make_adjustments, make_booking, make_offence, make_sds
from release_dates.core.calculation import calculate, custodial_range
from release_dates.core.duration import Duration
from release_dates.core.errors import RemandOverlapsRemand, RemandOverlapsSentence
from release_dates.core.identification import identify_in_place
from release_dates.core.timeline import check_overlaps, walk_timeline
from release_dates.core.types import DateRange


def prepared(booking):
    """Identify and pre-calculate every sentence the way the engine does before the walk."""
    for sentence in booking.sentences:
        identify_in_place(sentence, booking.offender, SETTINGS)
        sentence.calculation = calculate(sentence, booking, SETTINGS)
    return booking


def two_sentences_with_a_gap():
    # First releases 2022-06-01, second starts 2022-06-05.
    first = make_sds(Duration.of(days=300), sentenced_at=date(2022, 1, 3))
    second = make_sds(Duration.of(days=300), sentenced_at=date(2022, 6, 5))
    return first, second


def test_unused_ada_fills_the_gap_between_sentences():
    first, second = two_sentences_with_a_gap()
    adjustments = make_adjustments(("ADDITIONAL_DAYS_AWARDED", 10, date(2022, 3, 1)))
    booking = prepared(make_booking([first, second], adjustments))

    groups = walk_timeline(booking, SETTINGS)

    assert groups == [[first, second]]
    assert booking.sentence_groups == groups
    assert booking.adjustments.total_days(["ADDITIONAL_DAYS_SERVED"]) == 3
    assert second.sentence_calculation.served_ada_days == 3
    assert first.sentence_calculation.served_ada_days == 0
    assert first.sentence_calculation.release_date == date(2022, 6, 11)


def test_gap_without_ada_starts_a_new_group():
    first, second = two_sentences_with_a_gap()
    adjustments = make_adjustments(("REMAND", 20, date(2022, 6, 5)))
    booking = prepared(make_booking([first, second], adjustments))

    groups = walk_timeline(booking, SETTINGS)

    assert groups == [[first], [second]]
    assert first.sentence_calculation.deducted_days == 0
    assert second.sentence_calculation.deducted_days == 20
    assert second.sentence_calculation.window.after == date(2022, 6, 1)


def test_concurrent_sentences_share_one_group():
    first = make_sds(Duration.of(months=6))
    second = make_sds(Duration.of(months=3))
    booking = prepared(make_booking([first, second]))
    assert walk_timeline(booking, SETTINGS) == [[first, second]]


def test_release_is_capped_at_the_group_expiry():
    sentence = make_sds(Duration.of(months=6))
    adjustments = make_adjustments(("ADDITIONAL_DAYS_AWARDED", 100, date(2022, 1, 1)))
    booking = prepared(make_booking([sentence], adjustments))

    walk_timeline(booking, SETTINGS)

    calc = sentence.sentence_calculation
    assert calc.release_date == date(2022, 6, 30)
    assert calc.unused_release_ada == 10
    assert calc.breakdown["CRD"].rules_with_extra_adjustments == {"UNUSED_ADA": (10, "days")}


def test_overlapping_remand_periods_are_rejected():
    adjustments = make_adjustments(
        ("REMAND", 60, date(2021, 1, 1), date(2021, 1, 1), date(2021, 3, 1)),
        ("REMAND", 60, date(2021, 2, 1), date(2021, 2, 1), date(2021, 4, 1)),
    )
    with pytest.raises(RemandOverlapsRemand) as excinfo:
        check_overlaps(make_booking([], adjustments))
    assert excinfo.value.code == "REMAND_OVERLAPS_WITH_REMAND"


def test_remand_during_sentence_is_rejected():
    sentence = make_sds(sentenced_at=date(2021, 1, 1), offence=make_offence(committed_at=date(2020, 6, 1)))
    adjustments = make_adjustments(("REMAND", 30, date(2021, 6, 1), date(2021, 6, 1), date(2021, 6, 30)))
    booking = prepared(make_booking([sentence], adjustments))
    walk_timeline(booking, SETTINGS)
    with pytest.raises(RemandOverlapsSentence):
        check_overlaps(booking)


def test_remand_before_sentence_is_accepted():
    sentence = make_sds()
    adjustments = make_adjustments(("REMAND", 30, date(2021, 11, 1), date(2021, 11, 1), date(2021, 11, 30)))
    booking = prepared(make_booking([sentence], adjustments))
    walk_timeline(booking, SETTINGS)
    check_overlaps(booking)


def merged_range(sentences):
    """One range over the sentences' custodial periods, or None where they leave a gap."""
    ranges = sorted((custodial_range(s) for s in sentences), key=lambda r: r.start)
    merged = ranges[0]
    for following in ranges[1:]:
        if not merged.is_connected(following):
            return None
        merged = DateRange(merged.start, max(merged.end, following.end))
    return merged


def test_ada_filled_group_covers_the_whole_custodial_period():
    first, second = two_sentences_with_a_gap()
    adjustments = make_adjustments(("ADDITIONAL_DAYS_AWARDED", 10, date(2022, 3, 1)))
    booking = prepared(make_booking([first, second], adjustments))

    [group] = walk_timeline(booking, SETTINGS)

    latest_release = max(s.sentence_calculation.release_date for s in group)
    assert merged_range(group) == DateRange(date(2022, 1, 3), latest_release)


def test_recall_then_overlapping_sentence_starts_a_new_group():
    recall = make_sds(recall_type="STANDARD_RECALL")
    fresh = make_sds(Duration.of(years=1), sentenced_at=date(2022, 6, 1))
    adjustments = make_adjustments(
        ("UNLAWFULLY_AT_LARGE", 5, date(2022, 3, 1)),
        ("UNLAWFULLY_AT_LARGE", 7, date(2022, 7, 1)),
    )
    booking = prepared(make_booking([recall, fresh], adjustments))

    groups = walk_timeline(booking, SETTINGS)

    assert groups == [[recall], [fresh]]
    assert recall.sentence_calculation.window.before == date(2022, 5, 31)
    assert fresh.sentence_calculation.window.after == date(2022, 5, 31)
    assert recall.sentence_calculation.ual_days == 5
    assert fresh.sentence_calculation.ual_days == 7
