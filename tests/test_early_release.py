from datetime import date

from factories import SETTINGS, calculated, make_booking, make_offence, make_sds
from release_dates.core.duration import Duration
from release_dates.core.early_release import allocate_tranche
from release_dates.core.engine import calculate_release_dates

TRANCHE_ONE = date(2024, 9, 10)
TRANCHE_TWO = date(2024, 10, 22)
TRANCHE_THREE = date(2024, 12, 16)


def make_recent_sds(duration=None, **overrides):
    base = {"sentenced_at": date(2024, 1, 1), "offence": make_offence(committed_at=date(2023, 6, 1))}
    base.update(overrides)
    return make_sds(duration, **base)


def release_on(sentence, calculation_date=None):
    booking = make_booking([sentence], calculation_date=calculation_date)
    return calculated(sentence, booking).sentence_calculation


def test_usual_release_the_day_before_tranche_one():
    calc = release_on(make_recent_sds(), date(2024, 9, 9))
    assert calc.days_to_release == 366
    assert calc.release_date == date(2024, 12, 31)
    assert calc.early_release is None
    assert "SDS_EARLY_RELEASE" not in calc.breakdown["CRD"].rules


def test_forty_percent_release_from_tranche_one():
    calc = release_on(make_recent_sds(), TRANCHE_ONE)
    assert calc.days_to_release == 293
    assert calc.release_date == date(2024, 10, 19)
    assert calc.early_release.tranche == "TRANCHE_1"
    assert calc.breakdown["CRD"].rules == frozenset({"SDS_EARLY_RELEASE"})


def test_sentenced_after_commencement_is_not_tranched():
    calc = release_on(make_recent_sds(sentenced_at=TRANCHE_ONE))
    assert calc.days_to_release == 292
    assert calc.release_date == date(2025, 6, 28)
    assert calc.early_release.sentenced_after_commencement


def test_release_held_at_tranche_commencement():
    # Forty percent falls on 2024-08-19, before tranche one commenced.
    calc = release_on(make_recent_sds(sentenced_at=date(2023, 11, 1)))
    assert calc.release_date == TRANCHE_ONE
    assert calc.released_at_tranche_commencement
    assert calc.breakdown["CRD"].rules == frozenset(
        {"SDS_EARLY_RELEASE", "SDS_EARLY_RELEASE_ADJUSTED_TO_TRANCHE_COMMENCEMENT"}
    )


def test_released_before_tranche_keeps_usual_release():
    calc = release_on(make_recent_sds(Duration.of(years=1), sentenced_at=date(2024, 3, 1)))
    assert calc.release_date == date(2024, 8, 30)
    assert calc.early_release is None


def test_long_sentence_waits_for_tranche_two():
    long_sentence = make_sds(Duration.of(years=6))
    before = release_on(long_sentence, date(2024, 9, 30))
    assert before.release_date == date(2024, 12, 31)
    assert before.early_release is None

    after = release_on(make_sds(Duration.of(years=6)), TRANCHE_TWO)
    assert after.early_release.tranche == "TRANCHE_2"
    assert after.release_date == TRANCHE_TWO


def test_one_long_sentence_moves_the_booking_to_tranche_two():
    short = make_recent_sds()
    assert allocate_tranche(make_booking([short]), SETTINGS.early_release) == ("TRANCHE_1", TRANCHE_ONE)
    long_sentence = make_sds(Duration.of(years=6))
    assert allocate_tranche(make_booking([short, long_sentence]), SETTINGS.early_release) == (
        "TRANCHE_2",
        TRANCHE_TWO,
    )


def test_excluded_offence_keeps_usual_release():
    calc = release_on(make_recent_sds(early_release_exclusion="VIOLENT"), TRANCHE_ONE)
    assert calc.release_date == date(2024, 12, 31)
    assert calc.early_release is None


def test_tranche_three_exclusion_applies_from_tranche_three():
    before = release_on(make_recent_sds(early_release_exclusion="VIOLENT_T3"), date(2024, 12, 15))
    assert before.release_date == date(2024, 10, 19)
    after = release_on(make_recent_sds(early_release_exclusion="VIOLENT_T3"), TRANCHE_THREE)
    assert after.release_date == date(2024, 12, 31)


def test_sds_plus_is_not_released_early():
    calc = release_on(make_recent_sds(Duration.of(years=3), sentenced_at=date(2024, 10, 1), is_sds_plus=True))
    assert calc.days_to_release == 730
    assert calc.early_release is None


def test_recall_is_not_released_early():
    calc = release_on(make_recent_sds(sentenced_at=TRANCHE_ONE, recall_type="STANDARD_RECALL"))
    assert calc.early_release is None


def test_consecutive_chain_released_at_forty_percent():
    first = make_recent_sds(Duration.of(years=1), sentenced_at=date(2024, 10, 1))
    second = make_recent_sds(
        Duration.of(years=1), sentenced_at=date(2024, 10, 1), consecutive_sentence_ids=[first.identifier]
    )
    result = calculate_release_dates(make_booking([first, second]))
    # 292 of the chain's 730 days.
    assert result.dates["CRD"] == date(2025, 7, 19)
