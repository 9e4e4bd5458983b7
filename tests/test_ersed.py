from datetime import date, timedelta

from factories import SETTINGS, calculated, make_adjustments, make_booking, make_eds, make_sds
from release_dates.core.duration import Duration
from release_dates.core.ersed import calculate_ersed
from release_dates.core.types import CalculationOptions

ENABLED = CalculationOptions(calculate_ersed=True)


def ersed_for(sentence, adjustments=None, options=ENABLED):
    calculated(sentence, make_booking([sentence], adjustments))
    return calculate_ersed(sentence, sentence.sentence_calculation, options, SETTINGS.ersed)


def test_ersed_only_when_requested():
    assert ersed_for(make_sds(Duration.of(years=4)), options=CalculationOptions()) is None


def test_ersed_halfway_is_a_quarter_of_the_sentence():
    ersed, breakdown = ersed_for(make_sds(Duration.of(years=4)))
    assert ersed == date(2023, 1, 2)
    assert breakdown.rules == frozenset({"ERSED_HALFWAY"})


def test_ersed_two_thirds_is_a_third_of_the_sentence():
    ersed, breakdown = ersed_for(make_sds(Duration.of(years=3), is_sds_plus=True))
    assert ersed == date(2023, 1, 2)
    assert breakdown.rules == frozenset({"ERSED_TWO_THIRDS"})


def test_long_sentence_ersed_is_capped_before_release():
    sentence = make_sds(Duration.of(years=12))
    ersed, breakdown = ersed_for(sentence)
    assert ersed == sentence.sentence_calculation.release_date - timedelta(days=544)
    assert breakdown.rules == frozenset({"ERSED_MAX_PERIOD"})


def test_parole_eligible_sentence_counts_from_ped():
    sentence = make_eds()
    ersed, breakdown = ersed_for(sentence)
    assert ersed == date(2024, 7, 5)
    assert ersed == sentence.sentence_calculation.parole_eligibility_date - timedelta(days=544)
    assert breakdown.rules == frozenset({"ERSED_MAX_PERIOD"})


def test_ersed_never_before_sentence_date():
    ersed, breakdown = ersed_for(
        make_sds(Duration.of(months=6)), make_adjustments(("REMAND", 60, date(2021, 12, 1)))
    )
    assert ersed == date(2022, 1, 1)
    assert breakdown.rules == frozenset({"ERSED_BEFORE_SENTENCE_DATE"})


def test_no_ersed_for_recall():
    assert ersed_for(make_sds(Duration.of(years=4), recall_type="STANDARD_RECALL")) is None
