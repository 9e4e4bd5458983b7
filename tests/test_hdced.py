from datetime import date, timedelta

from factories import SETTINGS, calculated, make_adjustments, make_booking, make_offence, make_offender, make_sds
from release_dates.core.duration import Duration
from release_dates.core.hdced import calculate_hdced
from release_dates.core.hdced4 import calculate_hdced4


def hdced_for(sentence, adjustments=None, offender=None):
    offender = offender or make_offender()
    booking = make_booking([sentence], adjustments, offender=offender)
    calculated(sentence, booking)
    return calculate_hdced(sentence, sentence.sentence_calculation, offender, SETTINGS.hdced)


def hdced4_for(sentence, adjustments=None, offender=None):
    offender = offender or make_offender()
    booking = make_booking([sentence], adjustments, offender=offender)
    calculated(sentence, booking)
    return calculate_hdced4(sentence, sentence.sentence_calculation, offender, SETTINGS.hdced4plus)


def test_hdced_above_midpoint_is_135_days_before_release():
    hdced, breakdown = hdced_for(make_sds(Duration.of(years=2)))
    assert hdced == date(2022, 8, 19)
    assert breakdown.rules == frozenset({"HDCED_GE_MIDPOINT_LT_MAX_PERIOD", "HDC_180"})


def test_hdced_below_midpoint_is_a_quarter_of_the_sentence():
    hdced, breakdown = hdced_for(make_sds(Duration.of(months=6)))
    assert hdced == date(2022, 2, 16)
    assert breakdown.rules == frozenset({"HDCED_GE_MIN_PERIOD_LT_MIDPOINT", "HDC_180"})
    assert breakdown.rules_with_extra_adjustments["HDCED_GE_MIN_PERIOD_LT_MIDPOINT"] == (46, "days")


def sentenced_after_sds40(duration):
    # Released at forty percent from 2024-10-01.
    return make_sds(duration, sentenced_at=date(2024, 10, 1), offence=make_offence(committed_at=date(2024, 6, 1)))


def test_hdc_180_rules_stand_before_365_commencement():
    hdced, _ = hdced_for(make_sds(Duration.of(years=2)))
    assert hdced < SETTINGS.hdced.hdc365_commencement_date


def test_hdced_moved_to_365_commencement():
    # 438 day custodial period: 2025-07-31 under the 180 day rules, 2025-05-08 under the 365 day rules.
    hdced, breakdown = hdced_for(sentenced_after_sds40(Duration.of(years=3)))
    assert hdced == date(2025, 6, 3)
    assert breakdown.release_date == date(2025, 6, 3)
    assert breakdown.rules == frozenset({"HDCED_GE_MIN_PERIOD_LT_MIDPOINT", "HDCED_ADJUSTED_TO_365_COMMENCEMENT"})


def test_hdced_under_365_rules_after_commencement():
    # 585 day custodial period, below the 730 day midpoint.
    hdced, breakdown = hdced_for(sentenced_after_sds40(Duration.of(years=4)))
    assert hdced == date(2025, 7, 21)
    assert breakdown.rules == frozenset({"HDCED_GE_MIN_PERIOD_LT_MIDPOINT"})
    assert breakdown.rules_with_extra_adjustments["HDCED_GE_MIN_PERIOD_LT_MIDPOINT"] == (293, "days")


def test_365_rules_above_midpoint_take_364_days_off_release():
    sentence = sentenced_after_sds40(Duration.of(years=6))
    hdced, breakdown = hdced_for(sentence)
    assert sentence.sentence_calculation.release_date - hdced == timedelta(days=364)
    assert breakdown.rules == frozenset({"HDCED_GE_MIDPOINT_LT_MAX_PERIOD"})


def test_hdced_remand_counts_against_the_date():
    hdced, breakdown = hdced_for(
        make_sds(Duration.of(years=2)), make_adjustments(("REMAND", 30, date(2021, 12, 1)))
    )
    assert hdced == date(2022, 7, 20)
    assert breakdown.adjusted_days == -30


def test_hdced_clamped_to_minimum_days_on_curfew():
    hdced, breakdown = hdced_for(
        make_sds(Duration.of(months=6)), make_adjustments(("REMAND", 40, date(2021, 12, 1)))
    )
    assert hdced == date(2022, 1, 15)
    assert "HDCED_MINIMUM_CUSTODIAL_PERIOD" in breakdown.rules


def test_no_hdced_when_release_is_within_minimum_days():
    result = hdced_for(make_sds(Duration.of(months=6)), make_adjustments(("REMAND", 80, date(2021, 12, 1))))
    assert result is None


def test_no_hdced_for_short_custodial_period():
    assert hdced_for(make_sds(Duration.of(days=80))) is None


def test_no_hdced_for_sex_offender_or_sds_plus():
    assert hdced_for(make_sds(), offender=make_offender(is_active_sex_offender=True)) is None
    assert hdced_for(make_sds(is_sds_plus=True)) is None


def test_hdced_never_moves_earlier_as_ual_grows():
    previous = None
    for ual in range(0, 30, 3):
        adjustments = make_adjustments(("UNLAWFULLY_AT_LARGE", ual, date(2022, 1, 1))) if ual else None
        hdced, _ = hdced_for(make_sds(Duration.of(months=6)), adjustments)
        if previous is not None:
            assert hdced >= previous
        previous = hdced


def test_hdced4_above_midpoint():
    hdced4, breakdown = hdced4_for(make_sds(Duration.of(years=4)))
    assert hdced4 == date(2023, 8, 20)
    assert breakdown.rules == frozenset({"HDCED_GE_MIDPOINT_LT_MAX_PERIOD"})


def test_hdced4_below_midpoint_uses_quarter_of_expiry():
    hdced4, _ = hdced4_for(make_sds(Duration.of(months=12)))
    assert hdced4 == date(2022, 1, 1) + timedelta(days=92)


def test_hdced4_clamped_to_minimum_period():
    hdced4, breakdown = hdced4_for(
        make_sds(Duration.of(months=12)), make_adjustments(("REMAND", 80, date(2021, 12, 1)))
    )
    assert hdced4 == date(2022, 1, 15)
    assert "HDCED_MINIMUM_CUSTODIAL_PERIOD" in breakdown.rules


def test_hdced4_not_for_recall_or_sds_plus():
    assert hdced4_for(make_sds(Duration.of(years=4), recall_type="STANDARD_RECALL")) is None
    assert hdced4_for(make_sds(Duration.of(years=4), is_sds_plus=True)) is None
