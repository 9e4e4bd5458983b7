from datetime import date

import pytest

from factories import make_booking
from release_dates.core.engine import calculate_release_dates
from release_dates.core.errors import NoSentencesProvided, RemandOverlapsRemand, RemandOverlapsSentence
from release_dates.core.types import CalculationOptions
from release_dates.schemas import BookingIn, CalculationResultOut


def make_payload(**overrides):
    base = {
        "offender": {"reference": "A1234BC", "date_of_birth": "1980-01-01"},
        "sentences": [
            {
                "sentenced_at": "2022-01-01",
                "offence": {"committed_at": "2021-06-01"},
                "term": {"years": 2},
            }
        ],
        "adjustments": [
            {"adjustment_type": "REMAND", "from_date": "2021-11-01", "to_date": "2021-11-30"},
        ],
    }
    base.update(overrides)
    return base


def run(payload, options=None):
    return calculate_release_dates(BookingIn.model_validate(payload).to_booking(), options)


def test_two_year_sds_with_remand():
    result = run(make_payload())
    assert result.dates["SLED"] == date(2023, 12, 1)
    assert result.dates["CRD"] == date(2022, 12, 1)
    assert result.dates["HDCED"] == date(2022, 7, 20)
    assert result.dates["HDCED4PLUS"] == date(2022, 7, 20)
    assert result.dates["TUSED"] == date(2023, 12, 1)
    assert result.dates["ESED"] == date(2023, 12, 31)
    assert result.breakdown["CRD"].adjusted_days == -30
    assert "ERSED" not in result.dates


def test_ersed_on_request():
    result = run(make_payload(), CalculationOptions(calculate_ersed=True))
    # A quarter of 730 days from sentence, less 30 days remand.
    assert result.dates["ERSED"] == date(2022, 6, 3)


def test_inactive_adjustments_are_ignored():
    payload = make_payload(
        adjustments=[
            {"adjustment_type": "REMAND", "from_date": "2021-11-01", "to_date": "2021-11-30", "active": False}
        ]
    )
    assert run(payload).dates["CRD"] == date(2022, 12, 31)


def test_result_serialises():
    output = CalculationResultOut.from_result(run(make_payload()))
    data = output.model_dump(mode="json")
    assert data["dates"]["CRD"] == "2022-12-01"
    assert data["effective_sentence_length"] == {"years": 2, "months": 0, "days": 0}
    assert len(data["sentences_impacting_final_release_date"]) == 1


def test_no_sentences():
    with pytest.raises(NoSentencesProvided):
        calculate_release_dates(make_booking([]))


def test_overlapping_remands_fail_the_calculation():
    payload = make_payload(
        sentences=[
            {"sentenced_at": "2021-05-01", "offence": {"committed_at": "2020-06-01"}, "term": {"years": 2}}
        ],
        adjustments=[
            {"adjustment_type": "REMAND", "from_date": "2021-01-01", "to_date": "2021-03-01"},
            {"adjustment_type": "REMAND", "from_date": "2021-02-01", "to_date": "2021-04-01"},
        ],
    )
    with pytest.raises(RemandOverlapsRemand):
        run(payload)


def test_remand_inside_sentence_fails_the_calculation():
    payload = make_payload(
        sentences=[
            {"sentenced_at": "2021-01-01", "offence": {"committed_at": "2020-06-01"}, "term": {"years": 2}}
        ],
        adjustments=[{"adjustment_type": "REMAND", "from_date": "2021-06-01", "to_date": "2021-06-30"}],
    )
    with pytest.raises(RemandOverlapsSentence):
        run(payload)


def test_consecutive_sentences_are_calculated_as_one():
    first_id = "11111111-1111-1111-1111-111111111111"
    payload = make_payload(
        sentences=[
            {
                "id": first_id,
                "sentenced_at": "2022-01-01",
                "offence": {"committed_at": "2021-06-01"},
                "term": {"years": 1},
            },
            {
                "sentenced_at": "2022-01-01",
                "offence": {"committed_at": "2021-06-01"},
                "term": {"months": 6},
                "consecutive_to": [first_id],
            },
        ],
        adjustments=[],
    )
    result = run(payload)
    assert result.dates["CRD"] == date(2022, 9, 30)
    assert result.dates["SLED"] == date(2023, 6, 30)
