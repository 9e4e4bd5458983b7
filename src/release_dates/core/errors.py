"""Typed failures raised by the calculation engine."""

from __future__ import annotations

from datetime import date
from uuid import UUID


class CalculationError(Exception):
    """Base class for failures a caller should render to the user."""

    code = "CALCULATION_ERROR"

    @property
    def codes(self) -> list[str]:
        return [self.code]


class UnsupportedCalculation(CalculationError):
    code = "UNSUPPORTED_CALCULATION"

    def __init__(self, message: str, sentence_ids: list[UUID] | None = None):
        super().__init__(message)
        self.sentence_ids = sentence_ids or []


class RemandOverlapsRemand(CalculationError):
    code = "REMAND_OVERLAPS_WITH_REMAND"

    def __init__(self, first: tuple[date, date], second: tuple[date, date]):
        super().__init__(
            f"Remand period {first[0]} to {first[1]} overlaps with remand period {second[0]} to {second[1]}"
        )
        self.first = first
        self.second = second


class RemandOverlapsSentence(CalculationError):
    code = "REMAND_OVERLAPS_WITH_SENTENCE"

    def __init__(self, remand: tuple[date, date], sentence: tuple[date, date], sentence_id: UUID):
        super().__init__(
            f"Remand period {remand[0]} to {remand[1]} overlaps with sentence {sentence_id} "
            f"served {sentence[0]} to {sentence[1]}"
        )
        self.remand = remand
        self.sentence = sentence
        self.sentence_id = sentence_id


class SentenceExtinguished(CalculationError):
    """Deductions move a release or expiry date to before the sentence began.

    ``causes`` names the deduction types responsible (``REMAND``, ``TAGGED_BAIL``).
    """

    code = "CUSTODIAL_PERIOD_EXTINGUISHED"

    def __init__(self, sentence_id: UUID, sentenced_at: date, end_date: date, causes: list[str] | None = None):
        self.causes = list(causes or [])
        by = " and ".join(c.lower().replace("_", " ") for c in self.causes) or "adjustments"
        super().__init__(
            f"Deductions for {by} reduce sentence {sentence_id} to end on {end_date}, "
            f"before it started on {sentenced_at}"
        )
        self.sentence_id = sentence_id
        self.sentenced_at = sentenced_at
        self.end_date = end_date

    @property
    def codes(self) -> list[str]:
        return [f"{self.code}_{cause}" for cause in self.causes] or [self.code]


class NoSentencesProvided(CalculationError):
    code = "NO_SENTENCES"

    def __init__(self):
        super().__init__("No sentences were provided for the calculation")


class ExtractionAmbiguous(CalculationError):
    code = "EXTRACTION_AMBIGUOUS"

    def __init__(self, first_id: UUID, second_id: UUID):
        super().__init__(
            f"Sentences {first_id} and {second_id} neither overlap nor run consecutively; "
            "no single set of release dates applies"
        )
        self.sentence_ids = [first_id, second_id]


class CannotMergeSentences(CalculationError):
    code = "CANNOT_MERGE_SENTENCES"

    def __init__(self, message: str, sentence_ids: list[UUID] | None = None):
        super().__init__(message)
        self.sentence_ids = sentence_ids or []


class MissingConfiguration(RuntimeError):
    """Required calculator configuration is absent. Not a user-facing failure."""
