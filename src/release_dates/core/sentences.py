"""Sentence variants and the predicates the rules are written against."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from math import ceil
from typing import TYPE_CHECKING, Union
from uuid import UUID, uuid4

from .duration import Duration, DurationAggregator, days_in
from .types import Offence, RecallType, SDSEarlyReleaseExclusion, TimeUnit

if TYPE_CHECKING:
    from ..config import ImportantDates
    from .calculation import SentenceCalculation

AFTER_CJA_LASPO_TRACKS = {"SDS_AFTER_CJA_LASPO", "SDS_TWO_THIRDS_RELEASE"}
TWO_THIRDS_TRACKS = {"SDS_TWO_THIRDS_RELEASE", "EDS_AUTOMATIC_RELEASE", "SOPC_PED_AT_TWO_THIRDS"}
HALFWAY_TRACKS = {
    "SDS_BEFORE_CJA_LASPO",
    "SDS_AFTER_CJA_LASPO",
    "AFINE_ARD_AT_HALFWAY",
    "DTO_BEFORE_PCSC",
    "DTO_AFTER_PCSC",
}


@dataclass(slots=True, kw_only=True, eq=False)
class SentenceBase:
    sentenced_at: date
    offence: Offence
    identifier: UUID = field(default_factory=uuid4)
    consecutive_sentence_ids: list[UUID] = field(default_factory=list)
    recall_type: RecallType | None = None
    line_sequence: int | None = None
    case_sequence: int | None = None
    identification_track: str | None = None
    release_date_types: set[str] = field(default_factory=set)
    calculation: SentenceCalculation | None = None

    @property
    def sentence_calculation(self) -> SentenceCalculation:
        if self.calculation is None:
            raise RuntimeError(f"sentence {self.identifier} has not been calculated")
        return self.calculation

    def describe(self) -> str:
        label = type(self).__name__
        if self.line_sequence is not None:
            return f"{label} {self.case_sequence or '-'}/{self.line_sequence}"
        return f"{label} {str(self.identifier)[:8]}"


@dataclass(slots=True, kw_only=True, eq=False)
class StandardDeterminateSentence(SentenceBase):
    duration: Duration
    is_sds_plus: bool = False
    early_release_exclusion: SDSEarlyReleaseExclusion | None = None


@dataclass(slots=True, kw_only=True, eq=False)
class ExtendedDeterminateSentence(SentenceBase):
    custodial_duration: Duration
    extension_duration: Duration
    automatic_release: bool = False


@dataclass(slots=True, kw_only=True, eq=False)
class SopcSentence(SentenceBase):
    custodial_duration: Duration
    extension_duration: Duration
    sdopcu18: bool = False


@dataclass(slots=True, kw_only=True, eq=False)
class AFineSentence(SentenceBase):
    duration: Duration
    fine_amount: Decimal | None = None


@dataclass(slots=True, kw_only=True, eq=False)
class DetentionAndTrainingOrder(SentenceBase):
    duration: Duration


@dataclass(slots=True, kw_only=True, eq=False)
class SingleTermSentence(SentenceBase):
    """Concurrent pre-LASPO sentences (or DTOs) treated as one term."""

    standard_sentences: list[Sentence]
    duration: Duration


@dataclass(slots=True, kw_only=True, eq=False)
class ConsecutiveSentence(SentenceBase):
    ordered_sentences: list[Sentence]


Sentence = Union[
    StandardDeterminateSentence,
    ExtendedDeterminateSentence,
    SopcSentence,
    AFineSentence,
    DetentionAndTrainingOrder,
    SingleTermSentence,
    ConsecutiveSentence,
]


def sentence_parts(sentence: Sentence) -> list[Sentence]:
    if isinstance(sentence, ConsecutiveSentence):
        return list(sentence.ordered_sentences)
    if isinstance(sentence, SingleTermSentence):
        return list(sentence.standard_sentences)
    return [sentence]


def total_duration(sentence: Sentence) -> Duration:
    if isinstance(sentence, (ExtendedDeterminateSentence, SopcSentence)):
        return sentence.custodial_duration.copy().append_all(sentence.extension_duration)
    if isinstance(sentence, ConsecutiveSentence):
        combined = Duration()
        for part in sentence.ordered_sentences:
            combined.append_all(total_duration(part))
        return combined
    return sentence.duration.copy()


def custodial_duration(sentence: Sentence) -> Duration:
    if isinstance(sentence, (ExtendedDeterminateSentence, SopcSentence)):
        return sentence.custodial_duration.copy()
    if isinstance(sentence, ConsecutiveSentence):
        combined = Duration()
        for part in sentence.ordered_sentences:
            combined.append_all(custodial_duration(part))
        return combined
    return sentence.duration.copy()


def length_in_days(sentence: Sentence) -> int:
    if isinstance(sentence, ConsecutiveSentence):
        durations = [total_duration(part) for part in sentence.ordered_sentences]
        return DurationAggregator(durations).calculate_days(sentence.sentenced_at)
    return total_duration(sentence).length_in_days(sentence.sentenced_at)


def custodial_length_in_days(sentence: Sentence) -> int:
    if isinstance(sentence, ConsecutiveSentence):
        durations = [custodial_duration(part) for part in sentence.ordered_sentences]
        return DurationAggregator(durations).calculate_days(sentence.sentenced_at)
    return custodial_duration(sentence).length_in_days(sentence.sentenced_at)


def unadjusted_expiry(sentence: Sentence) -> date:
    return sentence.sentenced_at + timedelta(days=length_in_days(sentence) - 1)


def half_sentence_date(sentence: Sentence) -> date:
    return sentence.sentenced_at + timedelta(days=ceil(length_in_days(sentence) / 2))


def duration_is_less_than(sentence: Sentence, count: int, unit: TimeUnit) -> bool:
    return length_in_days(sentence) < days_in(sentence.sentenced_at, count, unit)


def duration_is_less_than_or_equal_to(sentence: Sentence, count: int, unit: TimeUnit) -> bool:
    return length_in_days(sentence) <= days_in(sentence.sentenced_at, count, unit)


def duration_is_at_least(sentence: Sentence, count: int, unit: TimeUnit) -> bool:
    return length_in_days(sentence) >= days_in(sentence.sentenced_at, count, unit)


def is_recall(sentence: Sentence) -> bool:
    return sentence.recall_type is not None


def is_dto(sentence: Sentence) -> bool:
    return all(isinstance(part, DetentionAndTrainingOrder) for part in sentence_parts(sentence))


def is_sds_plus(sentence: Sentence) -> bool:
    parts = sentence_parts(sentence)
    return all(isinstance(p, StandardDeterminateSentence) and p.is_sds_plus for p in parts)


def has_sds_plus(sentence: Sentence) -> bool:
    return any(isinstance(p, StandardDeterminateSentence) and p.is_sds_plus for p in sentence_parts(sentence))


def is_ora_sentence(sentence: Sentence, dates: ImportantDates) -> bool:
    return isinstance(sentence, StandardDeterminateSentence) and sentence.offence.committed_at >= dates.ora_date


def has_ora_sentences(sentence: Sentence, dates: ImportantDates) -> bool:
    return any(is_ora_sentence(p, dates) for p in sentence_parts(sentence))


def has_non_ora_sentences(sentence: Sentence, dates: ImportantDates) -> bool:
    return any(
        isinstance(p, StandardDeterminateSentence) and not is_ora_sentence(p, dates)
        for p in sentence_parts(sentence)
    )


def is_only_after_cja_laspo(sentence: Sentence) -> bool:
    return all(p.identification_track in AFTER_CJA_LASPO_TRACKS for p in sentence_parts(sentence))


def is_only_before_cja_laspo(sentence: Sentence) -> bool:
    return all(p.identification_track == "SDS_BEFORE_CJA_LASPO" for p in sentence_parts(sentence))


def is_before_and_after_cja_laspo(sentence: Sentence) -> bool:
    tracks = {p.identification_track for p in sentence_parts(sentence)}
    return "SDS_BEFORE_CJA_LASPO" in tracks and bool(tracks & AFTER_CJA_LASPO_TRACKS)


def all_standard_sentences(sentence: Sentence) -> bool:
    return all(isinstance(p, StandardDeterminateSentence) for p in sentence_parts(sentence))


def has_eds_or_sopc(sentence: Sentence) -> bool:
    return any(isinstance(p, (ExtendedDeterminateSentence, SopcSentence)) for p in sentence_parts(sentence))


def has_discretionary_release(sentence: Sentence) -> bool:
    return any(
        isinstance(p, SopcSentence) or (isinstance(p, ExtendedDeterminateSentence) and not p.automatic_release)
        for p in sentence_parts(sentence)
    )


def releases_at_halfway(sentence: Sentence) -> bool:
    return all(p.identification_track in HALFWAY_TRACKS for p in sentence_parts(sentence))


def releases_at_two_thirds(sentence: Sentence) -> bool:
    return all(p.identification_track in TWO_THIRDS_TRACKS for p in sentence_parts(sentence))
