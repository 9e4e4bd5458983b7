"""Pydantic schemas for source records and calculation results."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Literal
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .core.adjustments import Adjustment, Adjustments
from .core.booking import Booking
from .core.duration import Duration
from .core.extraction import CalculationResult
from .core.sentences import (
    AFineSentence,
    DetentionAndTrainingOrder,
    ExtendedDeterminateSentence,
    Sentence,
    SopcSentence,
    StandardDeterminateSentence,
)
from .core.types import Offence, Offender, RecallType, ReleaseDateCalculationBreakdown, SDSEarlyReleaseExclusion

SentenceType = Literal["sds", "eds", "sopc", "afine", "dto"]

SourceAdjustmentType = Literal[
    "REMAND",
    "TAGGED_BAIL",
    "UNLAWFULLY_AT_LARGE",
    "ADDITIONAL_DAYS_AWARDED",
    "RESTORATION_OF_ADDITIONAL_DAYS_AWARDED",
]


class OffenderIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    reference: str
    date_of_birth: date
    is_active_sex_offender: bool = False

    def to_offender(self) -> Offender:
        return Offender(self.reference, self.date_of_birth, self.is_active_sex_offender)


class OffenceIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    committed_at: date
    offence_code: str | None = None
    is_schedule_15: bool = False
    is_schedule_15_maximum_life: bool = False

    def to_offence(self) -> Offence:
        return Offence(
            committed_at=self.committed_at,
            offence_code=self.offence_code,
            is_schedule_15=self.is_schedule_15,
            is_schedule_15_maximum_life=self.is_schedule_15_maximum_life,
        )


class TermIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    years: int = Field(default=0, ge=0)
    months: int = Field(default=0, ge=0)
    weeks: int = Field(default=0, ge=0)
    days: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def validate_not_empty(self) -> "TermIn":
        if not (self.years or self.months or self.weeks or self.days):
            raise ValueError("A term needs at least one non-zero unit")
        return self

    def to_duration(self) -> Duration:
        return Duration.of(years=self.years, months=self.months, weeks=self.weeks, days=self.days)


class SentenceIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: UUID = Field(default_factory=uuid4)
    sentence_type: SentenceType = "sds"
    sentenced_at: date
    offence: OffenceIn
    term: TermIn
    extension: TermIn | None = None
    consecutive_to: list[UUID] = Field(default_factory=list)
    recall_type: RecallType | None = None
    is_sds_plus: bool = False
    early_release_exclusion: SDSEarlyReleaseExclusion | None = None
    automatic_release: bool = False
    sdopcu18: bool = False
    fine_amount: Decimal | None = Field(default=None, ge=0)
    line_sequence: int | None = None
    case_sequence: int | None = None

    @model_validator(mode="after")
    def validate_extension(self) -> "SentenceIn":
        if self.sentence_type in ("eds", "sopc") and self.extension is None:
            raise ValueError(f"{self.sentence_type} sentences need an extension term")
        if self.sentence_type not in ("eds", "sopc") and self.extension is not None:
            raise ValueError("Only eds and sopc sentences take an extension term")
        if self.sentence_type != "sds" and self.early_release_exclusion is not None:
            raise ValueError("Only sds sentences carry an early release exclusion")
        return self

    def to_sentence(self) -> Sentence:
        common = {
            "identifier": self.id,
            "sentenced_at": self.sentenced_at,
            "offence": self.offence.to_offence(),
            "consecutive_sentence_ids": list(self.consecutive_to),
            "recall_type": self.recall_type,
            "line_sequence": self.line_sequence,
            "case_sequence": self.case_sequence,
        }
        if self.sentence_type == "eds":
            return ExtendedDeterminateSentence(
                custodial_duration=self.term.to_duration(),
                extension_duration=self.extension.to_duration(),
                automatic_release=self.automatic_release,
                **common,
            )
        if self.sentence_type == "sopc":
            return SopcSentence(
                custodial_duration=self.term.to_duration(),
                extension_duration=self.extension.to_duration(),
                sdopcu18=self.sdopcu18,
                **common,
            )
        if self.sentence_type == "afine":
            return AFineSentence(duration=self.term.to_duration(), fine_amount=self.fine_amount, **common)
        if self.sentence_type == "dto":
            return DetentionAndTrainingOrder(duration=self.term.to_duration(), **common)
        return StandardDeterminateSentence(
            duration=self.term.to_duration(),
            is_sds_plus=self.is_sds_plus,
            early_release_exclusion=self.early_release_exclusion,
            **common,
        )


class AdjustmentIn(BaseModel):
    """An adjustment given either as a day count or as an inclusive date range."""

    model_config = ConfigDict(extra="forbid")

    adjustment_type: SourceAdjustmentType
    number_of_days: int | None = Field(default=None, ge=0)
    from_date: date | None = None
    to_date: date | None = None
    applies_to_sentences_from: date | None = None
    active: bool = True

    @model_validator(mode="after")
    def validate_days(self) -> "AdjustmentIn":
        if self.from_date and self.to_date and self.to_date < self.from_date:
            raise ValueError("to_date is before from_date")
        if self.number_of_days is None and not (self.from_date and self.to_date):
            raise ValueError("Provide number_of_days or both from_date and to_date")
        if self.applies_to_sentences_from is None and self.from_date is None:
            raise ValueError("Provide applies_to_sentences_from or from_date")
        return self

    def to_adjustment(self) -> Adjustment:
        days = self.number_of_days
        if days is None:
            days = (self.to_date - self.from_date).days + 1
        return Adjustment(
            number_of_days=days,
            applies_to_sentences_from=self.applies_to_sentences_from or self.from_date,
            from_date=self.from_date,
            to_date=self.to_date,
        )


class BookingIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    offender: OffenderIn
    sentences: list[SentenceIn] = Field(default_factory=list)
    adjustments: list[AdjustmentIn] = Field(default_factory=list)
    return_to_custody_date: date | None = None
    calculation_date: date | None = None

    def to_booking(self) -> Booking:
        """Build a fresh booking; inactive adjustments are left out."""
        adjustments = Adjustments()
        for item in self.adjustments:
            if item.active:
                adjustments.add(item.adjustment_type, item.to_adjustment())
        return Booking(
            offender=self.offender.to_offender(),
            sentences=[s.to_sentence() for s in self.sentences],
            adjustments=adjustments,
            return_to_custody_date=self.return_to_custody_date,
            calculation_date=self.calculation_date,
        )


class BreakdownOut(BaseModel):
    release_date: date
    unadjusted_date: date
    adjusted_days: int
    rules: list[str]
    rules_with_extra_adjustments: dict[str, tuple[int, str]]

    @classmethod
    def from_breakdown(cls, breakdown: ReleaseDateCalculationBreakdown) -> "BreakdownOut":
        return cls(
            release_date=breakdown.release_date,
            unadjusted_date=breakdown.unadjusted_date,
            adjusted_days=breakdown.adjusted_days,
            rules=sorted(breakdown.rules),
            rules_with_extra_adjustments=dict(breakdown.rules_with_extra_adjustments),
        )


class EffectiveSentenceLengthOut(BaseModel):
    years: int
    months: int
    days: int


class CalculationResultOut(BaseModel):
    dates: dict[str, date]
    breakdown: dict[str, BreakdownOut]
    effective_sentence_length: EffectiveSentenceLengthOut
    sentences_impacting_final_release_date: list[UUID]

    @classmethod
    def from_result(cls, result: CalculationResult) -> "CalculationResultOut":
        years, months, days = result.effective_sentence_length
        return cls(
            dates=dict(result.dates),
            breakdown={k: BreakdownOut.from_breakdown(v) for k, v in result.breakdown.items()},
            effective_sentence_length=EffectiveSentenceLengthOut(years=years, months=months, days=days),
            sentences_impacting_final_release_date=[s.identifier for s in result.sentences_impacting_final_release_date],
        )
