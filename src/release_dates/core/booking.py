"""The booking: one offender's sentences and adjustments for a single calculation."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from .adjustments import Adjustments
from .sentences import ConsecutiveSentence, Sentence, SingleTermSentence
from .types import Offender


@dataclass(slots=True)
class Booking:
    offender: Offender
    sentences: list[Sentence]
    adjustments: Adjustments = field(default_factory=Adjustments)
    return_to_custody_date: date | None = None
    calculation_date: date | None = None
    consecutive_sentences: list[ConsecutiveSentence] = field(default_factory=list)
    single_term_sentence: SingleTermSentence | None = None
    sentence_groups: list[list[Sentence]] = field(default_factory=list)

    def absorbed_sentence_ids(self) -> set:
        absorbed = set()
        for chain in self.consecutive_sentences:
            absorbed.update(s.identifier for s in chain.ordered_sentences)
        if self.single_term_sentence is not None:
            absorbed.update(s.identifier for s in self.single_term_sentence.standard_sentences)
        return absorbed

    def extractable_sentences(self) -> list[Sentence]:
        """Chains, the single-term sentence and every base sentence neither absorbed."""
        absorbed = self.absorbed_sentence_ids()
        extractable: list[Sentence] = list(self.consecutive_sentences)
        if self.single_term_sentence is not None:
            extractable.append(self.single_term_sentence)
        extractable.extend(s for s in self.sentences if s.identifier not in absorbed)
        return extractable
