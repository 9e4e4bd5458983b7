"""Build consecutive chains and the single-term sentence from a booking's base sentences.

A sentence may have more than one sentence consecutive to it, so the
consecutive-to links form a forest rather than a list. Every maximal path
through that forest becomes its own ``ConsecutiveSentence``.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import timedelta
from uuid import UUID

from ..config import Settings
from .booking import Booking
from .duration import Duration
from .errors import CannotMergeSentences, UnsupportedCalculation
from .identification import identify_in_place
from .sentences import (
    ConsecutiveSentence,
    DetentionAndTrainingOrder,
    Sentence,
    SingleTermSentence,
    StandardDeterminateSentence,
    is_recall,
    total_duration,
    unadjusted_expiry,
)
from .types import Offence

logger = logging.getLogger(__name__)


def chain_paths(sentences: list[Sentence]) -> list[list[Sentence]]:
    """All head-to-leaf paths of length two or more, in input order."""
    by_id = {s.identifier: s for s in sentences}
    successors: dict[UUID, list[Sentence]] = defaultdict(list)
    for sentence in sentences:
        for predecessor_id in sentence.consecutive_sentence_ids:
            if predecessor_id in by_id:
                successors[predecessor_id].append(sentence)

    heads = [s for s in sentences if not any(pid in by_id for pid in s.consecutive_sentence_ids)]
    paths: list[list[Sentence]] = []

    def walk(path: list[Sentence]) -> None:
        children = successors.get(path[-1].identifier, [])
        if not children:
            paths.append(path)
            return
        for child in children:
            if child in path:
                raise CannotMergeSentences(
                    "Consecutive sentences loop back on themselves", [s.identifier for s in path]
                )
            walk([*path, child])

    for head in heads:
        walk([head])

    linked = {s.identifier for path in paths for s in path}
    unreached = [s.identifier for s in sentences if s.consecutive_sentence_ids and s.identifier not in linked]
    if unreached:
        raise CannotMergeSentences("Consecutive sentences loop back on themselves", unreached)
    return [path for path in paths if len(path) > 1]


def _check_mergeable(path: list[Sentence]) -> None:
    dto = [isinstance(s, DetentionAndTrainingOrder) for s in path]
    if any(dto) and not all(dto):
        raise UnsupportedCalculation(
            "A detention and training order cannot run consecutively with another sentence type",
            [s.identifier for s in path],
        )


def _earliest_offence(sentences: list[Sentence]) -> Offence:
    earliest = min((s.offence for s in sentences), key=lambda o: o.committed_at)
    return Offence(
        committed_at=earliest.committed_at,
        offence_code=earliest.offence_code,
        is_schedule_15=any(s.offence.is_schedule_15 for s in sentences),
        is_schedule_15_maximum_life=any(s.offence.is_schedule_15_maximum_life for s in sentences),
    )


def _merge(path: list[Sentence]) -> ConsecutiveSentence:
    _check_mergeable(path)
    recall_type = next((s.recall_type for s in path if s.recall_type is not None), None)
    return ConsecutiveSentence(
        sentenced_at=min(s.sentenced_at for s in path),
        offence=_earliest_offence(path),
        ordered_sentences=list(path),
        recall_type=recall_type,
    )


def _chain_key(chain: ConsecutiveSentence) -> tuple:
    return (
        chain.sentenced_at,
        chain.identification_track,
        str(total_duration(chain)),
        type(chain).__name__,
        chain.recall_type,
    )


def build_consecutive_sentences(booking: Booking, settings: Settings) -> list[ConsecutiveSentence]:
    chains: list[ConsecutiveSentence] = []
    seen: set[tuple] = set()
    for path in chain_paths(booking.sentences):
        chain = identify_in_place(_merge(path), booking.offender, settings)
        key = _chain_key(chain)
        if key in seen:
            logger.debug("Dropping duplicate chain %s", chain.describe())
            continue
        seen.add(key)
        chains.append(chain)
    logger.debug("Built %d consecutive chain(s)", len(chains))
    return chains


def build_single_term_sentence(booking: Booking, settings: Settings) -> SingleTermSentence | None:
    """Concurrent pre-LASPO SDS terms (or concurrent DTOs) served as one term."""
    sentences = booking.sentences
    if len(sentences) < 2:
        return None
    all_pre_laspo = all(
        isinstance(s, StandardDeterminateSentence) and s.identification_track == "SDS_BEFORE_CJA_LASPO"
        for s in sentences
    )
    all_dto = all(isinstance(s, DetentionAndTrainingOrder) for s in sentences)
    if not (all_pre_laspo or all_dto):
        return None
    if any(s.consecutive_sentence_ids for s in sentences) or any(is_recall(s) for s in sentences):
        return None
    if len({s.sentenced_at for s in sentences}) == 1:
        return None

    earliest = min(s.sentenced_at for s in sentences)
    latest_expiry = max(unadjusted_expiry(s) for s in sentences)
    single = SingleTermSentence(
        sentenced_at=earliest,
        offence=_earliest_offence(sentences),
        standard_sentences=list(sentences),
        duration=Duration.of(days=(latest_expiry + timedelta(days=1) - earliest).days),
    )
    return identify_in_place(single, booking.offender, settings)
