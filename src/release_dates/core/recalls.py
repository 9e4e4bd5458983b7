"""Booking-level post recall release date for fixed term recalls of mixed lengths."""

from __future__ import annotations

import logging
from datetime import date, timedelta

from .sentences import Sentence, duration_is_at_least, duration_is_less_than
from .types import ReleaseDateCalculationBreakdown

logger = logging.getLogger(__name__)

GAP_LIMIT_DAYS = 14


def fixed_term_recall_sentences(sentences: list[Sentence]) -> list[Sentence]:
    recalls = [
        s
        for s in sentences
        if s.recall_type == "FIXED_TERM_RECALL_28"
        or (s.recall_type == "FIXED_TERM_RECALL_14" and "SLED" in s.release_date_types)
    ]
    return sorted(recalls, key=lambda s: s.sentenced_at)


def _is_twelve_months_or_more(sentence: Sentence) -> bool:
    return duration_is_at_least(sentence, 12, "months")


def is_mixed_duration(sentences: list[Sentence]) -> bool:
    return any(_is_twelve_months_or_more(s) for s in sentences) and any(
        duration_is_less_than(s, 12, "months") for s in sentences
    )


def _latest_by_expiry(sentences: list[Sentence]) -> Sentence | None:
    if not sentences:
        return None
    return max(sentences, key=lambda s: s.sentence_calculation.expiry_date)


def _capped(sentence: Sentence, max_release: date) -> date:
    if max_release < sentence.sentence_calculation.expiry_date:
        return max_release
    return sentence.sentence_calculation.release_date


def calculate_post_recall_release(
    sentences: list[Sentence],
    return_to_custody_date: date | None,
    latest_release_date: date,
) -> tuple[date, ReleaseDateCalculationBreakdown] | None:
    """PRRD across fixed term recalls where both short and long terms were recalled.

    Returns ``None`` when the per-sentence PRRD stands.
    """
    if return_to_custody_date is None:
        return None
    recalls = fixed_term_recall_sentences(sentences)
    if not is_mixed_duration(recalls):
        return None
    latest = _latest_by_expiry(recalls)

    calculation = latest.sentence_calculation
    offset = 13 if latest.recall_type == "FIXED_TERM_RECALL_14" else 27
    max_release = return_to_custody_date + timedelta(
        days=offset + calculation.ual_after_return_to_custody + calculation.awarded_days
    )

    if _is_twelve_months_or_more(latest):
        prrd = _capped(latest, max_release)
    else:
        adjacent = _latest_by_expiry([s for s in recalls if _is_twelve_months_or_more(s)])
        gap = (return_to_custody_date - adjacent.sentence_calculation.expiry_date).days
        if gap >= GAP_LIMIT_DAYS:
            return None
        if latest.recall_type == "FIXED_TERM_RECALL_28":
            prrd = _capped(adjacent, max_release)
        else:
            prrd = _capped(latest, max_release)

    if prrd == latest_release_date:
        return None
    logger.debug("Fixed term recall PRRD moved from %s to %s", latest_release_date, prrd)
    return prrd, ReleaseDateCalculationBreakdown(
        release_date=prrd,
        unadjusted_date=return_to_custody_date + timedelta(days=offset),
        rules=frozenset({"PRRD_FIXED_TERM_RECALL_MIXED_DURATIONS"}),
        adjusted_days=(prrd - (return_to_custody_date + timedelta(days=offset))).days,
    )
