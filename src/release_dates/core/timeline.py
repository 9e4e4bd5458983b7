"""Walk the booking's sentences in date order and attribute adjustments to groups.

Sentences whose custodial ranges touch are served as one unbroken period and
share their adjustments. A gap between two ranges can be bridged by additional
days awarded that had not yet been served; otherwise the first group is
closed and the next starts after the release it reached.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from itertools import combinations

from ..config import Settings
from .adjustments import Adjustment, AdjustmentWindow
from .booking import Booking
from .calculation import custodial_range, range_before_awarded_days, recalculate
from .errors import RemandOverlapsRemand, RemandOverlapsSentence
from .sentences import Sentence, is_recall
from .types import AWARDED_TYPES, RESTORED_TYPES, DateRange

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TimelineTracker:
    groups: list[list[Sentence]] = field(default_factory=list)
    current_group: list[Sentence] = field(default_factory=list)
    current_range: DateRange | None = None
    adjustments_after: date | None = None
    previous_sentence: Sentence | None = None

    def start_group(self, sentence: Sentence, sentence_range: DateRange) -> None:
        self.current_group = [sentence]
        self.current_range = sentence_range

    def extend(self, sentence: Sentence, sentence_range: DateRange) -> None:
        self.current_group.append(sentence)
        self.current_range = DateRange(self.current_range.start, max(self.current_range.end, sentence_range.end))


def walk_timeline(booking: Booking, settings: Settings) -> list[list[Sentence]]:
    """Group the extractable sentences and recalculate each group with its adjustment window."""
    sentences = sorted(booking.extractable_sentences(), key=lambda s: s.sentenced_at)
    tracker = TimelineTracker()

    for sentence in sentences:
        sentence_range = range_before_awarded_days(sentence)
        if tracker.current_range is None:
            tracker.start_group(sentence, sentence_range)
        elif is_recall(tracker.previous_sentence) and not is_recall(sentence):
            logger.debug("Recall boundary before %s", sentence.describe())
            _finalise_group(tracker, booking, settings, next_sentence=sentence)
            tracker.start_group(sentence, sentence_range)
        elif tracker.current_range.is_connected(sentence_range):
            tracker.extend(sentence, sentence_range)
        elif _fill_gap_with_ada(tracker, sentence, sentence_range, booking):
            tracker.extend(sentence, sentence_range)
        else:
            logger.debug("Gap between %s and %s", tracker.current_range.end, sentence_range.start)
            _finalise_group(tracker, booking, settings, next_sentence=sentence)
            tracker.start_group(sentence, sentence_range)
        tracker.previous_sentence = sentence

    if tracker.current_group:
        _finalise_group(tracker, booking, settings)

    for group in tracker.groups:
        _cap_release_by_expiry(group, booking, settings)

    booking.sentence_groups = tracker.groups
    logger.debug("Timeline produced %d sentence group(s)", len(tracker.groups))
    return tracker.groups


def _available_ada(tracker: TimelineTracker, booking: Booking) -> int:
    window = AdjustmentWindow(after=tracker.adjustments_after, before=tracker.current_range.end)
    adjustments = booking.adjustments
    awarded = adjustments.total_days(AWARDED_TYPES, window) - adjustments.total_days(RESTORED_TYPES, window)
    served = adjustments.total_days(("ADDITIONAL_DAYS_SERVED",), window)
    return max(awarded - served, 0)


def _fill_gap_with_ada(
    tracker: TimelineTracker,
    sentence: Sentence,
    sentence_range: DateRange,
    booking: Booking,
) -> bool:
    """Serve unused ADA in the gap; True when that closes it."""
    days_between = (sentence_range.start - tracker.current_range.end).days
    available = _available_ada(tracker, booking)
    served = min(days_between - 1, available)
    if served <= 0:
        return False
    filled = DateRange(tracker.current_range.start, tracker.current_range.end + timedelta(days=served))
    if not filled.is_connected(sentence_range):
        return False
    booking.adjustments.add(
        "ADDITIONAL_DAYS_SERVED",
        Adjustment(number_of_days=served, applies_to_sentences_from=sentence.sentenced_at),
    )
    logger.debug("Served %d ADA day(s) between %s and %s", served, tracker.current_range.end, sentence_range.start)
    tracker.current_range = filled
    return True


def _finalise_group(
    tracker: TimelineTracker,
    booking: Booking,
    settings: Settings,
    next_sentence: Sentence | None = None,
) -> None:
    """Recalculate the group with its window; the last group has no upper bound."""
    before = None
    if next_sentence is not None:
        before = min(tracker.current_range.end, next_sentence.sentenced_at - timedelta(days=1))
    window = AdjustmentWindow(after=tracker.adjustments_after, before=before)
    for sentence in tracker.current_group:
        recalculate(sentence, booking, settings, window)
    tracker.groups.append(tracker.current_group)
    release_reached = max(s.sentence_calculation.release_date for s in tracker.current_group)
    if next_sentence is not None:
        release_reached = min(release_reached, next_sentence.sentenced_at - timedelta(days=1))
    tracker.adjustments_after = release_reached
    tracker.current_group = []
    tracker.current_range = None


def _cap_release_by_expiry(group: list[Sentence], booking: Booking, settings: Settings) -> None:
    """Awarded days cannot hold anyone past the group's latest expiry."""
    non_recalls = [s for s in group if not is_recall(s)]
    if not non_recalls:
        return
    latest_expiry = max(s.sentence_calculation.expiry_date for s in group)
    latest_release = max(s.sentence_calculation.adjusted_release_date for s in non_recalls)
    unused = (latest_release - latest_expiry).days
    if unused <= 0:
        return
    applies_to = min(s.sentenced_at for s in group)
    booking.adjustments.add("RELEASE_UNUSED_ADA", Adjustment(number_of_days=unused, applies_to_sentences_from=applies_to))
    booking.adjustments.add("LICENSE_UNUSED_ADA", Adjustment(number_of_days=unused, applies_to_sentences_from=applies_to))
    logger.debug("Capping release at expiry %s with %d unused ADA day(s)", latest_expiry, unused)
    for sentence in group:
        recalculate(sentence, booking, settings)


def check_overlaps(booking: Booking) -> None:
    """Remand periods must not overlap each other or any period served under sentence."""
    remands = sorted(
        (
            DateRange(a.from_date, a.to_date)
            for a in booking.adjustments.get("REMAND")
            if a.from_date is not None and a.to_date is not None
        ),
        key=lambda r: r.start,
    )
    for first, second in combinations(remands, 2):
        if first.overlaps(second):
            raise RemandOverlapsRemand(first.as_tuple(), second.as_tuple())

    for remand in remands:
        for sentence in booking.extractable_sentences():
            served = custodial_range(sentence)
            if remand.overlaps(served):
                raise RemandOverlapsSentence(remand.as_tuple(), served.as_tuple(), sentence.identifier)
