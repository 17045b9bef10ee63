"""
Memory State - SM-2 Card State and Review History

Defines the per-learner, per-card scheduling state and the immutable
history entry written for every review.

Key concepts:
- Easiness factor (EF): how quickly the interval grows on success
- Interval: days until the next review (0 = due immediately)
- Due: next_review_date <= now
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from recall.sm2.constants import DEFAULT_EASINESS_FACTOR, LearningStatus, Rating


@dataclass(frozen=True)
class MemoryState:
    """
    Scheduling state for a single (learner, card) pair.

    Only the scheduler produces new values; the review recorder persists them.
    """
    learner_id: str
    card_id: int

    easiness_factor: float  # EF, clamped to [1.3, 3.0]
    interval: int  # Days until next review
    repetitions: int  # Consecutive non-failing reviews since last lapse/reset
    lapses: int  # Lifetime count of AGAIN ratings
    status: LearningStatus
    next_review_date: datetime

    def is_due(self, now: datetime) -> bool:
        """True when the card should be presented at `now`."""
        return self.next_review_date <= as_utc(now)


@dataclass(frozen=True)
class ReviewEvent:
    """
    Append-only record of one review.

    Used for analytics/audit only; scheduling never reads it back.
    """
    id: Optional[int]
    learner_id: str
    card_id: int
    rating: Rating
    duration_ms: Optional[int]

    previous_interval: int
    new_interval: int
    previous_easiness_factor: float
    new_easiness_factor: float
    previous_status: LearningStatus
    new_status: LearningStatus

    reviewed_at: datetime
    session_id: Optional[str] = None


def as_utc(value: datetime) -> datetime:
    """
    Normalize a timestamp to timezone-aware UTC.

    Naive values are assumed to already be UTC (SQLite drops tzinfo).
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def initialize_memory_state(
    learner_id: str,
    card_id: int,
    now: Optional[datetime] = None
) -> MemoryState:
    """
    Build the state for a freshly created card (never reviewed).

    Args:
        learner_id: Learner owning the card
        card_id: Card identifier from the card store
        now: Creation time (defaults to current UTC time)

    Returns:
        MemoryState with status NEW, due immediately
    """
    now = as_utc(now) if now is not None else datetime.now(timezone.utc)

    return MemoryState(
        learner_id=learner_id,
        card_id=card_id,
        easiness_factor=DEFAULT_EASINESS_FACTOR,
        interval=0,
        repetitions=0,
        lapses=0,
        status=LearningStatus.NEW,
        next_review_date=now
    )
