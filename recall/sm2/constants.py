"""
SM-2 Constants and Parameters

All configurable parameters for the SM-2 scheduler in one place.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum


# ---- Ratings ----

class Rating(IntEnum):
    """Learner's quality-of-recall rating."""
    AGAIN = 0  # Complete failure
    HARD = 1   # Recalled with serious difficulty
    GOOD = 2   # Recalled normally
    EASY = 3   # Recalled effortlessly


# ---- Learning Status ----

class LearningStatus(str, Enum):
    """Where a card sits on the learning ladder."""
    NEW = "new"
    LEARNING = "learning"
    REVIEW = "review"
    RELEARNING = "relearning"


# A lapsed card restarts the ladder, so relearning shares the rules of new
LADDER_START_STATUSES = frozenset({LearningStatus.NEW, LearningStatus.RELEARNING})


# ---- Easiness Factor ----

MIN_EASINESS_FACTOR = 1.3
MAX_EASINESS_FACTOR = 3.0
DEFAULT_EASINESS_FACTOR = 2.5

EF_CHANGE = {
    Rating.AGAIN: -0.20,
    Rating.HARD: -0.15,
    Rating.GOOD: 0.0,
    Rating.EASY: +0.15,
}


# ---- Intervals (days) ----
# (first review, second review, multiplier once repetitions >= 2)
# GOOD and EASY multiply by the easiness factor as well.

RATING_INTERVALS = {
    Rating.HARD: (1, 1, 1.2),
    Rating.GOOD: (1, 6, 1.0),
    Rating.EASY: (4, 10, 1.3),
}

# Repetitions needed before a GOOD rating graduates a learning card
GRADUATION_REPETITIONS = 2


# ---- Status Transitions ----
# Keyed by the ladder phase the card is in. Relearning uses the NEW row.
# GRADUATE means "review once repetitions reach GRADUATION_REPETITIONS".

GRADUATE = "graduate"

STATUS_TRANSITIONS = {
    LearningStatus.NEW: {
        Rating.AGAIN: LearningStatus.RELEARNING,
        Rating.HARD: LearningStatus.LEARNING,
        Rating.GOOD: LearningStatus.LEARNING,
        Rating.EASY: LearningStatus.REVIEW,
    },
    LearningStatus.LEARNING: {
        Rating.AGAIN: LearningStatus.RELEARNING,
        Rating.HARD: LearningStatus.LEARNING,
        Rating.GOOD: GRADUATE,
        Rating.EASY: LearningStatus.REVIEW,
    },
    LearningStatus.REVIEW: {
        Rating.AGAIN: LearningStatus.RELEARNING,
        Rating.HARD: LearningStatus.REVIEW,
        Rating.GOOD: LearningStatus.REVIEW,
        Rating.EASY: LearningStatus.REVIEW,
    },
}


@dataclass(frozen=True)
class SM2Parameters:
    """
    Immutable scheduler configuration passed into transition().
    """
    min_easiness_factor: float = MIN_EASINESS_FACTOR
    max_easiness_factor: float = MAX_EASINESS_FACTOR
    ef_change: tuple[float, float, float, float] = (
        EF_CHANGE[Rating.AGAIN],
        EF_CHANGE[Rating.HARD],
        EF_CHANGE[Rating.GOOD],
        EF_CHANGE[Rating.EASY],
    )
    hard_intervals: tuple[int, int, float] = RATING_INTERVALS[Rating.HARD]
    good_intervals: tuple[int, int, float] = RATING_INTERVALS[Rating.GOOD]
    easy_intervals: tuple[int, int, float] = RATING_INTERVALS[Rating.EASY]
    graduation_repetitions: int = GRADUATION_REPETITIONS

    def intervals_for(self, rating: Rating) -> tuple[int, int, float]:
        if rating == Rating.HARD:
            return self.hard_intervals
        if rating == Rating.GOOD:
            return self.good_intervals
        return self.easy_intervals


DEFAULT_PARAMETERS = SM2Parameters()


# ---- Session and History Configuration ----

DEFAULT_SESSION_LIMIT = 20
MAX_SESSION_LIMIT = 100
DEFAULT_HISTORY_LIMIT = 50
MAX_HISTORY_LIMIT = 100

# Whole-submit retries after an optimistic concurrency conflict
REVIEW_RETRY_ATTEMPTS = 3
