"""
Types for learning statistics.
"""

from __future__ import annotations

from dataclasses import dataclass

import pandas as pd


@dataclass(frozen=True)
class LearningStats:
    """
    Snapshot of a learner's progress.
    """
    total_cards: int
    by_status: dict[str, int]
    due_today: int
    overdue: int
    retention_rate: float
    total_reviews: int
    reviews_today: int
    average_easiness_factor: float
    streak_days: int
    reviews_daily: pd.Series
