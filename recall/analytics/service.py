"""
Service layer to assemble a learner's statistics.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from recall.analytics.metrics import (
    build_day_index,
    compute_average_easiness_factor,
    compute_due_window,
    compute_retention_rate,
    compute_reviews_daily,
    compute_reviews_since,
    compute_status_counts,
    compute_streak_days,
)
from recall.analytics.queries import (
    load_memory_states_df,
    load_review_events_df,
)
from recall.analytics.types import LearningStats
from recall.sm2.memory_state import as_utc


def build_learning_stats(learner_id: str, now: Optional[datetime] = None) -> LearningStats:
    """
    Build all progress figures for a learner. Read-only.
    """
    now = as_utc(now) if now is not None else datetime.now(timezone.utc)
    day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    day_end = day_start + timedelta(days=1) - timedelta(microseconds=1)

    events_df = load_review_events_df(learner_id)
    states_df = load_memory_states_df(learner_id)
    day_index = build_day_index(events_df)

    due_today, overdue = compute_due_window(states_df, day_start, day_end)

    return LearningStats(
        total_cards=len(states_df),
        by_status=compute_status_counts(states_df),
        due_today=due_today,
        overdue=overdue,
        retention_rate=compute_retention_rate(events_df),
        total_reviews=len(events_df),
        reviews_today=compute_reviews_since(events_df, day_start),
        average_easiness_factor=compute_average_easiness_factor(states_df),
        streak_days=compute_streak_days(events_df, day_start.date()),
        reviews_daily=compute_reviews_daily(events_df, day_index),
    )
