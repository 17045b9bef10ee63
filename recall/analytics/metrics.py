"""
Metric computations for learning statistics.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta

import pandas as pd

from recall.sm2.constants import DEFAULT_EASINESS_FACTOR, LearningStatus, Rating


def build_day_index(events_df: pd.DataFrame) -> pd.DatetimeIndex:
    """
    Build a dense UTC day index spanning the event range.
    """
    if events_df.empty:
        return pd.DatetimeIndex([], tz="UTC")
    start = events_df["day_utc"].min()
    end = events_df["day_utc"].max()
    return pd.date_range(start=start, end=end, freq="D")


def compute_reviews_daily(events_df: pd.DataFrame, day_index: pd.DatetimeIndex) -> pd.Series:
    """
    Number of reviews per UTC day, zero-filled.
    """
    if events_df.empty or len(day_index) == 0:
        return pd.Series(dtype="int64")
    daily = events_df.groupby("day_utc").size()
    return daily.reindex(day_index, fill_value=0).astype("int64")


def compute_retention_rate(events_df: pd.DataFrame) -> float:
    """
    Share of reviews rated GOOD or better, rounded to 2 decimals.
    """
    if events_df.empty:
        return 0.0
    successful = int((events_df["rating"] >= int(Rating.GOOD)).sum())
    return round(successful / len(events_df), 2)


def compute_reviews_since(events_df: pd.DataFrame, start: datetime) -> int:
    """
    Count reviews at or after `start`.
    """
    if events_df.empty:
        return 0
    return int((events_df["reviewed_at"] >= pd.Timestamp(start)).sum())


def compute_streak_days(events_df: pd.DataFrame, today: date) -> int:
    """
    Consecutive UTC days with at least one review.

    The streak ends today, or yesterday when nothing was reviewed yet today.
    """
    if events_df.empty:
        return 0

    days = set(events_df["day_utc"].dt.date)
    cursor = today if today in days else today - timedelta(days=1)

    streak = 0
    while cursor in days:
        streak += 1
        cursor -= timedelta(days=1)
    return streak


def compute_status_counts(states_df: pd.DataFrame) -> dict[str, int]:
    """
    Number of cards in each learning status (all statuses present).
    """
    counts = {status.value: 0 for status in LearningStatus}
    if states_df.empty:
        return counts
    for status, count in states_df["status"].value_counts().items():
        if status in counts:
            counts[status] = int(count)
    return counts


def compute_average_easiness_factor(states_df: pd.DataFrame) -> float:
    """
    Mean EF over all cards, rounded to 2 decimals (default EF when empty).
    """
    if states_df.empty:
        return DEFAULT_EASINESS_FACTOR
    return round(float(states_df["easiness_factor"].mean()), 2)


def compute_due_window(
    states_df: pd.DataFrame,
    day_start: datetime,
    day_end: datetime
) -> tuple[int, int]:
    """
    Cards due within [day_start, day_end] and cards overdue (before day_start).

    Returns:
        (due_today, overdue)
    """
    if states_df.empty:
        return 0, 0
    next_review = states_df["next_review_date"]
    start = pd.Timestamp(day_start)
    end = pd.Timestamp(day_end)
    due_today = int(((next_review >= start) & (next_review <= end)).sum())
    overdue = int((next_review < start).sum())
    return due_today, overdue
