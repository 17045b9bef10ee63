"""
Data-loading helpers for analytics.
"""

from __future__ import annotations

import pandas as pd

from recall import sm2


EVENT_COLUMNS = ["card_id", "rating", "reviewed_at", "session_id", "day_utc"]
STATE_COLUMNS = ["card_id", "status", "easiness_factor", "next_review_date"]


def load_review_events_df(learner_id: str) -> pd.DataFrame:
    """
    Load a learner's review history into a dataframe, oldest first.
    """
    events, _ = sm2.get_review_events(learner_id)
    if not events:
        return pd.DataFrame(columns=EVENT_COLUMNS)

    df = pd.DataFrame(
        [
            {
                "card_id": e.card_id,
                "rating": int(e.rating),
                "reviewed_at": e.reviewed_at,
                "session_id": e.session_id,
            }
            for e in events
        ]
    )
    df["reviewed_at"] = pd.to_datetime(df["reviewed_at"], utc=True, errors="coerce")
    df = df.dropna(subset=["reviewed_at"])
    df["day_utc"] = df["reviewed_at"].dt.floor("D")
    df = df.sort_values("reviewed_at").reset_index(drop=True)
    return df


def load_memory_states_df(learner_id: str) -> pd.DataFrame:
    """
    Load current memory states for a learner.
    """
    states = sm2.get_all_memory_states(learner_id)
    if not states:
        return pd.DataFrame(columns=STATE_COLUMNS)

    df = pd.DataFrame(
        [
            {
                "card_id": s.card_id,
                "status": s.status.value,
                "easiness_factor": s.easiness_factor,
                "next_review_date": s.next_review_date,
            }
            for s in states
        ]
    )
    df["next_review_date"] = pd.to_datetime(df["next_review_date"], utc=True)
    return df
