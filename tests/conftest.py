from datetime import datetime, timezone

import pytest

from recall import sm2
from recall.sm2 import database
from recall.sm2.models import LearningStateModel


NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    """Fixed reference clock."""
    return NOW


@pytest.fixture
def db(tmp_path, monkeypatch):
    """Fresh SQLite database per test."""
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'learning.db'}")
    monkeypatch.delenv("TEST_MODE", raising=False)
    sm2.dispose_engine()
    sm2.init_db()
    yield database
    sm2.dispose_engine()


@pytest.fixture
def seed_state(db, now):
    """Insert a memory state row with arbitrary fields."""
    def _seed(learner_id, card_id, status="new", next_review_date=None, **fields):
        values = {
            "easiness_factor": 2.5,
            "interval": 0,
            "repetitions": 0,
            "lapses": 0,
        }
        values.update(fields)
        session = database.get_session()
        try:
            with session.begin():
                session.add(LearningStateModel(
                    learner_id=learner_id,
                    card_id=card_id,
                    status=status,
                    next_review_date=next_review_date or now,
                    created_at=now,
                    updated_at=now,
                    **values
                ))
        finally:
            session.close()
        return sm2.load_memory_state(learner_id, card_id)
    return _seed


def make_state(**overrides):
    """Build an in-memory MemoryState for scheduler tests."""
    values = {
        "learner_id": "alice",
        "card_id": 1,
        "easiness_factor": 2.5,
        "interval": 0,
        "repetitions": 0,
        "lapses": 0,
        "status": sm2.LearningStatus.NEW,
        "next_review_date": NOW,
    }
    values.update(overrides)
    return sm2.MemoryState(**values)
