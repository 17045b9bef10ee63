import math
from datetime import timedelta

import pytest
from sqlalchemy import text

from recall import review_recorder, sm2
from recall.errors import ConflictError, InvalidInputError, NotFoundError, StorageError
from recall.review_recorder import (
    reset_progress,
    submit_review,
    submit_review_with_retry,
)
from recall.sm2 import LearningStatus, Rating, database, scheduler
from recall.sm2.models import Base, LearningStateModel


def _history(learner_id="alice", card_id=None):
    events, _ = sm2.get_review_events(learner_id, card_id=card_id)
    return events


def _simulate_concurrent_review(learner_id, card_id):
    """Write the row from a second session, as another request would."""
    session = database.get_session()
    try:
        with session.begin():
            row = session.query(LearningStateModel).filter(
                LearningStateModel.learner_id == learner_id,
                LearningStateModel.card_id == card_id
            ).one()
            row.status = LearningStatus.LEARNING.value
            row.repetitions = 1
            row.interval = 1
    finally:
        session.close()


@pytest.fixture
def race_once(monkeypatch):
    """Make the next transition lose a race against another writer."""
    original = scheduler.transition
    calls = {"count": 0}

    def racing_transition(state, rating, now, *args, **kwargs):
        calls["count"] += 1
        if calls["count"] == 1:
            _simulate_concurrent_review(state.learner_id, state.card_id)
        return original(state, rating, now, *args, **kwargs)

    monkeypatch.setattr(scheduler, "transition", racing_transition)
    return calls


# ---- submit_review ----

def test_submit_review_updates_state_and_history(db, now):
    sm2.create_memory_state("alice", 7, now)

    outcome = submit_review("alice", 7, 2, duration_ms=4200, now=now, session_id="s-1")

    assert outcome.review_recorded is True
    assert outcome.previous_state.status == LearningStatus.NEW
    assert outcome.new_state.status == LearningStatus.LEARNING
    assert outcome.new_state.interval == 1
    assert sm2.load_memory_state("alice", 7) == outcome.new_state

    [event] = _history()
    assert event.card_id == 7
    assert event.rating == Rating.GOOD
    assert event.duration_ms == 4200
    assert event.previous_interval == 0
    assert event.new_interval == 1
    assert event.previous_easiness_factor == pytest.approx(2.5)
    assert event.new_easiness_factor == pytest.approx(2.5)
    assert event.previous_status == LearningStatus.NEW
    assert event.new_status == LearningStatus.LEARNING
    assert event.reviewed_at == now
    assert event.session_id == "s-1"


def test_review_sequence_is_persisted(db, now):
    sm2.create_memory_state("alice", 1, now)

    submit_review("alice", 1, 2, now=now)
    submit_review("alice", 1, 2, now=now + timedelta(days=1))
    outcome = submit_review("alice", 1, 3, now=now + timedelta(days=7))

    state = sm2.load_memory_state("alice", 1)
    assert state.status == LearningStatus.REVIEW
    assert state.repetitions == 3
    assert state.interval == math.ceil(6 * 2.65 * 1.3)
    assert outcome.previous_state.interval == 6
    assert len(_history()) == 3


def test_lapse_on_review_card(seed_state, now):
    seed_state("alice", 3, "review", now - timedelta(days=1), interval=30, repetitions=5, lapses=0)

    outcome = submit_review("alice", 3, 0, now=now)

    assert outcome.new_state.interval == 0
    assert outcome.new_state.repetitions == 0
    assert outcome.new_state.lapses == 1
    assert outcome.new_state.status == LearningStatus.RELEARNING
    assert outcome.new_state.easiness_factor == pytest.approx(2.3)
    assert outcome.new_state.next_review_date == now


def test_missing_state_is_not_found(db, now):
    with pytest.raises(NotFoundError):
        submit_review("alice", 99, 2, now=now)

    assert _history() == []


def test_other_learners_card_is_not_found(db, now):
    sm2.create_memory_state("bob", 5, now)

    with pytest.raises(NotFoundError):
        submit_review("alice", 5, 2, now=now)

    assert sm2.load_memory_state("bob", 5).status == LearningStatus.NEW


@pytest.mark.parametrize(
    "fields, field",
    [
        ({"rating": 4}, "rating"),
        ({"rating": -1}, "rating"),
        ({"rating": 2, "duration_ms": 0}, "duration_ms"),
        ({"rating": 2, "card_id": 0}, "card_id"),
        ({"rating": True}, "rating"),
        ({"rating": "2"}, "rating"),
        ({"rating": 2.0}, "rating"),
        ({"rating": 2, "card_id": "1"}, "card_id"),
        ({"rating": 2, "duration_ms": "500"}, "duration_ms"),
    ],
)
def test_invalid_submission_changes_nothing(db, now, fields, field):
    sm2.create_memory_state("alice", 1, now)
    args = {"card_id": 1, **fields}

    with pytest.raises(InvalidInputError) as excinfo:
        submit_review("alice", args.pop("card_id"), args.pop("rating"), now=now, **args)

    assert field in excinfo.value.details
    assert sm2.load_memory_state("alice", 1).status == LearningStatus.NEW
    assert _history() == []


# ---- Concurrency ----

def test_concurrent_update_raises_conflict(db, now, race_once):
    sm2.create_memory_state("alice", 1, now)

    with pytest.raises(ConflictError):
        submit_review("alice", 1, 3, now=now)

    state = sm2.load_memory_state("alice", 1)
    assert state.status == LearningStatus.LEARNING
    assert state.repetitions == 1
    assert _history() == []


def test_retry_recomputes_from_fresh_state(db, now, race_once):
    sm2.create_memory_state("alice", 1, now)

    outcome = submit_review_with_retry("alice", 1, 2, now=now)

    assert race_once["count"] == 2
    assert outcome.previous_state.repetitions == 1
    assert outcome.new_state.repetitions == 2
    assert outcome.new_state.status == LearningStatus.REVIEW
    [event] = _history()
    assert event.previous_interval == 1
    assert event.new_interval == 6


def test_retry_gives_up_after_attempts(monkeypatch):
    calls = []

    def always_conflict(*args, **kwargs):
        calls.append(args)
        raise ConflictError("busy")

    monkeypatch.setattr(review_recorder, "submit_review", always_conflict)

    with pytest.raises(ConflictError):
        submit_review_with_retry("alice", 1, 2, attempts=3)
    assert len(calls) == 3


def test_storage_failure_is_surfaced(db, now):
    sm2.create_memory_state("alice", 1, now)
    Base.metadata.drop_all(database.get_engine())

    with pytest.raises(StorageError):
        submit_review("alice", 1, 2, now=now)
    with pytest.raises(StorageError):
        sm2.load_memory_state("alice", 1)


def test_failed_history_insert_rolls_back_state_update(db, now):
    sm2.create_memory_state("alice", 1, now)
    with database.get_engine().begin() as conn:
        conn.execute(text(
            "CREATE TRIGGER reject_history BEFORE INSERT ON review_history "
            "BEGIN SELECT RAISE(ABORT, 'history unavailable'); END"
        ))

    with pytest.raises(StorageError):
        submit_review("alice", 1, 3, now=now)

    state = sm2.load_memory_state("alice", 1)
    assert state == sm2.initialize_memory_state("alice", 1, now)
    assert _history() == []


def test_retry_rejects_non_positive_attempts(db, now):
    sm2.create_memory_state("alice", 1, now)

    with pytest.raises(ValueError):
        submit_review_with_retry("alice", 1, 2, now=now, attempts=0)
    assert sm2.load_memory_state("alice", 1).status == LearningStatus.NEW


def test_duplicate_memory_state_conflicts(db, now):
    sm2.create_memory_state("alice", 1, now)

    with pytest.raises(ConflictError):
        sm2.create_memory_state("alice", 1, now)


# ---- reset_progress ----

def test_reset_restores_defaults_and_keeps_history(db, now):
    for card_id in (1, 2, 3):
        sm2.create_memory_state("alice", card_id, now)
    submit_review("alice", 1, 3, now=now)
    submit_review("alice", 2, 0, now=now)
    submit_review("alice", 3, 2, now=now)
    sm2.create_memory_state("bob", 1, now)
    submit_review("bob", 1, 3, now=now)

    later = now + timedelta(days=3)
    reset_count = reset_progress("alice", now=later)

    assert reset_count == 3
    for state in sm2.get_all_memory_states("alice"):
        assert state == sm2.initialize_memory_state("alice", state.card_id, later)
    assert len(_history("alice")) == 3
    assert sm2.load_memory_state("bob", 1).status == LearningStatus.REVIEW


def test_reset_is_idempotent(db, now):
    for card_id in (1, 2):
        sm2.create_memory_state("alice", card_id, now)
    submit_review("alice", 1, 3, now=now)

    first_count = reset_progress("alice", now=now)
    after_first = sm2.get_all_memory_states("alice")
    second_count = reset_progress("alice", now=now)

    assert first_count == second_count == 2
    assert sm2.get_all_memory_states("alice") == after_first


def test_reset_without_cards(db, now):
    assert reset_progress("nobody", now=now) == 0


def test_reviews_work_after_reset(db, now):
    sm2.create_memory_state("alice", 1, now)
    submit_review("alice", 1, 3, now=now)
    reset_progress("alice", now=now)

    outcome = submit_review("alice", 1, 2, now=now)

    assert outcome.previous_state.status == LearningStatus.NEW
    assert outcome.new_state.status == LearningStatus.LEARNING
