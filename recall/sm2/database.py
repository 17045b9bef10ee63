"""
Database - SM-2 Database I/O Operations

Handles all database operations for memory states and review history.
Uses SQLAlchemy ORM; Postgres in production, SQLite by default.

This module handles ONLY database I/O.
Algorithm logic is handled by the scheduler module.
"""

from __future__ import annotations
import logging
import os
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

from dotenv import load_dotenv
from sqlalchemy import case, create_engine, func, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from recall.errors import ConflictError, StorageError
from recall.sm2.constants import LearningStatus, Rating
from recall.sm2.memory_state import (
    MemoryState,
    ReviewEvent,
    as_utc,
    initialize_memory_state,
)
from recall.sm2.models import Base, LearningStateModel, ReviewHistoryModel

load_dotenv()

logger = logging.getLogger(__name__)

_engine: Optional[Engine] = None
_engine_url: Optional[str] = None
_session_factory: Optional[sessionmaker] = None


# ---- Configuration ----

def is_test_mode() -> bool:
    """Check if running in test mode."""
    return os.getenv("TEST_MODE", "false").lower() == "true"


def get_default_learner_id() -> str:
    """Get default learner id used by scripts."""
    return os.getenv("DEFAULT_LEARNER_ID", "default")


def get_database_url() -> str:
    """
    Get the database URL from environment variables.

    Uses DATABASE_URL when set, otherwise a SQLite file under logs/ in the
    current working directory.
    In TEST_MODE the database name is swapped for its test counterpart
    ('learning_db' -> 'test_learning_db', 'learning.db' -> 'test_learning.db').

    Returns:
        SQLAlchemy connection URL
    """
    base_url = os.getenv("DATABASE_URL")
    if base_url:
        if is_test_mode():
            return base_url.replace("learning_db", "test_learning_db")
        return base_url

    db_name = "test_learning.db" if is_test_mode() else "learning.db"
    db_dir = Path.cwd() / "logs"
    db_dir.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{db_dir / db_name}"


def get_engine() -> Engine:
    """
    Get the SQLAlchemy engine for the configured database.

    The engine is created once per URL; a changed DATABASE_URL builds a new one.

    Returns:
        SQLAlchemy Engine instance
    """
    global _engine, _engine_url, _session_factory

    db_url = get_database_url()
    if _engine is not None and _engine_url == db_url:
        return _engine

    dispose_engine()
    if db_url.startswith("sqlite"):
        _engine = create_engine(db_url, echo=False)
    else:
        _engine = create_engine(
            db_url,
            pool_size=5,           # Keep 5 connections open
            max_overflow=10,       # Allow up to 10 extra connections
            pool_pre_ping=True,    # Verify connections before use
            echo=False
        )
    _engine_url = db_url
    _session_factory = sessionmaker(bind=_engine, expire_on_commit=False)
    logger.debug("Created database engine for %s", _engine.url.render_as_string(hide_password=True))
    return _engine


def dispose_engine() -> None:
    """Close pooled connections and forget the cached engine."""
    global _engine, _engine_url, _session_factory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _engine_url = None
    _session_factory = None


def get_session() -> Session:
    """
    Get a SQLAlchemy session for database operations.

    Returns:
        SQLAlchemy Session instance (caller closes it)
    """
    get_engine()
    return _session_factory()


@contextmanager
def storage_errors(operation: str) -> Iterator[None]:
    """Translate driver failures into StorageError."""
    try:
        yield
    except SQLAlchemyError as exc:
        logger.exception("Storage failure during %s", operation)
        raise StorageError(f"Failed to {operation}: {exc}") from exc


# ---- Schema ----

def init_db():
    """
    Initialize database schema if tables don't exist.

    Safe to call multiple times - only creates tables if they don't exist.
    """
    engine = get_engine()

    with storage_errors("initialize database"):
        existing_tables = inspect(engine).get_table_names()
        if 'learning_state' not in existing_tables or 'review_history' not in existing_tables:
            Base.metadata.create_all(engine)
            logger.info("Created learning_state/review_history tables")


def reset_db():
    """
    DANGEROUS: Delete all data and recreate tables.

    Only use this for testing or when you want to start fresh.
    All review history will be lost!
    """
    engine = get_engine()
    with storage_errors("reset database"):
        Base.metadata.drop_all(engine)
    logger.warning("All tables dropped")

    init_db()


# ---- Row conversion ----

def to_memory_state(row: LearningStateModel) -> MemoryState:
    """Convert an ORM row into an immutable MemoryState."""
    return MemoryState(
        learner_id=row.learner_id,
        card_id=row.card_id,
        easiness_factor=row.easiness_factor,
        interval=row.interval,
        repetitions=row.repetitions,
        lapses=row.lapses,
        status=LearningStatus(row.status),
        next_review_date=as_utc(row.next_review_date)
    )


def to_review_event(row: ReviewHistoryModel) -> ReviewEvent:
    """Convert an ORM row into an immutable ReviewEvent."""
    return ReviewEvent(
        id=row.id,
        learner_id=row.learner_id,
        card_id=row.card_id,
        rating=Rating(row.rating),
        duration_ms=row.review_duration_ms,
        previous_interval=row.previous_interval,
        new_interval=row.new_interval,
        previous_easiness_factor=row.previous_easiness_factor,
        new_easiness_factor=row.new_easiness_factor,
        previous_status=LearningStatus(row.previous_status),
        new_status=LearningStatus(row.new_status),
        reviewed_at=as_utc(row.reviewed_at),
        session_id=row.session_id
    )


# ---- Memory state I/O ----

def create_memory_state(
    learner_id: str,
    card_id: int,
    now: Optional[datetime] = None
) -> MemoryState:
    """
    Insert the default memory state for a newly created card.

    Called by the card-management side when a card is created.

    Args:
        learner_id: Learner owning the card
        card_id: Card identifier
        now: Creation time (defaults to now)

    Returns:
        The stored MemoryState

    Raises:
        ConflictError: A memory state already exists for the pair
    """
    now = as_utc(now) if now is not None else datetime.now(timezone.utc)
    state = initialize_memory_state(learner_id, card_id, now)

    session = get_session()
    try:
        with storage_errors("create memory state"):
            try:
                with session.begin():
                    session.add(LearningStateModel(
                        learner_id=learner_id,
                        card_id=card_id,
                        status=state.status.value,
                        easiness_factor=state.easiness_factor,
                        interval=state.interval,
                        repetitions=state.repetitions,
                        lapses=state.lapses,
                        next_review_date=state.next_review_date,
                        created_at=now,
                        updated_at=now
                    ))
            except IntegrityError as exc:
                raise ConflictError(
                    f"Memory state already exists for card {card_id} (learner {learner_id})"
                ) from exc
        return state
    finally:
        session.close()


def load_memory_state(learner_id: str, card_id: int) -> Optional[MemoryState]:
    """
    Load the memory state for a learner/card pair.

    Returns:
        MemoryState if found, None otherwise
    """
    session = get_session()
    try:
        with storage_errors("load memory state"):
            row = session.query(LearningStateModel).filter(
                LearningStateModel.learner_id == learner_id,
                LearningStateModel.card_id == card_id
            ).first()
        return to_memory_state(row) if row is not None else None
    finally:
        session.close()


def get_all_memory_states(learner_id: str) -> list[MemoryState]:
    """Get every memory state owned by a learner, ordered by card id."""
    session = get_session()
    try:
        with storage_errors("load memory states"):
            rows = session.query(LearningStateModel).filter(
                LearningStateModel.learner_id == learner_id
            ).order_by(LearningStateModel.card_id).all()
        return [to_memory_state(row) for row in rows]
    finally:
        session.close()


def session_priority():
    """
    SQL ordering key: learning/relearning first, then review, then new.
    """
    return case(
        (LearningStateModel.status.in_([
            LearningStatus.LEARNING.value,
            LearningStatus.RELEARNING.value,
        ]), 0),
        (LearningStateModel.status == LearningStatus.REVIEW.value, 1),
        else_=2
    )


def get_due_memory_states(
    learner_id: str,
    now: datetime,
    status: Optional[LearningStatus] = None,
    include_new: bool = True,
    limit: Optional[int] = None
) -> list[MemoryState]:
    """
    Get memory states due at `now` (next_review_date <= now), in session order.

    Args:
        learner_id: Learner to query
        now: Reference time
        status: Optional status filter
        include_new: False excludes status NEW
        limit: Maximum number of states to return

    Returns:
        Ordered list: unstable cards first, then most overdue first
    """
    session = get_session()
    try:
        with storage_errors("load due memory states"):
            query = session.query(LearningStateModel).filter(
                LearningStateModel.learner_id == learner_id,
                LearningStateModel.next_review_date <= as_utc(now)
            )
            if status is not None:
                query = query.filter(LearningStateModel.status == LearningStatus(status).value)
            if not include_new:
                query = query.filter(LearningStateModel.status != LearningStatus.NEW.value)

            query = query.order_by(
                session_priority(),
                LearningStateModel.next_review_date.asc(),
                LearningStateModel.card_id.asc()
            )
            if limit is not None:
                query = query.limit(limit)
            rows = query.all()
        return [to_memory_state(row) for row in rows]
    finally:
        session.close()


def count_due_cards(learner_id: str, now: datetime) -> tuple[int, int]:
    """
    Count due cards for a learner, ignoring any session filters.

    Returns:
        (total_due, new_due)
    """
    session = get_session()
    try:
        with storage_errors("count due cards"):
            is_new = case((LearningStateModel.status == LearningStatus.NEW.value, 1), else_=0)
            total_due, new_due = session.query(
                func.count(LearningStateModel.id),
                func.coalesce(func.sum(is_new), 0)
            ).filter(
                LearningStateModel.learner_id == learner_id,
                LearningStateModel.next_review_date <= as_utc(now)
            ).one()
        return int(total_due), int(new_due)
    finally:
        session.close()


# ---- Review history I/O ----

def get_review_events(
    learner_id: str,
    card_id: Optional[int] = None,
    from_date: Optional[datetime] = None,
    to_date: Optional[datetime] = None,
    offset: int = 0,
    limit: Optional[int] = None
) -> tuple[list[ReviewEvent], int]:
    """
    Get review history for a learner, most recent first.

    Args:
        learner_id: Learner to query
        card_id: Optional card filter
        from_date: Inclusive lower bound on reviewed_at
        to_date: Inclusive upper bound on reviewed_at
        offset: Rows to skip
        limit: Maximum rows to return (None = all)

    Returns:
        (events, total matching rows before offset/limit)
    """
    session = get_session()
    try:
        with storage_errors("load review history"):
            query = session.query(ReviewHistoryModel).filter(
                ReviewHistoryModel.learner_id == learner_id
            )
            if card_id is not None:
                query = query.filter(ReviewHistoryModel.card_id == card_id)
            if from_date is not None:
                query = query.filter(ReviewHistoryModel.reviewed_at >= as_utc(from_date))
            if to_date is not None:
                query = query.filter(ReviewHistoryModel.reviewed_at <= as_utc(to_date))

            total = query.count()

            query = query.order_by(
                ReviewHistoryModel.reviewed_at.desc(),
                ReviewHistoryModel.id.desc()
            ).offset(offset)
            if limit is not None:
                query = query.limit(limit)
            rows = query.all()
        return [to_review_event(row) for row in rows], total
    finally:
        session.close()
