"""
SQLAlchemy ORM Models for the SM-2 Database

Defines the learning_state and review_history tables.
"""

from sqlalchemy import (
    Column,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class LearningStateModel(Base):
    """
    Persistent memory state for a single card of a single learner.

    `version` is bumped on every write; a stale UPDATE raises StaleDataError.
    """
    __tablename__ = 'learning_state'

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Owner and card reference (one row per pair)
    learner_id = Column(String(255), nullable=False)
    card_id = Column(Integer, nullable=False)

    # SM-2 parameters
    status = Column(String(20), nullable=False, default="new")
    easiness_factor = Column(Float, nullable=False, default=2.5)
    interval = Column(Integer, nullable=False, default=0)
    repetitions = Column(Integer, nullable=False, default=0)
    lapses = Column(Integer, nullable=False, default=0)
    next_review_date = Column(DateTime(timezone=True), nullable=False)

    # Metadata
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    # Optimistic concurrency counter
    version = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        UniqueConstraint('learner_id', 'card_id', name='uq_learning_state_learner_card'),
        Index('idx_learning_state_due', 'learner_id', 'next_review_date'),
    )
    __mapper_args__ = {'version_id_col': version}

    def __repr__(self):
        return f"<LearningState({self.learner_id}, card={self.card_id}, {self.status})>"


class ReviewHistoryModel(Base):
    """
    Log entry for a single review (append-only).

    Captures interval, EF and status before and after the transition.
    """
    __tablename__ = 'review_history'

    id = Column(Integer, primary_key=True, autoincrement=True)

    learner_id = Column(String(255), nullable=False)
    card_id = Column(Integer, nullable=False)

    # Feedback and timing
    rating = Column(Integer, nullable=False)  # 0=AGAIN, 1=HARD, 2=GOOD, 3=EASY
    review_duration_ms = Column(Integer, nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=False)

    # State before review
    previous_interval = Column(Integer, nullable=False)
    previous_easiness_factor = Column(Float, nullable=False)
    previous_status = Column(String(20), nullable=False)

    # State after review
    new_interval = Column(Integer, nullable=False)
    new_easiness_factor = Column(Float, nullable=False)
    new_status = Column(String(20), nullable=False)

    # Session context (optional, for analytics)
    session_id = Column(String(255), nullable=True)

    __table_args__ = (
        Index('idx_review_history_learner_time', 'learner_id', 'reviewed_at'),
        Index('idx_review_history_card', 'learner_id', 'card_id'),
    )

    def __repr__(self):
        return f"<ReviewHistory(id={self.id}, card={self.card_id}, rating={self.rating})>"
