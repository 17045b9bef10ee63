"""
Review Recorder - Durable Review Processing

Main workflow:
1. Validate the submission (rating, duration)
2. Load the learner's memory state for the card (row locked)
3. Run the pure scheduler transition
4. Write the new state (version-checked) and append a history row
5. Commit both in one transaction, or neither

Also provides the bulk "reset progress" operation and the paginated
history read.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from recall import sm2
from recall.errors import ConflictError, NotFoundError, StorageError
from recall.schemas import HistoryQuery, ReviewSubmission, parse_request
from recall.sm2 import database, scheduler
from recall.sm2.constants import DEFAULT_EASINESS_FACTOR, REVIEW_RETRY_ATTEMPTS, LearningStatus
from recall.sm2.memory_state import as_utc
from recall.sm2.models import LearningStateModel, ReviewHistoryModel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReviewOutcome:
    """Before/after states of a recorded review."""
    card_id: int
    previous_state: sm2.MemoryState
    new_state: sm2.MemoryState
    review_recorded: bool


@dataclass(frozen=True)
class ReviewHistoryPage:
    """One page of review history, most recent first."""
    items: list[sm2.ReviewEvent]
    page: int
    limit: int
    total: int


def submit_review(
    learner_id: str,
    card_id: int,
    rating: int,
    duration_ms: Optional[int] = None,
    now: Optional[datetime] = None,
    session_id: Optional[str] = None
) -> ReviewOutcome:
    """
    Record a review and advance the card's schedule.

    Args:
        learner_id: Learner submitting the review
        card_id: Card being reviewed
        rating: 0=again, 1=hard, 2=good, 3=easy
        duration_ms: Time spent on the card (optional, > 0)
        now: Review timestamp (defaults to now)
        session_id: Session the card was served from (optional)

    Returns:
        ReviewOutcome with previous and new state

    Raises:
        InvalidInputError: malformed rating/duration/card id
        NotFoundError: no memory state for this learner/card
        ConflictError: the row changed underneath this review
        StorageError: database failure
    """
    submission = parse_request(
        ReviewSubmission,
        card_id=card_id,
        rating=rating,
        duration_ms=duration_ms,
        session_id=session_id
    )
    rating = scheduler.parse_rating(submission.rating)
    now = as_utc(now) if now is not None else datetime.now(timezone.utc)

    session = database.get_session()
    try:
        with session.begin():
            row = session.query(LearningStateModel).filter(
                LearningStateModel.learner_id == learner_id,
                LearningStateModel.card_id == submission.card_id
            ).with_for_update().first()

            if row is None:
                raise NotFoundError(learner_id, submission.card_id)

            previous_state = database.to_memory_state(row)
            new_state = scheduler.transition(previous_state, rating, now)

            row.status = new_state.status.value
            row.easiness_factor = new_state.easiness_factor
            row.interval = new_state.interval
            row.repetitions = new_state.repetitions
            row.lapses = new_state.lapses
            row.next_review_date = new_state.next_review_date
            row.updated_at = now

            session.add(ReviewHistoryModel(
                learner_id=learner_id,
                card_id=submission.card_id,
                rating=int(rating),
                review_duration_ms=submission.duration_ms,
                reviewed_at=now,
                previous_interval=previous_state.interval,
                previous_easiness_factor=previous_state.easiness_factor,
                previous_status=previous_state.status.value,
                new_interval=new_state.interval,
                new_easiness_factor=new_state.easiness_factor,
                new_status=new_state.status.value,
                session_id=submission.session_id
            ))
    except StaleDataError as exc:
        logger.warning("Concurrent update of card %s for %s", submission.card_id, learner_id)
        raise ConflictError(
            f"Memory state for card {submission.card_id} changed during review"
        ) from exc
    except SQLAlchemyError as exc:
        logger.exception("Failed to record review of card %s", submission.card_id)
        raise StorageError(f"Failed to record review: {exc}") from exc
    finally:
        session.close()

    logger.info(
        "Recorded review: learner=%s card=%s rating=%s %s->%s interval=%d",
        learner_id, submission.card_id, rating.name,
        previous_state.status.value, new_state.status.value, new_state.interval
    )
    return ReviewOutcome(
        card_id=submission.card_id,
        previous_state=previous_state,
        new_state=new_state,
        review_recorded=True
    )


def submit_review_with_retry(
    learner_id: str,
    card_id: int,
    rating: int,
    duration_ms: Optional[int] = None,
    now: Optional[datetime] = None,
    session_id: Optional[str] = None,
    attempts: int = REVIEW_RETRY_ATTEMPTS
) -> ReviewOutcome:
    """
    submit_review, re-run from scratch on ConflictError.

    Each attempt reloads the state, so the recorded before/after delta is
    never computed from a stale row.

    Raises:
        ValueError: attempts is less than 1
    """
    if attempts < 1:
        raise ValueError(f"attempts must be at least 1, got {attempts}")

    for attempt in range(1, attempts + 1):
        try:
            return submit_review(
                learner_id,
                card_id,
                rating,
                duration_ms=duration_ms,
                now=now,
                session_id=session_id
            )
        except ConflictError:
            if attempt >= attempts:
                raise
            logger.warning("Retrying review of card %s (attempt %d/%d)", card_id, attempt + 1, attempts)


def reset_progress(learner_id: str, now: Optional[datetime] = None) -> int:
    """
    Put every memory state of a learner back to the new-card defaults.

    Review history is left untouched. Idempotent.

    Args:
        learner_id: Learner whose progress is reset
        now: New next_review_date for every card (defaults to now)

    Returns:
        Number of memory states written
    """
    now = as_utc(now) if now is not None else datetime.now(timezone.utc)

    session = database.get_session()
    try:
        with session.begin():
            reset_count = session.query(LearningStateModel).filter(
                LearningStateModel.learner_id == learner_id
            ).update(
                {
                    LearningStateModel.status: LearningStatus.NEW.value,
                    LearningStateModel.easiness_factor: DEFAULT_EASINESS_FACTOR,
                    LearningStateModel.interval: 0,
                    LearningStateModel.repetitions: 0,
                    LearningStateModel.lapses: 0,
                    LearningStateModel.next_review_date: now,
                    LearningStateModel.updated_at: now,
                    LearningStateModel.version: LearningStateModel.version + 1,
                },
                synchronize_session=False
            )
    except SQLAlchemyError as exc:
        logger.exception("Failed to reset progress for %s", learner_id)
        raise StorageError(f"Failed to reset progress: {exc}") from exc
    finally:
        session.close()

    logger.info("Reset %d memory states for %s", reset_count, learner_id)
    return reset_count


def get_review_history(
    learner_id: str,
    page: Optional[int] = None,
    limit: Optional[int] = None,
    card_id: Optional[int] = None,
    from_date: Optional[datetime] = None,
    to_date: Optional[datetime] = None
) -> ReviewHistoryPage:
    """
    Read one page of a learner's review history, most recent first.

    Raises:
        InvalidInputError: bad page/limit/card id or inverted date range
    """
    query = parse_request(
        HistoryQuery,
        page=page,
        limit=limit,
        card_id=card_id,
        from_date=from_date,
        to_date=to_date
    )
    items, total = sm2.get_review_events(
        learner_id,
        card_id=query.card_id,
        from_date=query.from_date,
        to_date=query.to_date,
        offset=query.offset,
        limit=query.limit
    )
    return ReviewHistoryPage(items=items, page=query.page, limit=query.limit, total=total)
