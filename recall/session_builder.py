"""
Session Builder - Ordered Review Session Creation

Creates a study session from the learner's due memory states:
1. Due: next_review_date <= now (zero-interval cards come straight back)
2. Optional status filter, optional exclusion of new cards
3. Learning/relearning first (not yet stable), then review, then new;
   ties broken by most overdue first
4. Truncated to the session limit

Counts (total_due, new_cards, review_cards) ignore the limit and filters.
The session is a snapshot: reviewing its cards does not change it.
"""

from __future__ import annotations
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from recall import sm2
from recall.card_store import CardContent, CardStore
from recall.schemas import SessionQuery, parse_request
from recall.sm2.memory_state import as_utc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionCard:
    """One entry of a session: the card's state plus its content if known."""
    card_id: int
    state: sm2.MemoryState
    content: Optional[CardContent] = None


@dataclass(frozen=True)
class OrderedSession:
    """
    Fixed, ordered batch of due cards.

    An empty `cards` tuple means the learner is caught up.
    """
    session_id: str
    learner_id: str
    cards: tuple[SessionCard, ...]
    total_due: int
    new_cards: int
    review_cards: int
    generated_at: datetime

    @property
    def card_ids(self) -> list[int]:
        return [card.card_id for card in self.cards]

    @property
    def is_empty(self) -> bool:
        return not self.cards


def build_session(
    learner_id: str,
    limit: Optional[int] = None,
    status: Optional[str] = None,
    include_new: Optional[bool] = None,
    now: Optional[datetime] = None,
    card_store: Optional[CardStore] = None
) -> OrderedSession:
    """
    Build an ordered review session for a learner.

    Args:
        learner_id: Learner to build the session for
        limit: Maximum number of cards (1-100, default 20)
        status: Optional status filter ("new", "learning", "review", "relearning")
        include_new: Include cards never reviewed (default True)
        now: Reference time (defaults to now)
        card_store: Optional source of card content to attach

    Returns:
        OrderedSession snapshot

    Raises:
        InvalidInputError: limit or status out of range
    """
    query = parse_request(SessionQuery, limit=limit, status=status, include_new=include_new)
    now = as_utc(now) if now is not None else datetime.now(timezone.utc)

    states = sm2.get_due_memory_states(
        learner_id,
        now,
        status=query.status,
        include_new=query.include_new,
        limit=query.limit
    )
    total_due, new_cards = sm2.count_due_cards(learner_id, now)

    contents: dict[int, CardContent] = {}
    if card_store is not None and states:
        contents = card_store.get_cards([state.card_id for state in states])

    cards = tuple(
        SessionCard(card_id=state.card_id, state=state, content=contents.get(state.card_id))
        for state in states
    )

    session = OrderedSession(
        session_id=str(uuid.uuid4()),
        learner_id=learner_id,
        cards=cards,
        total_due=total_due,
        new_cards=new_cards,
        review_cards=total_due - new_cards,
        generated_at=now
    )
    logger.debug(
        "Built session %s for %s: %d cards (%d due, %d new)",
        session.session_id, learner_id, len(cards), total_due, new_cards
    )
    return session
