"""
SM-2 - SuperMemo-2 style spaced repetition scheduler

Main API for the flashcard review system.

This package implements:
- A pure transition function (memory state, rating, now) -> memory state
- A single status transition table shared by new and relearning cards
- SQLAlchemy persistence for memory states and the review history

Quick start:
    from recall import sm2

    # Initialize database
    sm2.init_db()

    # Create the state for a new card
    state = sm2.create_memory_state("learner-1", card_id=42)

    # Process a review (algorithm only, no DB calls)
    new_state = sm2.transition(state, sm2.Rating.GOOD, now)
"""

# Core scheduler API (algorithm logic)
from recall.sm2.scheduler import (
    next_interval,
    next_repetitions,
    next_status,
    parse_rating,
    transition,
    update_easiness_factor,
)

# Database API
from recall.sm2.database import (
    init_db,
    reset_db,
    is_test_mode,
    get_default_learner_id,
    dispose_engine,
    create_memory_state,
    load_memory_state,
    get_all_memory_states,
    get_due_memory_states,
    count_due_cards,
    get_review_events,
)

# Constants and parameters
from recall.sm2.constants import (
    Rating,
    LearningStatus,
    SM2Parameters,
    DEFAULT_PARAMETERS,
    MIN_EASINESS_FACTOR,
    MAX_EASINESS_FACTOR,
    DEFAULT_EASINESS_FACTOR,
)

# Memory state
from recall.sm2.memory_state import (
    MemoryState,
    ReviewEvent,
    initialize_memory_state,
)


__all__ = [
    # Core algorithm
    "transition",
    "parse_rating",
    "update_easiness_factor",
    "next_interval",
    "next_repetitions",
    "next_status",

    # Database operations
    "init_db",
    "reset_db",
    "is_test_mode",
    "get_default_learner_id",
    "dispose_engine",
    "create_memory_state",
    "load_memory_state",
    "get_all_memory_states",
    "get_due_memory_states",
    "count_due_cards",
    "get_review_events",

    # Enums
    "Rating",
    "LearningStatus",

    # Memory state
    "MemoryState",
    "ReviewEvent",
    "initialize_memory_state",

    # Parameters
    "SM2Parameters",
    "DEFAULT_PARAMETERS",
    "MIN_EASINESS_FACTOR",
    "MAX_EASINESS_FACTOR",
    "DEFAULT_EASINESS_FACTOR",
]
