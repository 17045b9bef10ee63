"""
Error kinds raised by the scheduling core.

Callers can tell "never studied" (NotFoundError) apart from a race
(ConflictError) and from a broken database (StorageError).
"""

from __future__ import annotations

from typing import Optional


class RecallError(Exception):
    """Base class for all errors raised by the recall package."""


class InvalidInputError(RecallError, ValueError):
    """
    Malformed input rejected before any state mutation.

    Attributes:
        details: Mapping of field name to validation message
    """

    def __init__(self, message: str, details: Optional[dict[str, str]] = None):
        super().__init__(message)
        self.details = dict(details or {})


class NotFoundError(RecallError, LookupError):
    """No memory state exists for the requested learner/card pair."""

    def __init__(self, learner_id: str, card_id: int):
        super().__init__(f"No memory state for card {card_id} (learner {learner_id})")
        self.learner_id = learner_id
        self.card_id = card_id


class ConflictError(RecallError):
    """A concurrent update won the race; retry the whole operation."""


class StorageError(RecallError):
    """The persistence layer is unavailable or failed."""
