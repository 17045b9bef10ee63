"""
Pydantic models for requests entering the scheduling core.

Every boundary input is validated here before any state is read or written.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Type, TypeVar

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from recall.errors import InvalidInputError
from recall.sm2.constants import (
    DEFAULT_HISTORY_LIMIT,
    DEFAULT_SESSION_LIMIT,
    MAX_HISTORY_LIMIT,
    MAX_SESSION_LIMIT,
    LearningStatus,
)
from recall.sm2.memory_state import as_utc


ModelT = TypeVar("ModelT", bound=BaseModel)


# ---- Session fetch ----

class SessionQuery(BaseModel):
    """Filters for building a review session."""
    limit: int = Field(
        default=DEFAULT_SESSION_LIMIT,
        ge=1,
        le=MAX_SESSION_LIMIT,
        description="Maximum number of cards in the session"
    )
    status: Optional[LearningStatus] = Field(default=None, description="Only cards with this status")
    include_new: bool = Field(default=True, description="Include never-reviewed cards")


# ---- Review submit ----

class ReviewSubmission(BaseModel):
    """A learner's rating for one card."""
    card_id: int = Field(..., gt=0, description="Card being reviewed")
    rating: int = Field(
        ...,
        ge=0,
        le=3,
        description="0=again, 1=hard, 2=good, 3=easy"
    )
    duration_ms: Optional[int] = Field(default=None, gt=0, description="Time spent on the card")
    session_id: Optional[str] = Field(default=None, max_length=255, description="Session the card came from")

    @field_validator("card_id", "rating", "duration_ms", mode="before")
    @classmethod
    def _require_integer(cls, value):
        # bool is an int subclass and numeric strings coerce in lax mode
        if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
            raise ValueError("must be an integer")
        return value


# ---- History query ----

class HistoryQuery(BaseModel):
    """Pagination and filters for the review history."""
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=DEFAULT_HISTORY_LIMIT, ge=1, le=MAX_HISTORY_LIMIT)
    card_id: Optional[int] = Field(default=None, gt=0)
    from_date: Optional[datetime] = None
    to_date: Optional[datetime] = None

    @model_validator(mode="after")
    def _check_date_range(self) -> "HistoryQuery":
        if self.from_date is not None and self.to_date is not None:
            if as_utc(self.from_date) > as_utc(self.to_date):
                raise ValueError("from_date must not be after to_date")
        return self

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def parse_request(model: Type[ModelT], **fields) -> ModelT:
    """
    Validate raw fields into a request model.

    Fields passed as None fall back to the model defaults.

    Raises:
        InvalidInputError: with a {field: message} mapping
    """
    supplied = {name: value for name, value in fields.items() if value is not None}
    try:
        return model(**supplied)
    except ValidationError as exc:
        details = {}
        for error in exc.errors():
            field = ".".join(str(part) for part in error["loc"]) or "request"
            details.setdefault(field, error["msg"])
        raise InvalidInputError(f"Invalid {model.__name__}", details) from exc
