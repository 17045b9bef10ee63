"""
Card store boundary.

Card content lives outside the scheduling core; the core only references
card ids and reads content to decorate a session.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, Protocol


@dataclass(frozen=True)
class CardContent:
    """Front/back text of a flashcard."""
    card_id: int
    front: str
    back: str


class CardStore(Protocol):
    """Read-only lookup of card content by id."""

    def get_cards(self, card_ids: Iterable[int]) -> dict[int, CardContent]:
        """Return content for the ids that exist; unknown ids are omitted."""
        ...


class InMemoryCardStore:
    """Dict-backed CardStore."""

    def __init__(self, cards: Mapping[int, CardContent] | Iterable[CardContent] = ()):
        if isinstance(cards, Mapping):
            self._cards = dict(cards)
        else:
            self._cards = {card.card_id: card for card in cards}

    def add(self, card_id: int, front: str, back: str) -> CardContent:
        card = CardContent(card_id=card_id, front=front, back=back)
        self._cards[card_id] = card
        return card

    def get_cards(self, card_ids: Iterable[int]) -> dict[int, CardContent]:
        return {card_id: self._cards[card_id] for card_id in card_ids if card_id in self._cards}
