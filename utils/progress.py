from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Tuple

from db.store import CardStore
from models.card import CardStatus, Flashcard

LEARNING_STATUSES = (CardStatus.NEW, CardStatus.LEARNING, CardStatus.RELEARN)


@dataclass(frozen=True)
class DueCounts:
    learning: int = 0
    review: int = 0

    @property
    def total(self) -> int:
        return self.learning + self.review


def iter_all_cards(store: CardStore) -> Iterator[Tuple[str, Flashcard]]:
    """Yield (deck_key, card) for every deck the store knows about."""
    for deck_key in store.list_deck_keys():
        for card in store.read(deck_key).values():
            yield deck_key, card


def count_due(cards: Iterable[Flashcard], now: int) -> DueCounts:
    learning = review = 0
    for card in cards:
        if card.due_at > now or card.suspended:
            continue
        if card.status in LEARNING_STATUSES:
            learning += 1
        else:
            review += 1
    return DueCounts(learning=learning, review=review)


def vault_due_counts(store: CardStore, now: int) -> DueCounts:
    return count_due((card for _, card in iter_all_cards(store)), now)


def count_missing_paragraph_index(store: CardStore) -> int:
    """Cards that have not been located in their chapter yet."""
    return sum(1 for _, card in iter_all_cards(store) if card.paragraph_index is None)
