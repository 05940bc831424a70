from __future__ import annotations

import logging
import math
import random
from bisect import bisect_left
from functools import cmp_to_key
from itertools import accumulate
from typing import Collection, Iterable, List, Optional

from db.store import CardStore, StoreError, deck_key_for_chapter
from models.card import Flashcard
from models.settings import StudySettings
from models.study import QueueEntry, StudyMode, StudyScope
from .cards import is_unseen, subject_of
from .gating import Gate, paragraph_position

logger = logging.getLogger(__name__)


def _deck_keys_for(store: CardStore, mode: StudyMode, scope: StudyScope) -> List[str]:
    if mode == StudyMode.BY_DOCUMENT:
        return [deck_key_for_chapter(scope.chapter)] if scope.chapter else []
    return store.list_deck_keys()


def _in_scope(card: Flashcard, mode: StudyMode, scope: StudyScope) -> bool:
    if mode == StudyMode.BY_DOCUMENT:
        return card.chapter == scope.chapter
    if mode == StudyMode.BY_SUBJECT:
        return scope.chapter is not None and subject_of(card.chapter) == subject_of(scope.chapter)
    if mode == StudyMode.CUSTOM_SESSION:
        return card.id in scope.card_ids
    return True


def _drops_unseen(mode: StudyMode, scope: StudyScope) -> bool:
    if mode in (StudyMode.REVIEW_ONLY, StudyMode.BY_SUBJECT):
        return True
    return mode == StudyMode.CUSTOM_SESSION and not scope.include_new


def queue_gate(cards: Iterable[Flashcard]) -> Gate:
    """Lowest paragraph of a blocked card that still holds the study queue back.

    Suspended and verbatim cards never count. Unlike the reading gate, a
    buried card stays out of this one until it is rated again, even after its
    bury delay has run out.
    """
    return min(
        (
            paragraph_position(card)
            for card in cards
            if card.blocked and not card.suspended and not card.buried and not card.is_verbatim
        ),
        default=math.inf,
    )


def new_cards_first(mode: StudyMode, settings: StudySettings) -> bool:
    if mode == StudyMode.BY_DOCUMENT:
        return not settings.reviews_before_new_in_document_mode
    return mode != StudyMode.CUSTOM_SESSION


def collect_pool(
    store: CardStore,
    mode: StudyMode,
    scope: StudyScope,
    now: int,
    settings: StudySettings,
    lookahead_ms: int = 0,
    exclude_ids: Collection[str] = (),
) -> List[QueueEntry]:
    """Gather the cards eligible for review right now, ordered for study.

    In document mode the chapter's gate also cuts the pool: a card past the
    first blocked paragraph stays out unless it is itself blocked and due.
    A deck that cannot be read empties the whole pool.
    """
    pool: List[QueueEntry] = []
    cutoff = now + lookahead_ms
    try:
        deck_keys = _deck_keys_for(store, mode, scope)
        decks = [(deck_key, store.read(deck_key)) for deck_key in deck_keys]
    except StoreError as e:
        logger.warning("Review pool unavailable: %s", e)
        return []

    for deck_key, cards in decks:
        in_scope = [card for card in cards.values() if _in_scope(card, mode, scope)]

        gate = math.inf
        if mode == StudyMode.BY_DOCUMENT:
            gate = queue_gate(in_scope)

        for card in in_scope:
            if card.id in exclude_ids or card.suspended:
                continue
            if paragraph_position(card) > gate and not (card.blocked and card.due_at <= now):
                continue
            if card.due_at > cutoff:
                continue
            if _drops_unseen(mode, scope) and is_unseen(card):
                continue
            pool.append(QueueEntry(card=card, deck_key=deck_key))

    return sort_pool(pool, new_cards_first(mode, settings))


def sort_pool(pool: List[QueueEntry], new_first: bool) -> List[QueueEntry]:
    def compare(a: QueueEntry, b: QueueEntry) -> int:
        a_new, b_new = is_unseen(a.card), is_unseen(b.card)
        if a_new != b_new:
            return -1 if a_new == new_first else 1
        if a.card.chapter == b.card.chapter:
            left, right = paragraph_position(a.card), paragraph_position(b.card)
        else:
            left, right = a.card.due_at, b.card.due_at
        return (left > right) - (left < right)

    return sorted(pool, key=cmp_to_key(compare))


def overdue_weight(card: Flashcard, now: int) -> int:
    """Seconds overdue, floored at one so a just-due card can still be drawn."""
    return max(1, math.floor((now - card.due_at) / 1000))


def select_next(
    pool: List[QueueEntry],
    mode: StudyMode,
    now: int,
    settings: StudySettings,
    rng: Optional[random.Random] = None,
) -> Optional[int]:
    """Index of the card to study next, None for an empty pool."""
    if not pool:
        return None
    if len(pool) == 1 or mode == StudyMode.BY_DOCUMENT or not settings.interleaving_enabled:
        return 0
    cumulative = list(accumulate(overdue_weight(entry.card, now) for entry in pool))
    draw = (rng or random).random() * cumulative[-1]
    return bisect_left(cumulative, draw)
