import math
from typing import Iterable, Optional, Union

from models.card import Flashcard


Gate = Union[int, float]


def is_blocking(card: Flashcard, now: int) -> bool:
    """Whether a card currently withholds the content after its paragraph.

    A buried card stops blocking only until its bury delay runs out.
    """
    if not card.blocked or card.suspended or card.is_verbatim:
        return False
    return not (card.buried and card.due_at > now)


def paragraph_position(card: Flashcard) -> Gate:
    return card.paragraph_index if card.paragraph_index is not None else math.inf


def first_blocked_paragraph(chapter: str, cards: Iterable[Flashcard], now: int) -> Gate:
    """Lowest paragraph index held back by a blocking card of the chapter, inf when nothing blocks."""
    return min(
        (paragraph_position(card) for card in cards if card.chapter == chapter and is_blocking(card, now)),
        default=math.inf,
    )


def gate_to_json(gate: Gate) -> Optional[int]:
    return None if math.isinf(gate) else int(gate)


def is_paragraph_hidden(paragraph_index: int, gate: Gate, gating_enabled: bool = True) -> bool:
    return gating_enabled and paragraph_index > gate


def chapter_state(chapter: str, cards: Iterable[Flashcard], now: int) -> Optional[str]:
    """Summarize a chapter for listings: 'blocked', 'due', 'done', or None without cards."""
    chapter_cards = [card for card in cards if card.chapter == chapter]
    if not chapter_cards:
        return None
    if any(is_blocking(card, now) for card in chapter_cards):
        return "blocked"
    if any(card.due_at <= now and not card.suspended for card in chapter_cards):
        return "due"
    return "done"
