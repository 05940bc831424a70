from __future__ import annotations

import logging
import random
import secrets
from typing import Iterable, Optional

from models.card import CardStatus, CardVariant, Flashcard
from models.settings import StudySettings
from .clock import ONE_HOUR_MS

logger = logging.getLogger(__name__)


def is_unseen(card: Flashcard) -> bool:
    return card.status == CardStatus.NEW and not card.learning_step_index


def subject_of(chapter: str) -> str:
    return chapter.split("/")[0]


def create_card(
    front: str,
    back: str,
    chapter: str,
    now: int,
    tag: str = "",
    paragraph_index: Optional[int] = None,
    variants: Iterable[CardVariant] = (),
) -> Flashcard:
    """Create a new, blocking card due immediately; extra variants follow the canonical one."""
    return Flashcard(
        id=f"c_{now}_{secrets.token_hex(4)}",
        variants=[CardVariant(front=front, back=back), *variants],
        chapter=chapter,
        tag=tag,
        paragraph_index=paragraph_index,
        due_at=now,
    )


def pick_variant(card: Flashcard, rng: Optional[random.Random] = None) -> int:
    """Pick which phrasing of a card to show."""
    if len(card.variants) == 1:
        return 0
    return (rng or random).randrange(len(card.variants))


def bury_card(card: Flashcard, now: int, settings: StudySettings) -> None:
    card.buried = True
    card.due_at = now + round(settings.bury_delay_hours * ONE_HOUR_MS)
    logger.info("Card %s buried until %d", card.id, card.due_at)


def suspend_card(card: Flashcard) -> None:
    card.suspended = True
    logger.info("Card %s suspended", card.id)


def unsuspend_card(card: Flashcard) -> None:
    card.suspended = False
    logger.info("Card %s unsuspended", card.id)


def toggle_flag(card: Flashcard) -> bool:
    card.flagged = not card.flagged
    return card.flagged
