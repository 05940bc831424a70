import logging
import math

from models.card import (
    DEFAULT_EASE_FACTOR,
    MIN_EASE_FACTOR,
    CardStatus,
    Flashcard,
    LearningState,
    NewState,
    Rating,
    RelearnState,
    ReviewLog,
    ReviewState,
)
from models.settings import StudySettings
from .clock import ONE_DAY_MS, ONE_MINUTE_MS

logger = logging.getLogger(__name__)

AGAIN_EASE_PENALTY = 0.2
HARD_EASE_PENALTY = 0.15
EASY_EASE_BONUS = 0.15
HARD_INTERVAL_FACTOR = 1.2
GRADUATING_INTERVAL_DAYS = 1
EASY_GRADUATING_INTERVAL_DAYS = 4


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def apply_rating(card: Flashcard, rating: Rating, now: int, settings: StudySettings) -> None:
    """Apply an SM-2 style rating to a card in place and log the prior state."""
    card.review_history.append(
        ReviewLog(
            timestamp=now,
            rating=rating,
            status_before=card.status,
            interval_before=card.interval_days,
            ease_before=card.ease_factor,
        )
    )
    card.buried = False

    if card.status == CardStatus.NEW:
        card.state = LearningState()

    if rating == Rating.AGAIN:
        if card.status in (CardStatus.REVIEW, CardStatus.RELEARN):
            card.state = RelearnState(step=0)
        else:
            card.state = LearningState(step=0)
        card.ease_factor = max(MIN_EASE_FACTOR, card.ease_factor - AGAIN_EASE_PENALTY)
        card.due_at = now
        card.blocked = True
        card.last_reviewed = now
        logger.info("Card %s failed, back to %s", card.id, card.status.value)
        return

    card.blocked = False

    if card.status in (CardStatus.LEARNING, CardStatus.RELEARN):
        _advance_step(card, rating, now, settings)
    else:
        state = card.state
        if rating == Rating.HARD:
            interval = max(1, state.interval_days * HARD_INTERVAL_FACTOR)
            card.ease_factor = max(MIN_EASE_FACTOR, card.ease_factor - HARD_EASE_PENALTY)
        else:
            if rating == Rating.EASY:
                card.ease_factor += EASY_EASE_BONUS
            interval = round_half_up(state.interval_days * card.ease_factor)
        card.state = ReviewState(interval_days=interval)
        card.due_at = now + round(interval * ONE_DAY_MS)

    card.last_reviewed = now
    logger.info(
        "Card %s rated %s: status=%s interval=%s ease=%.2f due=%d",
        card.id, rating.value, card.status.value, card.interval_days, card.ease_factor, card.due_at,
    )


def _advance_step(card: Flashcard, rating: Rating, now: int, settings: StudySettings) -> None:
    relearning = card.status == CardStatus.RELEARN
    steps = settings.relearn_steps if relearning else settings.learning_steps
    increment = 2 if rating == Rating.EASY else 1
    current = card.learning_step_index
    next_index = (current if current is not None else -1) + increment

    if next_index < len(steps):
        card.state = RelearnState(step=next_index) if relearning else LearningState(step=next_index)
        card.due_at = now + round(steps[next_index] * ONE_MINUTE_MS)
    else:
        interval = EASY_GRADUATING_INTERVAL_DAYS if rating == Rating.EASY else GRADUATING_INTERVAL_DAYS
        card.state = ReviewState(interval_days=interval)
        card.due_at = now + interval * ONE_DAY_MS


def reset_card_progress(card: Flashcard, now: int) -> None:
    """Put a card back to its freshly created schedule; the review history is kept."""
    card.state = NewState()
    card.ease_factor = DEFAULT_EASE_FACTOR
    card.due_at = now
    card.blocked = True
    card.buried = False
    card.last_reviewed = None
    logger.info("Card %s reset to new", card.id)
