from pydantic import BaseModel, Field, model_validator
from typing import List, Optional
from enum import Enum

from .card import Flashcard, Rating


class StudyMode(str, Enum):
    BY_DOCUMENT = "document"
    BY_SUBJECT = "subject"
    REVIEW_ONLY = "review"
    CUSTOM_SESSION = "custom"


class StudyScope(BaseModel):
    """What a study mode draws from: the active document or an explicit card set."""

    chapter: Optional[str] = None
    card_ids: List[str] = Field(default_factory=list)
    include_new: bool = True


class QueueEntry(BaseModel):
    card: Flashcard
    deck_key: str


class ReviewAction(str, Enum):
    ANSWERED = "answered"
    SKIP = "skip"
    BURY = "bury"
    ABORT = "abort"


class ReviewResult(BaseModel):
    action: ReviewAction
    rating: Optional[Rating] = None

    @model_validator(mode="after")
    def validate_rating(self):
        if self.action == ReviewAction.ANSWERED and self.rating is None:
            raise ValueError("An answered card needs a rating")
        return self


class SessionState(str, Enum):
    ACTIVE = "active"
    AWAITING_CONTINUE = "awaiting_continue"
    DONE = "done"


class SessionOutcome(str, Enum):
    COMPLETE = "complete"
    EMPTY = "empty"
    ABORTED = "aborted"
    AGAIN = "again"
    UNLOCKED = "unlocked"
    DECLINED = "declined"


class SessionStep(BaseModel):
    """What the caller should do next: show a card, confirm a continuation, or stop."""

    state: SessionState
    card: Optional[Flashcard] = None
    deck_key: Optional[str] = None
    variant_index: int = 0
    remaining: int = 0
    reviewed: int = 0
    outcome: Optional[SessionOutcome] = None
    # None stands for an unbounded gate.
    gate: Optional[int] = None
    unlocked: bool = False
