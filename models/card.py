from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Annotated, Dict, List, Literal, Optional, Union
from enum import Enum

MIN_EASE_FACTOR = 1.3
DEFAULT_EASE_FACTOR = 2.5

# Cards whose tag starts with this marker are excluded from gating.
VERBATIM_TAG_PREFIX = "verbatim::"


class CardStatus(str, Enum):
    NEW = "new"
    LEARNING = "learning"
    REVIEW = "review"
    RELEARN = "relearn"


class Rating(str, Enum):
    AGAIN = "Again"
    HARD = "Hard"
    GOOD = "Good"
    EASY = "Easy"


class NewState(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal["new"] = "new"


class LearningState(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal["learning"] = "learning"
    step: Optional[int] = None


class ReviewState(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal["review"] = "review"
    interval_days: float = 1.0


class RelearnState(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal["relearn"] = "relearn"
    step: Optional[int] = None


CardState = Annotated[
    Union[NewState, LearningState, ReviewState, RelearnState],
    Field(discriminator="status"),
]


class CardVariant(BaseModel):
    model_config = ConfigDict(frozen=True)

    front: str
    back: str


class ReviewLog(BaseModel):
    """Snapshot of a card taken right before a rating was applied."""

    model_config = ConfigDict(frozen=True)

    timestamp: int
    rating: Rating
    status_before: CardStatus
    interval_before: float
    ease_before: float


class CardCreate(BaseModel):
    front: str
    back: str
    chapter: str
    tag: str = ""
    paragraph_index: Optional[int] = None
    variants: List[CardVariant] = Field(default_factory=list)


class Flashcard(BaseModel):
    """A question/answer unit tied to a paragraph of a chapter.

    Step index and interval live on the tagged ``state``: a step only exists
    while learning or relearning, an interval only once in review. Ease
    carries across every state.
    """

    id: str
    variants: List[CardVariant]
    chapter: str
    tag: str = ""
    paragraph_index: Optional[int] = None
    state: CardState = Field(default_factory=NewState)
    ease_factor: float = DEFAULT_EASE_FACTOR
    due_at: int
    blocked: bool = True
    suspended: bool = False
    flagged: bool = False
    buried: bool = False
    last_reviewed: Optional[int] = None
    review_history: List[ReviewLog] = Field(default_factory=list)

    @field_validator("variants")
    @classmethod
    def validate_variants(cls, v):
        if not v:
            raise ValueError("A card needs at least one front/back variant")
        return v

    @field_validator("ease_factor")
    @classmethod
    def validate_ease(cls, v):
        if v < MIN_EASE_FACTOR:
            raise ValueError(f"Ease factor cannot drop below {MIN_EASE_FACTOR}")
        return v

    @property
    def status(self) -> CardStatus:
        return CardStatus(self.state.status)

    @property
    def interval_days(self) -> float:
        return getattr(self.state, "interval_days", 0.0)

    @property
    def learning_step_index(self) -> Optional[int]:
        return getattr(self.state, "step", None)

    @property
    def front(self) -> str:
        return self.variants[0].front

    @property
    def back(self) -> str:
        return self.variants[0].back

    @property
    def is_verbatim(self) -> bool:
        return self.tag.startswith(VERBATIM_TAG_PREFIX)


CardMap = Dict[str, Flashcard]
