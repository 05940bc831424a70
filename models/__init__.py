from .card import (
    CardCreate,
    CardMap,
    CardStatus,
    CardVariant,
    Flashcard,
    LearningState,
    NewState,
    Rating,
    RelearnState,
    ReviewLog,
    ReviewState,
)
from .settings import StudySettings
from .study import (
    QueueEntry,
    ReviewAction,
    ReviewResult,
    SessionOutcome,
    SessionState,
    SessionStep,
    StudyMode,
    StudyScope,
)

__all__ = [
    'CardCreate', 'CardMap', 'CardStatus', 'CardVariant', 'Flashcard',
    'LearningState', 'NewState', 'Rating', 'RelearnState', 'ReviewLog', 'ReviewState',
    'StudySettings',
    'QueueEntry', 'ReviewAction', 'ReviewResult', 'SessionOutcome', 'SessionState',
    'SessionStep', 'StudyMode', 'StudyScope',
]
