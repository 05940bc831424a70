from pydantic import BaseModel, ConfigDict, field_validator
from typing import List


class StudySettings(BaseModel):
    """Read-only scheduling and queue configuration."""

    model_config = ConfigDict(frozen=True)

    learning_steps: List[float] = [1, 10]
    relearn_steps: List[float] = [10]
    bury_delay_hours: float = 24
    reviews_before_new_in_document_mode: bool = False
    interleaving_enabled: bool = True
    gating_enabled: bool = True

    @field_validator("learning_steps", "relearn_steps")
    @classmethod
    def validate_steps(cls, v):
        if any(step < 0 for step in v):
            raise ValueError("Step durations must be non-negative minutes")
        return v

    @field_validator("bury_delay_hours")
    @classmethod
    def validate_bury_delay(cls, v):
        if v < 0:
            raise ValueError("Bury delay cannot be negative")
        return v
