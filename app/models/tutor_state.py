from enum import Enum
from typing import Any, List, Optional

from pydantic import Field, field_validator, model_validator

from app.models.base import CamelModel


class Stage(str, Enum):
    INTRO = "intro"
    KEY_POINTS = "keyPoints"
    PRACTICE = "practice"
    QUIZ = "quiz"
    WRAPUP = "wrapup"


# Forward-only order of the pedagogical sequence
STAGE_ORDER: List[Stage] = [
    Stage.INTRO,
    Stage.KEY_POINTS,
    Stage.PRACTICE,
    Stage.QUIZ,
    Stage.WRAPUP,
]


def stage_rank(stage: Stage) -> int:
    return STAGE_ORDER.index(stage)


class Awaiting(str, Enum):
    NONE = "none"
    FREE_ANSWER = "free_answer"


class LastAsked(str, Enum):
    ASK_MORE_QUESTIONS = "ask_more_questions"
    FREE_ANSWER = "free_answer"
    NONE = "none"


class TutorState(CamelModel):
    """The session's pedagogical cursor, rewritten once per turn."""

    stage: Stage = Stage.INTRO
    idx: int = Field(default=0, ge=0)
    awaiting: Awaiting = Awaiting.NONE
    expected_answer: Optional[str] = None
    last_asked: LastAsked = LastAsked.NONE

    @field_validator("stage", mode="before")
    @classmethod
    def _legacy_stage_names(cls, value: Any) -> Any:
        # Older clients and some model outputs call the terminal stage "done"
        if isinstance(value, str) and value.strip().lower() == "done":
            return Stage.WRAPUP
        return value

    @field_validator("awaiting", "last_asked", mode="before")
    @classmethod
    def _blank_means_none(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return "none"
        return value

    @field_validator("expected_answer", mode="before")
    @classmethod
    def _blank_expected_answer(cls, value: Any) -> Any:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @model_validator(mode="after")
    def _expected_answer_only_while_awaiting(self) -> "TutorState":
        if self.awaiting != Awaiting.FREE_ANSWER:
            self.expected_answer = None
        return self


def initial_state() -> TutorState:
    return TutorState()
