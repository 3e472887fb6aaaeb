from typing import List, Optional

from pydantic import Field

from app.errors import InvalidContentSource
from app.models.base import CamelModel
from app.models.tutor_state import Stage


class PracticeItem(CamelModel):
    text: str
    expected_answer_hint: Optional[str] = None


class QuizItem(CamelModel):
    question: str
    answer: str


class ContentSource(CamelModel):
    """Read-only review content, addressed by (stage, idx)."""

    title: str = ""
    subject: str = ""
    grade: str = ""
    duration_minutes: int = Field(default=30, ge=1)
    key_points: List[str] = Field(default_factory=list)
    practice: List[PracticeItem] = Field(default_factory=list)
    quiz: List[QuizItem] = Field(default_factory=list)

    def collection_length(self, stage: Stage) -> int:
        """Number of items in a stage; intro and wrapup have no collection."""
        if stage == Stage.KEY_POINTS:
            return len(self.key_points)
        if stage == Stage.PRACTICE:
            return len(self.practice)
        if stage == Stage.QUIZ:
            return len(self.quiz)
        return 0

    def has_item(self, stage: Stage, idx: int) -> bool:
        return 0 <= idx < self.collection_length(stage)

    def item_text(self, stage: Stage, idx: int) -> Optional[str]:
        """The text presented to the student for (stage, idx), if it exists."""
        if not self.has_item(stage, idx):
            return None
        if stage == Stage.KEY_POINTS:
            return self.key_points[idx]
        if stage == Stage.PRACTICE:
            return self.practice[idx].text
        return self.quiz[idx].question

    def reference_answer(self, stage: Stage, idx: int) -> Optional[str]:
        """The reference answer for (stage, idx); concepts have none."""
        if not self.has_item(stage, idx):
            return None
        if stage == Stage.PRACTICE:
            hint = self.practice[idx].expected_answer_hint
            return hint.strip() if hint and hint.strip() else None
        if stage == Stage.QUIZ:
            answer = self.quiz[idx].answer
            return answer.strip() if answer and answer.strip() else None
        return None

    def is_empty(self) -> bool:
        return not (self.key_points or self.practice or self.quiz)

    def ensure_usable(self) -> None:
        if self.is_empty():
            raise InvalidContentSource(
                "content source has no key points, practice items or quiz items"
            )
