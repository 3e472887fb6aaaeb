from pydantic import Field
from typing import List, Optional

from app.models.base import CamelModel


class EvaluationResult(CamelModel):
    is_correct: bool
    confidence: float = Field(ge=0.0, le=1.0)
    feedback: str
    partial_credit: Optional[int] = Field(default=None, ge=0, le=100)  # 0-100
    explanation: Optional[str] = None
    suggested_follow_up: Optional[str] = None


class EvaluateAnswerRequest(CamelModel):
    question: str = ""
    expected_answer: str
    student_answer: str = ""
    subject: str = ""
    context: Optional[str] = None


class ChoicesRequest(CamelModel):
    question: str
    correct_answer: str
    subject: str = ""
    num_choices: Optional[int] = Field(default=None, ge=2, le=6)  # None: decided from the question
    stage: str = "quiz"
    existing_choices: Optional[List[str]] = None


class ChoicesResult(CamelModel):
    choices: List[str]
    correct_index: int = 0
    distractor_reasons: Optional[List[str]] = None
