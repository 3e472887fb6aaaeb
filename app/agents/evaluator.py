"""
Free-text answer evaluation and answer-choice generation.

Correctness is decided by a fast exact match on normalized text first; only a
miss is sent to the semantic-judgment service. When that service is missing,
fails, or answers with something unparseable, a neutral low-confidence result
is returned instead of a verdict.
"""

import logging
import re
from enum import Enum
from typing import Any, List, Optional

from app.agents.extractor import extract_object
from app.errors import EvaluationUncertain
from app.models.evaluation import ChoicesResult, EvaluationResult
from app.models.tutor_state import Stage
from app.prompts.evaluation import build_choices_rubric, build_evaluation_rubric
from app.services.base import JudgmentService
from app.utils.result import Err, Ok, Result

logger = logging.getLogger(__name__)

NEEDS_INPUT_FEEDBACK = "답을 입력해줘! 🐰"
EXACT_MATCH_FEEDBACK = "딩동댕! 정확해! 🐰✨"
CORRECT_FEEDBACK = "맞았어! 🐰"
INCORRECT_FEEDBACK = "아깝다! 다시 해볼까? 🐰"
RETRY_FEEDBACK = "음... 다시 한번 생각해볼까? 🐰"

# Confidence used when no verdict could be obtained
NO_JUDGE_CONFIDENCE = 0.5
UNCERTAIN_CONFIDENCE = 0.3

_WHITESPACE = re.compile(r"\s+")
_PUNCTUATION = re.compile(r"[.,;:!?'\"()\[\]{}]")
_EQUALS_VARIANTS = re.compile(r"[=＝]")
_MINUS_VARIANTS = re.compile(r"[−–—]")


def normalize_answer(answer: str) -> str:
    """Lower-case, drop all whitespace and punctuation, unify = and - variants."""
    s = (answer or "").lower()
    s = _WHITESPACE.sub("", s)
    s = _PUNCTUATION.sub("", s)
    s = _EQUALS_VARIANTS.sub("=", s)
    s = _MINUS_VARIANTS.sub("-", s)
    return s.strip()


class QuestionType(str, Enum):
    CONCEPT = "concept"
    MULTIPLE_CHOICE = "multiple_choice"
    SHORT_ANSWER = "short_answer"
    SUBJECTIVE = "subjective"


_CONCEPT_MARKERS = ("맞으면", "틀리면", "o/x", "○/×", "옳은 것", "옳지 않은 것", "true or false")
_SUBJECTIVE_MARKERS = ("서술하", "설명하", "이유를", "근거를", "explain why", "describe")


def analyze_question_type(question: str, choices: Optional[List[str]] = None) -> QuestionType:
    if choices and len(choices) >= 2:
        return QuestionType.MULTIPLE_CHOICE
    q = (question or "").lower()
    if any(m in q for m in _CONCEPT_MARKERS):
        return QuestionType.CONCEPT
    if any(m in q for m in _SUBJECTIVE_MARKERS):
        return QuestionType.SUBJECTIVE
    return QuestionType.SHORT_ANSWER


def determine_choice_count(question_type: QuestionType, stage: str) -> int:
    """How many answer buttons to offer; 0 means free typing."""
    if question_type == QuestionType.CONCEPT:
        return 2
    if question_type in (QuestionType.SHORT_ANSWER, QuestionType.SUBJECTIVE):
        return 0
    return 2 if stage == Stage.KEY_POINTS.value else 4


def _coerce_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    return None


def _coerce_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class AnswerEvaluator:
    """Decides whether a free-text answer is correct."""

    def __init__(self, judge: Optional[JudgmentService] = None):
        self.judge = judge

    def evaluate(
        self,
        question: str,
        expected_answer: str,
        student_answer: str,
        subject_domain: str = "",
        context: Optional[str] = None,
    ) -> EvaluationResult:
        if not student_answer or not student_answer.strip():
            return EvaluationResult(is_correct=False, confidence=1.0, feedback=NEEDS_INPUT_FEEDBACK)

        if normalize_answer(expected_answer) == normalize_answer(student_answer):
            return EvaluationResult(
                is_correct=True,
                confidence=1.0,
                feedback=EXACT_MATCH_FEEDBACK,
                partial_credit=100,
            )

        if self.judge is None:
            return self._neutral(NO_JUDGE_CONFIDENCE)

        rubric = build_evaluation_rubric(question, expected_answer, student_answer, subject_domain, context)
        judged = self._judge(rubric)
        if isinstance(judged, Err):
            logger.warning(f"Answer judgment unavailable: {judged.failure}")
            return self._neutral(UNCERTAIN_CONFIDENCE)
        return judged.value

    def _judge(self, rubric: str) -> Result[EvaluationResult]:
        try:
            text = self.judge.judge(rubric)
        except Exception as e:
            return Err(EvaluationUncertain("judgment call failed", detail=type(e).__name__))

        extracted = extract_object(text)
        if isinstance(extracted, Err):
            return Err(EvaluationUncertain("judgment not parseable", detail=extracted.failure.reason))

        obj = extracted.value
        is_correct = _coerce_bool(obj.get("isCorrect", obj.get("is_correct")))
        if is_correct is None:
            return Err(EvaluationUncertain("judgment has no verdict"))

        confidence = _coerce_number(obj.get("confidence"))
        confidence = 0.5 if confidence is None else min(1.0, max(0.0, confidence))
        partial = _coerce_number(obj.get("partialCredit", obj.get("partial_credit")))

        return Ok(EvaluationResult(
            is_correct=is_correct,
            confidence=confidence,
            feedback=_optional_text(obj.get("feedback")) or (CORRECT_FEEDBACK if is_correct else INCORRECT_FEEDBACK),
            partial_credit=None if partial is None else int(round(min(100.0, max(0.0, partial)))),
            explanation=_optional_text(obj.get("explanation")),
            suggested_follow_up=_optional_text(obj.get("suggestedFollowUp", obj.get("suggested_follow_up"))),
        ))

    @staticmethod
    def _neutral(confidence: float) -> EvaluationResult:
        return EvaluationResult(is_correct=False, confidence=confidence, feedback=RETRY_FEEDBACK)

    def generate_choices(
        self,
        question: str,
        correct_answer: str,
        subject: str = "",
        num_choices: int = 4,
        existing_choices: Optional[List[str]] = None,
    ) -> ChoicesResult:
        """Answer buttons for a question: reuse given choices, else ask for distractors."""
        if existing_choices and len(existing_choices) >= 2:
            answer = correct_answer.lower()
            correct_index = next(
                (i for i, c in enumerate(existing_choices)
                 if answer in c.lower() or c.lower() in answer),
                0,
            )
            return ChoicesResult(choices=list(existing_choices), correct_index=correct_index)

        placeholder = ChoicesResult(
            choices=[correct_answer, "오답1", "오답2", "오답3"][:num_choices],
            correct_index=0,
        )
        if self.judge is None:
            return placeholder

        try:
            text = self.judge.judge(build_choices_rubric(question, correct_answer, subject, num_choices))
        except Exception as e:
            logger.warning(f"Choice generation failed: {e}")
            return placeholder

        extracted = extract_object(text)
        if isinstance(extracted, Err):
            logger.warning(f"Choice generation output not parseable: {extracted.failure}")
            return placeholder

        obj = extracted.value
        raw_choices = obj.get("choices")
        choices = [str(c).strip() for c in raw_choices if str(c).strip()] if isinstance(raw_choices, list) else []
        if len(choices) < 2:
            return placeholder

        index = _coerce_number(obj.get("correctIndex"))
        if index is None or not 0 <= int(index) < len(choices):
            index = choices.index(correct_answer) if correct_answer in choices else 0
        reasons = obj.get("distractorReasons")
        return ChoicesResult(
            choices=choices,
            correct_index=int(index),
            distractor_reasons=[str(r) for r in reasons] if isinstance(reasons, list) else None,
        )
