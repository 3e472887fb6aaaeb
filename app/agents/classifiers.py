"""
Small pure classifiers for student replies and dialogue roles.

They only look at the text (and, for terse negatives, at what was last asked),
so the orchestrator can branch on an enum instead of on keyword lists.
"""

import re
from enum import Enum
from typing import Optional

from app.models.tutor_state import LastAsked


class ReplyIntent(str, Enum):
    EMPTY = "empty"
    NO_MORE_QUESTIONS = "no_more_questions"
    NEXT_ITEM = "next_item"
    HINT_REQUEST = "hint_request"
    ANSWER_REQUEST = "answer_request"
    QUESTION = "question"
    ANSWER = "answer"


class Speaker(str, Enum):
    STUDENT = "student"
    TUTOR = "tutor"
    SYSTEM = "system"


NO_QUESTION_REPLIES = frozenset({
    "아니", "아니요", "아뇨", "없어", "없어요", "없음",
    "괜찮아", "괜찮아요", "ㄴㄴ", "no", "nope",
})

_NEXT_EXACT = frozenset({"다음", "next", "skip", "next question", "다음!"})
_NEXT_MARKERS = ("다음 문제", "다음으로", "넘어가", "넘어갈")
_HINT_MARKERS = ("힌트", "hint")
_ANSWER_REQUEST_EXACT = frozenset({"정답", "답", "answer", "show answer"})
_ANSWER_REQUEST_MARKERS = ("정답 보여", "정답 알려", "답 알려", "답 보여", "정답이 뭐")
_QUESTION_MARKERS = (
    "뭐야", "뭔데", "뭐였지", "뭐지", "왜", "어떻게", "무슨", "설명해",
    "알려줘", "모르겠", "질문", "궁금",
)
_ENGLISH_QUESTION = re.compile(r"\b(what|why|how|explain)\b")

_TERSE_PUNCTUATION = re.compile(r"[!?.,~…]")
_WHITESPACE = re.compile(r"\s+")

_TUTOR_ROLES = frozenset({"tutor", "assistant", "ai", "model", "bot", "teacher", "선생님"})


def normalize_student_message(message: Optional[str]) -> str:
    return _WHITESPACE.sub(" ", (message or "").strip())


def is_no_question_reply(message: Optional[str]) -> bool:
    """True for terse negatives such as "아니" or "no", regardless of context."""
    t = _TERSE_PUNCTUATION.sub("", normalize_student_message(message).lower()).strip()
    return t in NO_QUESTION_REPLIES


def means_no_more_questions(message: Optional[str], last_asked: LastAsked) -> bool:
    """A terse negative only ends the Q&A when we just asked for more questions."""
    return last_asked == LastAsked.ASK_MORE_QUESTIONS and is_no_question_reply(message)


def classify_reply(message: Optional[str], last_asked: LastAsked = LastAsked.NONE) -> ReplyIntent:
    text = normalize_student_message(message)
    if not text:
        return ReplyIntent.EMPTY

    if means_no_more_questions(text, last_asked):
        return ReplyIntent.NO_MORE_QUESTIONS

    lowered = text.lower()
    if lowered in _NEXT_EXACT or any(m in lowered for m in _NEXT_MARKERS):
        return ReplyIntent.NEXT_ITEM
    if any(m in lowered for m in _HINT_MARKERS):
        return ReplyIntent.HINT_REQUEST

    bare = _TERSE_PUNCTUATION.sub("", lowered).strip()
    if bare in _ANSWER_REQUEST_EXACT or any(m in lowered for m in _ANSWER_REQUEST_MARKERS):
        return ReplyIntent.ANSWER_REQUEST

    if (
        lowered.endswith("?")
        or lowered.endswith("？")
        or any(m in lowered for m in _QUESTION_MARKERS)
        or _ENGLISH_QUESTION.search(lowered)
    ):
        return ReplyIntent.QUESTION

    return ReplyIntent.ANSWER


def normalize_speaker_role(role: Optional[str]) -> Speaker:
    r = (role or "").strip().lower()
    if r in _TUTOR_ROLES:
        return Speaker.TUTOR
    if r == "system":
        return Speaker.SYSTEM
    # unknown roles are treated as student input
    return Speaker.STUDENT
