"""
Deterministic turn synthesis used whenever generation cannot be trusted.

Only the tutor state and the content source are consulted, so this path is
always available; its next state follows the rules in ``app.graph.stages``.
"""

from typing import Dict, List, Optional

from app.graph.stages import next_state
from app.models.content import ContentSource
from app.models.evaluation import EvaluationResult
from app.models.tutor_state import Awaiting, Stage, TutorState
from app.models.turn import ParsedTurn

# What the student just finished, used when a stage hands over to the next one
COMPLETION_LINES: Dict[Stage, str] = {
    Stage.INTRO: "복습할 내용을 다 확인했어!",
    Stage.KEY_POINTS: "핵심 개념은 다 봤어!",
    Stage.PRACTICE: "문제 다 풀었어!",
    Stage.QUIZ: "퀴즈까지 완료!",
}

OPENING_LINES: Dict[Stage, str] = {
    Stage.KEY_POINTS: "좋아! 첫 번째 핵심 볼까? 🐰",
    Stage.PRACTICE: "좋아! 그럼 문제부터 같이 풀어보자 🐇",
    Stage.QUIZ: "좋아! 바로 퀴즈로 확인해볼까? 🎉",
}

CONTINUE_LINES: Dict[Stage, str] = {
    Stage.KEY_POINTS: "좋아! 다음 핵심 갈게 💫",
    Stage.PRACTICE: "좋아! 다음 문제로 갈게 💪",
    Stage.QUIZ: "좋아! 다음 퀴즈 갈게 🌟",
}

ENTER_LINES: Dict[Stage, str] = {
    Stage.PRACTICE: "이제 문제로 연습해볼까? 💪",
    Stage.QUIZ: "이제 퀴즈로 확인해볼까? 🎉",
}

CLOSING_LINE = "오늘 복습 끝~ 수고했어 🎉🐇"
WRAPUP_REPEAT_LINE = "복습 완료! 잘했어 🐇✨ 궁금한 게 생기면 언제든 다시 물어봐!"

ANSWER_REPLIES = ["힌트 주세요", "잠깐만요", "질문 있어요"]
CONCEPT_REPLIES = ["네!", "잠깐만요", "질문 있어요"]


def _item_block(content: ContentSource, stage: Stage, idx: int) -> str:
    text = content.item_text(stage, idx) or ""
    if stage == Stage.KEY_POINTS:
        return f"📌 **핵심 {idx + 1}**\n{text}\n\n이해됐어? 🐇"
    if stage == Stage.PRACTICE:
        return f"**{idx + 1}번 문제:**\n{text}\n\n어떻게 풀어볼까? 🐾"
    return f"**Q. {text}**"


def _lead_line(source: Stage, target: Stage) -> str:
    if source == target:
        return CONTINUE_LINES[target]
    if source == Stage.INTRO:
        return OPENING_LINES[target]
    return f"{COMPLETION_LINES[source]} {ENTER_LINES.get(target, '')}".strip()


def _compose_message(current: TutorState, target: TutorState, content: ContentSource) -> str:
    if target.stage == Stage.WRAPUP:
        if current.stage == Stage.WRAPUP:
            return WRAPUP_REPEAT_LINE
        title = f" **{content.title}**" if content.title else ""
        return f"{COMPLETION_LINES[current.stage]}{title} {CLOSING_LINE}".strip()

    lead = _lead_line(current.stage, target.stage)
    return f"{lead}\n\n{_item_block(content, target.stage, target.idx)}"


def _replies_for(target: TutorState) -> List[str]:
    if target.stage == Stage.WRAPUP:
        return []
    if target.awaiting == Awaiting.FREE_ANSWER:
        return list(ANSWER_REPLIES)
    return list(CONCEPT_REPLIES)


def synthesize_turn(
    state: TutorState,
    content: ContentSource,
    evaluation: Optional[EvaluationResult] = None,
) -> ParsedTurn:
    """Build a valid turn from state and content alone."""
    target = next_state(state, content)
    message = _compose_message(state, target, content)
    if evaluation is not None and evaluation.feedback:
        message = f"{evaluation.feedback}\n\n{message}"

    return ParsedTurn(
        message=message,
        suggested_replies=_replies_for(target),
        next_state=target,
    )
