import json
from typing import Any, Dict, List, Optional

from app.agents.classifiers import ReplyIntent, Speaker, normalize_speaker_role
from app.graph.stages import next_state
from app.models.content import ContentSource
from app.models.evaluation import EvaluationResult
from app.models.tutor_state import TutorState
from app.models.turn import HistoryMessage
from app.prompts.subjects import get_subject_guide

MAX_HISTORY_LINES = 12

_SPEAKER_LABELS = {
    Speaker.STUDENT: "STUDENT",
    Speaker.TUTOR: "TUTOR",
    Speaker.SYSTEM: "SYSTEM",
}


def _numbered(lines: List[str]) -> str:
    if not lines:
        return "(none)"
    return "\n".join(f"{i}. {line}" for i, line in enumerate(lines))


def format_history(history: Optional[List[HistoryMessage]]) -> str:
    """Render the most recent dialogue lines with normalized speaker labels."""
    recent = [m for m in (history or []) if m.content and m.content.strip()][-MAX_HISTORY_LINES:]
    if not recent:
        return "No previous conversation."
    return "\n".join(
        f"{_SPEAKER_LABELS[normalize_speaker_role(m.role)]}: {m.content.strip()}"
        for m in recent
    )


def format_evaluation(evaluation: Optional[EvaluationResult]) -> str:
    if evaluation is None:
        return "No answer was graded this turn."
    verdict = "correct" if evaluation.is_correct else "not correct"
    lines = [f"The student's answer was judged {verdict} (confidence {evaluation.confidence:.2f})."]
    if evaluation.partial_credit is not None:
        lines.append(f"Partial credit: {evaluation.partial_credit}/100")
    lines.append(f"Feedback to fold into your message: {evaluation.feedback}")
    if evaluation.suggested_follow_up:
        lines.append(f"Suggested follow-up: {evaluation.suggested_follow_up}")
    return "\n".join(lines)


def _state_json(state: TutorState) -> str:
    return json.dumps(state.model_dump(mode="json", by_alias=True), ensure_ascii=False)


def assemble_context(
    state: TutorState,
    content: ContentSource,
    student_message: str,
    intent: ReplyIntent,
    evaluation: Optional[EvaluationResult] = None,
    history: Optional[List[HistoryMessage]] = None,
) -> Dict[str, Any]:
    """
    Build the variables of the tutoring prompt.

    The deterministic successor state is included so the model knows which
    move stays in bounds; it may still choose to stay on the current item.
    """
    current_item = content.item_text(state.stage, state.idx)
    practice = [
        f"{p.text} (answer hint: {p.expected_answer_hint})" if p.expected_answer_hint else p.text
        for p in content.practice
    ]
    quiz = [f"{q.question} (answer: {q.answer})" for q in content.quiz]

    return {
        "title": content.title or "(untitled)",
        "subject": content.subject or "general",
        "grade": content.grade or "unknown",
        "duration_minutes": content.duration_minutes,
        "subject_guide": get_subject_guide(content.subject),
        "key_points": _numbered(content.key_points),
        "practice_items": _numbered(practice),
        "quiz_items": _numbered(quiz),
        "current_state": _state_json(state),
        "current_item": current_item or "(none)",
        "default_next_state": _state_json(next_state(state, content)),
        "student_message": student_message.strip() or "(no message)",
        "reply_intent": intent.value,
        "evaluation_summary": format_evaluation(evaluation),
        "conversation_history": format_history(history),
    }
