from typing import TypedDict, List, Dict, Optional, Any

from app.agents.classifiers import ReplyIntent
from app.models.content import ContentSource
from app.models.evaluation import EvaluationResult
from app.models.tutor_state import TutorState
from app.models.turn import HistoryMessage, ParsedTurn, TurnResponse
from app.utils.result import Result


class TurnGraphState(TypedDict, total=False):
    """State for one pass through the dialogue turn graph."""
    # Inputs
    state: TutorState  # Cursor before this turn
    content: ContentSource
    student_message: str
    history: List[HistoryMessage]
    debug: bool

    # Filled in by the nodes
    intent: ReplyIntent
    needs_evaluation: bool
    evaluation: Optional[EvaluationResult]
    context: Dict[str, Any]  # Prompt variables
    generation_mode: Optional[str]  # Strategy that produced text, if any
    raw_text: Optional[str]
    parsed: Result[ParsedTurn]
    turn: ParsedTurn  # Final turn before reply dedup
    used_fallback: bool
    failure: Optional[str]
    response: TurnResponse
