from pydantic import Field
from typing import Any, Dict, List, Optional

from app.models.base import CamelModel
from app.models.evaluation import EvaluationResult
from app.models.tutor_state import TutorState


class HistoryMessage(CamelModel):
    role: str
    content: str = ""


class HighlightRegion(CamelModel):
    """Image region the tutor refers to, as ratios of the image size."""

    x: float = Field(ge=0.0, le=1.0)
    y: float = Field(ge=0.0, le=1.0)
    width: float = Field(ge=0.0, le=1.0)
    height: float = Field(ge=0.0, le=1.0)
    problem_number: Optional[int] = None


class TurnRequest(CamelModel):
    state: TutorState = Field(default_factory=TutorState)
    student_message: str = ""
    content_ref: str
    history: List[HistoryMessage] = Field(default_factory=list)
    debug: bool = False


class ParsedTurn(CamelModel):
    """A turn recovered from generated text, before bounds checking."""

    message: str
    suggested_replies: List[str] = Field(default_factory=list)
    next_state: Optional[TutorState] = None
    highlight_region: Optional[HighlightRegion] = None


class TurnResponse(CamelModel):
    message: str
    suggested_replies: List[str] = Field(default_factory=list)
    next_state: TutorState
    evaluation: Optional[EvaluationResult] = None
    highlight_region: Optional[HighlightRegion] = None
    used_fallback: bool = False
    debug: Optional[Dict[str, Any]] = None


class StartSessionRequest(CamelModel):
    content_ref: str


class StartSessionResponse(CamelModel):
    content_ref: str
    state: TutorState
    key_point_count: int
    practice_count: int
    quiz_count: int


class RegisterContentResponse(CamelModel):
    content_ref: str
