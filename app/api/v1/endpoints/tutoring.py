import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from app.agents.evaluator import AnswerEvaluator, analyze_question_type, determine_choice_count
from app.agents.tutor_agent import DialogueOrchestrator
from app.errors import InvalidContentSource
from app.models.content import ContentSource
from app.models.evaluation import (
    ChoicesRequest,
    ChoicesResult,
    EvaluateAnswerRequest,
    EvaluationResult,
)
from app.models.tutor_state import initial_state
from app.models.turn import (
    RegisterContentResponse,
    StartSessionRequest,
    StartSessionResponse,
    TurnRequest,
    TurnResponse,
)
from app.services.content_registry import ContentRegistry
from app.utils.logger import TurnLogger

logger = logging.getLogger(__name__)

# Create separate routers for tutoring and evaluation endpoints
tutoring_router = APIRouter()
evaluation_router = APIRouter()


# Dependencies, resolved from the objects the app factory put on app.state
def get_orchestrator(request: Request) -> DialogueOrchestrator:
    return request.app.state.orchestrator


def get_content_registry(request: Request) -> ContentRegistry:
    return request.app.state.content_registry


def get_evaluator(request: Request) -> AnswerEvaluator:
    return request.app.state.evaluator


def get_turn_logger(request: Request) -> Optional[TurnLogger]:
    return request.app.state.turn_logger


def _lookup_content(registry: ContentRegistry, content_ref: str) -> ContentSource:
    content = registry.get(content_ref)
    if content is None:
        raise HTTPException(status_code=404, detail="Content not found")
    return content


@tutoring_router.post("/content", response_model=RegisterContentResponse, status_code=201)
def register_content(
    content: ContentSource,
    registry: ContentRegistry = Depends(get_content_registry),
):
    """Register a content source for later turns."""
    try:
        content_ref = registry.register(content)
    except InvalidContentSource as e:
        raise HTTPException(status_code=422, detail=str(e))
    logger.info(
        f"Registered content {content_ref}: {len(content.key_points)} key points, "
        f"{len(content.practice)} practice, {len(content.quiz)} quiz"
    )
    return RegisterContentResponse(content_ref=content_ref)


@tutoring_router.get("/content/{content_ref}", response_model=ContentSource)
def get_content(
    content_ref: str,
    registry: ContentRegistry = Depends(get_content_registry),
):
    return _lookup_content(registry, content_ref)


@tutoring_router.get("/content/{content_ref}/turns")
def get_content_turns(
    content_ref: str,
    limit: int = Query(default=20, ge=1, le=200),
    registry: ContentRegistry = Depends(get_content_registry),
    turn_logger: Optional[TurnLogger] = Depends(get_turn_logger),
) -> List[Dict[str, Any]]:
    """Most recent logged turns for a content source, newest first."""
    _lookup_content(registry, content_ref)
    if turn_logger is None:
        return []
    return turn_logger.get_turns(content_ref=content_ref, limit=limit)


@tutoring_router.post("/start", response_model=StartSessionResponse)
def start_session(
    request: StartSessionRequest,
    registry: ContentRegistry = Depends(get_content_registry),
):
    """Start a review session: the initial state for a registered content source."""
    content = _lookup_content(registry, request.content_ref)
    return StartSessionResponse(
        content_ref=request.content_ref,
        state=initial_state(),
        key_point_count=len(content.key_points),
        practice_count=len(content.practice),
        quiz_count=len(content.quiz),
    )


@tutoring_router.post("/next", response_model=TurnResponse, response_model_exclude_none=True)
def next_turn(
    request: TurnRequest,
    registry: ContentRegistry = Depends(get_content_registry),
    orchestrator: DialogueOrchestrator = Depends(get_orchestrator),
):
    """Produce the next tutor turn."""
    content = _lookup_content(registry, request.content_ref)
    try:
        return orchestrator.next_turn(
            request.state,
            request.student_message,
            content,
            history=request.history,
            debug=request.debug,
            content_ref=request.content_ref,
        )
    except InvalidContentSource as e:
        raise HTTPException(status_code=422, detail=str(e))


@evaluation_router.post("/answer", response_model=EvaluationResult, response_model_exclude_none=True)
def evaluate_answer(
    request: EvaluateAnswerRequest,
    evaluator: AnswerEvaluator = Depends(get_evaluator),
):
    """Grade a free-text answer."""
    return evaluator.evaluate(
        question=request.question,
        expected_answer=request.expected_answer,
        student_answer=request.student_answer,
        subject_domain=request.subject,
        context=request.context,
    )


@evaluation_router.post("/choices", response_model=ChoicesResult, response_model_exclude_none=True)
def generate_choices(
    request: ChoicesRequest,
    evaluator: AnswerEvaluator = Depends(get_evaluator),
):
    """
    Answer choices for a question, reusing existing ones when given.

    Without numChoices the count follows the question type and stage; a
    free-typing question gets an empty choice list.
    """
    num_choices = request.num_choices
    if num_choices is None:
        question_type = analyze_question_type(request.question, request.existing_choices)
        num_choices = determine_choice_count(question_type, request.stage)
        logger.debug(f"Question type {question_type.value} at {request.stage}: {num_choices} choices")
        if num_choices == 0:
            return ChoicesResult(choices=[], correct_index=0)

    return evaluator.generate_choices(
        question=request.question,
        correct_answer=request.correct_answer,
        subject=request.subject,
        num_choices=num_choices,
        existing_choices=request.existing_choices,
    )
