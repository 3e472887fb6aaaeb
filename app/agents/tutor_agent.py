"""
The dialogue orchestrator: one tutor turn per call.

A turn runs through a compiled LangGraph pipeline (see
``app.graph.tutoring_graph``). Generation is attempted with an ordered list of
strategies; whatever goes wrong, the fallback synthesizer still produces a
valid turn, so ``next_turn`` only raises for unusable content.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from app.agents.classifiers import ReplyIntent, classify_reply
from app.agents.context import assemble_context
from app.agents.evaluator import AnswerEvaluator
from app.agents.extractor import extract_turn
from app.agents.fallback import synthesize_turn
from app.agents.reply_dedup import dedupe_replies
from app.errors import EmptyGenerationFailure, ExtractionFailure
from app.graph.stages import ANSWERABLE_STAGES, check_transition, next_state
from app.graph.state import TurnGraphState
from app.graph.tutoring_graph import build_turn_graph
from app.models.content import ContentSource
from app.models.tutor_state import Awaiting, TutorState
from app.models.turn import HistoryMessage, ParsedTurn, TurnResponse
from app.services.base import CompletionService, GenerationMode
from app.utils.logger import TurnLogger
from app.utils.result import Err, Ok, Result

logger = logging.getLogger(__name__)

DEBUG_PREVIEW_CHARS = 500


@dataclass(frozen=True)
class GenerationStrategy:
    name: str
    mode: GenerationMode


# Tried in order; the next one only runs when the previous produced blank text
DEFAULT_STRATEGIES = (
    GenerationStrategy("structured", GenerationMode.STRUCTURED),
    GenerationStrategy("free_form", GenerationMode.FREE_FORM),
)

# Replies that ask for something instead of attempting the item
UNGRADED_INTENTS = frozenset({
    ReplyIntent.EMPTY,
    ReplyIntent.HINT_REQUEST,
    ReplyIntent.ANSWER_REQUEST,
    ReplyIntent.NEXT_ITEM,
    ReplyIntent.NO_MORE_QUESTIONS,
})


def _reference_answer(state: TutorState, content: ContentSource) -> Optional[str]:
    """The item's own reference answer, else the one carried in the state."""
    if state.stage in ANSWERABLE_STAGES:
        reference = content.reference_answer(state.stage, state.idx)
        if reference is not None:
            return reference
    return state.expected_answer


class DialogueOrchestrator:
    """Ties classification, evaluation, generation, extraction and fallback together."""

    def __init__(
        self,
        completion: Optional[CompletionService],
        evaluator: AnswerEvaluator,
        strategies: Sequence[GenerationStrategy] = DEFAULT_STRATEGIES,
        turn_logger: Optional[TurnLogger] = None,
        debug_enabled: bool = False,
    ):
        self.completion = completion
        self.evaluator = evaluator
        self.strategies = tuple(strategies)
        self.turn_logger = turn_logger
        self.debug_enabled = debug_enabled
        self.graph = build_turn_graph(self)

    def next_turn(
        self,
        state: TutorState,
        student_message: str,
        content: ContentSource,
        history: Optional[List[HistoryMessage]] = None,
        debug: bool = False,
        content_ref: Optional[str] = None,
    ) -> TurnResponse:
        """
        Produce the next tutor turn for `state` and the student's message.

        Raises InvalidContentSource when the content has nothing to teach;
        every other failure is recovered into a fallback turn.
        """
        content.ensure_usable()
        student_message = student_message or ""

        try:
            result = self.graph.invoke({
                "state": state,
                "content": content,
                "student_message": student_message,
                "history": list(history or []),
                "debug": debug,
            })
            response = result["response"]
            intent = result.get("intent")
            mode = result.get("generation_mode")
        except Exception as e:
            logger.exception(f"Turn pipeline failed, using fallback turn: {e}")
            turn = synthesize_turn(state, content)
            response = TurnResponse(
                message=turn.message,
                suggested_replies=dedupe_replies(turn.suggested_replies),
                next_state=turn.next_state,
                used_fallback=True,
            )
            intent = None
            mode = None

        self._log_turn(state, student_message, response, content_ref, intent, mode)
        return response

    # Graph nodes

    def classify(self, state: TurnGraphState) -> Dict[str, Any]:
        """Classify the student's reply and decide whether to grade it."""
        tutor_state = state["state"]
        content = state["content"]
        message = state.get("student_message", "")
        intent = classify_reply(message, tutor_state.last_asked)

        reference = _reference_answer(tutor_state, content)
        needs_evaluation = (
            tutor_state.awaiting == Awaiting.FREE_ANSWER
            and bool(message.strip())
            and intent not in UNGRADED_INTENTS
            and reference is not None
        )
        logger.debug(f"Reply intent {intent.value}, evaluate={needs_evaluation}")
        return {"intent": intent, "needs_evaluation": needs_evaluation, "evaluation": None}

    def evaluate(self, state: TurnGraphState) -> Dict[str, Any]:
        """Grade the student's answer against the current item's reference answer."""
        tutor_state = state["state"]
        content = state["content"]
        expected = _reference_answer(tutor_state, content)
        evaluation = self.evaluator.evaluate(
            question=content.item_text(tutor_state.stage, tutor_state.idx) or "",
            expected_answer=expected or "",
            student_answer=state.get("student_message", ""),
            subject_domain=content.subject,
        )
        logger.info(
            f"Evaluated answer at {tutor_state.stage.value}[{tutor_state.idx}]: "
            f"correct={evaluation.is_correct} confidence={evaluation.confidence:.2f}"
        )
        return {"evaluation": evaluation}

    def generate(self, state: TurnGraphState) -> Dict[str, Any]:
        """Run the generation strategies until one yields a turn or extraction fails."""
        context = assemble_context(
            state["state"],
            state["content"],
            state.get("student_message", ""),
            state["intent"],
            state.get("evaluation"),
            state.get("history"),
        )
        update: Dict[str, Any] = {"context": context, "generation_mode": None, "raw_text": None}

        if self.completion is None:
            update["parsed"] = Err(EmptyGenerationFailure("no completion service configured"))
            return update

        parsed: Result[ParsedTurn] = Err(EmptyGenerationFailure("no generation strategy configured"))
        for strategy in self.strategies:
            text = self._run_strategy(strategy, context)
            if not text.strip():
                logger.warning(f"Generation strategy {strategy.name} returned blank text")
                parsed = Err(EmptyGenerationFailure("all generation strategies returned blank text"))
                continue
            update["generation_mode"] = strategy.name
            update["raw_text"] = text
            parsed = extract_turn(text)
            if isinstance(parsed, Err):
                logger.warning(f"Could not extract a turn from {strategy.name} output: {parsed.failure}")
            break

        update["parsed"] = parsed
        return update

    def _run_strategy(self, strategy: GenerationStrategy, context: Dict[str, Any]) -> str:
        # An exception or timeout counts as blank output
        try:
            return self.completion.generate(context, strategy.mode) or ""
        except Exception as e:
            logger.warning(f"Generation strategy {strategy.name} failed: {type(e).__name__}: {e}")
            return ""

    def apply_turn(self, state: TurnGraphState) -> Dict[str, Any]:
        """Adopt the generated turn, clamping its proposed next state."""
        current = state["state"]
        content = state["content"]
        turn: ParsedTurn = state["parsed"].value

        proposed = turn.next_state
        if proposed is None:
            target = next_state(current, content)
        else:
            checked = check_transition(current, proposed, content)
            if isinstance(checked, Ok):
                target = self._pin_expected_answer(checked.value, content)
            else:
                logger.warning(f"Clamping proposed next state: {checked.failure}")
                target = next_state(current, content)

        return {
            "turn": turn.model_copy(update={"next_state": target}),
            "used_fallback": False,
            "failure": None,
        }

    @staticmethod
    def _pin_expected_answer(target: TutorState, content: ContentSource) -> TutorState:
        # The content's reference answer wins over whatever the model wrote
        if target.stage in ANSWERABLE_STAGES and target.awaiting == Awaiting.FREE_ANSWER:
            reference = content.reference_answer(target.stage, target.idx)
            if reference is not None and reference != target.expected_answer:
                return target.model_copy(update={"expected_answer": reference})
        return target

    def fallback(self, state: TurnGraphState) -> Dict[str, Any]:
        """Synthesize the turn deterministically after a generation failure."""
        parsed = state.get("parsed")
        failure = parsed.failure if isinstance(parsed, Err) else ExtractionFailure("no generated turn")
        logger.info(f"Using fallback turn ({failure.kind})")
        turn = synthesize_turn(state["state"], state["content"], state.get("evaluation"))
        return {"turn": turn, "used_fallback": True, "failure": failure.kind}

    def finalize(self, state: TurnGraphState) -> Dict[str, Any]:
        """Deduplicate replies and build the response."""
        turn: ParsedTurn = state["turn"]
        debug_payload = None
        if state.get("debug") and self.debug_enabled:
            raw_text = state.get("raw_text") or ""
            debug_payload = {
                "intent": state["intent"].value,
                "generationMode": state.get("generation_mode"),
                "rawPreview": raw_text[:DEBUG_PREVIEW_CHARS],
                "failure": state.get("failure"),
                "repliesBeforeDedup": list(turn.suggested_replies),
            }

        response = TurnResponse(
            message=turn.message,
            suggested_replies=dedupe_replies(turn.suggested_replies),
            next_state=turn.next_state,
            evaluation=state.get("evaluation"),
            highlight_region=turn.highlight_region,
            used_fallback=state.get("used_fallback", False),
            debug=debug_payload,
        )
        return {"response": response}

    def _log_turn(
        self,
        state: TutorState,
        student_message: str,
        response: TurnResponse,
        content_ref: Optional[str],
        intent: Optional[ReplyIntent],
        mode: Optional[str],
    ) -> None:
        logger.info(
            f"Turn {state.stage.value}[{state.idx}] -> "
            f"{response.next_state.stage.value}[{response.next_state.idx}] "
            f"fallback={response.used_fallback}"
        )
        if self.turn_logger is None:
            return
        try:
            self.turn_logger.log_turn(
                state_before=state.model_dump(mode="json", by_alias=True),
                state_after=response.next_state.model_dump(mode="json", by_alias=True),
                student_message=student_message,
                message=response.message,
                used_fallback=response.used_fallback,
                content_ref=content_ref,
                intent=intent.value if intent else None,
                generation_mode=mode,
                evaluation=response.evaluation.model_dump(mode="json", by_alias=True) if response.evaluation else None,
            )
        except OSError as e:
            logger.warning(f"Could not write turn log: {e}")
