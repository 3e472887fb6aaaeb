"""Stage transition rules shared by the fallback path and next-state clamping."""

from app.errors import OutOfBoundsState
from app.models.content import ContentSource
from app.models.tutor_state import (
    Awaiting,
    LastAsked,
    STAGE_ORDER,
    Stage,
    TutorState,
    stage_rank,
)
from app.utils.result import Err, Ok, Result

COLLECTION_STAGES = (Stage.KEY_POINTS, Stage.PRACTICE, Stage.QUIZ)
ANSWERABLE_STAGES = (Stage.PRACTICE, Stage.QUIZ)


def next_non_empty_stage(content: ContentSource, after: Stage) -> Stage:
    """First stage after `after` with content, or wrapup when none is left."""
    for stage in STAGE_ORDER[stage_rank(after) + 1:]:
        if stage == Stage.WRAPUP or content.collection_length(stage) > 0:
            return stage
    return Stage.WRAPUP


def item_state(content: ContentSource, stage: Stage, idx: int) -> TutorState:
    """State after presenting item `idx` of `stage`."""
    if stage in ANSWERABLE_STAGES:
        return TutorState(
            stage=stage,
            idx=idx,
            awaiting=Awaiting.FREE_ANSWER,
            expected_answer=content.reference_answer(stage, idx),
            last_asked=LastAsked.FREE_ANSWER,
        )
    if stage == Stage.KEY_POINTS:
        return TutorState(stage=stage, idx=idx)
    return TutorState(stage=stage, idx=0)


def is_exhausted(state: TutorState, content: ContentSource) -> bool:
    """True when the state's stage has no item left at or after its idx."""
    if state.stage not in COLLECTION_STAGES:
        return False
    return not content.has_item(state.stage, state.idx)


def next_state(state: TutorState, content: ContentSource) -> TutorState:
    """
    Deterministic successor of `state`.

    intro enters the first non-empty stage; inside a stage the next item is
    presented; the last (or an out-of-range) item moves on to the next
    non-empty stage; wrapup is terminal.
    """
    if state.stage == Stage.WRAPUP:
        return TutorState(stage=Stage.WRAPUP)
    if state.stage == Stage.INTRO:
        return item_state(content, next_non_empty_stage(content, Stage.INTRO), 0)

    length = content.collection_length(state.stage)
    if state.idx + 1 < length:
        return item_state(content, state.stage, state.idx + 1)
    return item_state(content, next_non_empty_stage(content, state.stage), 0)


def check_transition(
    current: TutorState,
    proposed: TutorState,
    content: ContentSource,
) -> Result[TutorState]:
    """Accept a proposed next state only if it is in bounds and skips nothing."""
    if stage_rank(proposed.stage) < stage_rank(current.stage):
        return Err(OutOfBoundsState(
            "stage moved backward",
            detail=f"{current.stage.value} -> {proposed.stage.value}",
        ))

    if current.stage == Stage.INTRO:
        first = next_non_empty_stage(content, Stage.INTRO)
        if proposed.stage != first:
            return Err(OutOfBoundsState(
                "intro must hand over to the first stage with content",
                detail=f"{proposed.stage.value} instead of {first.value}",
            ))

    if proposed.stage in COLLECTION_STAGES:
        length = content.collection_length(proposed.stage)
        if length == 0:
            return Err(OutOfBoundsState("stage has no content", detail=proposed.stage.value))
        if proposed.idx >= length:
            return Err(OutOfBoundsState(
                "idx out of bounds",
                detail=f"{proposed.stage.value}[{proposed.idx}] of {length}",
            ))
    elif proposed.idx != 0:
        return Err(OutOfBoundsState("idx must be 0", detail=proposed.stage.value))

    if proposed.stage == current.stage:
        if is_exhausted(current, content):
            return Err(OutOfBoundsState("current stage is exhausted", detail=current.stage.value))
        if proposed.stage in COLLECTION_STAGES and proposed.idx > current.idx + 1:
            return Err(OutOfBoundsState(
                "skips items",
                detail=f"{current.idx} -> {proposed.idx}",
            ))
        return Ok(proposed)

    # Moving forward to a later stage
    if current.stage in COLLECTION_STAGES and not is_exhausted(current, content):
        if current.idx + 1 < content.collection_length(current.stage):
            return Err(OutOfBoundsState(
                "leaves stage before its last item",
                detail=f"{current.stage.value}[{current.idx}]",
            ))

    for stage in STAGE_ORDER[stage_rank(current.stage) + 1:stage_rank(proposed.stage)]:
        if content.collection_length(stage) > 0:
            return Err(OutOfBoundsState("skips a stage with content", detail=stage.value))

    if proposed.stage in COLLECTION_STAGES and proposed.idx != 0:
        return Err(OutOfBoundsState("new stage must start at idx 0", detail=proposed.stage.value))

    return Ok(proposed)
