import pytest

from app.agents.evaluator import AnswerEvaluator, EXACT_MATCH_FEEDBACK
from app.agents.tutor_agent import DialogueOrchestrator
from app.errors import InvalidContentSource
from app.models.content import ContentSource
from app.models.tutor_state import Awaiting, LastAsked, Stage, TutorState
from app.services.base import GenerationMode
from app.utils.logger import TurnLogger

from fakes import FakeCompletion, FakeJudge, turn_json


def make_orchestrator(completion=None, judge=None, **kwargs):
    return DialogueOrchestrator(completion, AnswerEvaluator(judge), **kwargs)


def practice_state(**kwargs):
    values = dict(stage=Stage.PRACTICE, idx=0, awaiting=Awaiting.FREE_ANSWER, expected_answer="4",
                  last_asked=LastAsked.FREE_ANSWER)
    values.update(kwargs)
    return TutorState(**values)


def test_blank_generation_falls_back(content):
    completion = FakeCompletion(["", "   "])
    state = TutorState(stage=Stage.KEY_POINTS, idx=1)
    response = make_orchestrator(completion).next_turn(state, "네", content)

    assert completion.modes == [GenerationMode.STRUCTURED, GenerationMode.FREE_FORM]
    assert response.used_fallback is True
    assert response.message
    assert response.next_state.stage == Stage.PRACTICE
    assert response.next_state.idx == 0


def test_fallback_stays_in_bounds_from_any_state(content):
    states = [
        TutorState(),
        TutorState(stage=Stage.KEY_POINTS, idx=0),
        TutorState(stage=Stage.KEY_POINTS, idx=9),
        practice_state(idx=1, expected_answer="5"),
        TutorState(stage=Stage.QUIZ, idx=3),
        TutorState(stage=Stage.WRAPUP),
    ]
    orchestrator = make_orchestrator(FakeCompletion([]))
    for state in states:
        response = orchestrator.next_turn(state, "", content)
        target = response.next_state
        assert response.message
        if target.stage in (Stage.KEY_POINTS, Stage.PRACTICE, Stage.QUIZ):
            assert 0 <= target.idx < content.collection_length(target.stage)
        else:
            assert target.idx == 0


def test_exception_escalates_to_free_form(content):
    completion = FakeCompletion([
        RuntimeError("timeout"),
        turn_json("좋아! 첫 번째 핵심 볼까?", {"stage": "keyPoints", "idx": 0}, replies=["네!"]),
    ])
    response = make_orchestrator(completion).next_turn(TutorState(), "", content)

    assert completion.modes == [GenerationMode.STRUCTURED, GenerationMode.FREE_FORM]
    assert response.used_fallback is False
    assert response.message == "좋아! 첫 번째 핵심 볼까?"
    assert response.next_state.stage == Stage.KEY_POINTS
    assert response.suggested_replies == ["네!"]


def test_unparseable_text_stops_strategies(content):
    completion = FakeCompletion(["Sorry, I can't help with that.", turn_json("unused")])
    response = make_orchestrator(completion).next_turn(TutorState(), "", content)

    assert completion.modes == [GenerationMode.STRUCTURED]
    assert response.used_fallback is True
    assert response.next_state.stage == Stage.KEY_POINTS


def test_out_of_bounds_proposal_is_clamped(content):
    last = len(content.key_points) - 1
    completion = FakeCompletion([turn_json("다음 핵심!", {"stage": "keyPoints", "idx": last + 1})])
    state = TutorState(stage=Stage.KEY_POINTS, idx=last)
    response = make_orchestrator(completion).next_turn(state, "네", content)

    assert response.used_fallback is False
    assert response.message == "다음 핵심!"
    assert response.next_state.stage in (Stage.PRACTICE, Stage.QUIZ)
    assert response.next_state.idx == 0


def test_backward_proposal_from_wrapup_is_clamped(content):
    completion = FakeCompletion([turn_json("다시 시작!", {"stage": "intro", "idx": 0})])
    response = make_orchestrator(completion).next_turn(TutorState(stage=Stage.WRAPUP), "고마워", content)
    assert response.next_state.stage == Stage.WRAPUP


def test_missing_next_state_uses_deterministic_successor(content):
    completion = FakeCompletion([turn_json("안녕! 시작해볼까?")])
    response = make_orchestrator(completion).next_turn(TutorState(), "", content)
    assert response.used_fallback is False
    assert response.next_state == TutorState(stage=Stage.KEY_POINTS, idx=0)


def test_accepted_proposal_gets_reference_answer(practice_only_content):
    completion = FakeCompletion([
        turn_json("문제 풀어보자!", {"stage": "practice", "idx": 0, "awaiting": "free_answer"}),
    ])
    response = make_orchestrator(completion).next_turn(TutorState(), "", practice_only_content)
    assert response.next_state.stage == Stage.PRACTICE
    assert response.next_state.expected_answer == "2"


def test_intro_proposing_to_stay_in_intro_is_clamped(content):
    completion = FakeCompletion([turn_json("안녕! 준비됐어?", {"stage": "intro", "idx": 0})])
    response = make_orchestrator(completion).next_turn(TutorState(), "", content)

    assert response.used_fallback is False
    assert response.message == "안녕! 준비됐어?"
    assert response.next_state.stage == Stage.KEY_POINTS
    assert response.next_state.idx == 0


def test_model_expected_answer_is_replaced_by_item_reference(content):
    completion = FakeCompletion([turn_json("다음 문제!", {"stage": "practice", "idx": 1,
                                                        "awaiting": "free_answer", "expectedAnswer": "999"})])
    response = make_orchestrator(completion).next_turn(practice_state(), "4", content)
    assert response.next_state.idx == 1
    assert response.next_state.expected_answer == "5"

    judge = FakeJudge(RuntimeError("must not be called"))
    stale = practice_state(idx=1, expected_answer="999")
    response = make_orchestrator(judge=judge).next_turn(stale, "5", content)
    assert response.evaluation.is_correct is True
    assert judge.prompts == []


def test_intro_with_empty_message(content, practice_only_content):
    orchestrator = make_orchestrator()
    response = orchestrator.next_turn(TutorState(), "", content)
    assert response.next_state.stage == Stage.KEY_POINTS
    assert response.next_state.idx == 0

    response = orchestrator.next_turn(TutorState(), "", practice_only_content)
    assert response.next_state.stage == Stage.PRACTICE
    assert response.next_state.idx == 0


def test_correct_practice_answer_uses_fast_path(content):
    judge = FakeJudge(RuntimeError("must not be called"))
    response = make_orchestrator(judge=judge).next_turn(practice_state(), "4", content)

    assert response.evaluation.is_correct is True
    assert response.evaluation.confidence == 1.0
    assert judge.prompts == []
    assert response.message.startswith(EXACT_MATCH_FEEDBACK)
    assert response.next_state.stage == Stage.PRACTICE
    assert response.next_state.idx == 1


def test_terse_negative_is_graded_as_an_answer(content):
    judge = FakeJudge('{"isCorrect": false, "confidence": 0.9, "feedback": "아쉽다!"}')
    response = make_orchestrator(judge=judge).next_turn(practice_state(), "아니", content)

    assert len(judge.prompts) == 1
    assert response.evaluation is not None
    assert response.evaluation.is_correct is False


def test_terse_negative_after_asking_for_questions_is_not_graded(content):
    judge = FakeJudge('{"isCorrect": false}')
    state = practice_state(last_asked=LastAsked.ASK_MORE_QUESTIONS)
    response = make_orchestrator(judge=judge).next_turn(state, "아니", content)

    assert judge.prompts == []
    assert response.evaluation is None


def test_answer_phrased_as_question_is_graded(content):
    judge = FakeJudge(RuntimeError("must not be called"))
    response = make_orchestrator(judge=judge).next_turn(practice_state(), "4?", content)

    assert response.evaluation is not None
    assert response.evaluation.is_correct is True
    assert judge.prompts == []


def test_hint_request_is_not_graded(content):
    judge = FakeJudge('{"isCorrect": false}')
    response = make_orchestrator(judge=judge).next_turn(practice_state(), "힌트 주세요", content)
    assert response.evaluation is None
    assert judge.prompts == []


def test_evaluation_is_folded_into_context(content):
    completion = FakeCompletion([turn_json("딩동댕!", {"stage": "practice", "idx": 1,
                                                      "awaiting": "free_answer", "expectedAnswer": "5"})])
    response = make_orchestrator(completion).next_turn(practice_state(), "4", content)

    context = completion.contexts[0]
    assert context["reply_intent"] == "answer"
    assert EXACT_MATCH_FEEDBACK in context["evaluation_summary"]
    assert context["student_message"] == "4"
    assert response.evaluation.is_correct is True
    assert response.next_state.idx == 1


def test_replies_are_deduplicated(content):
    completion = FakeCompletion([
        turn_json("좋아!", {"stage": "keyPoints", "idx": 0}, replies=["좋아요", "오 좋아요", "아니요"]),
    ])
    response = make_orchestrator(completion).next_turn(TutorState(), "", content)
    assert response.suggested_replies == ["좋아요", "아니요"]


def test_highlight_region_passes_through(content):
    region = {"x": 0.1, "y": 0.2, "width": 0.3, "height": 0.4, "problemNumber": 1}
    completion = FakeCompletion([turn_json("이 부분 봐!", {"stage": "keyPoints", "idx": 0}, highlightRegion=region)])
    response = make_orchestrator(completion).next_turn(TutorState(), "", content)
    assert response.highlight_region.width == 0.3
    assert response.highlight_region.problem_number == 1


def test_empty_content_is_rejected():
    with pytest.raises(InvalidContentSource):
        make_orchestrator().next_turn(TutorState(), "", ContentSource(title="빈 자료"))


def test_pipeline_error_still_returns_a_turn(content):
    class BrokenEvaluator(AnswerEvaluator):
        def evaluate(self, *args, **kwargs):
            raise RuntimeError("boom")

    orchestrator = DialogueOrchestrator(None, BrokenEvaluator())
    response = orchestrator.next_turn(practice_state(), "5", content)
    assert response.used_fallback is True
    assert response.message
    assert response.next_state.stage == Stage.PRACTICE
    assert response.next_state.idx == 1


def test_debug_payload_requires_opt_in(content):
    outputs = [turn_json("hi", {"stage": "keyPoints", "idx": 0}, replies=["네", "네"])]

    response = make_orchestrator(FakeCompletion(outputs), debug_enabled=True).next_turn(
        TutorState(), "", content, debug=True
    )
    assert response.debug["generationMode"] == "structured"
    assert response.debug["repliesBeforeDedup"] == ["네", "네"]
    assert response.suggested_replies == ["네"]

    response = make_orchestrator(FakeCompletion(outputs)).next_turn(TutorState(), "", content, debug=True)
    assert response.debug is None


def test_turns_are_logged(content, tmp_path):
    turn_logger = TurnLogger(str(tmp_path))
    orchestrator = make_orchestrator(turn_logger=turn_logger)
    orchestrator.next_turn(TutorState(), "", content, content_ref="abc")
    orchestrator.next_turn(TutorState(stage=Stage.KEY_POINTS), "네", content, content_ref="other")

    turns = turn_logger.get_turns(content_ref="abc")
    assert len(turns) == 1
    assert turns[0]["used_fallback"] is True
    assert turns[0]["state_before"]["stage"] == "intro"
    assert turns[0]["state_after"]["stage"] == "keyPoints"
    assert len(turn_logger.get_turns()) == 2
