from fastapi.testclient import TestClient

from app.agents.evaluator import AnswerEvaluator
from app.agents.tutor_agent import DialogueOrchestrator
from app.api.v1.endpoints.tutoring import get_orchestrator
from app.config import Settings
from main import create_app

from fakes import FakeCompletion, turn_json

app = create_app(Settings(openai_api_key=None, turn_log_enabled=False, debug=False))
client = TestClient(app)

CONTENT = {
    "title": "일차방정식",
    "subject": "수학",
    "grade": "중1",
    "keyPoints": ["이항하면 부호가 바뀐다"],
    "practice": [{"text": "x + 2 = 6 일 때 x는?", "expectedAnswerHint": "4"}],
    "quiz": [{"question": "2x = 8 일 때 x는?", "answer": "4"}],
}


def register(content=None):
    response = client.post("/api/v1/tutor/content", json=content or CONTENT)
    assert response.status_code == 201
    return response.json()["contentRef"]


def test_root():
    response = client.get("/")
    assert response.status_code == 200
    assert "message" in response.json()


def test_health_check():
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_register_and_get_content():
    content_ref = register()
    response = client.get(f"/api/v1/tutor/content/{content_ref}")
    assert response.status_code == 200
    data = response.json()
    assert data["keyPoints"] == CONTENT["keyPoints"]
    assert data["practice"][0]["expectedAnswerHint"] == "4"


def test_register_empty_content_is_rejected():
    response = client.post("/api/v1/tutor/content", json={"title": "빈 자료"})
    assert response.status_code == 422


def test_unknown_content_is_404():
    assert client.get("/api/v1/tutor/content/missing").status_code == 404
    response = client.post("/api/v1/tutor/next", json={"contentRef": "missing"})
    assert response.status_code == 404


def test_start_session():
    content_ref = register()
    response = client.post("/api/v1/tutor/start", json={"contentRef": content_ref})
    assert response.status_code == 200
    data = response.json()
    assert data["state"]["stage"] == "intro"
    assert data["state"]["idx"] == 0
    assert data["keyPointCount"] == 1
    assert data["practiceCount"] == 1
    assert data["quizCount"] == 1


def test_first_turn_without_generation_backend():
    content_ref = register()
    response = client.post("/api/v1/tutor/next", json={
        "contentRef": content_ref,
        "state": {"stage": "intro", "idx": 0},
        "studentMessage": "",
    })
    assert response.status_code == 200
    data = response.json()
    assert data["message"]
    assert data["usedFallback"] is True
    assert data["nextState"]["stage"] == "keyPoints"
    assert data["nextState"]["idx"] == 0
    assert isinstance(data["suggestedReplies"], list)
    assert "debug" not in data


def test_practice_answer_is_evaluated():
    content_ref = register()
    response = client.post("/api/v1/tutor/next", json={
        "contentRef": content_ref,
        "state": {"stage": "practice", "idx": 0, "awaiting": "free_answer", "expectedAnswer": "4"},
        "studentMessage": "x = 4",
    })
    data = response.json()
    # no judgment backend configured, so a non-identical answer stays undecided
    assert data["evaluation"]["isCorrect"] is False
    assert data["evaluation"]["confidence"] == 0.5
    assert data["nextState"]["stage"] == "quiz"
    assert data["nextState"]["expectedAnswer"] == "4"

    response = client.post("/api/v1/tutor/next", json={
        "contentRef": content_ref,
        "state": {"stage": "practice", "idx": 0, "awaiting": "free_answer", "expectedAnswer": "4"},
        "studentMessage": " 4 ",
    })
    evaluation = response.json()["evaluation"]
    assert evaluation["isCorrect"] is True
    assert evaluation["partialCredit"] == 100


def test_invalid_state_is_rejected():
    content_ref = register()
    response = client.post("/api/v1/tutor/next", json={
        "contentRef": content_ref,
        "state": {"stage": "lunch", "idx": -1},
    })
    assert response.status_code == 422


def test_generated_turn_with_overridden_orchestrator():
    content_ref = register()
    completion = FakeCompletion([
        turn_json("좋아! 첫 핵심부터 보자 🐰", {"stage": "keyPoints", "idx": 0}, replies=["네!", "오 네!"]),
    ])
    app.dependency_overrides[get_orchestrator] = lambda: DialogueOrchestrator(completion, AnswerEvaluator())
    try:
        response = client.post("/api/v1/tutor/next", json={
            "contentRef": content_ref,
            "state": {"stage": "intro", "idx": 0},
            "studentMessage": "",
            "history": [{"role": "assistant", "content": "안녕!"}],
        })
    finally:
        app.dependency_overrides.clear()

    data = response.json()
    assert data["message"] == "좋아! 첫 핵심부터 보자 🐰"
    assert data["usedFallback"] is False
    assert data["suggestedReplies"] == ["네!"]
    assert "TUTOR: 안녕!" in completion.contexts[0]["conversation_history"]


def test_evaluate_answer_endpoint():
    response = client.post("/api/v1/evaluate/answer", json={
        "question": "연립방정식의 해는?",
        "expectedAnswer": "a = 1, b = -2",
        "studentAnswer": "a=1,b=-2",
        "subject": "수학",
    })
    assert response.status_code == 200
    data = response.json()
    assert data["isCorrect"] is True
    assert data["confidence"] == 1.0

    response = client.post("/api/v1/evaluate/answer", json={"expectedAnswer": "4", "studentAnswer": ""})
    data = response.json()
    assert data["isCorrect"] is False
    assert data["confidence"] == 1.0


def test_choices_endpoint():
    response = client.post("/api/v1/evaluate/choices", json={
        "question": "2+2?",
        "correctAnswer": "4",
        "existingChoices": ["3", "4", "5"],
    })
    assert response.status_code == 200
    data = response.json()
    assert data["choices"] == ["3", "4", "5"]
    assert data["correctIndex"] == 1


def test_choice_count_follows_question_type():
    response = client.post("/api/v1/evaluate/choices", json={
        "question": "맞으면 O, 틀리면 X: 이항하면 부호가 바뀐다",
        "correctAnswer": "O",
    })
    assert response.status_code == 200
    assert response.json()["choices"] == ["O", "오답1"]

    response = client.post("/api/v1/evaluate/choices", json={"question": "x의 값은?", "correctAnswer": "4"})
    assert response.status_code == 200
    assert response.json() == {"choices": [], "correctIndex": 0}


def test_explicit_choice_count_wins():
    response = client.post("/api/v1/evaluate/choices", json={
        "question": "x의 값은?",
        "correctAnswer": "4",
        "numChoices": 3,
    })
    assert response.status_code == 200
    assert response.json()["choices"] == ["4", "오답1", "오답2"]


def test_turns_endpoint(tmp_path):
    logged_app = create_app(Settings(openai_api_key=None, log_dir=str(tmp_path)))
    logged_client = TestClient(logged_app)
    content_ref = logged_client.post("/api/v1/tutor/content", json=CONTENT).json()["contentRef"]
    logged_client.post("/api/v1/tutor/next", json={"contentRef": content_ref})

    response = logged_client.get(f"/api/v1/tutor/content/{content_ref}/turns")
    assert response.status_code == 200
    turns = response.json()
    assert len(turns) == 1
    assert turns[0]["content_ref"] == content_ref
