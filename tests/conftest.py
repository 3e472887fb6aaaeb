"""Shared sample content."""

import pytest

from app.models.content import ContentSource, PracticeItem, QuizItem


@pytest.fixture
def content() -> ContentSource:
    return ContentSource(
        title="일차방정식",
        subject="수학",
        grade="중1",
        key_points=["등식의 양변에 같은 수를 더해도 등식은 성립한다", "이항하면 부호가 바뀐다"],
        practice=[
            PracticeItem(text="x + 2 = 6 일 때 x는?", expected_answer_hint="4"),
            PracticeItem(text="2x = 10 일 때 x는?", expected_answer_hint="5"),
        ],
        quiz=[QuizItem(question="3x - 3 = 6 일 때 x는?", answer="3")],
    )


@pytest.fixture
def practice_only_content() -> ContentSource:
    return ContentSource(
        title="연습",
        practice=[PracticeItem(text="1 + 1 = ?", expected_answer_hint="2")],
    )
