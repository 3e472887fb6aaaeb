"""Prompts for semantic answer judgment and answer-choice generation."""

from typing import Optional

from langchain_core.prompts import ChatPromptTemplate, PromptTemplate

from app.prompts.subjects import get_distractor_strategy, get_evaluation_rules


JUDGE_SYSTEM_PROMPT = """You are a careful grader for middle and high school review sessions.
You only ever answer with a single JSON object and no other text."""

JUDGE_HUMAN_PROMPT = "{rubric}"

EVALUATION_RUBRIC = """You are a {subject} teacher. Decide whether the student's answer is correct, judging meaning rather than surface form.

[Question]
{question}

[Expected answer]
{expected_answer}

[Student answer]
{student_answer}
{context_block}
[Grading rules]
1. Same meaning counts as correct (ignore spacing, casing and phrasing differences)
2. Multi-part answers earn partial credit for the parts that are right (e.g. only "a=1" of "a=1, b=-2" -> 50)
3. Subject rules:
{subject_rules}
4. Respect any format the question explicitly requires

[Output - JSON only]
{{
  "isCorrect": true or false,
  "confidence": 0.0 to 1.0,
  "partialCredit": 0 to 100,
  "feedback": "short, friendly feedback for the student in Korean casual speech",
  "explanation": "why the answer is or is not correct",
  "suggestedFollowUp": "a hint or follow-up question when the answer is wrong"
}}"""

CHOICES_RUBRIC = """You are an experienced teacher. Write answer choices whose wrong options are mistakes students really make.

[Question]
{question}

[Correct answer]
{correct_answer}

[Subject]
{subject}

[Distractor strategy]
{strategy}

[Requirements]
1. Exactly {num_choices} choices: the correct answer plus {num_distractors} distractors
2. Distractors must be plausible; avoid obviously wrong options
3. Shuffle the order

[Output - JSON only]
{{
  "choices": ["choice 1", "choice 2", "..."],
  "correctIndex": index of the correct answer (0-based),
  "distractorReasons": ["why distractor 1 is tempting", "..."]
}}"""


def get_judge_prompt() -> ChatPromptTemplate:
    """Get the chat prompt that wraps a rubric for the judgment model."""
    return ChatPromptTemplate.from_messages([
        ("system", JUDGE_SYSTEM_PROMPT),
        ("human", JUDGE_HUMAN_PROMPT)
    ])


def build_evaluation_rubric(
    question: str,
    expected_answer: str,
    student_answer: str,
    subject: str,
    context: Optional[str] = None,
) -> str:
    context_block = f"\n[Additional context / conditions]\n{context}\n" if context else ""
    return PromptTemplate.from_template(EVALUATION_RUBRIC).format(
        subject=subject or "general",
        question=question or "(not provided)",
        expected_answer=expected_answer,
        student_answer=student_answer,
        context_block=context_block,
        subject_rules=get_evaluation_rules(subject),
    )


def build_choices_rubric(question: str, correct_answer: str, subject: str, num_choices: int) -> str:
    return PromptTemplate.from_template(CHOICES_RUBRIC).format(
        question=question,
        correct_answer=correct_answer,
        subject=subject or "general",
        strategy=get_distractor_strategy(subject),
        num_choices=num_choices,
        num_distractors=num_choices - 1,
    )
