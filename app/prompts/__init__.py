from app.prompts.tutoring import get_tutoring_prompt, get_mode_instruction
from app.prompts.evaluation import get_judge_prompt, build_evaluation_rubric, build_choices_rubric
from app.prompts.subjects import get_subject_guide, get_evaluation_rules, get_distractor_strategy

__all__ = [
    "get_tutoring_prompt",
    "get_mode_instruction",
    "get_judge_prompt",
    "build_evaluation_rubric",
    "build_choices_rubric",
    "get_subject_guide",
    "get_evaluation_rules",
    "get_distractor_strategy",
]
