from enum import Enum
from typing import Any, Dict, Protocol


class GenerationMode(str, Enum):
    STRUCTURED = "structured"
    FREE_FORM = "free_form"


class CompletionService(Protocol):
    """External text generation; may raise or return blank text."""

    def generate(self, context: Dict[str, Any], mode: GenerationMode) -> str:
        ...


class JudgmentService(Protocol):
    """External semantic judgment over a rubric prompt."""

    def judge(self, prompt: str) -> str:
        ...
