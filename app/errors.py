"""Failure taxonomy for the tutoring dialogue engine.

Inside the engine these travel as ``Err(...)`` values (see ``app.utils.result``).
Only ``InvalidContentSource`` is ever raised to a caller.
"""

from typing import Optional


class TutorEngineError(Exception):
    """Base class for all engine failures."""

    kind = "engine_error"

    def __init__(self, reason: str, detail: Optional[str] = None):
        super().__init__(reason)
        self.reason = reason
        self.detail = detail

    def __str__(self) -> str:
        if self.detail:
            return f"{self.reason} ({self.detail})"
        return self.reason


class ExtractionFailure(TutorEngineError):
    """Text could not be parsed as the expected object after every repair step."""

    kind = "extraction_failure"


class EmptyGenerationFailure(TutorEngineError):
    """A generation call returned blank text, or raised before returning any."""

    kind = "empty_generation"


class EvaluationUncertain(TutorEngineError):
    """Semantic judgment was unavailable or returned unusable output."""

    kind = "evaluation_uncertain"


class OutOfBoundsState(TutorEngineError):
    """A proposed (stage, idx) pair is inconsistent with the content lengths."""

    kind = "out_of_bounds_state"


class InvalidContentSource(TutorEngineError):
    """Content from which no valid turn can be synthesized."""

    kind = "invalid_content_source"
