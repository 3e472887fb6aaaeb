"""
LangChain-backed completion and judgment services.

Both wrappers build their ``ChatOpenAI`` client on first use, so the app can
start without credentials, and start every call through the shared rate limiter.
"""

import logging
from typing import Any, Dict, Optional

from langchain_core.runnables import Runnable
from langchain_openai import ChatOpenAI

from app.config import Settings
from app.prompts.evaluation import get_judge_prompt
from app.prompts.tutoring import get_mode_instruction, get_tutoring_prompt
from app.services.base import GenerationMode
from app.services.rate_limiter import MinIntervalRateLimiter

logger = logging.getLogger(__name__)

JSON_RESPONSE_FORMAT = {"type": "json_object"}


def _message_text(response: Any) -> str:
    """Plain text of a chat model response, joining content parts if needed."""
    content = response.content if hasattr(response, "content") else response
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("type") == "text":
                parts.append(str(part.get("text", "")))
        return "".join(parts)
    return "" if content is None else str(content)


def build_chat_model(settings: Settings, model: str, temperature: float) -> ChatOpenAI:
    return ChatOpenAI(
        model=model,
        temperature=temperature,
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        max_tokens=settings.max_output_tokens,
        timeout=settings.request_timeout_seconds,
        max_retries=0,
    )


class LangChainCompletionService:
    """Generates tutor turns with the tutoring prompt."""

    def __init__(self, settings: Settings, rate_limiter: MinIntervalRateLimiter):
        self.settings = settings
        self.rate_limiter = rate_limiter
        self._llm: Optional[ChatOpenAI] = None

    @property
    def llm(self) -> ChatOpenAI:
        if self._llm is None:
            self._llm = build_chat_model(
                self.settings,
                self.settings.openai_model,
                self.settings.generation_temperature,
            )
        return self._llm

    def _chain(self, mode: GenerationMode) -> Runnable:
        llm = self.llm
        if mode == GenerationMode.STRUCTURED:
            llm = llm.bind(response_format=JSON_RESPONSE_FORMAT)
        return get_tutoring_prompt() | llm

    def generate(self, context: Dict[str, Any], mode: GenerationMode) -> str:
        chain = self._chain(mode)
        variables = dict(context, mode_instruction=get_mode_instruction(mode))
        response = self.rate_limiter.run(lambda: chain.invoke(variables))
        text = _message_text(response)
        logger.debug(f"Generated {len(text)} chars in {mode.value} mode")
        return text


class LangChainJudgmentService:
    """Answers rubric prompts with a JSON verdict."""

    def __init__(self, settings: Settings, rate_limiter: MinIntervalRateLimiter):
        self.settings = settings
        self.rate_limiter = rate_limiter
        self._llm: Optional[ChatOpenAI] = None

    @property
    def llm(self) -> ChatOpenAI:
        if self._llm is None:
            self._llm = build_chat_model(
                self.settings,
                self.settings.judge_model or self.settings.openai_model,
                self.settings.judge_temperature,
            )
        return self._llm

    def judge(self, prompt: str) -> str:
        chain = get_judge_prompt() | self.llm.bind(response_format=JSON_RESPONSE_FORMAT)
        response = self.rate_limiter.run(lambda: chain.invoke({"rubric": prompt}))
        return _message_text(response)
