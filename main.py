import logging
from typing import Optional

from fastapi import FastAPI

from app.agents.evaluator import AnswerEvaluator
from app.agents.tutor_agent import DialogueOrchestrator
from app.api.v1 import api_router
from app.config import Settings, settings as default_settings
from app.services.content_registry import ContentRegistry
from app.services.llm import LangChainCompletionService, LangChainJudgmentService
from app.services.rate_limiter import MinIntervalRateLimiter
from app.utils.logger import TurnLogger, configure_logging

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the app and the engine objects it shares across requests."""
    settings = settings or default_settings
    configure_logging(settings.log_level)

    app = FastAPI(
        title=settings.app_name,
        description="Review tutoring dialogue engine: structured tutor turns with deterministic fallback",
        version="1.0.0"
    )

    # One limiter for every call to the generation backend
    rate_limiter = MinIntervalRateLimiter(settings.min_interval_ms)
    if settings.openai_api_key:
        completion = LangChainCompletionService(settings, rate_limiter)
        judge = LangChainJudgmentService(settings, rate_limiter)
    else:
        logger.warning("OPENAI_API_KEY is not set; every turn will use the fallback synthesizer")
        completion = None
        judge = None

    turn_logger = TurnLogger(settings.log_dir, enabled=settings.turn_log_enabled)
    evaluator = AnswerEvaluator(judge)

    app.state.settings = settings
    app.state.evaluator = evaluator
    app.state.turn_logger = turn_logger
    app.state.content_registry = ContentRegistry()
    app.state.orchestrator = DialogueOrchestrator(
        completion,
        evaluator,
        turn_logger=turn_logger,
        debug_enabled=settings.debug,
    )

    app.include_router(api_router, prefix="/api/v1")

    @app.get("/")
    async def root():
        return {
            "message": f"Welcome to {settings.app_name}",
            "description": "Multi-turn review tutoring with a bounded stage machine"
        }

    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=default_settings.debug)
