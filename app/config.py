from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    app_name: str = "Review Tutor Dialogue Engine"
    debug: bool = False
    log_level: str = "INFO"

    # OpenAI-compatible generation backend
    openai_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    judge_model: Optional[str] = None  # defaults to openai_model
    generation_temperature: float = 0.6
    judge_temperature: float = 0.2
    max_output_tokens: int = 2048
    request_timeout_seconds: float = 30.0

    # Minimum spacing between generation calls; 0 disables the limiter
    min_interval_ms: int = 300

    # Application settings
    log_dir: str = "logs"
    turn_log_enabled: bool = True

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
