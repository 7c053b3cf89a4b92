"""Application settings configuration."""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional


class Settings(BaseSettings):
    """Swarm settings, read from the environment and `.env`."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    app_name: str = "hivekit"

    # OpenAI-compatible endpoint
    llm_api_base: str = "http://localhost:11434/v1"
    llm_model: str = "gemma3:27b"
    llm_api_key: str = "not-needed"
    llm_temperature: float = 0.7
    llm_max_tokens: Optional[int] = 4096
    llm_timeout: float = 300.0

    # Orchestration
    global_concurrency: int = 50
    local_concurrency: int = 10
    max_turns: int = 50
    context_warning_thresholds: List[int] = [80, 90]
    execution_timeout: Optional[float] = None

    # Logging configuration
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file: Optional[str] = None  # Path to log file (None disables file logging)
    log_show_path: bool = True
    log_show_time: bool = True
    log_rich_tracebacks: bool = True
