from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    app_name: str = "PersonaChat"

    # Primary provider (OpenAI chat completions)
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"

    # Secondary provider (Gemini generate-content)
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-1.5-flash"

    # Shared generation settings
    provider_temperature: float = 0.4

    # Upper bound for a single provider call, in seconds
    provider_timeout_seconds: float = 60.0

    # Root holding prompts/, safety/ and primary-rag/<character>/
    content_root: Path = PROJECT_ROOT / "ai"

    # Append-only JSONL sink for refused / failed questions
    unanswered_log_path: Path = PROJECT_ROOT / "backend" / "data" / "unanswered_questions.jsonl"

    # JSON log sink; empty disables the file handler
    server_log_file: str = "server.log"
    log_level: str = "INFO"

    cors_origins: List[str] = ["http://localhost:5173", "http://localhost:3000"]

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings():
    return Settings()
