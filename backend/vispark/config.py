"""
Application configuration and settings.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings

# Built-in prompts shipped with the package
BUILTIN_PROMPTS_DIR = Path(__file__).parent / "prompts"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Transcript source
    transcript_backend: Literal["http", "youtube"] = "http"
    transcript_url: str = "http://localhost:54321/functions/v1/transcript"
    transcript_api_key: str | None = None
    transcript_language: str | None = None  # Preferred caption language (e.g. "en")

    # Summary service (OpenAI-compatible, newline-delimited JSON stream)
    summary_url: str = "http://localhost:54321/functions/v1/summary-stream"
    summary_api_key: str | None = None
    summary_model: str = "gpt-4o-mini"
    summary_temperature: float = 0.3

    # Video metadata (YouTube Data API v3, optional)
    youtube_api_url: str = "https://www.googleapis.com/youtube/v3"
    youtube_api_key: str | None = None

    # Timeouts (seconds)
    http_timeout: float = 30.0
    summary_read_timeout: float = 120.0  # Max silence between stream reads

    # Retry budgets per stage
    transcript_max_retries: int = 2
    transcript_base_delay_ms: int = 500
    metadata_max_retries: int = 2
    metadata_base_delay_ms: int = 500
    summary_max_retries: int = 3
    summary_base_delay_ms: int = 1000

    # HTTP API
    cors_origins: list[str] = ["*"]

    # Storage
    data_dir: Path = Path("./data")
    summary_store: Literal["file", "memory"] = "file"
    prompts_dir: Path | None = None  # External prompts directory (overrides built-in)

    # Logging
    log_level: str = "INFO"
    log_format: str = "structured"  # "structured", "simple" or "json"

    # Per-module log levels (optional overrides)
    log_level_coordinator: str | None = None
    log_level_stream_parser: str | None = None
    log_level_ai_clients: str | None = None
    log_level_persistence: str | None = None

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def summaries_dir(self) -> Path:
        """Directory holding persisted summaries."""
        return self.data_dir / "summaries"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def load_prompt(
    stage: str,
    component: str,
    settings: Settings | None = None,
) -> str:
    """
    Load a prompt template with external folder priority.

    Lookup order (first found wins):
    1. prompts_dir/{stage}/{component}.md (external)
    2. vispark/prompts/{stage}/{component}.md (built-in)

    Args:
        stage: Pipeline stage ("summary")
        component: Prompt component ("system", "user")
        settings: Optional settings instance

    Returns:
        Prompt template content

    Raises:
        FileNotFoundError: If no matching prompt file is found
    """
    if settings is None:
        settings = get_settings()

    paths_to_check: list[Path] = []

    if settings.prompts_dir and settings.prompts_dir.exists():
        paths_to_check.append(settings.prompts_dir / stage / f"{component}.md")

    paths_to_check.append(BUILTIN_PROMPTS_DIR / stage / f"{component}.md")

    for path in paths_to_check:
        if path.exists():
            return path.read_text(encoding="utf-8")

    raise FileNotFoundError(
        f"Prompt not found: stage={stage}, component={component}. "
        f"Checked paths: {[str(p) for p in paths_to_check]}"
    )
