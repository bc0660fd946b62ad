from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings validated via Pydantic.

    Values are loaded from environment variables and/or a .env file.
    """

    # API Keys
    gemini_api_key: str = ""
    openai_api_key: str = ""
    anthropic_api_key: str = ""  # Only needed when generation_provider=claude

    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""

    # App config
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    generation_provider: str = "gemini"
    embedding_provider: str = "openai"
    gemini_model: str = "gemini-2.5-flash"
    claude_model: str = "claude-sonnet-4-20250514"
    embedding_model: str = "text-embedding-3-small"
    gemini_embedding_model: str = "text-embedding-004"
    chunk_size: int = 5
    top_k: int = 5
    min_fallback_length: int = 20
    # LLM calls over full transcripts routinely take tens of seconds
    generation_timeout_seconds: float = 600.0
    max_output_tokens: int = 8192
    prompts_dir: str = ""  # Empty means the templates bundled with the package

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance.

    Gracefully handles missing .env files (e.g. in CI/testing) by falling
    back to environment variables and defaults.
    """
    try:
        return Settings()
    except Exception:
        # If .env is missing or unreadable, build settings from env vars only.
        return Settings(_env_file=None)  # type: ignore[call-arg]


settings = get_settings()
