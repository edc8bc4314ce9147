"""Application configuration from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    refine_env: str = "development"
    refine_log_level: str = "debug"

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]

    # External generation/edit service
    generation_api_url: str = "http://localhost:8080"
    generation_api_key: str = ""
    generation_timeout_seconds: float = 60.0

    # Submit/poll protocol: fixed backoff, bounded attempts
    poll_interval_seconds: float = 2.0
    poll_max_attempts: int = 60

    # Refinement chain persistence ("" keeps chains in memory)
    chain_store_dir: str = ""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
