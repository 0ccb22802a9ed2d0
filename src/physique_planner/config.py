"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    openai_api_key: str
    openai_base_url: str | None = None
    vision_model: str = "gpt-5.2"
    chat_model: str = "gpt-5-mini"
    planner_model: str = "gpt-5.2"
    openai_reasoning_effort: str | None = None
    openai_store: bool = False
    request_timeout_seconds: float = 90.0
    vision_max_output_tokens: int = 4000
    chat_max_output_tokens: int = 2000
    planner_max_output_tokens: int = 8000
    vision_temperature: float | None = None
    chat_temperature: float | None = None
    planner_temperature: float | None = None
    max_images_per_group: int = 5
    max_image_bytes: int = 10 * 1024 * 1024
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    @property
    def is_local(self) -> bool:
        """Return true when running in the local development environment."""
        return self.environment == "local"
