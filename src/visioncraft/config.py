from __future__ import annotations

import logging
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    # Loads keys from process env, and also from a local .env file for convenience.
    model_config = SettingsConfigDict(env_prefix="", extra="ignore", env_file=".env", env_file_encoding="utf-8")

    # Keys
    gemini_api_key: str | None = None
    openai_api_key: str | None = None

    # Models
    gemini_vision_model: str = "gemini-2.5-flash"
    gemini_image_model: str = "gemini-2.5-flash-image"
    openai_text_model: str = "gpt-4.1-mini"

    # Which backend answers the creative-advice call; images always go to Gemini.
    advice_provider: Literal["gemini", "openai"] = "gemini"
    advice_count: int = 4
    advice_temperature: float = 0.8

    session_cookie: str = "visioncraft_session"
    session_max_idle_minutes: int = 240
    log_level: str = "INFO"


settings = Settings()


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def warn_if_unconfigured(cfg: Settings) -> None:
    if not cfg.gemini_api_key:
        logger.warning("GEMINI_API_KEY is not set. Gemini API calls will fail.")
    if cfg.advice_provider == "openai" and not cfg.openai_api_key:
        logger.warning("ADVICE_PROVIDER is 'openai' but OPENAI_API_KEY is not set. Advice calls will fail.")
