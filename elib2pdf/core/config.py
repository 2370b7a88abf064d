"""
Runtime settings, read from ELIB2PDF_* environment variables or a .env file
"""
from __future__ import annotations

from typing import Any, Tuple

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# US Letter, in PDF points
LETTER_SIZE: Tuple[float, float] = (612.0, 792.0)

VIEWER_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/132.0.0.0 Safari/537.36"
)


class DownloadSettings(BaseSettings):
    """Network and output settings for a book download"""

    model_config = SettingsConfigDict(
        env_prefix="ELIB2PDF_",
        env_file=".env",
        extra="ignore",
    )

    base_url: str = "http://elibrary.asu.ru"
    max_retries: int = Field(default=3, ge=1)
    retry_delay: float = Field(default=0.5, ge=0)
    timeout: float = Field(default=30.0, gt=0)
    politeness_delay: float = Field(default=0.5, ge=0)
    empty_threshold: int = Field(default=3, ge=1)
    page_mode: int = 1
    image_quality: int = Field(default=80, ge=1, le=100)
    page_width: float = Field(default=LETTER_SIZE[0], gt=0)
    page_height: float = Field(default=LETTER_SIZE[1], gt=0)
    user_agent: str = VIEWER_USER_AGENT

    def with_overrides(self, **overrides: Any) -> "DownloadSettings":
        """Return a validated copy with the non-None overrides applied"""
        changes = {key: value for key, value in overrides.items() if value is not None}
        if not changes:
            return self
        return type(self)(**{**self.model_dump(), **changes})

    @property
    def page_size(self) -> Tuple[float, float]:
        return (self.page_width, self.page_height)


class BotSettings(BaseSettings):
    """Settings for the Telegram front end"""

    model_config = SettingsConfigDict(
        env_prefix="ELIB2PDF_BOT_",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    telegram_token: str = Field(default="", validation_alias="TELEGRAM_TOKEN")
    progress_interval: float = Field(default=5.0, gt=0)
    retry_delay: float = Field(default=2.0, ge=0)
