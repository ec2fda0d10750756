import logging
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    model_name: str = "anthropic:claude-3-haiku-20240307"

    # Day grid geometry (pixels)
    row_height: float = 96.0
    min_item_height: float = 24.0

    # Quick add
    debounce_seconds: float = 1.5
    quick_add_min_length: int = 2
    extraction_cache_ttl_seconds: int = 10 * 60

    # Attachments
    max_attachment_bytes: int = 10 * 1024 * 1024
    attachment_base_url: str = "http://localhost:9000/attachments"
    attachment_token: Optional[str] = None

    database_url: str = "sqlite+aiosqlite:///./trips.db"
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore


def setup_logging(settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
