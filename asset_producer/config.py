"""
Asset producer configuration.

Loads settings from environment variables with sensible defaults for local
development.  Uses Pydantic BaseSettings so every value can be overridden via
an environment variable or a ``.env`` file placed next to the service root.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

ASSET_ENDPOINT_SITE: str = "site"
ASSET_ENDPOINT_SEARCH: str = "search"


class Settings(BaseSettings):
    """Central configuration for the asset producer.

    All attributes can be overridden through environment variables of the same
    name (case-insensitive).  For example, set ``NEXPOSE_HOST`` in the shell or
    in a ``.env`` file to point the fetcher at another Nexpose console.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Application ─────────────────────────────────────────────────────────
    APP_NAME: str = "nexpose-asset-producer"
    DEBUG: bool = False
    LOG_LEVEL: Optional[str] = None
    APP_HOST: str = "0.0.0.0"
    APP_PORT: int = 8000

    # ── Nexpose ─────────────────────────────────────────────────────────────
    NEXPOSE_HOST: str = "http://localhost:3780"
    NEXPOSE_USERNAME: str = ""
    NEXPOSE_PASSWORD: str = ""
    NEXPOSE_PAGE_SIZE: int = 100
    NEXPOSE_REQUEST_TIMEOUT_MS: int = 30000
    NEXPOSE_ASSET_ENDPOINT: str = ASSET_ENDPOINT_SITE
    NEXPOSE_SEARCH_LOOKBACK_DAYS: int = 1
    NEXPOSE_MAX_CONCURRENT_PAGES: Optional[int] = None

    # ── Nexpose transport retries ───────────────────────────────────────────
    NEXPOSE_RETRY_MAX_ATTEMPTS: int = 3
    NEXPOSE_RETRY_BACKOFF_MS: int = 50
    NEXPOSE_RETRY_JITTER: float = 0.25
    NEXPOSE_RETRY_STATUS_CODES: Annotated[list[int], NoDecode] = [500, 502, 504]

    # ── HTTP producer ───────────────────────────────────────────────────────
    HTTP_PRODUCER_ENDPOINT: str = "http://localhost:8081/"
    HTTP_PRODUCER_TIMEOUT_MS: int = 10000

    # ── Validators ──────────────────────────────────────────────────────────

    @field_validator("NEXPOSE_RETRY_STATUS_CODES", mode="before")
    @classmethod
    def parse_status_codes(cls, value: object) -> list[int]:
        """Accept a comma-separated string *or* an actual list."""
        if isinstance(value, str):
            return [int(code.strip()) for code in value.split(",") if code.strip()]
        return list(value)  # type: ignore[arg-type]

    @field_validator("NEXPOSE_ASSET_ENDPOINT", mode="after")
    @classmethod
    def validate_asset_endpoint(cls, value: str) -> str:
        """Ensure the asset endpoint is either 'site' or 'search'."""
        value = value.strip().lower()
        if value not in (ASSET_ENDPOINT_SITE, ASSET_ENDPOINT_SEARCH):
            raise ValueError("NEXPOSE_ASSET_ENDPOINT must be 'site' or 'search'.")
        return value

    @field_validator("NEXPOSE_PAGE_SIZE", mode="after")
    @classmethod
    def validate_page_size(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("NEXPOSE_PAGE_SIZE must be greater than zero.")
        return value

    @field_validator("NEXPOSE_MAX_CONCURRENT_PAGES", mode="after")
    @classmethod
    def validate_max_concurrent_pages(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value <= 0:
            raise ValueError("NEXPOSE_MAX_CONCURRENT_PAGES must be greater than zero.")
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached singleton of the application settings.

    Using ``lru_cache`` ensures the ``.env`` file is read only once and the
    same ``Settings`` instance is reused across the entire process.
    """
    return Settings()
