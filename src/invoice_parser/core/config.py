"""Engine configuration using Pydantic settings."""

from decimal import Decimal
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables (prefix ``INVOICE_PARSER_``)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="INVOICE_PARSER_",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    log_level: str = "INFO"
    log_file: str | None = None

    # External extraction service
    extractor_base_url: str = "http://localhost:8000"
    extractor_timeout_seconds: float = 10.0

    # Quality gate
    min_score_for_acceptance: int = 50
    min_score_for_high_quality: int = 75
    min_transactions: int = 3
    min_text_length: int = 800
    max_garbled_percent: float = 5.0

    # Reconciliation of extracted rows against the printed total
    reconciliation_tolerance: Decimal = Decimal("0.01")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
