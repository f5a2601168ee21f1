# slotbook/core/config.py
import logging
import os
from typing import Literal, Optional

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


def is_running_tests() -> bool:
    """Detect pytest runs so the test database is always selected."""
    if os.getenv("is_testing", "").strip().lower() in {"1", "true", "yes"}:
        return True
    return "PYTEST_CURRENT_TEST" in os.environ


class Settings(BaseSettings):
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment name",
    )
    is_testing: bool = Field(default_factory=is_running_tests)
    log_level: str = Field(default="INFO", description="Root log level")

    # Raw database URLs - use get_database_url() instead of reading these directly
    database_url_raw: str = Field(
        default="sqlite:///./slotbook.db",
        alias="database_url",
        description="Primary database URL",
    )
    test_database_url_raw: str = Field(
        default="sqlite:///./slotbook_test.db",
        alias="test_database_url",
        description="Database URL used while running tests",
    )
    production_database_indicators: list[str] = Field(
        default_factory=lambda: ["amazonaws.com", "supabase.co", "supabase.com", "render.com"]
    )

    db_pool_size: int = Field(default=5, ge=1)
    db_max_overflow: int = Field(default=5, ge=0)
    db_pool_timeout: int = Field(default=5, ge=1, description="Seconds to wait for a connection")
    db_statement_timeout_ms: int = Field(
        default=15000,
        description="PostgreSQL statement timeout applied to every connection",
    )
    sqlite_busy_timeout_seconds: float = Field(
        default=30.0,
        description="How long a SQLite writer waits for the database lock",
    )

    # Scheduling rules
    slot_granularity_minutes: int = Field(
        default=15,
        ge=1,
        le=60,
        description="Step between alternative slot candidates",
    )
    alternative_slot_limit: int = Field(
        default=8,
        ge=1,
        le=50,
        description="Maximum number of alternatives returned with a conflict",
    )
    cancellation_reason_min_length: int = Field(
        default=10,
        ge=1,
        description="Minimum trimmed length of a cancellation reason",
    )
    default_session_type: str = Field(default="Video Consultation")
    default_session_duration_minutes: int = Field(default=60, ge=5, le=24 * 60)

    # Outbox delivery
    outbox_max_attempts: int = Field(default=5, ge=1)
    outbox_backoff_seconds: int = Field(default=30, ge=1)
    outbox_batch_size: int = Field(default=200, ge=1)

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("test_database_url_raw")
    @classmethod
    def validate_test_database(cls, v: str, info: ValidationInfo) -> str:
        """Ensure the test database is not a production database."""
        if not v:
            return v

        prod_indicators = info.data.get("production_database_indicators", []) or []
        for indicator in prod_indicators:
            if indicator in v.lower():
                raise ValueError(
                    f"Test database URL contains production indicator '{indicator}'. "
                    f"Tests must not use production databases!"
                )
        return v

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        normalized = (v or "INFO").strip().upper()
        if normalized not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return normalized

    def get_database_url(self) -> str:
        """Get the appropriate database URL based on context."""
        if self.is_testing:
            return self.test_database_url_raw
        return self.database_url_raw

    def is_production_database(self, url: Optional[str] = None) -> bool:
        """Check if a database URL appears to be a production database."""
        check_url = url or self.database_url_raw or ""
        return any(
            indicator in check_url.lower() for indicator in self.production_database_indicators
        )


settings = Settings()
