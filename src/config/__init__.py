"""
Configuration Module
====================

Application settings and configuration management using Pydantic.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from functools import lru_cache
from pathlib import Path
from typing import List, Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="locate-tracker", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== Locates API (collaborator) ==========
    locates_api_base_url: str = Field(
        default="http://localhost:5000/api",
        description="Base URL of the work-order / locates API"
    )
    locates_api_token: Optional[str] = Field(
        default=None,
        description="Bearer token forwarded to the locates API"
    )
    locates_api_timeout_seconds: float = Field(
        default=10.0,
        description="Timeout for locates API calls",
        ge=0.1,
        le=120
    )
    locates_api_max_retries: int = Field(
        default=3,
        description="Attempts for idempotent GET requests",
        ge=1,
        le=10
    )

    # ========== Locate SLA Rules ==========
    locate_sla_config_path: Path = Field(
        default=Path("locate_sla.yaml"),
        description="Path to locate SLA rules YAML file"
    )
    clock_tick_seconds: float = Field(
        default=1.0,
        description="Seconds between clock ticks (countdown recompute)",
        ge=0.1
    )
    refresh_interval_seconds: int = Field(
        default=300,
        description="Seconds between periodic data refreshes (0 disables)",
        ge=0
    )

    # ========== Tagging profile ==========
    profile_name: Optional[str] = Field(
        default=None,
        description="Default tagger name for the tagging form"
    )
    profile_email: Optional[str] = Field(
        default=None,
        description="Default tagger email for the tagging form"
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "staging", "production", "test"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"log_level must be one of {allowed}")
        return v.upper()


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

class CallType(str):
    """Locate call urgency as recorded with the one-call center."""
    STANDARD = "STANDARD"
    EMERGENCY = "EMERGENCY"


class Bucket(str):
    """Life-cycle buckets a locate request is classified into."""
    NEEDS_CALL = "needs_call"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class UrgencyTier(str):
    """Countdown urgency tiers, most severe first."""
    EXPIRED = "expired"
    CRITICAL = "critical"
    WARNING = "warning"
    NORMAL = "normal"


class DateRange(str):
    """Created-date filter windows for the Needs Call bucket."""
    ALL = "all"
    TODAY = "today"
    THIS_WEEK = "this_week"
    THIS_MONTH = "this_month"


class ActionStatus(str):
    """Aggregate result of a single or bulk action."""
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILURE = "failure"


PLACEHOLDER = "—"

URGENCY_COLORS = {
    UrgencyTier.EXPIRED: "#dc2626",
    UrgencyTier.CRITICAL: "#ef4444",
    UrgencyTier.WARNING: "#f59e0b",
    UrgencyTier.NORMAL: "#10b981",
}


# ========== Lists for validation ==========

VALID_CALL_TYPES = [CallType.STANDARD, CallType.EMERGENCY]
VALID_BUCKETS = [Bucket.NEEDS_CALL, Bucket.IN_PROGRESS, Bucket.COMPLETED]
VALID_URGENCY_TIERS = [
    UrgencyTier.EXPIRED, UrgencyTier.CRITICAL,
    UrgencyTier.WARNING, UrgencyTier.NORMAL
]
VALID_DATE_RANGES = [
    DateRange.ALL, DateRange.TODAY,
    DateRange.THIS_WEEK, DateRange.THIS_MONTH
]
