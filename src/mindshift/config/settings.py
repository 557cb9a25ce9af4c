"""
MindshiftR Application Settings

Production-grade configuration management using Pydantic Settings.
All policy constants and sensitive values are loaded from environment
variables.

CLINICAL_REVIEW_REQUIRED: The escalation timeout and the queue wait
constant are product decisions. Do not alter the defaults without
clinical sign-off.

SECURITY: Never log or expose settings containing secrets.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """PostgreSQL archive database configuration."""

    model_config = SettingsConfigDict(env_prefix="MINDSHIFT_DB_")

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    name: str = Field(default="mindshift_db", description="Database name")
    user: str = Field(default="mindshift_user", description="Database user")
    password: SecretStr = Field(default=SecretStr("dev_password"), description="Database password")
    pool_size: int = Field(default=10, ge=1, le=100, description="Connection pool size")
    max_overflow: int = Field(default=20, ge=0, le=100, description="Max overflow connections")
    url_override: Optional[str] = Field(
        default=None,
        description="Full async URL (e.g. sqlite+aiosqlite:///archive.db); wins over host/port",
    )

    @property
    def async_url(self) -> str:
        """Generate async database URL for SQLAlchemy."""
        if self.url_override:
            return self.url_override
        password = self.password.get_secret_value()
        return f"postgresql+asyncpg://{self.user}:{password}@{self.host}:{self.port}/{self.name}"

    @property
    def sync_url(self) -> str:
        """Generate sync database URL for Alembic migrations."""
        password = self.password.get_secret_value()
        return f"postgresql://{self.user}:{password}@{self.host}:{self.port}/{self.name}"


class EscalationSettings(BaseSettings):
    """
    Crisis escalation policy.

    CLINICAL_REVIEW_REQUIRED: timeout_seconds defaults to the
    product value of 120 seconds.
    """

    model_config = SettingsConfigDict(env_prefix="MINDSHIFT_ESCALATION_")

    timeout_seconds: float = Field(
        default=120.0,
        gt=0,
        description="Seconds an alert may stay unacknowledged before emergency fallback",
    )
    risk_threshold: int = Field(default=4, ge=1, le=5, description="Turn risk score that opens an alert")
    sweep_interval_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Maintenance sweep period for overdue alerts and stale queues",
    )
    crisis_resources_path: Optional[str] = Field(
        default=None,
        description="Optional JSON file extending the built-in crisis resources",
    )


class SessionSettings(BaseSettings):
    """Session store retention and risk decay policy."""

    model_config = SettingsConfigDict(env_prefix="MINDSHIFT_SESSION_")

    trajectory_window: int = Field(default=100, ge=1, description="Max emotional trajectory entries kept")
    risk_window_turns: int = Field(default=5, ge=1, description="Turns counted at full weight for risk")
    risk_decay_turns: int = Field(default=5, ge=0, description="Turns over which older risk decays to 0")
    inactivity_expiry_hours: float = Field(default=24.0, gt=0, description="Idle time before eviction")


class ClassifierSettings(BaseSettings):
    """
    Sentiment-to-risk mapping used by the message classifier.

    Sentiment polarity is in [-1.0, 1.0], intensity in [0.0, 1.0].
    Sentiment alone never contributes more than risk 3.

    CLINICAL_REVIEW_REQUIRED: thresholds are inferred, not validated.
    """

    model_config = SettingsConfigDict(env_prefix="MINDSHIFT_CLASSIFIER_")

    strong_negative_polarity: float = Field(default=-0.6, ge=-1.0, le=0.0)
    strong_intensity: float = Field(default=0.6, ge=0.0, le=1.0)
    moderate_negative_polarity: float = Field(default=-0.35, ge=-1.0, le=0.0)
    moderate_intensity: float = Field(default=0.35, ge=0.0, le=1.0)
    mild_negative_polarity: float = Field(default=-0.05, ge=-1.0, le=0.0)
    catalog_path: Optional[str] = Field(default=None, description="Optional JSON protocol catalog")

    @model_validator(mode="after")
    def validate_ordering(self) -> "ClassifierSettings":
        """Polarity thresholds must tighten as the contributed risk grows."""
        if not (
            self.strong_negative_polarity
            <= self.moderate_negative_polarity
            <= self.mild_negative_polarity
        ):
            raise ValueError("sentiment polarity thresholds must be ordered strong <= moderate <= mild")
        return self


class HandoffSettings(BaseSettings):
    """
    Human handoff queue policy.

    CLINICAL_REVIEW_REQUIRED: average_service_minutes defaults to
    the product value of 10 minutes per queue position.
    """

    model_config = SettingsConfigDict(env_prefix="MINDSHIFT_HANDOFF_")

    average_service_minutes: int = Field(default=10, ge=1, description="Minutes per queue position")
    queue_expiry_minutes: float = Field(default=30.0, gt=0, description="Queued requests expire after this")
    default_specialty: str = Field(default="general", description="Bucket for requests without a specialty")
    crisis_specialty: str = Field(default="crisis", description="Bucket for crisis-linked handoffs")


class NotificationSettings(BaseSettings):
    """Notification fan-out configuration."""

    model_config = SettingsConfigDict(env_prefix="MINDSHIFT_NOTIFY_")

    subscriber_queue_size: int = Field(
        default=256,
        ge=1,
        description="Pending events per subscriber before new events are dropped",
    )


class SentrySettings(BaseSettings):
    """Sentry error tracking configuration."""

    model_config = SettingsConfigDict(env_prefix="MINDSHIFT_SENTRY_")

    dsn: SecretStr = Field(default=SecretStr(""), description="Sentry DSN (empty disables)")
    sample_rate: float = Field(default=1.0, ge=0.0, le=1.0)
    traces_sample_rate: float = Field(default=0.1, ge=0.0, le=1.0)


class Settings(BaseSettings):
    """
    Main application settings.

    All configuration is loaded from environment variables with MINDSHIFT_ prefix.
    Sensitive values use SecretStr to prevent accidental logging.

    Usage:
        settings = get_settings()
        timeout = settings.escalation.timeout_seconds
    """

    model_config = SettingsConfigDict(
        env_prefix="MINDSHIFT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    env: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment"
    )
    debug: bool = Field(default=False, description="Debug mode - NEVER enable in production")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level"
    )
    api_version: str = Field(default="v1", description="API version prefix")
    cors_origins: list[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins"
    )
    archive_backend: Literal["memory", "database"] = Field(
        default="memory",
        description="Where resolved alerts, handoffs and ended sessions are archived",
    )
    default_country_code: str = Field(default="US", description="Jurisdiction for crisis resources")

    # Nested settings
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    escalation: EscalationSettings = Field(default_factory=EscalationSettings)
    session: SessionSettings = Field(default_factory=SessionSettings)
    classifier: ClassifierSettings = Field(default_factory=ClassifierSettings)
    handoff: HandoffSettings = Field(default_factory=HandoffSettings)
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)
    sentry: SentrySettings = Field(default_factory=SentrySettings)

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.env == "production"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are only loaded once.
    For testing, construct Settings directly and inject it.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
