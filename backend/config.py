"""
Reconciliation Engine - Configuration Management

Environment-driven defaults for the matching engine and logging.
This module ensures:
- No hidden global matching state (settings only seed MatchingConfig)
- Invalid matching settings fail at startup, never silently clamped
- Environment-specific settings (dev/staging/prod)
"""

from functools import lru_cache
from typing import Optional
import logging

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from reconciliation.matching_config import (
    ConfidenceThresholds,
    MatchWeights,
    MatchingConfig
)

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Uses pydantic-settings for validation and type coercion.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    # ==================== ENVIRONMENT ====================
    ENVIRONMENT: str = Field(
        default="development",
        description="Runtime environment: development, staging, production"
    )

    # ==================== OBSERVABILITY ====================
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR"
    )
    LOG_JSON: Optional[bool] = Field(
        default=None,
        description="Force JSON logs on/off (default: JSON outside development)"
    )
    SERVICE_NAME: str = Field(
        default="reconciliation-engine",
        description="Service name attached to every log line"
    )

    # ==================== TOLERANCES ====================
    RECON_DATE_TOLERANCE_DAYS: int = Field(
        default=2,
        description="Days either side of the statement date counted as a strong match"
    )
    RECON_AMOUNT_TOLERANCE_PERCENT: float = Field(
        default=0.05,
        description="Fraction of the average amount counted as a strong match"
    )

    # ==================== WEIGHTS ====================
    RECON_WEIGHT_PARTY: float = Field(default=0.35)
    RECON_WEIGHT_DESCRIPTION: float = Field(default=0.25)
    RECON_WEIGHT_AMOUNT: float = Field(default=0.25)
    RECON_WEIGHT_DATE: float = Field(default=0.15)

    # ==================== CONFIDENCE TIERS ====================
    RECON_THRESHOLD_HIGH: float = Field(
        default=0.85,
        description="Confidence at or above which the best candidate is auto-matched"
    )
    RECON_THRESHOLD_MEDIUM: float = Field(default=0.65)
    RECON_THRESHOLD_LOW: float = Field(
        default=0.45,
        description="Candidates below this confidence are discarded"
    )

    # ==================== MATCHING ====================
    RECON_MAX_MATCHES: int = Field(
        default=5,
        description="Maximum candidates kept per statement line"
    )
    RECON_MIN_DESCRIPTION_LENGTH: int = Field(
        default=3,
        description="Shorter normalised strings are not compared"
    )
    RECON_SIMILARITY_THRESHOLD: float = Field(
        default=0.6,
        description="Minimum party name similarity that counts toward the party score"
    )
    RECON_MAX_WORKERS: Optional[int] = Field(
        default=None,
        description="Thread pool size for scoring (unset = sequential)"
    )

    # ==================== COMPUTED PROPERTIES ====================

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"

    @property
    def json_logs(self) -> bool:
        if self.LOG_JSON is not None:
            return self.LOG_JSON
        return not self.is_development

    def to_matching_config(self) -> MatchingConfig:
        """
        Build the matching configuration described by these settings.

        Raises:
            InvalidConfigurationError: settings violate a matching invariant
        """
        return MatchingConfig(
            date_tolerance_days=self.RECON_DATE_TOLERANCE_DAYS,
            amount_tolerance_percent=self.RECON_AMOUNT_TOLERANCE_PERCENT,
            weights=MatchWeights(
                party=self.RECON_WEIGHT_PARTY,
                description=self.RECON_WEIGHT_DESCRIPTION,
                amount=self.RECON_WEIGHT_AMOUNT,
                date=self.RECON_WEIGHT_DATE
            ),
            confidence_threshold=ConfidenceThresholds(
                high=self.RECON_THRESHOLD_HIGH,
                medium=self.RECON_THRESHOLD_MEDIUM,
                low=self.RECON_THRESHOLD_LOW
            ),
            max_matches=self.RECON_MAX_MATCHES,
            min_description_length=self.RECON_MIN_DESCRIPTION_LENGTH,
            similarity_threshold=self.RECON_SIMILARITY_THRESHOLD
        )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Settings are loaded once and cached for the application lifetime.
    """
    settings = Settings()

    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Log level: {settings.LOG_LEVEL}")

    return settings


def get_matching_config(settings: Optional[Settings] = None) -> MatchingConfig:
    """
    Validated matching configuration from the environment.

    Raises:
        InvalidConfigurationError: the environment describes an invalid configuration
    """
    settings = settings or get_settings()
    try:
        return settings.to_matching_config()
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        raise


def configure_logging(settings: Optional[Settings] = None) -> logging.Logger:
    """Install the log handler described by the settings."""
    from logging_config import setup_logging

    settings = settings or get_settings()
    return setup_logging(
        level=settings.LOG_LEVEL,
        json_format=settings.json_logs,
        service_name=settings.SERVICE_NAME
    )
