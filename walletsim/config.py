"""Engine configuration management using Pydantic Settings."""

from typing import List, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # Logging Configuration
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Currency Configuration
    base_currency: str = Field(default="USD", alias="BASE_CURRENCY")
    intermediary_currencies: List[str] = Field(
        default=["USD", "EUR"], alias="INTERMEDIARY_CURRENCIES"
    )
    rate_volatility: float = Field(
        default=0.02, ge=0, le=1, alias="RATE_VOLATILITY"
    )

    # Risk Configuration
    var_percentile: float = Field(default=0.05, ge=0, le=1, alias="VAR_PERCENTILE")

    # Worker Pool Configuration
    max_workers: Optional[int] = Field(default=None, ge=1, alias="MAX_WORKERS")
    executor_mode: Literal["thread", "process"] = Field(
        default="thread", alias="EXECUTOR_MODE"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        allowed_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed_levels:
            raise ValueError(f"LOG_LEVEL must be one of {allowed_levels}")
        return v.upper()

    @field_validator("base_currency")
    @classmethod
    def validate_base_currency(cls, v):
        """Validate base currency code."""
        if len(v) != 3 or not v.isalpha():
            raise ValueError("BASE_CURRENCY must be a 3-letter currency code")
        return v.upper()

    @field_validator("intermediary_currencies")
    @classmethod
    def validate_intermediary_currencies(cls, v):
        """Validate intermediary currency list, keeping priority order."""
        if not v:
            raise ValueError("INTERMEDIARY_CURRENCIES must not be empty")
        return [code.upper() for code in v]


def get_settings(env_file: Optional[str] = None) -> Settings:
    """Get engine settings instance."""
    if env_file is not None:
        return Settings(_env_file=env_file)
    return Settings()


# Global settings instance - created lazily on first use
_settings: Optional[Settings] = None


def get_global_settings() -> Settings:
    """Get or create global settings instance."""
    global _settings
    if _settings is None:
        _settings = get_settings()
    return _settings


def reset_global_settings() -> None:
    """Reset global settings instance (useful for testing)."""
    global _settings
    _settings = None
