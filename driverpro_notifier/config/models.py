"""Configuration schema models using Pydantic."""

from enum import Enum
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    KEY_VALUE = "key-value"


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(LogLevel.INFO, description="Log level")
    format: LogFormat = Field(
        LogFormat.KEY_VALUE, description="Log output format (json or key-value)"
    )

    model_config = {"use_enum_values": True}


class ListenerConfig(BaseModel):
    """Settings for the reservation change listener."""

    reservations_collection: str = Field("reservations", min_length=1)
    drivers_collection: str = Field("drivers", min_length=1)
    reconnect_delay_seconds: float = Field(
        5.0, gt=0, le=300, description="Fixed delay before resubscribing after an error"
    )
    health_check_interval_seconds: int = Field(
        30, ge=5, le=3600, description="How often the live subscription is checked"
    )

    @field_validator("reservations_collection", "drivers_collection")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("Collection name cannot be empty or whitespace-only")
        return stripped


class EmailConfig(BaseModel):
    """Outgoing email settings."""

    sender_name: str = Field("DriverPro Notifications", min_length=1)
    timezone: str = Field("Europe/Paris", description="Timezone used to render trip dates")
    request_timeout: int = Field(
        15, ge=1, le=120, description="Timeout for email provider API calls (seconds)"
    )

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Reject timezone names the IANA database does not know."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {v}") from e
        return v


class HTTPConfig(BaseModel):
    """Settings for the health/diagnostic HTTP listener."""

    host: str = Field("0.0.0.0", min_length=1)
    rate_limit_requests: int = Field(100, ge=1, description="Requests allowed per window")
    rate_limit_window_seconds: int = Field(900, ge=1, description="Rate limit window length")


class AppConfig(BaseModel):
    """Root configuration object. Every section has defaults, so an empty file is valid."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    listener: ListenerConfig = Field(default_factory=ListenerConfig)
    email: EmailConfig = Field(default_factory=EmailConfig)
    http: HTTPConfig = Field(default_factory=HTTPConfig)
