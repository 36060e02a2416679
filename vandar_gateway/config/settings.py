"""Gateway SDK settings using Pydantic for environment-based configuration."""
from functools import lru_cache
from typing import List

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from vandar_gateway.core.errors import ConfigurationError
from vandar_gateway.core.validation import URL_RE


class Settings(BaseSettings):
    """Settings loaded from ``VANDAR_*`` environment variables."""

    # Gateway Configuration
    api_key: str = Field(..., description="Vandar API key, also the inbound bearer credential")
    base_url: str = Field(default="https://api.vandar.io", description="Gateway base URL")
    sandbox_mode: bool = Field(default=True, description="Use the gateway sandbox")
    timeout: int = Field(default=30, description="Outbound HTTP timeout (seconds)")
    callback_url: str = Field(..., description="URL the gateway redirects to after payment")
    business_name: str = Field(default="business", description="Business slug for refund paths")

    # Inbound Guards
    ip_allow_list: str = Field(
        default="", description="Callback source IPs (comma-separated, empty allows all)"
    )
    rate_limit_window_seconds: int = Field(default=60, description="Rate limit window (seconds)")
    rate_limit_init: int = Field(default=10, description="Init requests per window per IP")
    rate_limit_verify: int = Field(default=10, description="Verify requests per window per IP")
    rate_limit_status: int = Field(default=20, description="Status requests per window per IP")
    rate_limit_refund: int = Field(default=5, description="Refund requests per window per IP")

    # Application Configuration
    app_name: str = Field(default="vandar-gateway", description="Application name")
    app_env: str = Field(default="development", description="Environment (development/production)")
    log_level: str = Field(default="INFO", description="Logging level")
    debug: bool = Field(default=False, description="Debug mode")

    # API Configuration
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")

    model_config = SettingsConfigDict(
        env_prefix="VANDAR_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("api_key", "base_url")
    @classmethod
    def validate_required(cls, v: str) -> str:
        """Reject blank values for required strings."""
        if not v.strip():
            raise ValueError("must not be empty")
        return v.strip()

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("callback_url")
    @classmethod
    def validate_callback_url(cls, v: str) -> str:
        """Callback URL must pass the same check as a per-payment callback URL."""
        if not URL_RE.match(v.strip()):
            raise ValueError("callback url must be an http(s) URL with a dotted host")
        return v.strip()

    @field_validator(
        "timeout",
        "rate_limit_window_seconds",
        "rate_limit_init",
        "rate_limit_verify",
        "rate_limit_status",
        "rate_limit_refund",
    )
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be greater than 0")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level. Must be one of: {valid_levels}")
        return v.upper()

    def get_ip_allow_list(self) -> List[str]:
        """Parse the callback allow-list from its comma-separated form."""
        return [ip.strip() for ip in self.ip_allow_list.split(",") if ip.strip()]

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env.lower() == "production"


def load_settings(**overrides: object) -> Settings:
    """
    Build settings, converting validation failures into ``ConfigurationError``.

    Args:
        **overrides: Explicit values taking precedence over the environment

    Returns:
        Settings: Validated settings

    Raises:
        ConfigurationError: If a value is missing or invalid
    """
    try:
        return Settings(**overrides)
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise ConfigurationError(f"Invalid configuration: {fields}") from e


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return load_settings()
