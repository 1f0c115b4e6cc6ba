"""
FastAPI application configuration using Pydantic Settings.

Provides centralized configuration for:
- API settings (host, port, environment)
- CORS and security headers
- Rate limiting windows per route group
- Upstream generative-AI providers (Anthropic, Gemini)
- Logging and monitoring

All settings support environment variable overrides and .env file loading.
"""

from functools import lru_cache
from typing import Annotated, List, Optional

from pydantic import AliasChoices, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


DEFAULT_ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://127.0.0.1:3000",
]


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables with the
    prefix "SITE_API_" (e.g., SITE_API_LOG_LEVEL). Provider API keys,
    allowed origins and the port also accept the unprefixed names the
    front-end tooling already exports (ANTHROPIC_API_KEY, GEMINI_API_KEY,
    ALLOWED_ORIGINS, PORT).
    """

    # =========================================================================
    # API Settings
    # =========================================================================

    app_name: str = Field(
        default="Promotional Site API",
        description="Application name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="API version"
    )
    api_prefix: str = Field(
        default="/api",
        description="API URL prefix"
    )

    debug: bool = Field(
        default=False,
        description="Debug mode - enables verbose logging and error traces"
    )
    environment: str = Field(
        default="development",
        description="Environment: development|staging|production"
    )

    host: str = Field(
        default="127.0.0.1",
        description="API bind host"
    )
    port: int = Field(
        default=3000,
        description="API bind port",
        gt=0,
        lt=65536,
        validation_alias=AliasChoices("SITE_API_PORT", "PORT", "port"),
    )

    # =========================================================================
    # CORS Settings
    # =========================================================================

    cors_enabled: bool = Field(
        default=True,
        description="Enable CORS middleware"
    )
    cors_origins: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_ALLOWED_ORIGINS),
        description="Allowed CORS origins (comma-separated in the environment)",
        validation_alias=AliasChoices(
            "SITE_API_CORS_ORIGINS", "ALLOWED_ORIGINS", "cors_origins"
        ),
    )
    cors_allow_credentials: bool = Field(
        default=True,
        description="Allow credentials (cookies, authorization headers) in CORS"
    )
    cors_allow_methods: List[str] = Field(
        default=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
        description="Allowed HTTP methods"
    )
    cors_allow_headers: List[str] = Field(
        default=["Content-Type", "Authorization", "X-Requested-With", "Origin", "Accept"],
        description="Allowed HTTP headers"
    )

    # =========================================================================
    # Rate Limiting Settings
    # =========================================================================

    rate_limit_enabled: bool = Field(
        default=True,
        description="Enable rate limiting"
    )
    rate_limit_storage_url: str = Field(
        default="memory://",
        description="Storage URI for rate limit counters (memory:// or redis://...)"
    )
    rate_limit_global: str = Field(
        default="100 per 15 minutes",
        description="Limit shared by all routes; failed requests are not counted"
    )
    rate_limit_contact: str = Field(
        default="3 per minute",
        description="Contact form submissions per client"
    )
    rate_limit_newsletter: str = Field(
        default="5 per hour",
        description="Newsletter signups per client"
    )
    rate_limit_anthropic: str = Field(
        default="3 per minute",
        description="Anthropic proxy requests per client"
    )
    rate_limit_gemini: str = Field(
        default="3 per minute",
        description="Gemini proxy requests per client"
    )

    # =========================================================================
    # Security Settings
    # =========================================================================

    security_headers_enabled: bool = Field(
        default=True,
        description="Enable security headers (X-Frame-Options, CSP, etc.)"
    )
    security_csp: str = Field(
        default=(
            "default-src * 'unsafe-inline' 'unsafe-eval'; "
            "script-src * 'unsafe-inline' 'unsafe-eval'; "
            "connect-src * 'unsafe-inline'; "
            "img-src * data: blob: 'unsafe-inline'; "
            "frame-src *; style-src * 'unsafe-inline';"
        ),
        description="Content-Security-Policy header value"
    )

    # =========================================================================
    # Upstream AI Provider Settings
    # =========================================================================

    anthropic_api_key: Optional[SecretStr] = Field(
        default=None,
        description="Anthropic API key (routes fail with a configuration error when unset)",
        validation_alias=AliasChoices(
            "SITE_API_ANTHROPIC_API_KEY", "ANTHROPIC_API_KEY", "anthropic_api_key"
        ),
    )
    anthropic_api_url: str = Field(
        default="https://api.anthropic.com/v1/messages",
        description="Anthropic Messages API endpoint"
    )
    anthropic_model: str = Field(
        default="claude-3-sonnet-20240229",
        description="Anthropic model requested for proxied prompts"
    )
    anthropic_version: str = Field(
        default="2023-06-01",
        description="Value of the anthropic-version header"
    )
    anthropic_max_tokens: int = Field(
        default=1024,
        description="max_tokens sent with every Anthropic request",
        gt=0
    )

    gemini_api_key: Optional[SecretStr] = Field(
        default=None,
        description="Gemini API key (routes fail with a configuration error when unset)",
        validation_alias=AliasChoices(
            "SITE_API_GEMINI_API_KEY", "GEMINI_API_KEY", "gemini_api_key"
        ),
    )
    gemini_api_base_url: str = Field(
        default="https://generativelanguage.googleapis.com",
        description="Gemini API base URL"
    )
    gemini_model: str = Field(
        default="gemini-pro",
        description="Gemini model used for generateContent"
    )

    upstream_timeout: float = Field(
        default=30.0,
        description="Timeout for upstream AI provider requests (seconds)",
        gt=0
    )

    # =========================================================================
    # Monitoring and Logging
    # =========================================================================

    metrics_enabled: bool = Field(
        default=True,
        description="Enable Prometheus metrics"
    )

    log_level: str = Field(
        default="INFO",
        description="Log level: DEBUG|INFO|WARNING|ERROR|CRITICAL"
    )
    log_format: str = Field(
        default="json",
        description="Log format: json|text"
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the allowed values."""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"log_level must be one of {allowed}, got: {v}")
        return v_upper

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is one of the allowed values."""
        allowed = ["development", "staging", "production"]
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"environment must be one of {allowed}, got: {v}")
        return v_lower

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format."""
        allowed = ["json", "text"]
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"log_format must be one of {allowed}, got: {v}")
        return v_lower

    @field_validator("cors_origins", mode="before")
    @classmethod
    def split_cors_origins(cls, v):
        """Accept a comma-separated string as well as a list."""
        if isinstance(v, str):
            v = [origin.strip() for origin in v.split(",")]
        return [origin for origin in v if origin]

    @field_validator("anthropic_api_key", "gemini_api_key", mode="before")
    @classmethod
    def empty_key_is_unset(cls, v):
        """Treat an empty or blank key the same as a missing one."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    # =========================================================================
    # Model Config
    # =========================================================================

    model_config = SettingsConfigDict(
        env_prefix="SITE_API_",  # Environment variable prefix
        env_file=".env",         # Load from .env file
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",          # Ignore extra environment variables
        populate_by_name=True,
        validate_default=True,
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Settings are loaded once from:
    1. Environment variables (SITE_API_ prefix, plus the unprefixed aliases)
    2. .env file in the current directory
    3. Default values

    Returns:
        Settings: Cached settings instance
    """
    return Settings()


def clear_settings_cache():
    """
    Clear the settings cache.

    Useful for testing when you need to reload settings with different
    environment variables.
    """
    get_settings.cache_clear()
