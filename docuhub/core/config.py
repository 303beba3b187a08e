"""Application configuration with validation."""

from enum import Enum
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Environment(str, Enum):
    """Application environment."""
    DEVELOPMENT = "development"
    PRODUCTION = "production"


class ConfigurationError(Exception):
    """Raised when application configuration is invalid for the environment."""
    pass


_INSECURE_JWT_SECRET = "dev-insecure-key-change-me"
_INSECURE_API_KEY_SALT = "dev-insecure-salt-change-me"


class Settings(BaseSettings):
    """
    Application settings with validation.

    Every value can be overridden with an environment variable of the same
    name (case-insensitive) or through a ``.env`` file.
    """

    # Environment
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment (development/production)"
    )

    # CORS Configuration
    cors_allowed_origins: str = Field(
        default="http://localhost:3000",
        description="Allowed CORS origins (comma-separated)"
    )

    # Database Configuration
    database_url: str = Field(
        default="sqlite:///./docuhub.db",
        description="Database connection URL"
    )
    # Connection pool tuning (PostgreSQL only; ignored for SQLite).
    db_pool_size: int = Field(default=5, description="Number of persistent database connections")
    db_max_overflow: int = Field(default=10, description="Extra connections allowed during traffic bursts")
    db_pool_timeout: int = Field(default=30, description="Seconds to wait for a pooled connection")
    db_pool_recycle: int = Field(default=1800, description="Seconds before a connection is recycled")

    # Authentication
    # AUTH_ENABLED: when False, all endpoints act as a single anonymous user (dev mode).
    jwt_secret_key: str = Field(
        default=_INSECURE_JWT_SECRET,
        description="JWT signing secret (override in production)"
    )
    jwt_algorithm: str = Field(default="HS256")
    jwt_expire_hours: int = Field(default=24, ge=1, description="Lifetime of issued login tokens")
    auth_enabled: bool = Field(
        default=False,
        description="Enable JWT authentication (False for development)"
    )

    # API keys are stored as HMAC-SHA256(salt, key); rotating the salt invalidates every key.
    api_key_salt: str = Field(
        default=_INSECURE_API_KEY_SALT,
        description="Server-side salt mixed into stored API key hashes"
    )

    # Fernet key for source-control tokens. Empty = derived from jwt_secret_key (dev only).
    encryption_key: str = Field(
        default="",
        description="URL-safe base64 Fernet key for stored provider tokens"
    )

    # Rate Limiting
    rate_limit_per_minute: int = Field(
        default=120,
        description="Maximum requests per client per minute (0 = unlimited)"
    )

    # Pagination
    default_page_size: int = Field(default=10, ge=1)
    max_page_size: int = Field(default=100, ge=1, description="Server-enforced upper bound on ?limit=")

    # Version retention. 0 keeps every snapshot.
    document_version_retention: int = Field(
        default=0, ge=0,
        description="Snapshots kept per document (0 = unbounded)"
    )
    api_spec_version_retention: int = Field(
        default=4, ge=0,
        description="Snapshots kept per API spec (0 = unbounded)"
    )

    # API key usage
    recent_usage_limit: int = Field(default=10, ge=1, description="Entries returned by usage-stats")
    usage_queue_size: int = Field(
        default=100, ge=1,
        description="Pending usage events buffered per WebSocket subscriber before dropping"
    )

    # Audit Log Retention
    audit_retention_days: int = Field(
        default=365,
        description="Days to keep audit log entries (0 = keep forever)"
    )

    # AI spec enhancement (LiteLLM model string, e.g. "gemini/gemini-1.5-flash").
    # Empty string = enhancement disabled.
    ai_model: str = Field(default="", description="LiteLLM model used to enhance API specs")
    ai_api_key: str = Field(default="", description="API key for the AI provider")
    ai_api_base: str = Field(default="", description="Base URL for the AI provider (optional)")
    ai_timeout: int = Field(default=30, ge=1)

    # Source control providers
    github_api_base: str = Field(default="https://api.github.com")
    bitbucket_api_base: str = Field(default="https://api.bitbucket.org/2.0")
    source_control_timeout: int = Field(default=15, ge=1, description="Seconds per provider request")
    analyze_max_files: int = Field(default=50, ge=1, description="Files fetched per repository analysis")

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_format: str = Field(
        default="json",
        description="Log output format: 'json' for structured, 'text' for human-readable"
    )

    def get_cors_origins(self) -> List[str]:
        """Get CORS origins as a list. Wildcards are rejected."""
        origins = [origin.strip() for origin in self.cors_allowed_origins.split(',') if origin.strip()]

        if "*" in origins:
            raise ValueError(
                "Wildcard CORS (*) not allowed. "
                "Specify explicit origins in CORS_ALLOWED_ORIGINS"
            )

        return origins

    def clamp_page_size(self, limit: int) -> int:
        """Bound a requested page size to [1, max_page_size]."""
        return max(1, min(limit, self.max_page_size))

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the standard Python logging levels."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level. Must be one of: {valid_levels}")
        return v_upper

    def validate_production_config(self) -> None:
        """Validate configuration for production environment.

        Raises:
            ConfigurationError: If production config is insecure.
        """
        errors: list[str] = []

        if self.jwt_secret_key == _INSECURE_JWT_SECRET:
            errors.append(
                "JWT_SECRET_KEY is using the default insecure value. "
                "Generate a secure key: openssl rand -hex 32"
            )

        if self.api_key_salt == _INSECURE_API_KEY_SALT:
            errors.append("API_KEY_SALT is using the default insecure value.")

        if not self.encryption_key:
            errors.append("ENCRYPTION_KEY is empty. Generate one with Fernet.generate_key().")

        if not self.auth_enabled:
            errors.append(
                "AUTH_ENABLED is false. "
                "Authentication must be enabled in production."
            )

        origins = self.get_cors_origins()
        localhost_origins = [o for o in origins if "localhost" in o or "127.0.0.1" in o]
        if localhost_origins:
            errors.append(
                f"CORS allows localhost origins: {localhost_origins}. "
                "Remove localhost origins for production."
            )

        if errors and self.environment == Environment.PRODUCTION:
            raise ConfigurationError(
                "Production configuration is insecure:\n  - " + "\n  - ".join(errors)
            )

    def uses_default_secrets(self) -> bool:
        return self.jwt_secret_key == _INSECURE_JWT_SECRET or self.api_key_salt == _INSECURE_API_KEY_SALT

    class Config:
        """Pydantic configuration."""
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


# Global settings instance
settings = Settings()
