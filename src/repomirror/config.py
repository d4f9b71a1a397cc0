"""Mirror configuration using pydantic-settings.

This module defines the MirrorSettings class that reads configuration
from environment variables with the MIRROR_ prefix. The GitHub token and
the target repository must be set for the mirror to start.
"""

from typing import List, Optional

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


CACHE_BACKENDS = ("memory", "postgres")
EVENT_SINKS = ("logging", "metrics")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class MirrorSettings(BaseSettings):
    """Repository mirror configuration from environment variables.

    All environment variables are prefixed with MIRROR_ (e.g., MIRROR_GITHUB_TOKEN).

    Required fields (must be set via environment variables):
    - github_token: GitHub API token used for every REST call
    - owner: Owner (user or organization) of the mirrored repository
    - repo: Name of the mirrored repository
    """

    model_config = SettingsConfigDict(
        env_prefix="MIRROR_",
        case_sensitive=False,
    )

    # -------------------------------------------------------------------------
    # GitHub Configuration
    # -------------------------------------------------------------------------
    github_token: str

    # Base URL for GitHub API (supports GitHub Enterprise)
    github_base_url: str = "https://api.github.com"

    github_timeout_seconds: float = 30.0

    github_max_retries: int = 3

    # -------------------------------------------------------------------------
    # Target Repository
    # -------------------------------------------------------------------------
    owner: str

    repo: str

    # -------------------------------------------------------------------------
    # Webhook Configuration
    # -------------------------------------------------------------------------
    # Shared secret for X-Hub-Signature-256 validation; unset disables checks
    webhook_secret: Optional[str] = None

    # Public URL GitHub should deliver hook events to (used by create_hook)
    hook_url: Optional[str] = None

    # -------------------------------------------------------------------------
    # Cache Configuration
    # -------------------------------------------------------------------------
    cache_backend: str = "memory"

    # PostgreSQL connection string, required for the postgres backend
    database_url: Optional[str] = None

    # -------------------------------------------------------------------------
    # Observability
    # -------------------------------------------------------------------------
    event_sinks: List[str] = ["logging", "metrics"]

    log_level: str = "INFO"

    # -------------------------------------------------------------------------
    # Server Configuration
    # -------------------------------------------------------------------------
    host: str = "0.0.0.0"

    port: int = 8080

    # -------------------------------------------------------------------------
    # Validators
    # -------------------------------------------------------------------------
    @field_validator("github_token")
    @classmethod
    def validate_github_token(cls, v: str) -> str:
        """Validate that GitHub token is not empty."""
        if not v or not v.strip():
            raise ValueError("github_token cannot be empty")
        return v

    @field_validator("owner", "repo")
    @classmethod
    def validate_repository_part(cls, v: str) -> str:
        """Validate that owner and repo are non-empty path segments."""
        if not v or not v.strip():
            raise ValueError("owner and repo cannot be empty")
        if "/" in v:
            raise ValueError("owner and repo must not contain '/'")
        return v.strip()

    @field_validator("github_base_url", "hook_url")
    @classmethod
    def validate_http_url(cls, v: Optional[str]) -> Optional[str]:
        """Validate that URLs use http:// or https://."""
        if v is None:
            return v
        if not v.startswith(("http://", "https://")):
            raise ValueError("URL must start with http:// or https://")
        return v

    @field_validator("github_timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """Validate that the request timeout is positive."""
        if v <= 0:
            raise ValueError("github_timeout_seconds must be positive")
        return v

    @field_validator("github_max_retries")
    @classmethod
    def validate_max_retries(cls, v: int) -> int:
        """Validate that the retry count is not negative."""
        if v < 0:
            raise ValueError("github_max_retries cannot be negative")
        return v

    @field_validator("cache_backend")
    @classmethod
    def validate_cache_backend(cls, v: str) -> str:
        """Validate the cache backend name."""
        v = v.lower()
        if v not in CACHE_BACKENDS:
            raise ValueError(f"cache_backend must be one of {CACHE_BACKENDS}")
        return v

    @field_validator("event_sinks")
    @classmethod
    def validate_event_sinks(cls, v: List[str]) -> List[str]:
        """Validate that every configured event sink is known."""
        sinks = [sink.lower() for sink in v]
        for sink in sinks:
            if sink not in EVENT_SINKS:
                raise ValueError(f"unknown event sink: {sink}")
        return sinks

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate the log level name."""
        v = v.upper()
        if v not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {LOG_LEVELS}")
        return v

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate that port is in valid range."""
        if not 1 <= v <= 65535:
            raise ValueError("port must be between 1 and 65535")
        return v

    @model_validator(mode="after")
    def validate_database_url(self) -> "MirrorSettings":
        """Require a PostgreSQL URL when the postgres backend is selected."""
        if self.cache_backend == "postgres":
            if not self.database_url or not self.database_url.strip():
                raise ValueError("database_url is required for the postgres cache backend")
            if not self.database_url.startswith(("postgresql://", "postgres://")):
                raise ValueError(
                    "database_url must start with postgresql:// or postgres://"
                )
        return self

    @property
    def full_repository(self) -> str:
        """Repository path in format "{owner}/{repo}"."""
        return f"{self.owner}/{self.repo}"


def get_settings() -> MirrorSettings:
    """Create and return MirrorSettings instance.

    Returns:
        MirrorSettings: Configured settings instance.

    Raises:
        pydantic.ValidationError: If required fields are missing or invalid.
    """
    return MirrorSettings()
