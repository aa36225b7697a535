"""
Configuration settings for the Donation Ledger service.

Loads API tokens, the privacy block-list and pipeline tuning from
environment variables and .env files with validation.
"""

from functools import lru_cache
from typing import List, Optional, Set

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .helpers.identity import normalize_name


# Platform keys accepted in PLATFORMS, in default ledger order
KNOWN_PLATFORMS = ("github", "patreon", "buymeacoffee")


class ConfigurationError(ValueError):
    """Missing or invalid configuration, raised before any network call."""
    pass


class DonationLedgerSettings(BaseSettings):
    """
    Configuration for the Donation Ledger service.

    Settings are loaded in this order of precedence:
    1. Environment variables
    2. .env file in current directory
    3. Default values

    The instance is built once per process and passed explicitly into the
    aggregation driver and every source adapter.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    environment: str = Field(
        default="development",
        description="Environment name (development, staging, production). "
                    "Only production fetches live data."
    )

    # Authentication
    github_token: Optional[str] = Field(
        default=None,
        description="GitHub token with read:user scope for the Sponsors API"
    )

    patreon_token: Optional[str] = Field(
        default=None,
        description="Patreon creator access token"
    )

    buymeacoffee_token: Optional[str] = Field(
        default=None,
        description="Buy Me a Coffee personal access token"
    )

    # Privacy
    private_donors: str = Field(
        default="",
        description="Newline-separated names or emails to always show as anonymous"
    )

    # Sources
    platforms: str = Field(
        default=",".join(KNOWN_PLATFORMS),
        description="Comma-separated platforms to aggregate, in ledger order"
    )

    github_api_url: str = Field(
        default="https://api.github.com/graphql",
        description="GitHub GraphQL endpoint"
    )

    patreon_api_url: str = Field(
        default="https://www.patreon.com/api/oauth2/v2",
        description="Base URL for the Patreon API"
    )

    buymeacoffee_api_url: str = Field(
        default="https://developers.buymeacoffee.com/api/v1",
        description="Base URL for the Buy Me a Coffee API"
    )

    # Rate Limiting (0 = unthrottled)
    github_requests_per_minute: int = Field(
        default=0,
        ge=0,
        description="Request budget for GitHub Sponsors"
    )

    patreon_requests_per_minute: int = Field(
        default=100,
        ge=0,
        description="Request budget for Patreon"
    )

    buymeacoffee_requests_per_minute: int = Field(
        default=30,
        ge=0,
        description="Request budget for Buy Me a Coffee"
    )

    # HTTP Client Configuration
    api_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Request timeout in seconds"
    )

    # Run Configuration
    run_timeout: float = Field(
        default=300.0,
        gt=0,
        description="Deadline in seconds for a whole aggregation run"
    )

    concurrent_sources: bool = Field(
        default=True,
        description="Run the platform adapters as concurrent tasks"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    log_format: str = Field(
        default="json",
        description="Log format (json or text)"
    )

    service_name: str = Field(
        default="donation-ledger",
        description="Service name for logging"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level is one of the standard levels."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of: {', '.join(sorted(valid_levels))}")
        return v.upper()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v):
        """Validate log format is supported."""
        valid_formats = {"json", "text"}
        if v.lower() not in valid_formats:
            raise ValueError(f"log_format must be one of: {', '.join(sorted(valid_formats))}")
        return v.lower()

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        """Validate environment name."""
        valid_envs = {"development", "staging", "production"}
        if v.lower() not in valid_envs:
            raise ValueError(f"environment must be one of: {', '.join(sorted(valid_envs))}")
        return v.lower()

    @field_validator("platforms")
    @classmethod
    def validate_platforms(cls, v):
        """Validate platform keys, keeping the configured order."""
        keys = [key.strip().lower() for key in v.split(",") if key.strip()]
        unknown = [key for key in keys if key not in KNOWN_PLATFORMS]
        if unknown:
            raise ValueError(
                f"unknown platforms: {', '.join(unknown)} "
                f"(expected any of: {', '.join(KNOWN_PLATFORMS)})"
            )
        if len(set(keys)) != len(keys):
            raise ValueError("platforms must not contain duplicates")
        return ",".join(keys)

    @field_validator("github_token", "patreon_token", "buymeacoffee_token")
    @classmethod
    def validate_token(cls, v):
        """Treat blank tokens as missing."""
        if v is None:
            return v
        v = v.strip()
        return v or None

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def platform_keys(self) -> List[str]:
        """Enabled platforms in ledger order."""
        return [key for key in self.platforms.split(",") if key]

    @property
    def private_donor_set(self) -> Set[str]:
        """Block-list entries, normalized like the names they are matched against."""
        keys = (normalize_name(line) for line in self.private_donors.splitlines())
        return {key for key in keys if key}

    def token_for(self, platform_key: str) -> Optional[str]:
        """Return the API token configured for a platform key."""
        return getattr(self, f"{platform_key}_token")

    def require_tokens(self) -> None:
        """
        Ensure every enabled platform has a token.

        Raises:
            ConfigurationError: If any enabled platform lacks a token
        """
        missing = [
            f"{key.upper()}_TOKEN"
            for key in self.platform_keys
            if not self.token_for(key)
        ]
        if missing:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing)}"
            )


def load_settings(**overrides) -> DonationLedgerSettings:
    """
    Build settings from the environment, converting validation failures.

    Raises:
        ConfigurationError: If any setting fails validation
    """
    try:
        return DonationLedgerSettings(**overrides)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


@lru_cache()
def get_settings() -> DonationLedgerSettings:
    """
    Get cached settings instance.

    Used by the CLI entry point only; library code receives settings
    as an argument.

    Returns:
        Singleton instance of settings
    """
    return load_settings()


# Convenience alias
settings = get_settings
