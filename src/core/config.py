"""Centralized configuration management for TapRead.

This module provides a single source of truth for the reader-side
configuration (gateway location, collaborator timeouts, audio format). It
uses pydantic-settings to:
- Load configuration from .env files
- Validate types and values
- Provide defaults where appropriate
- Support environment variable overrides
"""

from pathlib import Path
from pydantic_settings import BaseSettings
from pydantic import Field, computed_field, field_validator


class Settings(BaseSettings):
    """Global settings for TapRead reader applications."""

    # Gateway Configuration
    tapread_gateway_url: str | None = Field(
        None,
        description="Full gateway URL (overrides host/port if set)"
    )
    tapread_gateway_host: str = Field(
        "localhost",
        description="Gateway hostname"
    )
    tapread_gateway_port: int = Field(
        8000,
        description="Gateway port number"
    )

    # Collaborator calls
    tapread_request_timeout: float = Field(
        30.0,
        gt=0,
        description="Upper bound in seconds for a single detection/translation/synthesis call"
    )

    # Synthesized audio format
    tapread_sample_rate: int = Field(
        24000,
        gt=0,
        description="Sample rate of the PCM returned by speech synthesis"
    )
    tapread_channels: int = Field(
        1,
        ge=1,
        description="Channel count of the PCM returned by speech synthesis"
    )

    # Interaction defaults
    tapread_default_mode: str = Field(
        "original",
        description="Translation mode a new session starts in"
    )

    # Logging
    tapread_log_level: str = Field(
        "INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )

    @field_validator("tapread_log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()

    @computed_field
    @property
    def gateway_url(self) -> str:
        """Compute the full gateway URL from components."""
        if self.tapread_gateway_url:
            return self.tapread_gateway_url.rstrip("/")
        return f"http://{self.tapread_gateway_host}:{self.tapread_gateway_port}"

    model_config = {
        # Look for .env file in project root (2 levels up from this file)
        "env_file": Path(__file__).parent.parent.parent / ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",  # Ignore unknown environment variables
    }


# Create a singleton instance that will be imported throughout the codebase
settings = Settings()
