"""Environment settings shared by the CLI."""

import os
from typing import Optional

from ..utils.errors import ConfigError


class Settings:
    """Application settings from environment variables."""

    @staticmethod
    def get(key: str, default: Optional[str] = None, required: bool = False) -> str:
        """
        Get environment variable value.

        Args:
            key: Environment variable name
            default: Default value if not set
            required: Whether the variable is required

        Returns:
            str: Environment variable value

        Raises:
            ConfigError: If required variable is not set
        """
        value = os.getenv(key, default)
        if required and not value:
            raise ConfigError(f"Required environment variable not set: {key}")
        return value or ""

    @staticmethod
    def log_level() -> str:
        """Log level from LOG_LEVEL, INFO when unset."""
        return Settings.get("LOG_LEVEL", "INFO").upper()
