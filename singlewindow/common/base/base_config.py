# =============================================================================
# File: singlewindow/common/base/base_config.py
# Description: BaseConfig - foundation for all configuration classes
#
# Settings conventions:
# - .env file in the working directory is loaded automatically
# - Environment variables are case-insensitive
# - Nested values use the __ delimiter
# - Each config has an @lru_cache(maxsize=1) factory and a reset for tests
# =============================================================================

from typing import Any, Dict

from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_CONFIG_DICT = SettingsConfigDict(
    env_file=".env",
    env_file_encoding="utf-8",
    case_sensitive=False,
    extra="ignore",
    env_nested_delimiter="__",
)


class BaseConfig(BaseSettings):
    """Base class for single-window settings (CLEARANCE_, LOG_, ...)."""

    model_config = BASE_CONFIG_DICT

    def summary(self) -> Dict[str, Any]:
        """Flat, printable view of the settings for startup logs."""
        return {name: str(value) for name, value in self.model_dump().items()}
