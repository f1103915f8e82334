"""
Centralized configuration for handoffcore.

Uses Pydantic BaseSettings for environment variable integration
and validation.

Configuration sources (in order of precedence):
1. Explicit constructor arguments
2. Environment variables (HANDOFFCORE_*, plus DEBUG for the console echo)
3. .env file
4. Default values

Example:
    from handoffcore.config import get_config

    config = get_config()
    print(config.timeout_ms)  # From HANDOFFCORE_TIMEOUT_MS or default

    # Override at runtime
    config = get_config(log_file="/var/log/handoff.log")
"""

from __future__ import annotations

import os
from typing import Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from handoffcore.contracts.timeouts import (
    DEFAULT_ALLOWED_MODULES,
    DEFAULT_MAX_RETRIES,
    DEFAULT_MODULE_ROOT,
    DEFAULT_VALIDATION_LOG_FILE,
    RECENT_VALIDATIONS_WINDOW,
    VALIDATION_DEFAULT_TIMEOUT_MS,
)


class ValidatorConfig(BaseSettings):
    """
    Configuration for ``TestContractValidator``.

    All settings can be overridden via environment variables
    prefixed with HANDOFFCORE_.

    Example:
        export HANDOFFCORE_TIMEOUT_MS=5000
        export HANDOFFCORE_LOG_FILE=/var/log/contract-validation.log
        export DEBUG=true
    """

    model_config = SettingsConfigDict(
        env_prefix="HANDOFFCORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    timeout_ms: int = Field(
        default=VALIDATION_DEFAULT_TIMEOUT_MS,
        ge=0,
        description="Timeout for each awaited condition test or rollback (0 disables)",
    )
    log_file: str = Field(
        default=DEFAULT_VALIDATION_LOG_FILE,
        description="Append-only validation log file",
    )
    max_retries: int = Field(
        default=DEFAULT_MAX_RETRIES,
        ge=0,
        description="Retry budget reported to callers; the validator never retries",
    )
    debug: bool = Field(
        default=False,
        validation_alias=AliasChoices("debug", "HANDOFFCORE_DEBUG", "DEBUG"),
        description="Mirror validation log entries to stdout",
    )

    # Validation history
    history_limit: Optional[int] = Field(
        default=None,
        ge=1,
        description="Maximum history records kept in memory (None = unbounded)",
    )
    recent_window: int = Field(
        default=RECENT_VALIDATIONS_WINDOW,
        ge=1,
        description="Number of records reported as recent validations",
    )

    # Restricted evaluator
    allowed_modules: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ALLOWED_MODULES),
        description="Module names contract code may load with require()",
    )
    module_root: str = Field(
        default=DEFAULT_MODULE_ROOT,
        description="Absolute .py paths under this directory may be loaded",
    )

    @field_validator("log_file", "module_root")
    @classmethod
    def expand_path(cls, v: str) -> str:
        """Expand ~ and environment variables in paths."""
        return os.path.expanduser(os.path.expandvars(v))

    @property
    def timeout_s(self) -> Optional[float]:
        """Timeout in seconds for ``asyncio.wait_for``, or None when disabled."""
        if self.timeout_ms <= 0:
            return None
        return self.timeout_ms / 1000


# Global singleton
_config: Optional[ValidatorConfig] = None


def get_config(**overrides) -> ValidatorConfig:
    """
    Get the global configuration instance.

    Creates a singleton on first call. Subsequent calls return
    the same instance unless overrides are provided.
    """
    global _config

    if overrides or _config is None:
        _config = ValidatorConfig(**overrides)

    return _config


def reset_config() -> None:
    """Reset the global configuration (for testing)."""
    global _config
    _config = None
