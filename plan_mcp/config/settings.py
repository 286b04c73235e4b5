"""Centralized configuration management for the Plan MCP system.

This module provides a single source of truth for configuration including
the database connection, logging, metrics and batch execution defaults.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field
from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Centralized settings for the Plan MCP system."""

    # === Database Configuration ===
    database_url: str = Field(default="sqlite:///./plan_mcp.db", description="SQLAlchemy database URL")
    database_echo: bool = Field(default=False, description="Echo SQL statements")

    # === Logging Configuration ===
    log_level: str = Field(default="INFO", description="Logging level")
    structured_logging: bool = Field(default=True, description="Enable structured JSON error logging")
    log_dir: str = Field(default=".plan_mcp_logs", description="Directory for rotating log files")

    # === Metrics Configuration ===
    enable_metrics: bool = Field(default=True, description="Enable metrics collection")

    # === Modification Engine Configuration ===
    batch_supported: bool = Field(default=True, description="Expose the batch parameter on agentic tools")
    failure_policy: Literal["continue_on_error", "fail_fast"] = Field(
        default="continue_on_error", description="Default batch failure policy for agentic tools"
    )
    snapshot_history_limit: int = Field(default=50, description="Page size for version history listings")

    # === Test Environment Detection ===
    pytest_current_test: str | None = Field(default=None, description="Test mode indicator")

    model_config = {
        "env_prefix": "PLAN_MCP_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        """Accept lower-case level names from the environment."""
        level = value.upper()
        if level not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(f"Unknown log level: {value}")
        return level

    @field_validator("snapshot_history_limit")
    @classmethod
    def validate_history_limit(cls, value: int) -> int:
        if value < 1:
            raise ValueError("snapshot_history_limit must be at least 1")
        return value

    @property
    def is_test_environment(self) -> bool:
        """Check if running in test environment."""
        return "PYTEST_CURRENT_TEST" in os.environ or self.pytest_current_test is not None

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.lower().startswith("sqlite")

    @property
    def log_dir_path(self) -> Path:
        """Get the log directory as a Path object, creating it if needed."""
        path = Path(self.log_dir).resolve()
        path.mkdir(parents=True, exist_ok=True)
        return path

    @property
    def metrics_active(self) -> bool:
        """Metrics are never collected under pytest or CI."""
        return self.enable_metrics and not self.is_test_environment and "CI" not in os.environ


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance (singleton pattern)."""
    global _settings
    if _settings is None:
        load_dotenv()
        _settings = Settings()
    return _settings


def reset_settings():
    """Reset the global settings instance (primarily for testing)."""
    global _settings
    _settings = None
