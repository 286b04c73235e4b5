"""Configuration management for the Plan MCP system."""

from .settings import Settings
from .settings import get_settings
from .settings import reset_settings

__all__ = ["Settings", "get_settings", "reset_settings"]
