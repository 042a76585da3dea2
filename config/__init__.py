"""Configuration module for loading environment variables and settings."""

from config.logging_setup import configure_logging
from config.settings import Settings, get_settings

__all__ = ["Settings", "configure_logging", "get_settings"]
