"""
Configuration module - Centralized settings management.

This module provides type-safe configuration management using Pydantic,
supporting environment variables, YAML files, and CLI arguments.

Usage:
    from action_recorder.config import get_settings, load_config
    
    # Get global settings (loaded once)
    settings = get_settings()
    
    # Or load fresh settings with overrides
    settings = load_config(capture={"dedup_window_ms": 500})

Environment Variables:
    ACTION_RECORDER__CAPTURE__DEDUP_WINDOW_MS=300
    ACTION_RECORDER__MONITOR__PAGE_XPATH=//h1
    ACTION_RECORDER__BROWSER__HEADLESS=false
"""

from action_recorder.config.settings import (
    Settings,
    LocatorSettings,
    CaptureSettings,
    MonitorSettings,
    BrowserSettings,
    ExportSettings,
    LoggingSettings,
)
from action_recorder.config.loader import ConfigLoader, load_config

# Global settings singleton
_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Get the global settings instance (singleton).
    
    Settings are loaded once from environment variables and config files.
    Call reset_settings() to reload.
    
    Returns:
        Global Settings instance
    """
    global _settings
    if _settings is None:
        _settings = load_config()
    return _settings


def reset_settings() -> None:
    """Reset the global settings (forces reload on next get_settings())."""
    global _settings
    _settings = None


__all__ = [
    "Settings",
    "LocatorSettings",
    "CaptureSettings",
    "MonitorSettings",
    "BrowserSettings",
    "ExportSettings",
    "LoggingSettings",
    "ConfigLoader",
    "load_config",
    "get_settings",
    "reset_settings",
]
