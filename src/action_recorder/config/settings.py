"""
Settings - Pydantic models for type-safe configuration.

This module defines all configuration settings as Pydantic models,
providing validation, type hints, and automatic environment variable loading.

Example:
    >>> from action_recorder.config import Settings, load_config
    >>> settings = load_config()  # Loads from env, yaml, and defaults
    >>> print(settings.capture.dedup_window_ms)
    300
"""

import re
from typing import List, Literal, Optional
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_TEST_ATTRIBUTES = [
    "data-testid",
    "data-test-id",
    "data-cy",
    "data-test",
    "data-automation-id",
    "data-e2e",
]

# Numeric-leading ids and ids minted by reactive frameworks change between renders
DEFAULT_DYNAMIC_ID_PATTERN = r"^(\d|ember|react|ng-|:)"


class LocatorSettings(BaseModel):
    """
    Locator synthesis settings.
    
    Attributes:
        test_attributes: Test-oriented attributes, in priority order
        dynamic_id_pattern: Regex for ids that are not stable across renders
        max_aria_label_length: aria-label must be shorter than this to be used
        max_text_length: button/link text must be shorter than this to be used
    """
    test_attributes: List[str] = Field(default_factory=lambda: list(DEFAULT_TEST_ATTRIBUTES))
    dynamic_id_pattern: str = DEFAULT_DYNAMIC_ID_PATTERN
    max_aria_label_length: int = Field(default=50, ge=1, le=1000)
    max_text_length: int = Field(default=40, ge=1, le=1000)
    
    @field_validator("dynamic_id_pattern")
    @classmethod
    def _check_pattern(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as e:
            raise ValueError(f"Invalid dynamic id pattern: {e}") from e
        return value


class CaptureSettings(BaseModel):
    """
    Action capture settings.
    
    Attributes:
        dedup_window_ms: Identical consecutive actions within this window collapse
        snapshot_text_length: Max characters of element text kept in snapshots
        description_text_length: Text longer than this is not used to name elements
        retry_on_transport_failure: Retry a failed delivery once if still recording
    """
    dedup_window_ms: int = Field(default=300, ge=0, le=10000)
    snapshot_text_length: int = Field(default=100, ge=1, le=10000)
    description_text_length: int = Field(default=30, ge=1, le=1000)
    retry_on_transport_failure: bool = True


class MonitorSettings(BaseModel):
    """
    Page monitor settings.
    
    Attributes:
        page_xpath: Element whose text names the current application page
        enabled: Start the monitor together with recording
    """
    page_xpath: str = '//*[@id="panel-header"]'
    enabled: bool = False


class BrowserSettings(BaseModel):
    """
    Live browser settings, used when snapshotting pages with Playwright.
    
    Attributes:
        browser_type: Playwright browser to launch
        headless: Run browser in headless mode
        timeout_ms: Navigation timeout
        wait_until: Load state to wait for before snapshotting
    """
    browser_type: Literal["chromium", "firefox", "webkit"] = "chromium"
    headless: bool = True
    timeout_ms: int = Field(default=30000, ge=1000, le=300000)
    wait_until: Literal["load", "domcontentloaded", "networkidle", "commit"] = "load"


class ExportSettings(BaseModel):
    """
    Export settings.
    
    Attributes:
        async_mode: Generate async Playwright scripts
        include_comments: Add a comment per step
        browser_type: Browser launched by generated scripts
        headless: Generated scripts run headless
        parametrize_inputs: Lift typed values into an INPUT_DATA table
    """
    async_mode: bool = True
    include_comments: bool = True
    browser_type: Literal["chromium", "firefox", "webkit"] = "chromium"
    headless: bool = False
    parametrize_inputs: bool = True


class LoggingSettings(BaseModel):
    """
    Logging configuration.
    
    Attributes:
        level: Log level
        format: Log format string
        file: Log file path (None for console only)
        json_format: Use JSON format for logs
    """
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[str] = None
    json_format: bool = False


class Settings(BaseSettings):
    """
    Root settings container - single source of truth for all configuration.
    
    Settings are loaded in this priority order (highest to lowest):
    1. Explicit values passed to constructor
    2. Environment variables (prefixed with ACTION_RECORDER__)
    3. Config file (YAML)
    4. Default values
    
    Example:
        >>> settings = Settings()  # Load from env vars
        >>> settings = Settings(capture=CaptureSettings(dedup_window_ms=500))
    """
    
    model_config = SettingsConfigDict(
        env_prefix="ACTION_RECORDER__",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )
    
    locator: LocatorSettings = Field(default_factory=LocatorSettings)
    capture: CaptureSettings = Field(default_factory=CaptureSettings)
    monitor: MonitorSettings = Field(default_factory=MonitorSettings)
    browser: BrowserSettings = Field(default_factory=BrowserSettings)
    export: ExportSettings = Field(default_factory=ExportSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    
    debug: bool = False
    
    def merge_with(self, overrides: dict) -> "Settings":
        """
        Create a new Settings instance with overrides applied.
        
        Args:
            overrides: Dictionary of values to override
            
        Returns:
            New Settings instance with overrides applied
        """
        current = self.model_dump()
        
        def deep_merge(base: dict, updates: dict) -> dict:
            for key, value in updates.items():
                if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                    deep_merge(base[key], value)
                else:
                    base[key] = value
            return base
        
        merged = deep_merge(current, overrides)
        return Settings(**merged)
