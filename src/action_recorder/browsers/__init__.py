"""
Browsers - live page access through Playwright.
"""

from action_recorder.browsers.playwright_loader import (
    capture_url,
    save_bundle,
    snapshot_frame,
    snapshot_page,
)

__all__ = [
    "capture_url",
    "save_bundle",
    "snapshot_frame",
    "snapshot_page",
]
