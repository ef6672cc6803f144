"""
Browser-related exceptions.
"""

from action_recorder.exceptions.base import ActionRecorderError


class BrowserError(ActionRecorderError):
    """Base exception for live browser errors."""
    pass


class SnapshotError(BrowserError):
    """
    Failed to snapshot a live page.
    
    Raised when the page cannot be loaded or serialized.
    """
    
    def __init__(self, message: str, url: str | None = None):
        super().__init__(message, {"url": url})
        self.url = url
