"""
Exceptions module - Custom exception hierarchy.

This module defines all custom exceptions used throughout the action
recorder, providing clear error types for different failure scenarios.
"""

from action_recorder.exceptions.base import (
    ActionRecorderError,
    ConfigurationError,
)
from action_recorder.exceptions.dom import (
    DOMError,
    CrossOriginAccessError,
    DetachedNodeError,
    XPathEvaluationError,
)
from action_recorder.exceptions.recording import (
    RecordingError,
    RecordingSealedError,
    RecorderStateError,
    TransportError,
    ScenarioError,
)
from action_recorder.exceptions.browser import (
    BrowserError,
    SnapshotError,
)

__all__ = [
    # Base exceptions
    "ActionRecorderError",
    "ConfigurationError",
    # DOM exceptions
    "DOMError",
    "CrossOriginAccessError",
    "DetachedNodeError",
    "XPathEvaluationError",
    # Recording exceptions
    "RecordingError",
    "RecordingSealedError",
    "RecorderStateError",
    "TransportError",
    "ScenarioError",
    # Browser exceptions
    "BrowserError",
    "SnapshotError",
]
