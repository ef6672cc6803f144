"""
Utility modules for the action recorder.
"""

from action_recorder.utils.logging import setup_logging, get_logger
from action_recorder.utils.clock import SystemClock, ManualClock

__all__ = [
    "setup_logging",
    "get_logger",
    "SystemClock",
    "ManualClock",
]
