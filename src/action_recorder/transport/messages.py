"""
Message types exchanged between frame recorders and the coordinator.
"""

from enum import Enum


class MessageType(str, Enum):
    """Types of transport messages."""
    # Commands to frame recorders
    START_RECORDING = "START_RECORDING"
    STOP_RECORDING = "STOP_RECORDING"
    ENTER_ASSERTION_MODE = "ENTER_ASSERTION_MODE"
    EXIT_ASSERTION_MODE = "EXIT_ASSERTION_MODE"
    GET_STATUS = "GET_STATUS"
    COLLECT_IFRAME_INFO = "COLLECT_IFRAME_INFO"
    SET_FRAME_IDENTIFIER = "SET_FRAME_IDENTIFIER"
    START_PAGE_MONITOR = "START_PAGE_MONITOR"
    STOP_PAGE_MONITOR = "STOP_PAGE_MONITOR"
    GET_CURRENT_PAGE = "GET_CURRENT_PAGE"
    # Events from frame recorders
    ACTION_RECORDED = "ACTION_RECORDED"
    ASSERTION_COMPLETE = "ASSERTION_COMPLETE"
    AUTO_PAGE_MARKER = "AUTO_PAGE_MARKER"
    # Coordinator only
    ADD_PAGE_MARKER = "ADD_PAGE_MARKER"
