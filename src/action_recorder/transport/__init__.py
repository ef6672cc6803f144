"""
Transport - messages between frame recorders and the coordinator.
"""

from action_recorder.transport.channel import MessageChannel, LocalChannel
from action_recorder.transport.messages import MessageType
from action_recorder.transport.coordinator import RecordingCoordinator

__all__ = [
    "MessageChannel",
    "LocalChannel",
    "MessageType",
    "RecordingCoordinator",
]
