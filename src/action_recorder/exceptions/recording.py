"""
Recording-related exceptions.
"""

from action_recorder.exceptions.base import ActionRecorderError


class RecordingError(ActionRecorderError):
    """Base exception for recording errors."""
    pass


class RecordingSealedError(RecordingError):
    """
    Attempt to modify a sealed recording.
    
    Recordings are append-only while active and immutable once sealed.
    """
    
    def __init__(self, message: str, recording_id: str | None = None):
        super().__init__(message, {"recording_id": recording_id})
        self.recording_id = recording_id


class RecorderStateError(RecordingError):
    """
    A command is not valid in the recorder's current state.
    
    Raised e.g. when stopping a capture session that never started.
    """
    
    def __init__(self, message: str, state: str | None = None):
        super().__init__(message, {"state": state})
        self.state = state


class TransportError(RecordingError):
    """
    A message could not be delivered to the coordinating process.
    
    Senders treat delivery as fire-and-forget and log this error.
    """
    
    def __init__(self, message: str, message_type: str | None = None):
        super().__init__(message, {"message_type": message_type})
        self.message_type = message_type


class ScenarioError(RecordingError):
    """A scenario file is invalid or one of its steps cannot be executed."""
    
    def __init__(self, message: str, step: int | None = None):
        super().__init__(message, {"step": step} if step is not None else None)
        self.step = step
