"""
Recording coordinator - owns the Recording for one page.

Frame recorders report every Action to the coordinator over a channel.
The coordinator stamps each Action with the sending frame and URL and
appends it to the current Recording. It also broadcasts start and stop
to all registered frame recorders, records page markers and relays
assertion completion to subscribers.

On stop, frames are told to stop first so their pending text entry is
flushed into the Recording before it is sealed.
"""

import logging
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Protocol

from action_recorder.recorder.models import Action, ActionKind, Recording
from action_recorder.transport.channel import LocalChannel
from action_recorder.transport.messages import MessageType
from action_recorder.utils.clock import SystemClock

logger = logging.getLogger(__name__)


class FrameEndpoint(Protocol):
    """Anything that accepts frame commands (a FrameRecorder)."""

    frame_id: int

    def handle_message(self, message: Dict[str, Any]) -> Dict[str, Any]:
        ...


class RecordingCoordinator:
    """
    Central recording state.

    Example:
        >>> coordinator = RecordingCoordinator()
        >>> recorders = install_recorders(window, coordinator.channel)
        >>> coordinator.register_frames(recorders)
        >>> coordinator.start("Checkout", url=window.url)
        >>> ...
        >>> recording = coordinator.stop()
    """

    def __init__(self, clock=None):
        self.clock = clock or SystemClock()
        self.channel = LocalChannel(self.handle_message)
        self.recording: Optional[Recording] = None
        self.is_recording = False
        self._frames: List[FrameEndpoint] = []
        self._on_action: List[Callable[[Action], None]] = []
        self._on_assertion_complete: List[Callable[[], None]] = []

    # Subscribers

    def on_action(self, callback: Callable[[Action], None]) -> None:
        """Register a callback for every appended Action."""
        self._on_action.append(callback)

    def on_assertion_complete(self, callback: Callable[[], None]) -> None:
        self._on_assertion_complete.append(callback)

    # Frames

    def register_frame(self, frame: FrameEndpoint) -> None:
        """Register a frame recorder; it joins a recording already in progress."""
        if frame in self._frames:
            return
        self._frames.append(frame)
        if self.is_recording:
            frame.handle_message({"type": MessageType.START_RECORDING.value})

    def register_frames(self, frames) -> None:
        for frame in frames:
            self.register_frame(frame)

    def unregister_frame(self, frame: FrameEndpoint) -> None:
        if frame in self._frames:
            self._frames.remove(frame)

    @property
    def frames(self) -> List[FrameEndpoint]:
        return list(self._frames)

    def broadcast(self, message: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Send a command to every registered frame, collecting replies."""
        replies = []
        for frame in list(self._frames):
            replies.append(frame.handle_message(message))
        return replies

    # Recording control

    def start(self, name: Optional[str] = None, url: Optional[str] = None) -> Recording:
        now = self.clock.now_ms()
        timestamp = datetime.fromtimestamp(now / 1000).strftime("%b %d %H:%M")
        self.recording = Recording(
            id=f"rec_{now}",
            name=name or f"Recording - {timestamp}",
            url=url,
            start_time=now,
        )
        self.is_recording = True
        self.broadcast({"type": MessageType.START_RECORDING.value})
        logger.info(f"Recording started: {self.recording.name}")
        return self.recording

    def stop(self) -> Optional[Recording]:
        if self.recording is None:
            return None
        self.broadcast({"type": MessageType.STOP_RECORDING.value})
        self.is_recording = False
        self.recording.seal(self.clock.now_ms())
        logger.info(f"Recording stopped with {len(self.recording)} actions")
        return self.recording

    def add_page_marker(self, page_name: str) -> Optional[Action]:
        if not self.is_recording or not page_name or self.recording is None:
            return None
        action = Action(
            kind=ActionKind.PAGE_MARKER,
            timestamp=self.clock.now_ms(),
            page_name=page_name,
            description=page_name,
        )
        self._append(action)
        return action

    def _append(self, action: Action) -> None:
        self.recording.append(action)
        for callback in self._on_action:
            callback(action)

    # Messages

    def status(self) -> Dict[str, Any]:
        return {
            "isRecording": self.is_recording,
            "recordingId": self.recording.id if self.recording is not None else None,
            "name": self.recording.name if self.recording is not None else None,
            "actionCount": len(self.recording) if self.recording is not None else 0,
        }

    def handle_message(self, message: Dict[str, Any], sender: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Handle one message from a frame recorder or a controlling UI."""
        sender = sender or {}
        message_type = message.get("type")

        if message_type == MessageType.START_RECORDING:
            recording = self.start(message.get("name"), message.get("url"))
            return {"success": True, "recordingId": recording.id}

        if message_type == MessageType.STOP_RECORDING:
            recording = self.stop()
            return {"success": True, "recording": recording.to_dict() if recording is not None else None}

        if message_type == MessageType.GET_STATUS:
            return self.status()

        if message_type == MessageType.ACTION_RECORDED:
            if self.is_recording and self.recording is not None:
                action = Action.from_dict(message["action"])
                action = replace(
                    action,
                    frame_id=sender.get("frameId", action.frame_id),
                    url=sender.get("url", action.url),
                )
                self._append(action)
            return {"success": True}

        if message_type in (MessageType.ADD_PAGE_MARKER, MessageType.AUTO_PAGE_MARKER):
            page_name = message.get("pageName")
            markers = self.recording.page_markers if self.recording is not None else []
            # The monitor repeats itself when several frames carry the page header
            if message_type == MessageType.AUTO_PAGE_MARKER and markers and markers[-1].page_name == page_name:
                return {"success": True}
            self.add_page_marker(page_name)
            return {"success": True}

        if message_type == MessageType.ASSERTION_COMPLETE:
            # One assertion ends assertion mode in every frame
            self.broadcast({"type": MessageType.EXIT_ASSERTION_MODE.value})
            for callback in self._on_assertion_complete:
                callback()
            return {"success": True}

        return {"error": "Unknown message type"}
