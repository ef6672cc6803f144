"""
Frame recorder - the recording endpoint living in one window.

Every window of a page (the top window and each frame) gets its own
FrameRecorder. It answers commands sent by the coordinator, owns at most
one CaptureSession at a time, and reports Actions back over the channel.
A session, its normalizer and its emitter are created on start and
discarded on stop, so no state leaks from one recording into the next.

Frame identity for cross-origin frames arrives by message: the top
window's recorder, on COLLECT_IFRAME_INFO, describes each of its frame
elements and posts the description into the child window.
"""

import logging
from typing import Any, Dict, List, Optional

from action_recorder.config.settings import Settings
from action_recorder.dom.window import Window
from action_recorder.exceptions import RecorderStateError, TransportError
from action_recorder.recorder.context import (
    FRAME_IDENTITY_MESSAGE,
    ContextTracer,
    HandshakeFrameResolver,
    SameOriginFrameResolver,
    describe_frame_element,
)
from action_recorder.recorder.emitter import ActionEmitter
from action_recorder.recorder.locator import LocatorSynthesizer
from action_recorder.recorder.models import Action, AssertionType
from action_recorder.recorder.normalizer import ActionNormalizer
from action_recorder.recorder.observation import CaptureSession, CaptureState
from action_recorder.recorder.page_monitor import PageMonitor
from action_recorder.transport.channel import MessageChannel
from action_recorder.transport.messages import MessageType
from action_recorder.utils.clock import SystemClock

logger = logging.getLogger(__name__)

# Posted into a window to stop its recorder without the channel
STOP_MESSAGE = "__ACTION_RECORDER_STOP__"


class FrameRecorder:
    """
    Command endpoint for one window.

    Example:
        >>> recorder = FrameRecorder(window, channel)
        >>> recorder.handle_message({"type": "START_RECORDING"})
        {'success': True}
    """

    def __init__(
        self,
        window: Window,
        channel: MessageChannel,
        settings: Optional[Settings] = None,
        clock=None,
    ):
        self.window = window
        self.channel = channel
        self.settings = settings or Settings()
        self.clock = clock or SystemClock()
        self.synthesizer = LocatorSynthesizer(self.settings.locator)
        self.handshake = HandshakeFrameResolver()

        self.session: Optional[CaptureSession] = None
        self.normalizer: Optional[ActionNormalizer] = None
        self.emitter: Optional[ActionEmitter] = None
        self.monitor = PageMonitor(window, self._on_page_change, self.settings.monitor.page_xpath)

        window.add_message_listener(self._on_window_message)

    @property
    def frame_id(self) -> int:
        return self.window.frame_id

    @property
    def sender(self) -> Dict[str, Any]:
        return {"frameId": self.window.frame_id, "url": self.window.url}

    @property
    def is_recording(self) -> bool:
        return self.session is not None and self.session.is_recording

    @property
    def state(self) -> CaptureState:
        return self.session.state if self.session is not None else CaptureState.IDLE

    def _require_session(self) -> CaptureSession:
        if self.session is None:
            raise RecorderStateError("Not recording", CaptureState.IDLE.value)
        return self.session

    # Commands

    def handle_message(self, message: Dict[str, Any]) -> Dict[str, Any]:
        """
        Handle one command message and return the reply.

        Commands that need a running session answer with an error payload
        instead of raising.
        """
        message_type = message.get("type")
        try:
            if message_type == MessageType.START_RECORDING:
                self.start_recording()
                return {"success": True}
            if message_type == MessageType.STOP_RECORDING:
                self.stop_recording()
                return {"success": True}
            if message_type == MessageType.ENTER_ASSERTION_MODE:
                self._require_session().enter_assertion_mode(
                    message.get("assertionType") or AssertionType.ELEMENT.value
                )
                return {"success": True}
            if message_type == MessageType.EXIT_ASSERTION_MODE:
                self._require_session().exit_assertion_mode()
                return {"success": True}
            if message_type == MessageType.GET_STATUS:
                return self.status()
            if message_type == MessageType.COLLECT_IFRAME_INFO:
                return {"success": True, "frames": self.collect_iframe_info()}
            if message_type == MessageType.SET_FRAME_IDENTIFIER:
                self.handshake.receive(message.get("iframeInfo") or {})
                return {"success": True}
            if message_type == MessageType.START_PAGE_MONITOR:
                self.monitor.start()
                return {"success": True}
            if message_type == MessageType.STOP_PAGE_MONITOR:
                self.monitor.stop()
                return {"success": True}
            if message_type == MessageType.GET_CURRENT_PAGE:
                return {"success": True, "pageName": self.monitor.current_page()}
        except (RecorderStateError, ValueError) as e:
            logger.warning(f"Command {message_type} rejected: {e}")
            return {"success": False, "error": str(e)}
        return {"success": False, "error": "Unknown message type"}

    def status(self) -> Dict[str, Any]:
        return {
            "isRecording": self.is_recording,
            "isAssertionMode": self.state == CaptureState.ASSERTION_PENDING,
            "state": self.state.value,
            "isMainFrame": self.window.is_top,
            "frameId": self.window.frame_id,
            "url": self.window.url,
        }

    def start_recording(self) -> None:
        """Start a fresh session; a no-op while already recording."""
        if self.session is not None:
            return
        self.emitter = ActionEmitter(
            self.channel,
            sender=self.sender,
            retry_on_failure=self.settings.capture.retry_on_transport_failure,
        )
        tracer = ContextTracer(
            self.synthesizer,
            resolvers=[SameOriginFrameResolver(self.synthesizer), self.handshake],
        )
        self.normalizer = ActionNormalizer(
            self.window,
            self.emitter,
            settings=self.settings.capture,
            clock=self.clock,
            tracer=tracer,
        )
        self.session = CaptureSession(self.window, self.normalizer, on_assertion_complete=self._on_assertion_complete)
        self.session.start()
        if self.settings.monitor.enabled:
            self.monitor.start()

    def stop_recording(self) -> None:
        """Stop and discard the session; a no-op while idle."""
        if self.session is None:
            return
        self.session.stop()
        self.monitor.stop()
        self.session = None
        self.normalizer = None
        self.emitter = None

    def sync_status(self) -> bool:
        """Join a recording already running at the coordinator (late-loaded frames)."""
        if self.is_recording:
            return True
        try:
            status = self.channel.send({"type": MessageType.GET_STATUS.value}, self.sender)
        except TransportError as e:
            logger.debug(f"Coordinator not reachable: {e}")
            return False
        if status.get("isRecording"):
            self.start_recording()
        return self.is_recording

    # Frame identity handshake

    def collect_iframe_info(self) -> int:
        """Post its frame identity into every child window; main frame only."""
        if not self.window.is_top or self.window.document is None:
            return 0
        document = self.window.document
        posted = 0
        for index, element in enumerate(document.frame_elements()):
            child = document.content_window(element)
            if child is None:
                continue
            descriptor = describe_frame_element(element, index, self.synthesizer, base_url=self.window.url)
            child.post_message(
                {"type": FRAME_IDENTITY_MESSAGE, "iframeInfo": descriptor.to_dict()},
                source=self.window,
            )
            posted += 1
        logger.info(f"Posted frame identity to {posted} frame(s)")
        return posted

    def _on_window_message(self, data: Any, source: Optional[Window]) -> None:
        if not isinstance(data, dict):
            return
        if data.get("type") == FRAME_IDENTITY_MESSAGE:
            self.handshake.receive(data.get("iframeInfo") or {})
        elif data.get("type") == STOP_MESSAGE:
            self.stop_recording()

    # Outbound events

    def _on_assertion_complete(self, action: Optional[Action]) -> None:
        if self.emitter is not None:
            self.emitter.notify(MessageType.ASSERTION_COMPLETE)

    def _on_page_change(self, page_name: str) -> None:
        if self.emitter is not None:
            self.emitter.notify(MessageType.AUTO_PAGE_MARKER, pageName=page_name, fromIframe=not self.window.is_top)

    def check_page(self) -> Optional[str]:
        """One page-monitor poll; only reports while recording."""
        if not self.is_recording:
            return None
        return self.monitor.check()

    def detach(self) -> None:
        """Stop recording and stop listening to window messages."""
        self.stop_recording()
        self.window.remove_message_listener(self._on_window_message)


def install_recorders(
    top: Window,
    channel: MessageChannel,
    settings: Optional[Settings] = None,
    clock=None,
) -> List[FrameRecorder]:
    """One FrameRecorder per window of the page, top window first."""
    return [FrameRecorder(window, channel, settings=settings, clock=clock) for window in top.iter_windows()]
