"""
Action emission to the transport.
"""

import logging
from typing import Any, Dict, Optional

from action_recorder.exceptions import TransportError
from action_recorder.recorder.models import Action
from action_recorder.transport.channel import MessageChannel
from action_recorder.transport.messages import MessageType

logger = logging.getLogger(__name__)


class ActionEmitter:
    """
    Sends recorded Actions over a message channel.

    Delivery never raises. When a delivery fails the emitter asks the
    receiver for its status and, if it reports an active recording,
    retries exactly once.
    """

    def __init__(
        self,
        channel: MessageChannel,
        sender: Optional[Dict[str, Any]] = None,
        retry_on_failure: bool = True,
    ):
        self.channel = channel
        self.sender = sender or {}
        self.retry_on_failure = retry_on_failure

    def emit(self, action: Action) -> bool:
        """Send an ACTION_RECORDED message; returns whether it was delivered."""
        message = {"type": MessageType.ACTION_RECORDED.value, "action": action.to_dict()}
        try:
            self.channel.send(message, self.sender)
            return True
        except TransportError as e:
            logger.error(f"Send error: {e}")

        if not self.retry_on_failure:
            return False

        try:
            status = self.channel.send({"type": MessageType.GET_STATUS.value}, self.sender)
            if status.get("isRecording"):
                self.channel.send(message, self.sender)
                logger.debug(f"Redelivered {action.kind.value} action after reconnect")
                return True
        except TransportError as e:
            logger.debug(f"Retry abandoned: {e}")
        return False

    def notify(self, message_type: MessageType, **payload: Any) -> bool:
        """Send a one-off event message, ignoring delivery failures."""
        message = {"type": message_type.value, **payload}
        try:
            self.channel.send(message, self.sender)
            return True
        except TransportError as e:
            logger.debug(f"Could not deliver {message_type.value}: {e}")
            return False
