"""
Message channels between frame recorders and the coordinator.

Delivery is request/response: ``send`` returns the receiver's reply or
raises TransportError when nobody is listening. Senders treat delivery as
fire-and-forget and never let a failure escape into page event handling.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

from action_recorder.exceptions import TransportError

logger = logging.getLogger(__name__)

Message = Dict[str, Any]
Handler = Callable[[Message, Dict[str, Any]], Optional[Message]]


class MessageChannel(ABC):
    """Abstract message channel."""

    @abstractmethod
    def send(self, message: Message, sender: Optional[Dict[str, Any]] = None) -> Message:
        """
        Deliver a message and return the reply.

        Args:
            message: Message with a ``type`` key
            sender: Sender details (``frameId``, ``url``)

        Raises:
            TransportError: If the message could not be delivered
        """
        pass


class LocalChannel(MessageChannel):
    """
    In-process channel delivering straight to a handler.

    The channel can be disconnected, or told to fail the next deliveries,
    to reproduce a receiver that went away (an unloaded service worker).

    Example:
        >>> channel = LocalChannel(lambda message, sender: {"success": True})
        >>> channel.send({"type": "GET_STATUS"})
        {'success': True}
    """

    def __init__(self, handler: Optional[Handler] = None):
        self._handler = handler
        self._failures_pending = 0
        self.history: List[Message] = []

    @property
    def connected(self) -> bool:
        return self._handler is not None

    def connect(self, handler: Handler) -> None:
        self._handler = handler

    def disconnect(self) -> None:
        self._handler = None

    def fail_next(self, count: int = 1) -> None:
        """Make the next ``count`` deliveries fail."""
        self._failures_pending += count

    def send(self, message: Message, sender: Optional[Dict[str, Any]] = None) -> Message:
        message_type = message.get("type")
        if self._failures_pending > 0:
            self._failures_pending -= 1
            raise TransportError("Could not establish connection. Receiving end does not exist.", message_type)
        if self._handler is None:
            raise TransportError("No receiver connected", message_type)
        self.history.append(message)
        reply = self._handler(message, dict(sender or {}))
        return reply or {}
