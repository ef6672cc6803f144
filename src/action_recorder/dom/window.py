"""
Windows - browsing contexts with an origin.

A Window shows one Document. Windows nested through iframe or frame
elements form a tree rooted at the top window. Reading another window's
document is subject to the same-origin policy; windows on different
origins can still exchange messages with ``post_message``.
"""

import itertools
import logging
from typing import Any, Callable, Iterator, List, Optional
from urllib.parse import urlsplit

from lxml.html import HtmlElement

from action_recorder.dom.scope import Document, ShadowRoot
from action_recorder.exceptions import CrossOriginAccessError, DOMError

logger = logging.getLogger(__name__)

_frame_ids = itertools.count()

# Documents at these URLs run in their creator's origin
_INHERITING_URLS = ("", "about:blank", "about:srcdoc")


def origin_of(url: str) -> Optional[str]:
    """
    Serialized origin of a URL, or None for an opaque origin.

    Example:
        >>> origin_of("https://a.test:8443/x?y=1")
        'https://a.test:8443'
    """
    parts = urlsplit(url or "")
    if parts.scheme in ("http", "https", "ws", "wss", "ftp") and parts.hostname:
        default_ports = {"http": 80, "ws": 80, "https": 443, "wss": 443, "ftp": 21}
        host = parts.hostname
        try:
            port = parts.port
        except ValueError:
            port = None
        if port is not None and port != default_ports.get(parts.scheme):
            return f"{parts.scheme}://{host}:{port}"
        return f"{parts.scheme}://{host}"
    if parts.scheme == "file":
        return "file://"
    return None


class Window:
    """
    A browsing context.

    Attributes:
        url: Address of the loaded document
        name: Browsing context name (the frame's name attribute)
        parent: Parent window, None for the top window
        frame_id: Unique id of this browsing context
        document: The loaded document
    """

    def __init__(self, url: str = "about:blank", name: str = "", parent: Optional["Window"] = None):
        self.url = url
        self.name = name
        self.parent = parent
        self.frame_id = next(_frame_ids)
        self.document: Optional[Document] = None
        self._message_listeners: List[Callable[[Any, Optional["Window"]], None]] = []
        self._attach_shadow_hooks: List[Callable[[ShadowRoot], None]] = []

    @classmethod
    def from_html(cls, html: str, url: str = "about:blank", name: str = "") -> "Window":
        window = cls(url=url, name=name)
        window.load(Document.from_html(html, url=url))
        return window

    def load(self, document: Document) -> Document:
        document.window = self
        document.url = self.url
        self.document = document
        return document

    @property
    def origin(self) -> Optional[str]:
        if self.url in _INHERITING_URLS and self.parent is not None:
            return self.parent.origin
        return origin_of(self.url)

    @property
    def top(self) -> "Window":
        window = self
        while window.parent is not None:
            window = window.parent
        return window

    @property
    def is_top(self) -> bool:
        return self.parent is None

    def same_origin(self, other: "Window") -> bool:
        if other is self:
            return True
        mine, theirs = self.origin, other.origin
        return mine is not None and mine == theirs

    def get_document(self, accessor: "Window") -> Document:
        """
        Read this window's document on behalf of script running in ``accessor``.

        Raises:
            CrossOriginAccessError: If the two windows are not same-origin
        """
        if not self.same_origin(accessor):
            raise CrossOriginAccessError(
                "Blocked a frame from accessing a cross-origin frame",
                accessor_origin=accessor.origin,
                target_origin=self.origin,
            )
        if self.document is None:
            raise DOMError("Window has no document", {"url": self.url})
        return self.document

    # Frame tree

    def attach_frame(self, frame_element: HtmlElement, child: "Window") -> "Window":
        """Show ``child`` in one of this document's iframe/frame elements."""
        if self.document is None:
            raise DOMError("Cannot attach a frame to a window without a document")
        if frame_element.tag not in ("iframe", "frame"):
            raise DOMError("Frames can only be shown in iframe or frame elements", {"tag": frame_element.tag})
        child.parent = self
        self.document._frame_windows[frame_element] = child
        return child

    @property
    def frames(self) -> List["Window"]:
        """Child windows in document order of their frame elements."""
        if self.document is None:
            return []
        result = []
        for el in self.document.frame_elements():
            child = self.document.content_window(el)
            if child is not None:
                result.append(child)
        # Frames living inside shadow trees follow the light-tree ones
        for el, child in self.document._frame_windows.items():
            if child not in result:
                result.append(child)
        return result

    def iter_windows(self) -> Iterator["Window"]:
        """This window and all descendants, depth first."""
        yield self
        for child in self.frames:
            yield from child.iter_windows()

    # Messaging

    def add_message_listener(self, callback: Callable[[Any, Optional["Window"]], None]) -> None:
        if callback not in self._message_listeners:
            self._message_listeners.append(callback)

    def remove_message_listener(self, callback: Callable[[Any, Optional["Window"]], None]) -> None:
        if callback in self._message_listeners:
            self._message_listeners.remove(callback)

    def post_message(self, data: Any, source: Optional["Window"] = None) -> None:
        """Deliver a message to this window's listeners; allowed across origins."""
        for callback in list(self._message_listeners):
            callback(data, source)

    # attachShadow interception

    def add_attach_shadow_hook(self, hook: Callable[[ShadowRoot], None]) -> None:
        if hook not in self._attach_shadow_hooks:
            self._attach_shadow_hooks.append(hook)

    def remove_attach_shadow_hook(self, hook: Callable[[ShadowRoot], None]) -> None:
        if hook in self._attach_shadow_hooks:
            self._attach_shadow_hooks.remove(hook)

    def notify_shadow_attached(self, root: ShadowRoot) -> None:
        for hook in list(self._attach_shadow_hooks):
            hook(root)

    def __repr__(self) -> str:
        return f"Window(url={self.url!r}, name={self.name!r}, frame_id={self.frame_id})"
