"""
Context Tracer - where an element lives in the frame and shadow tree.

An element can sit inside any number of nested frames and, independently,
inside any number of nested shadow trees. A replayer has to enter each
frame and pierce each shadow host in order, so the tracer records both
chains, outermost first.

Frame identity is resolved per level by pluggable resolvers:

- SameOriginFrameResolver reads the parent document and finds the frame
  element showing the current window.
- HandshakeFrameResolver uses the identity a cooperating parent posted to
  this frame, which is the only way through a cross-origin parent.

When no resolver can identify a level, a blocked sentinel is recorded and
the chain ends there.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Any, Dict, List, Optional, Sequence, Tuple
from urllib.parse import urljoin

from lxml.html import HtmlElement

from action_recorder.dom.scope import get_root_node
from action_recorder.dom.window import Window
from action_recorder.exceptions import CrossOriginAccessError
from action_recorder.recorder.locator import LocatorSynthesizer, xpath_literal
from action_recorder.recorder.models import FrameDescriptor, ShadowHostDescriptor

logger = logging.getLogger(__name__)

# Message type of the identity handshake posted from parent to child frames
FRAME_IDENTITY_MESSAGE = "__ACTION_RECORDER_FRAME_ID__"


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None or not value.strip():
        return None
    return value


def frame_selector(tag: str, name: Optional[str], frame_id: Optional[str], locator: Optional[str], index: int) -> str:
    """Selector a replayer uses to switch into the frame, most reliable first."""
    if name:
        return f"{tag}[name={xpath_literal(name)}]"
    if frame_id:
        return f"{tag}[id={xpath_literal(frame_id)}]"
    return locator or f"(//iframe)[{index + 1}]"


def describe_frame_element(
    frame_element: HtmlElement,
    index: int,
    synthesizer: LocatorSynthesizer,
    base_url: Optional[str] = None,
) -> FrameDescriptor:
    """Build the descriptor of one iframe/frame element."""
    locator = synthesizer.synthesize(frame_element)
    frame_id = _blank_to_none(frame_element.get("id"))
    name = _blank_to_none(frame_element.get("name"))
    src = frame_element.get("src")
    if src and base_url:
        src = urljoin(base_url, src)
    return FrameDescriptor(
        locator=locator.primary,
        full_path=locator.full_path,
        id=frame_id,
        name=name,
        src=src or None,
        title=_blank_to_none(frame_element.get("title")),
        class_name=_blank_to_none(frame_element.get("class")),
        index=index,
        selector=frame_selector(frame_element.tag, name, frame_id, locator.primary, index),
    )


class FrameIdentityResolver(ABC):
    """Identifies the frame element that shows a window, one level at a time."""

    @abstractmethod
    def resolve(self, window: Window, depth: int, accessor: Window) -> Optional[FrameDescriptor]:
        """
        Describe the frame element showing ``window`` in its parent.

        Args:
            window: Window whose frame element is wanted
            depth: Levels already walked from the recording window
            accessor: Window the recording code runs in

        Returns:
            The descriptor, or None if this resolver cannot tell
        """
        pass


class SameOriginFrameResolver(FrameIdentityResolver):
    """Reads the parent document directly; only works when it is same-origin."""

    def __init__(self, synthesizer: Optional[LocatorSynthesizer] = None):
        self.synthesizer = synthesizer or LocatorSynthesizer()

    def find_frame_element(self, window: Window, accessor: Window) -> Tuple[Optional[HtmlElement], int]:
        """
        Frame element showing ``window`` and its index among the parent's frames.

        Raises:
            CrossOriginAccessError: If the parent document cannot be read
        """
        parent_doc = window.parent.get_document(accessor)
        for index, el in enumerate(parent_doc.frame_elements()):
            if parent_doc.content_window(el) is window:
                return el, index
        return None, -1

    def resolve(self, window: Window, depth: int, accessor: Window) -> Optional[FrameDescriptor]:
        try:
            element, index = self.find_frame_element(window, accessor)
        except CrossOriginAccessError:
            return None
        if element is None:
            return None
        return describe_frame_element(element, index, self.synthesizer, base_url=window.parent.url)


class HandshakeFrameResolver(FrameIdentityResolver):
    """
    Uses the frame identity a parent posted to this window.

    The identity describes the recording window's own frame element, so it
    only answers for the first level.
    """

    def __init__(self):
        self.identity: Optional[Dict[str, Any]] = None

    def receive(self, identity: Dict[str, Any]) -> None:
        self.identity = dict(identity)
        logger.debug(f"Received frame identity: {self.identity.get('selector')}")

    def resolve(self, window: Window, depth: int, accessor: Window) -> Optional[FrameDescriptor]:
        if self.identity is None or depth != 0:
            return None
        descriptor = FrameDescriptor.from_dict(self.identity)
        index = descriptor.index if descriptor.index is not None else depth
        return replace(
            descriptor,
            index=index,
            selector=descriptor.selector or f"(//iframe)[{index + 1}]",
            cross_origin_blocked=False,
            note="Detected via parent message",
        )


class ContextTracer:
    """
    Traces the frame chain of a window and the shadow chain of an element.

    Both traces are pure queries.
    """

    def __init__(
        self,
        synthesizer: Optional[LocatorSynthesizer] = None,
        resolvers: Optional[Sequence[FrameIdentityResolver]] = None,
    ):
        self.synthesizer = synthesizer or LocatorSynthesizer()
        self.resolvers: List[FrameIdentityResolver] = list(
            resolvers if resolvers is not None else [SameOriginFrameResolver(self.synthesizer)]
        )

    def trace_frame_context(self, window: Window) -> Tuple[FrameDescriptor, ...]:
        """Frame descriptors from the top window down to ``window``; empty at top level."""
        path: List[FrameDescriptor] = []
        current = window
        depth = 0
        while current.parent is not None:
            descriptor = None
            for resolver in self.resolvers:
                descriptor = resolver.resolve(current, depth, window)
                if descriptor is not None:
                    break
            if descriptor is None:
                logger.debug(f"Frame level {depth} of {window.url} could not be identified")
                path.insert(0, FrameDescriptor(
                    index=depth,
                    selector=f"(//iframe)[{depth + 1}]",
                    cross_origin_blocked=True,
                    note="Cross-origin frame boundary",
                ))
                break
            path.insert(0, descriptor)
            current = current.parent
            depth += 1
        return tuple(path)

    def frame_index(self, window: Window) -> Optional[int]:
        """Index of the window's frame element among its parent's frames."""
        if window.parent is None:
            return None
        for resolver in self.resolvers:
            if isinstance(resolver, SameOriginFrameResolver):
                try:
                    element, index = resolver.find_frame_element(window, window)
                except CrossOriginAccessError:
                    return None
                return index if element is not None else None
        return None

    def trace_shadow_context(self, element: HtmlElement) -> Tuple[ShadowHostDescriptor, ...]:
        """Shadow hosts from the outermost down to the element's own root; empty in light DOM."""
        path: List[ShadowHostDescriptor] = []
        current = element
        scope = get_root_node(current)
        while scope is not None and scope.is_shadow_root:
            host = scope.host
            path.insert(0, ShadowHostDescriptor(
                host_locator=self.synthesizer.synthesize(host).best,
                host_tag=str(host.tag).lower(),
                inner_path=self.synthesizer.scoped_path(current),
                inner_selector=self.synthesizer.inner_selector(current),
                mode=scope.mode,
                host_id=host.get("id") or None,
                host_class=host.get("class") or None,
            ))
            current = host
            scope = get_root_node(current)
        return tuple(path)
