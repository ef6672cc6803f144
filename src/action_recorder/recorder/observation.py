"""
Dynamic Observation Manager - the capture session of one window.

A CaptureSession listens, in the capture phase, on the window's document
and on every open shadow root it can find. Shadow roots appear all the
time on modern pages, so discovery keeps running for the whole session:

- at start, the document is scanned for open shadow roots
- every observed tree has a structural observer; added subtrees are
  scanned for hosts
- shadow roots attached while recording are reported by an attach hook

Newly found roots go on a worklist that is processed until empty; a
visited set guarantees each root is handled once.

Text entry is coalesced: ``input`` events only mark the element as
pending, and one input Action with the final value is recorded when the
user leaves the field (focusout, Tab, Enter, a click, a change, or stop).

States:
    IDLE --start--> RECORDING --enter_assertion_mode--> ASSERTION_PENDING
    ASSERTION_PENDING --one assertion / exit_assertion_mode--> RECORDING
    RECORDING or ASSERTION_PENDING --stop--> IDLE
"""

import logging
from collections import deque
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Set

from lxml.html import HtmlElement

from action_recorder.dom import nodes
from action_recorder.dom.events import Event
from action_recorder.dom.mutation import MutationObserver, MutationRecord
from action_recorder.dom.scope import ShadowRoot, TreeScope, open_shadow_root
from action_recorder.dom.window import Window
from action_recorder.exceptions import RecorderStateError
from action_recorder.recorder.models import Action, ActionKind, AssertionType
from action_recorder.recorder.normalizer import ActionNormalizer

logger = logging.getLogger(__name__)

LISTENED_EVENTS = ("click", "input", "change", "keydown", "focusout")

# Input types whose input events are not text entry
UNBUFFERED_INPUT_TYPES = frozenset({
    "checkbox", "radio", "button", "submit", "reset", "file", "image", "hidden",
})

ASSERTION_CURSOR = "cursor: crosshair"


class CaptureState(str, Enum):
    """Capture session states."""
    IDLE = "idle"
    RECORDING = "recording"
    ASSERTION_PENDING = "assertion_pending"


class CaptureSession:
    """
    Observes one window and turns its events into Actions.

    Example:
        >>> session = CaptureSession(window, normalizer)
        >>> session.start()
        >>> driver.click(button)   # recorded through the normalizer
        >>> session.stop()
    """

    def __init__(
        self,
        window: Window,
        normalizer: ActionNormalizer,
        on_assertion_complete: Optional[Callable[[Optional[Action]], None]] = None,
    ):
        self.window = window
        self.normalizer = normalizer
        self.on_assertion_complete = on_assertion_complete
        self.state = CaptureState.IDLE
        self.assertion_type: Optional[AssertionType] = None

        self._observer = MutationObserver(self._on_mutations)
        self._roots: List[TreeScope] = []
        self._visited: Set[TreeScope] = set()
        self._pending: Dict[HtmlElement, int] = {}
        self._last_event: Optional[Event] = None
        self._saved_body_style: Optional[str] = None
        self._handlers = {
            "click": self._handle_click,
            "input": self._handle_input,
            "change": self._handle_change,
            "keydown": self._handle_keydown,
            "focusout": self._handle_focusout,
        }

    @property
    def is_recording(self) -> bool:
        return self.state != CaptureState.IDLE

    @property
    def observed_roots(self) -> List[TreeScope]:
        return list(self._roots)

    @property
    def pending_elements(self) -> List[HtmlElement]:
        return list(self._pending)

    # Lifecycle

    def start(self) -> None:
        """
        Begin capturing.

        Raises:
            RecorderStateError: If the session is not idle
        """
        if self.state != CaptureState.IDLE:
            raise RecorderStateError("Capture session already started", self.state.value)
        document = self.window.document
        if document is None:
            raise RecorderStateError("Window has no document to record", self.state.value)

        self.state = CaptureState.RECORDING
        self._pending.clear()
        self._last_event = None

        self._visited.add(document)
        self._observe_scope(document)
        self.window.add_attach_shadow_hook(self._on_shadow_attached)
        self._process_worklist(self._find_shadow_roots(document.iter_elements()))
        logger.info(f"Recording started in {self.window.url} ({len(self._roots)} root(s) observed)")

    def stop(self) -> None:
        """
        Flush pending input and release every listener, observer and hook.

        Raises:
            RecorderStateError: If the session is idle
        """
        if self.state == CaptureState.IDLE:
            raise RecorderStateError("Capture session is not running", self.state.value)

        self.flush_pending()
        if self.state == CaptureState.ASSERTION_PENDING:
            self._leave_assertion_mode()

        for scope in self._roots:
            for event_type in LISTENED_EVENTS:
                scope.remove_event_listener(event_type, self._handlers[event_type], capture=True)
        self._observer.disconnect()
        self.window.remove_attach_shadow_hook(self._on_shadow_attached)

        self._roots = []
        self._visited = set()
        self._last_event = None
        self.state = CaptureState.IDLE
        logger.info(f"Recording stopped in {self.window.url}")

    # Assertion mode

    def enter_assertion_mode(self, assertion_type=AssertionType.ELEMENT) -> None:
        """
        Make the next click record an assertion instead of a click.

        Raises:
            RecorderStateError: If the session is not recording
        """
        if self.state != CaptureState.RECORDING:
            raise RecorderStateError("Assertion mode needs an active recording", self.state.value)
        self.assertion_type = AssertionType(assertion_type)
        self.state = CaptureState.ASSERTION_PENDING

        body = self.window.document.body
        if body is not None:
            self._saved_body_style = body.get("style")
            existing = (self._saved_body_style or "").strip().rstrip(";")
            body.set("style", f"{existing}; {ASSERTION_CURSOR}" if existing else ASSERTION_CURSOR)
        logger.info(f"Assertion mode enabled ({self.assertion_type.value})")

    def exit_assertion_mode(self) -> None:
        """
        Leave assertion mode without recording anything.

        Raises:
            RecorderStateError: If the session is idle
        """
        if self.state == CaptureState.IDLE:
            raise RecorderStateError("Capture session is not running", self.state.value)
        if self.state == CaptureState.ASSERTION_PENDING:
            self._leave_assertion_mode()

    def _leave_assertion_mode(self) -> None:
        body = self.window.document.body
        if body is not None:
            if self._saved_body_style is None:
                body.attrib.pop("style", None)
            else:
                body.set("style", self._saved_body_style)
        self._saved_body_style = None
        self.assertion_type = None
        self.state = CaptureState.RECORDING
        logger.info("Assertion mode disabled")

    # Root discovery

    def _observe_scope(self, scope: TreeScope) -> None:
        for event_type in LISTENED_EVENTS:
            scope.add_event_listener(event_type, self._handlers[event_type], capture=True)
        self._observer.observe(scope)
        self._roots.append(scope)

    def _find_shadow_roots(self, elements: Iterable[HtmlElement]) -> List[ShadowRoot]:
        found = []
        for el in elements:
            root = open_shadow_root(el)
            if root is not None and root not in self._visited:
                found.append(root)
        return found

    def _process_worklist(self, roots: Iterable[ShadowRoot]) -> None:
        worklist = deque(roots)
        while worklist:
            root = worklist.popleft()
            if root in self._visited:
                continue
            self._visited.add(root)
            self._observe_scope(root)
            logger.debug(f"Found shadow root on <{root.host.tag}>")
            worklist.extend(self._find_shadow_roots(root.iter_elements()))

    def _on_mutations(self, records: List[MutationRecord], observer: MutationObserver) -> None:
        if not self.is_recording:
            return
        added = []
        for record in records:
            for node in record.added_nodes:
                added.extend(el for el in node.iter() if isinstance(el, HtmlElement))
        self._process_worklist(self._find_shadow_roots(added))

    def _on_shadow_attached(self, root: ShadowRoot) -> None:
        if not self.is_recording or root.mode != "open":
            return
        logger.debug(f"Intercepted new shadow root on <{root.host.tag}>")
        self._process_worklist([root])

    # Event handling

    def _accept(self, event: Event) -> Optional[HtmlElement]:
        """Target of an event not handled yet, or None."""
        if not self.is_recording or event is self._last_event:
            return None
        self._last_event = event
        path = event.composed_path()
        if path and isinstance(path[0], HtmlElement):
            return path[0]
        return event.target

    def _handle_click(self, event: Event) -> None:
        element = self._accept(event)
        if element is None:
            return
        self.flush_pending()
        if self.state == CaptureState.ASSERTION_PENDING:
            self._record_assertion(element)
            return
        self.normalizer.record(ActionKind.CLICK, element)

    def _handle_input(self, event: Event) -> None:
        element = self._accept(event)
        if element is None:
            return
        tag = nodes.tag_name(element)
        if tag == "textarea" or (tag == "input" and nodes.input_type(element) not in UNBUFFERED_INPUT_TYPES):
            self._pending.setdefault(element, self.normalizer.clock.now_ms())

    def _handle_change(self, event: Event) -> None:
        element = self._accept(event)
        if element is None:
            return
        if nodes.tag_name(element) == "select":
            self.flush_pending()
            self.normalizer.record(
                ActionKind.SELECT,
                element,
                value=nodes.form_value(element),
                option_label=nodes.selected_option_label(element),
            )
        elif nodes.is_checkable(element):
            self.flush_pending()
            self.normalizer.record(ActionKind.CHECK, element, checked=nodes.is_checked(element))
        elif element in self._pending:
            self.flush_pending(element)

    def _handle_keydown(self, event: Event) -> None:
        element = self._accept(event)
        if element is None:
            return
        if event.key == "Enter":
            self.flush_pending()
            self.normalizer.record(ActionKind.KEYPRESS, element, key="Enter")
        elif event.key == "Tab":
            self.flush_pending()

    def _handle_focusout(self, event: Event) -> None:
        element = self._accept(event)
        if element is not None and element in self._pending:
            self.flush_pending(element)

    def flush_pending(self, element: Optional[HtmlElement] = None) -> List[Action]:
        """Record one input Action per pending element (or only for ``element``)."""
        targets = [element] if element is not None else list(self._pending)
        recorded = []
        for target in targets:
            if self._pending.pop(target, None) is None:
                continue
            value = self.normalizer.extractor.recordable_value(target)
            action = self.normalizer.record(ActionKind.INPUT, target, value=value or "")
            if action is not None:
                recorded.append(action)
        return recorded

    def _record_assertion(self, element: HtmlElement) -> None:
        action = self.normalizer.record_assertion(element, self.assertion_type or AssertionType.ELEMENT)
        self._leave_assertion_mode()
        if self.on_assertion_complete is not None:
            self.on_assertion_complete(action)
