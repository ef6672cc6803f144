"""
Event dispatch across tree scopes.

Events travel a path from their target up to the document. Listeners
registered for the capture phase run outermost first, then bubble-phase
listeners run innermost first. At a shadow root the path continues to the
host only for composed events, and every listener sees ``event.target``
retargeted so that it never points into a shadow tree the listener cannot
see. ``composed_path()`` likewise hides nodes inside closed shadow trees.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Union

from lxml.html import HtmlElement

from action_recorder.dom.scope import ShadowRoot, TreeScope, get_root_node

logger = logging.getLogger(__name__)

# UI events cross shadow boundaries; change does not
COMPOSED_EVENTS = frozenset({
    "click", "dblclick", "mousedown", "mouseup",
    "input", "beforeinput",
    "keydown", "keyup",
    "focusin", "focusout",
})

PathNode = Union[HtmlElement, TreeScope]


@dataclass
class Event:
    """
    A dispatched DOM event.

    Attributes:
        type: Event type (click, input, change, keydown, focusout)
        key: Key name for keyboard events
        bubbles: Whether bubble-phase listeners run
        composed: Whether the event leaves shadow trees
    """
    type: str
    key: Optional[str] = None
    bubbles: bool = True
    composed: Optional[bool] = None
    detail: dict = field(default_factory=dict)

    def __post_init__(self):
        if self.composed is None:
            self.composed = self.type in COMPOSED_EVENTS
        self.target: Optional[HtmlElement] = None
        self.current_target: Optional[TreeScope] = None
        self._path: List[PathNode] = []
        self._stopped = False

    def stop_propagation(self) -> None:
        self._stopped = True

    def composed_path(self) -> List[PathNode]:
        """Event path as visible from the current listener."""
        if self.current_target is None:
            return []
        return [node for node in self._path if not _hidden_from(node, self.current_target)]


def _scope_of(node: PathNode) -> Optional[TreeScope]:
    if isinstance(node, TreeScope):
        return node
    return get_root_node(node)


def _scope_chain(scope: TreeScope) -> List[TreeScope]:
    """``scope`` and every scope enclosing it, innermost first."""
    chain = [scope]
    while scope is not None and scope.is_shadow_root:
        scope = get_root_node(scope.host)
        if scope is not None:
            chain.append(scope)
    return chain


def _hidden_from(node: PathNode, listener: TreeScope) -> bool:
    scope = _scope_of(node)
    visible_scopes = _scope_chain(listener)
    while scope is not None and scope.is_shadow_root and scope not in visible_scopes:
        if scope.mode == "closed":
            return True
        scope = get_root_node(scope.host)
    return False


def _retarget(target: HtmlElement, listener: TreeScope) -> HtmlElement:
    visible_scopes = _scope_chain(listener)
    scope = get_root_node(target)
    while scope is not None and scope.is_shadow_root and scope not in visible_scopes:
        target = scope.host
        scope = get_root_node(target)
    return target


def event_path(target: HtmlElement, composed: bool) -> List[PathNode]:
    """Nodes the event visits, from the target outwards."""
    path: List[PathNode] = []
    node = target
    while node is not None:
        path.append(node)
        parent = node.getparent()
        if parent is not None:
            scope = get_root_node(node)
            if scope is not None and scope.is_shadow_root and parent is scope.root:
                # Top-level node of a shadow tree
                node = None
                path.append(scope)
                if composed and isinstance(scope, ShadowRoot):
                    node = scope.host
                continue
            node = parent
            continue
        scope = get_root_node(node)
        if scope is not None:
            path.append(scope)
        node = None
    return path


def dispatch_event(target: HtmlElement, event: Event) -> Event:
    """
    Dispatch ``event`` at ``target``.

    Returns the event. Detached targets have an empty path and reach no
    listener.
    """
    event._path = event_path(target, bool(event.composed))
    scopes = [node for node in event._path if isinstance(node, TreeScope)]

    for scope in reversed(scopes):
        _invoke(scope, event, target, capture=True)
        if event._stopped:
            return event

    for scope in scopes:
        if not event.bubbles and scope is not get_root_node(target):
            break
        _invoke(scope, event, target, capture=False)
        if event._stopped:
            break

    event.current_target = None
    event.target = target
    return event


def _invoke(scope: TreeScope, event: Event, target: HtmlElement, capture: bool) -> None:
    event.current_target = scope
    event.target = _retarget(target, scope)
    for callback in scope.listeners(event.type, capture):
        try:
            callback(event)
        except Exception as e:  # a throwing listener never aborts dispatch
            logger.error(f"Listener for '{event.type}' raised: {e}", exc_info=True)


def fire(target: HtmlElement, event_type: str, **kwargs: Any) -> Event:
    """Shorthand: build an Event and dispatch it."""
    return dispatch_event(target, Event(event_type, **kwargs))
