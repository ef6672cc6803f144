"""
Structural mutations and their observers.

Pages change after load: frameworks insert subtrees, remove them, and
attach shadow roots to new elements. All tree edits go through the
helpers in this module so observers registered on the affected scope are
told about added and removed nodes. Records are delivered synchronously,
right after the edit.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

import lxml.html
from lxml.html import HtmlElement

from action_recorder.dom.scope import TreeScope, attach_declarative_shadow_roots, get_root_node
from action_recorder.exceptions import DetachedNodeError

logger = logging.getLogger(__name__)


@dataclass
class MutationRecord:
    """One childList change."""
    target: HtmlElement
    added_nodes: List[HtmlElement] = field(default_factory=list)
    removed_nodes: List[HtmlElement] = field(default_factory=list)


class MutationObserver:
    """
    Observes childList changes in the subtrees of one or more scopes.

    Observation never crosses into shadow trees; each shadow root must be
    observed on its own.
    """

    def __init__(self, callback: Callable[[List[MutationRecord], "MutationObserver"], None]):
        self._callback = callback
        self._scopes: List[TreeScope] = []

    def observe(self, scope: TreeScope) -> None:
        if scope not in self._scopes:
            self._scopes.append(scope)
            scope.register_observer(self)

    def disconnect(self) -> None:
        for scope in self._scopes:
            scope.unregister_observer(self)
        self._scopes = []

    @property
    def observed(self) -> List[TreeScope]:
        return list(self._scopes)

    def deliver(self, records: List[MutationRecord]) -> None:
        self._callback(records, self)


def _notify(scope: Optional[TreeScope], record: MutationRecord) -> None:
    if scope is None:
        return
    for observer in scope.observers:
        try:
            observer.deliver([record])
        except Exception as e:
            logger.error(f"Mutation observer callback raised: {e}", exc_info=True)


def _require_scope(node: HtmlElement) -> TreeScope:
    scope = get_root_node(node)
    if scope is None:
        raise DetachedNodeError("Node is not connected", {"tag": node.tag})
    return scope


def append_child(parent, child: HtmlElement) -> HtmlElement:
    """
    Append ``child`` to ``parent``, an element or a shadow root.

    Declarative shadow templates inside the child are materialized first.
    """
    container = parent.root if isinstance(parent, TreeScope) else parent
    scope = _require_scope(container)
    old_scope = get_root_node(child)
    if old_scope is not None:
        remove(child)
    container.append(child)
    attach_declarative_shadow_roots(child)
    _notify(scope, MutationRecord(target=container, added_nodes=[child]))
    return child


def insert_html(parent, html: str) -> List[HtmlElement]:
    """
    Parse ``html`` and append the resulting elements to ``parent``.

    Returns the inserted top-level elements.
    """
    container = parent.root if isinstance(parent, TreeScope) else parent
    scope = _require_scope(container)
    fragments = lxml.html.fragments_fromstring(html)
    added = []
    for fragment in fragments:
        if isinstance(fragment, str):
            # Leading text goes after the last child, or into the container text
            if len(container):
                container[-1].tail = (container[-1].tail or "") + fragment
            else:
                container.text = (container.text or "") + fragment
            continue
        container.append(fragment)
        added.append(fragment)
    for fragment in added:
        attach_declarative_shadow_roots(fragment)
    if added:
        _notify(scope, MutationRecord(target=container, added_nodes=added))
    return added


def remove(node: HtmlElement) -> None:
    """Detach ``node`` (and its subtree) from its tree, keeping its tail text in place."""
    parent = node.getparent()
    if parent is None:
        return
    scope = get_root_node(node)
    node.drop_tree()
    _notify(scope, MutationRecord(target=parent, removed_nodes=[node]))


def set_text(element: HtmlElement, text: str) -> None:
    """Replace the element's children with a single text node."""
    scope = _require_scope(element)
    removed = [child for child in element]
    for child in removed:
        element.remove(child)
    element.text = text
    if removed:
        _notify(scope, MutationRecord(target=element, removed_nodes=removed))
