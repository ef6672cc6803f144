"""
Tree scopes - documents and shadow roots.

A page is a set of independent node trees. The document is one tree and
every shadow root is another, attached to a host element but not part of
the host's children. Each tree is a separate lxml tree; a shadow root's
content hangs under a synthetic ``<shadow-root>`` container element.

Every scope keeps its own capture/bubble listeners and mutation
observers, so event dispatch and structural observation never cross a
scope boundary implicitly.

Example:
    >>> doc = Document.from_html("<div id='host'></div>", url="https://a.test/")
    >>> host = doc.evaluate('//div[@id="host"]')[0]
    >>> root = attach_shadow(host, mode="open")
    >>> get_root_node(host) is doc
    True
"""

import logging
import weakref
from typing import Callable, Dict, Iterator, List, Literal, Optional, TYPE_CHECKING

import lxml.html
from lxml import etree
from lxml.html import HtmlElement

from action_recorder.exceptions import DOMError, XPathEvaluationError

if TYPE_CHECKING:
    from action_recorder.dom.window import Window

logger = logging.getLogger(__name__)

ShadowMode = Literal["open", "closed"]

SHADOW_CONTAINER_TAG = "shadow-root"

# Top element of every live tree -> its scope
_SCOPES: "weakref.WeakValueDictionary[HtmlElement, TreeScope]" = weakref.WeakValueDictionary()


class TreeScope:
    """
    Base class for a node tree with its own id space.

    Subclasses decide how XPath expressions are anchored.
    """

    is_shadow_root = False

    def __init__(self, root: HtmlElement):
        self.root = root
        self._listeners: Dict[tuple, List[Callable]] = {}
        self._observers: List = []
        _SCOPES[root] = self

    @property
    def document(self) -> "Document":
        raise NotImplementedError

    def evaluate(self, expression: str) -> List[HtmlElement]:
        """
        Evaluate an XPath expression in this scope.

        Only element results are returned, in document order.

        Raises:
            XPathEvaluationError: If the expression is invalid
        """
        try:
            result = self._xpath(expression)
        except etree.XPathError as e:
            raise XPathEvaluationError(f"Invalid XPath: {e}", expression) from e
        if not isinstance(result, list):
            return []
        return [node for node in result if isinstance(node, HtmlElement)]

    def _xpath(self, expression: str):
        raise NotImplementedError

    def find_first(self, expression: str) -> Optional[HtmlElement]:
        matches = self.evaluate(expression)
        return matches[0] if matches else None

    def iter_elements(self) -> Iterator[HtmlElement]:
        """All elements of this tree, excluding the scope container."""
        for el in self.root.iter():
            if el is self.root and self.is_shadow_root:
                continue
            if isinstance(el, HtmlElement):
                yield el

    # Event listeners

    def add_event_listener(self, event_type: str, callback: Callable, capture: bool = False) -> None:
        listeners = self._listeners.setdefault((event_type, capture), [])
        if callback not in listeners:
            listeners.append(callback)

    def remove_event_listener(self, event_type: str, callback: Callable, capture: bool = False) -> None:
        listeners = self._listeners.get((event_type, capture), [])
        if callback in listeners:
            listeners.remove(callback)

    def listeners(self, event_type: str, capture: bool) -> List[Callable]:
        return list(self._listeners.get((event_type, capture), []))

    def has_listeners(self) -> bool:
        return any(self._listeners.values())

    # Mutation observers

    def register_observer(self, observer) -> None:
        if observer not in self._observers:
            self._observers.append(observer)

    def unregister_observer(self, observer) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    @property
    def observers(self) -> List:
        return list(self._observers)


class Document(TreeScope):
    """
    The document tree of one window.

    The document also owns the bookkeeping that the DOM keeps on elements:
    which element hosts which shadow root, and which frame element shows
    which child window.
    """

    def __init__(self, root: HtmlElement, url: str = "about:blank"):
        super().__init__(root)
        self.url = url
        self.window: Optional["Window"] = None
        self._shadow_roots: Dict[HtmlElement, "ShadowRoot"] = {}
        self._frame_windows: Dict[HtmlElement, "Window"] = {}

    @classmethod
    def from_html(cls, html: str, url: str = "about:blank") -> "Document":
        """Parse markup into a document, materializing declarative shadow roots."""
        root = lxml.html.document_fromstring(html or "<html></html>", ensure_head_body=True)
        document = cls(root, url=url)
        attach_declarative_shadow_roots(root)
        return document

    @property
    def document(self) -> "Document":
        return self

    @property
    def body(self) -> Optional[HtmlElement]:
        return self.root.find("body")

    def _xpath(self, expression: str):
        return self.root.getroottree().xpath(expression)

    # Shadow roots

    def shadow_root_of(self, host: HtmlElement) -> Optional["ShadowRoot"]:
        """Shadow root hosted by ``host`` regardless of mode."""
        return self._shadow_roots.get(host)

    # Frames

    def content_window(self, frame_element: HtmlElement) -> Optional["Window"]:
        return self._frame_windows.get(frame_element)

    def frame_elements(self) -> List[HtmlElement]:
        """iframe and frame elements of the light tree, in document order."""
        return self.evaluate("//iframe | //frame")

    def __repr__(self) -> str:
        return f"Document(url={self.url!r})"


class ShadowRoot(TreeScope):
    """
    A shadow tree attached to a host element.

    XPath expressions written from a document's point of view
    (``//button``, ``/div[1]/span[1]``) are evaluated relative to the
    shadow root.
    """

    is_shadow_root = True

    def __init__(self, host: HtmlElement, mode: ShadowMode, document: Document):
        super().__init__(lxml.html.Element(SHADOW_CONTAINER_TAG))
        self.host = host
        self.mode = mode
        self._document = document

    @property
    def document(self) -> Document:
        return self._document

    def _xpath(self, expression: str):
        expr = expression.lstrip()
        if expr.startswith("/"):
            expr = "." + expr
        elif expr.startswith("(/"):
            expr = "(." + expr[1:]
        return self.root.xpath(expr)

    def children(self) -> List[HtmlElement]:
        return [child for child in self.root if isinstance(child, HtmlElement)]

    def text_content(self) -> str:
        return self.root.text_content()

    def __repr__(self) -> str:
        return f"ShadowRoot(host=<{self.host.tag}>, mode={self.mode!r})"


def get_root_node(node: HtmlElement) -> Optional[TreeScope]:
    """
    Scope (document or shadow root) the node currently belongs to.

    Returns None for detached nodes.
    """
    if node is None:
        return None
    top = node
    parent = top.getparent()
    while parent is not None:
        top = parent
        parent = top.getparent()
    return _SCOPES.get(top)


def owner_document(node: HtmlElement) -> Optional[Document]:
    scope = get_root_node(node)
    return scope.document if scope is not None else None


def is_connected(node: HtmlElement) -> bool:
    return get_root_node(node) is not None


def open_shadow_root(host: HtmlElement) -> Optional[ShadowRoot]:
    """The host's shadow root as script would see it: open roots only."""
    document = owner_document(host)
    if document is None:
        return None
    root = document.shadow_root_of(host)
    if root is None or root.mode != "open":
        return None
    return root


def parent_node(node: HtmlElement):
    """
    Parent of a node, stepping from a shadow tree's top element to its root.

    Returns an element, a scope, or None for detached nodes.
    """
    parent = node.getparent()
    if parent is None:
        return None
    scope = _SCOPES.get(parent)
    if scope is not None and scope.is_shadow_root:
        return scope
    return parent


def attach_shadow(host: HtmlElement, mode: ShadowMode = "open") -> ShadowRoot:
    """
    Attach a new shadow root to a connected element.

    Attach hooks registered on the owning window are notified after the
    root exists.

    Raises:
        DOMError: If the host is detached or already hosts a shadow root
    """
    if mode not in ("open", "closed"):
        raise DOMError(f"Invalid shadow root mode: {mode}", {"mode": mode})
    document = owner_document(host)
    if document is None:
        raise DOMError("Cannot attach a shadow root to a detached element", {"tag": host.tag})
    if document.shadow_root_of(host) is not None:
        raise DOMError("Element already hosts a shadow root", {"tag": host.tag})

    root = ShadowRoot(host, mode, document)
    document._shadow_roots[host] = root
    logger.debug(f"Attached {mode} shadow root to <{host.tag}>")

    if document.window is not None:
        document.window.notify_shadow_attached(root)
    return root


def attach_declarative_shadow_roots(element: HtmlElement) -> List[ShadowRoot]:
    """
    Replace ``<template shadowrootmode>`` elements under ``element`` with real shadow roots.

    Templates are processed in document order so nested declarative roots
    land inside their outer shadow tree.
    """
    created = []
    templates = [
        t for t in element.iter("template")
        if (t.get("shadowrootmode") or t.get("shadowroot") or "").lower() in ("open", "closed")
    ]
    for template in templates:
        host = template.getparent()
        if host is None:
            continue
        mode = (template.get("shadowrootmode") or template.get("shadowroot")).lower()
        document = owner_document(host)
        if document is None or document.shadow_root_of(host) is not None:
            continue
        root = attach_shadow(host, mode)
        root.root.text = template.text
        for child in list(template):
            root.root.append(child)
        template.text = None
        template.drop_tree()
        created.append(root)
    return created
