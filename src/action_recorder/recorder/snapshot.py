"""
Element snapshots taken at action time.
"""

import re
from typing import Optional

from lxml.html import HtmlElement

from action_recorder.dom import nodes
from action_recorder.dom.scope import get_root_node, parent_node, TreeScope
from action_recorder.recorder.models import ElementSnapshot
from action_recorder.recorder.values import ValueExtractor

_HIDDEN_STYLE = re.compile(r"(display\s*:\s*none|visibility\s*:\s*hidden)", re.IGNORECASE)


def is_visible(element: HtmlElement) -> bool:
    """
    Best-effort visibility without layout.

    An element is hidden when it, or any shadow-including ancestor, has the
    ``hidden`` attribute or an inline style hiding it. Hidden inputs are
    never visible.
    """
    if nodes.input_type(element) == "hidden":
        return False
    node = element
    while node is not None:
        if isinstance(node, TreeScope):
            node = getattr(node, "host", None)
            continue
        if node.get("hidden") is not None or _HIDDEN_STYLE.search(node.get("style") or ""):
            return False
        node = parent_node(node)
    return True


def take_snapshot(
    element: HtmlElement,
    in_iframe: bool,
    extractor: Optional[ValueExtractor] = None,
    text_limit: int = 100,
) -> ElementSnapshot:
    """Capture the element's properties; the value is masked for password fields."""
    extractor = extractor or ValueExtractor()
    scope = get_root_node(element)
    text = nodes.text_content(element).strip()[:text_limit]
    return ElementSnapshot(
        tag=nodes.tag_name(element),
        type=nodes.input_type(element),
        id=element.get("id") or None,
        name=element.get("name") or None,
        class_list=tuple(nodes.class_list(element)),
        text=text or None,
        placeholder=element.get("placeholder") or None,
        value=extractor.recordable_value(element),
        href=element.get("href") or None,
        role=element.get("role") or None,
        aria_label=element.get("aria-label") or None,
        visible=is_visible(element),
        in_shadow_dom=scope is not None and scope.is_shadow_root,
        in_iframe=in_iframe,
    )
