"""
DOM model - documents, shadow roots, windows, events and mutations.

The recorder runs against this model exactly as it would run inside a
page: one Window per browsing context, one lxml tree per document or
shadow root, capture-phase listeners and structural observers per scope.

Usage:
    from action_recorder.dom import build_window, UserDriver

    window = build_window({"url": "https://a.test/", "html": "<button id='go'>Go</button>"})
    button = window.document.find_first('//button[@id="go"]')
    UserDriver().click(button)
"""

from action_recorder.dom.scope import (
    TreeScope,
    Document,
    ShadowRoot,
    get_root_node,
    owner_document,
    is_connected,
    open_shadow_root,
    parent_node,
    attach_shadow,
    attach_declarative_shadow_roots,
)
from action_recorder.dom.window import Window, origin_of
from action_recorder.dom.events import Event, dispatch_event, event_path, fire
from action_recorder.dom.mutation import (
    MutationObserver,
    MutationRecord,
    append_child,
    insert_html,
    remove,
    set_text,
)
from action_recorder.dom.builder import build_window, load_bundle, load_window, parse_document
from action_recorder.dom.driver import UserDriver

__all__ = [
    "TreeScope",
    "Document",
    "ShadowRoot",
    "get_root_node",
    "owner_document",
    "is_connected",
    "open_shadow_root",
    "parent_node",
    "attach_shadow",
    "attach_declarative_shadow_roots",
    "Window",
    "origin_of",
    "Event",
    "dispatch_event",
    "event_path",
    "fire",
    "MutationObserver",
    "MutationRecord",
    "append_child",
    "insert_html",
    "remove",
    "set_text",
    "build_window",
    "load_bundle",
    "load_window",
    "parse_document",
    "UserDriver",
]
