"""
Page builder - turn page bundles into live windows.

A page bundle is a plain mapping (usually stored as YAML or JSON) that
describes a window and, recursively, the windows shown in its frames:

    url: https://shop.test/cart
    html: |
      <html><body><iframe name="f1"></iframe></body></html>
    frames:
      - index: 0                      # position among the parent's iframe/frame elements
        url: https://shop.test/frame
        html: <html><body><input id="q"></body></html>

Open and closed shadow roots are written as declarative
``<template shadowrootmode="...">`` children of their host. Bundles are
produced by hand for tests and by the Playwright loader for live pages.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from action_recorder.dom.scope import Document
from action_recorder.dom.window import Window
from action_recorder.exceptions import DOMError

logger = logging.getLogger(__name__)


def parse_document(html: str, url: str = "about:blank") -> Document:
    """Parse markup into a Document with its declarative shadow roots attached."""
    return Document.from_html(html, url=url)


def build_window(bundle: Dict[str, Any], parent: Optional[Window] = None, frame_element=None) -> Window:
    """
    Build a window tree from a page bundle.

    Args:
        bundle: Page bundle mapping
        parent: Parent window when building a frame
        frame_element: The parent's iframe/frame element showing this window

    Returns:
        The window described by ``bundle``

    Raises:
        DOMError: If a frame entry does not match a frame element
    """
    url = bundle.get("url")
    if url is None and frame_element is not None:
        url = "about:srcdoc" if frame_element.get("srcdoc") is not None else frame_element.get("src")
    url = url or "about:blank"

    html = bundle.get("html")
    if html is None and frame_element is not None:
        html = frame_element.get("srcdoc")

    name = bundle.get("name")
    if name is None and frame_element is not None:
        name = frame_element.get("name") or ""

    window = Window(url=url, name=name or "")
    if parent is not None:
        parent.attach_frame(frame_element, window)
    window.load(parse_document(html or "<html><body></body></html>", url=url))

    frame_elements = window.document.frame_elements()
    for position, frame_bundle in enumerate(bundle.get("frames") or []):
        element = _resolve_frame_element(window, frame_bundle, position, frame_elements)
        build_window(frame_bundle, parent=window, frame_element=element)

    logger.debug(f"Built window {window.url} with {len(window.frames)} frame(s)")
    return window


def _resolve_frame_element(window: Window, frame_bundle: Dict[str, Any], position: int, frame_elements):
    if frame_bundle.get("xpath"):
        element = window.document.find_first(frame_bundle["xpath"])
        if element is None or element.tag not in ("iframe", "frame"):
            raise DOMError("Frame xpath does not match a frame element", {"xpath": frame_bundle["xpath"]})
        return element
    index = frame_bundle.get("index", position)
    if not 0 <= index < len(frame_elements):
        raise DOMError(
            "Frame index out of range",
            {"index": index, "frames": len(frame_elements), "url": window.url},
        )
    return frame_elements[index]


def load_bundle(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Read a page bundle from a YAML or JSON file.

    Raises:
        DOMError: If the file does not contain a mapping
    """
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        if path.suffix.lower() == ".json":
            data = json.load(f)
        else:
            data = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise DOMError("Page bundle must be a mapping", {"path": str(path)})
    if "html" not in data and "page" in data:
        data = data["page"]
    return data


def load_window(path: Union[str, Path]) -> Window:
    return build_window(load_bundle(path))
