"""
User driver - performs user gestures on the DOM model.

Each gesture changes element state the way a browser would and fires the
same event sequence a real user produces, so recording code sees
realistic traffic:

- click: focus moves (focusout on the previously focused element), a
  checkbox or radio toggles, then click, and for toggles input + change
- type: one input event per character
- select: option changes, then input + change
- press: keydown with the key name
- blur: focusout on the focused element
"""

import logging
from typing import Optional

from lxml.html import HtmlElement

from action_recorder.dom import nodes
from action_recorder.dom.events import Event, dispatch_event
from action_recorder.dom.scope import is_connected
from action_recorder.exceptions import DetachedNodeError, DOMError

logger = logging.getLogger(__name__)


class UserDriver:
    """
    Drives one page the way a user would.

    Focus is tracked across all windows of the page, since only one
    element in a page has focus at a time.
    """

    def __init__(self):
        self.focused: Optional[HtmlElement] = None

    def _require_connected(self, element: HtmlElement) -> None:
        if element is None or not is_connected(element):
            raise DetachedNodeError("Cannot interact with a detached element")

    def focus(self, element: HtmlElement) -> None:
        if self.focused is element:
            return
        self.blur()
        self.focused = element

    def blur(self) -> None:
        previous, self.focused = self.focused, None
        if previous is not None and is_connected(previous):
            dispatch_event(previous, Event("focusout"))

    def click(self, element: HtmlElement) -> None:
        self._require_connected(element)
        self.focus(element)
        toggled = False
        if nodes.is_checkable(element):
            if nodes.input_type(element) == "checkbox":
                nodes.set_checked(element, not nodes.is_checked(element))
                toggled = True
            elif not nodes.is_checked(element):
                self._uncheck_radio_group(element)
                nodes.set_checked(element, True)
                toggled = True
        dispatch_event(element, Event("click"))
        if toggled:
            dispatch_event(element, Event("input"))
            dispatch_event(element, Event("change"))

    def _uncheck_radio_group(self, element: HtmlElement) -> None:
        name = element.get("name")
        form = element.getparent()
        while form is not None and form.tag != "form":
            form = form.getparent()
        scope_root = form if form is not None else element.getroottree().getroot()
        if not name:
            return
        for other in scope_root.iter("input"):
            if other is not element and nodes.input_type(other) == "radio" and other.get("name") == name:
                nodes.set_checked(other, False)

    def check(self, element: HtmlElement, checked: bool = True) -> None:
        """Click a checkbox or radio only when its state differs."""
        if not nodes.is_checkable(element):
            raise DOMError("Element is not a checkbox or radio", {"tag": element.tag})
        if nodes.is_checked(element) != checked:
            self.click(element)

    def type(self, element: HtmlElement, text: str, clear: bool = True) -> None:
        """Type ``text`` into a form control or contenteditable element."""
        self._require_connected(element)
        self.focus(element)
        editable = nodes.is_content_editable(element) and nodes.form_value(element) is None
        if clear:
            self._set_text_value(element, "", editable)
        for char in text:
            current = element.text_content() if editable else (nodes.form_value(element) or "")
            self._set_text_value(element, current + char, editable)
            dispatch_event(element, Event("input"))

    def _set_text_value(self, element: HtmlElement, value: str, editable: bool) -> None:
        if editable:
            for child in list(element):
                element.remove(child)
            element.text = value
        else:
            nodes.set_form_value(element, value)

    def press(self, element: Optional[HtmlElement] = None, key: str = "Enter") -> None:
        """Press a key on ``element`` (default: the focused element)."""
        target = element if element is not None else self.focused
        self._require_connected(target)
        self.focus(target)
        dispatch_event(target, Event("keydown", key=key))

    def select(self, element: HtmlElement, value: str) -> None:
        """Choose the option with ``value`` in a select element."""
        self._require_connected(element)
        if nodes.tag_name(element) != "select":
            raise DOMError("Element is not a select", {"tag": element.tag})
        self.focus(element)
        try:
            nodes.set_form_value(element, value)
        except ValueError as e:
            raise DOMError(f"No option with value {value!r}", {"value": value}) from e
        dispatch_event(element, Event("input"))
        dispatch_event(element, Event("change"))
