"""
Human-readable action descriptions.

Descriptions are for people reading a recording ("Clicked the "Save"
button"). Nothing parses them back.
"""

from typing import Optional

from lxml.html import HtmlElement

from action_recorder.dom import nodes
from action_recorder.recorder.models import ActionKind, PASSWORD_MASK


def element_name(element: HtmlElement, text_limit: int = 30) -> str:
    """Friendly name of an element, from its text or its most telling attribute."""
    text = nodes.text_content(element).strip()[:text_limit]
    if 0 < len(text) < text_limit:
        return f'"{text}"'
    if element.get("aria-label"):
        return f'"{element.get("aria-label")}"'
    if element.get("placeholder"):
        return f'"{element.get("placeholder")}" field'
    if element.get("title"):
        return f'"{element.get("title")}"'
    if element.get("name"):
        return f'"{element.get("name")}" field'
    if element.get("id"):
        return f"#{element.get('id')}"
    return nodes.tag_name(element)


def describe(
    kind: ActionKind,
    element: HtmlElement,
    value: Optional[str] = None,
    checked: Optional[bool] = None,
    key: Optional[str] = None,
    assertion_type: Optional[str] = None,
    expected_value: Optional[str] = None,
    text_limit: int = 30,
) -> str:
    tag = nodes.tag_name(element)
    kind_of_input = nodes.input_type(element)
    name = element_name(element, text_limit)

    if kind == ActionKind.CLICK:
        if tag == "button" or element.get("role") == "button":
            return f"Clicked the {name} button"
        if tag == "a":
            return f"Clicked the {name} link"
        if tag == "input" and kind_of_input in ("checkbox", "radio"):
            return f"Clicked the {name} {kind_of_input}"
        if tag in ("input", "textarea"):
            return f"Clicked on {name} input"
        return f"Clicked on {name}"

    if kind == ActionKind.INPUT:
        shown = PASSWORD_MASK if nodes.is_password_input(element) else (value or "")
        return f'Typed "{shown}" in {name}'

    if kind == ActionKind.SELECT:
        return f'Selected "{value or ""}" from {name} dropdown'

    if kind == ActionKind.CHECK:
        return f"Checked {name}" if checked else f"Unchecked {name}"

    if kind == ActionKind.KEYPRESS:
        return f"Pressed {key} key on {name}"

    if kind == ActionKind.ASSERTION:
        description = f"Asserted {name} {assertion_type or 'exists'}"
        if expected_value:
            description += f' with value "{expected_value[:50]}"'
        return description

    return f"{kind.value} on {name}"
