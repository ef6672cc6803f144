"""
Element property helpers.

lxml exposes markup; these helpers answer the questions script would ask
of a live element (``value``, ``checked``, ``isContentEditable``...).
"""

from typing import List, Optional

from lxml.html import HtmlElement, InputElement, SelectElement, TextareaElement

FORM_CONTROL_TAGS = ("input", "textarea", "select")


def tag_name(element: HtmlElement) -> str:
    return str(element.tag).lower()


def input_type(element: HtmlElement) -> Optional[str]:
    """Lower-cased ``type`` of input and button elements, None for others."""
    tag = tag_name(element)
    if tag == "input":
        return (element.get("type") or "text").lower()
    if tag == "button":
        return (element.get("type") or "submit").lower()
    if tag == "select":
        return "select-multiple" if element.get("multiple") is not None else "select-one"
    if tag == "textarea":
        return "textarea"
    return None


def is_password_input(element: Optional[HtmlElement]) -> bool:
    return element is not None and tag_name(element) == "input" and input_type(element) == "password"


def is_checkable(element: HtmlElement) -> bool:
    return tag_name(element) == "input" and input_type(element) in ("checkbox", "radio")


def form_value(element: HtmlElement) -> Optional[str]:
    """
    The element's current ``value`` property, or None when it has none.

    Checkboxes report their value attribute (``"on"`` by default) whatever
    their checked state, as browsers do.
    """
    if isinstance(element, InputElement):
        if is_checkable(element):
            return element.get("value", "on")
        return element.get("value") or ""
    if isinstance(element, TextareaElement):
        return element.value or ""
    if isinstance(element, SelectElement):
        if element.multiple:
            selected = list(element.value)
            return selected[0] if selected else ""
        return element.value or ""
    if tag_name(element) in ("button", "option", "output", "li", "meter", "progress", "param", "data"):
        return element.get("value") or ""
    return None


def set_form_value(element: HtmlElement, value: str) -> None:
    if isinstance(element, SelectElement) and element.multiple:
        element.value = [value]
    elif isinstance(element, (InputElement, TextareaElement, SelectElement)) and not is_checkable(element):
        element.value = value
    else:
        element.set("value", value)


def is_checked(element: HtmlElement) -> bool:
    return is_checkable(element) and element.get("checked") is not None


def set_checked(element: HtmlElement, checked: bool) -> None:
    if checked:
        element.set("checked", "checked")
    elif "checked" in element.attrib:
        del element.attrib["checked"]


def selected_option_label(element: HtmlElement) -> str:
    """Visible text of the selected option of a select element."""
    if not isinstance(element, SelectElement):
        return ""
    value = form_value(element)
    for option in element.iter("option"):
        option_value = option.get("value")
        if option_value is None:
            option_value = (option.text or "").strip()
        if option_value == value:
            return option.text_content().strip()
    return ""


def is_content_editable(element: HtmlElement) -> bool:
    """Whether the element is editable through a contenteditable ancestor-or-self."""
    node = element
    while node is not None:
        value = node.get("contenteditable")
        if value is not None:
            return value.strip().lower() in ("", "true", "plaintext-only")
        node = node.getparent()
    return False


def text_content(element: HtmlElement) -> str:
    return element.text_content() or ""


def class_list(element: HtmlElement) -> List[str]:
    return (element.get("class") or "").split()


def same_tag_siblings(element: HtmlElement) -> List[HtmlElement]:
    """The element and its siblings sharing its tag, in order."""
    parent = element.getparent()
    if parent is None:
        return [element]
    return [child for child in parent.iterchildren(element.tag)]
