"""
Value Extractor - the user-visible value of an element.

Custom components often wrap the real form control: the value lives on an
``<input>`` inside the component's shadow root, or on a light-DOM input
nested in a custom element. The extractor looks, in order, at:

1. the element's own form value
2. the first input, textarea or ``[contenteditable="true"]`` element with
   a value inside the element's open shadow root
3. for custom elements (hyphenated tags), a nested light-DOM input or textarea
4. the text of a contenteditable element

Values that came from a password field are masked before they are recorded.
"""

import logging
from typing import Optional, Tuple

from lxml.html import HtmlElement

from action_recorder.dom import nodes
from action_recorder.dom.scope import open_shadow_root
from action_recorder.recorder.models import PASSWORD_MASK

logger = logging.getLogger(__name__)

SHADOW_VALUE_QUERY = '//input | //textarea | //*[@contenteditable="true"]'
NESTED_INPUT_QUERY = ".//input | .//textarea"


def _own_value(element: HtmlElement) -> Optional[str]:
    value = nodes.form_value(element)
    if value is None and element.get("contenteditable", "").strip().lower() == "true":
        value = nodes.text_content(element)
    return value


class ValueExtractor:
    """Finds the value a user sees for an element."""

    def resolve(self, element: Optional[HtmlElement]) -> Tuple[Optional[str], Optional[HtmlElement]]:
        """
        Value of ``element`` and the element it was read from.

        Returns:
            (value, source) or (None, None) when no value is found
        """
        if element is None:
            return None, None

        value = nodes.form_value(element)
        if value:
            return value, element

        shadow_root = open_shadow_root(element)
        if shadow_root is not None:
            for inner in shadow_root.evaluate(SHADOW_VALUE_QUERY):
                inner_value = _own_value(inner)
                if inner_value:
                    logger.debug(f"Found inner value in shadow root of <{element.tag}>")
                    return inner_value, inner

        if "-" in nodes.tag_name(element):
            for inner in element.xpath(NESTED_INPUT_QUERY):
                inner_value = nodes.form_value(inner)
                if inner_value:
                    return inner_value, inner

        if nodes.is_content_editable(element):
            return nodes.text_content(element), element

        return None, None

    def extract_value(self, element: Optional[HtmlElement]) -> Optional[str]:
        """Unmasked value of ``element``, or None."""
        value, _ = self.resolve(element)
        return value

    def recordable_value(self, element: Optional[HtmlElement]) -> Optional[str]:
        """Value safe to store: anything read from a password field is masked."""
        value, source = self.resolve(element)
        if value is None:
            return None
        if nodes.is_password_input(source) or nodes.is_password_input(element):
            return PASSWORD_MASK
        return value
