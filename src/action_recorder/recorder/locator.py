"""
Locator Synthesizer - stable XPath locators for recorded elements.

For every element the synthesizer tries a fixed ladder of candidate
expressions, most stable first, and keeps the first one that matches
exactly that element within the element's own tree scope (the document,
or the shadow root the element lives in):

1. stable id            //button[@id="submit"]
2. test attributes      //*[@data-testid="save"]
3. name                 //input[@name="email"]
4. aria-label           //*[@aria-label="Close"]
5. button/link text     //a[normalize-space()="Help"]
6. placeholder          //input[@placeholder="Search"]
7. relative path        //*[@id="main"]/div[2]/button

An absolute, position-indexed path is always computed as a fallback.
Position indices follow sibling order and break when siblings are
inserted or removed; they are only used when nothing better exists.

Example:
    >>> synthesizer = LocatorSynthesizer()
    >>> locator = synthesizer.synthesize(button)
    >>> locator.primary
    '//button[@id="submit"]'
    >>> locator.full_path
    '/html[1]/body[1]/form[1]/button[1]'
"""

import logging
import re
from typing import Iterator, Optional

from lxml.html import HtmlElement

from action_recorder.config.settings import LocatorSettings
from action_recorder.dom import nodes
from action_recorder.dom.scope import Document, get_root_node
from action_recorder.exceptions import XPathEvaluationError
from action_recorder.recorder.models import Locator

logger = logging.getLogger(__name__)

TEXT_LOCATOR_TAGS = ("button", "a")
GENERATED_CLASS = re.compile(r"^(ng-|v-|_|jsx-|css-|sc-)")


def xpath_literal(value: str) -> str:
    """
    Quote a string for use inside an XPath expression.

    XPath 1.0 has no escape sequences, so values containing both quote
    kinds are split into a ``concat()`` call.
    """
    if '"' not in value:
        return f'"{value}"'
    if "'" not in value:
        return f"'{value}'"
    pieces = value.split('"')
    return "concat(" + ", '\"', ".join(f'"{piece}"' for piece in pieces) + ")"


def css_escape(ident: str) -> str:
    """Escape a string for use as a CSS identifier, like the browser's ``CSS.escape``."""
    out = []
    for i, char in enumerate(ident):
        code = ord(char)
        if code == 0:
            out.append("\ufffd")
        elif 0x01 <= code <= 0x1F or code == 0x7F:
            out.append(f"\\{code:x} ")
        elif char.isdigit() and code < 0x80 and (i == 0 or (i == 1 and ident[0] == "-")):
            out.append(f"\\{code:x} ")
        elif char == "-" and i == 0 and len(ident) == 1:
            out.append("\\-")
        elif code >= 0x80 or char in "-_" or char.isalnum():
            out.append(char)
        else:
            out.append("\\" + char)
    return "".join(out)


class LocatorSynthesizer:
    """
    Builds Locators for elements.

    Synthesis is a pure query: it never changes the DOM, and on an
    unchanged DOM it always returns the same Locator.
    """

    def __init__(self, settings: Optional[LocatorSettings] = None):
        self.settings = settings or LocatorSettings()
        self._dynamic_id = re.compile(self.settings.dynamic_id_pattern)

    def is_stable_id(self, value: Optional[str]) -> bool:
        """Whether an id looks hand-written rather than framework generated."""
        if not value or not value.strip():
            return False
        return self._dynamic_id.search(value) is None

    def is_unique(self, expression: str, element: HtmlElement) -> bool:
        """Whether ``expression`` matches exactly ``element`` in its tree scope."""
        scope = get_root_node(element)
        if scope is None:
            return False
        try:
            matches = scope.evaluate(expression)
        except XPathEvaluationError:
            return False
        return len(matches) == 1 and matches[0] is element

    def candidates(self, element: HtmlElement) -> Iterator[str]:
        """Candidate expressions in priority order."""
        tag = nodes.tag_name(element)

        element_id = element.get("id")
        if self.is_stable_id(element_id):
            yield f"//{tag}[@id={xpath_literal(element_id)}]"

        for attr in self.settings.test_attributes:
            value = element.get(attr)
            if value:
                yield f"//*[@{attr}={xpath_literal(value)}]"

        name = element.get("name")
        if name:
            yield f"//{tag}[@name={xpath_literal(name)}]"

        aria_label = element.get("aria-label")
        if aria_label and len(aria_label) < self.settings.max_aria_label_length:
            yield f"//*[@aria-label={xpath_literal(aria_label)}]"

        if tag in TEXT_LOCATOR_TAGS:
            text = nodes.text_content(element).strip()
            if text and len(text) < self.settings.max_text_length and "\n" not in text:
                normalized = " ".join(text.split())
                yield f"//{tag}[normalize-space()={xpath_literal(normalized)}]"

        placeholder = element.get("placeholder")
        if placeholder:
            yield f"//{tag}[@placeholder={xpath_literal(placeholder)}]"

        yield self.relative_path(element)

    def primary(self, element: HtmlElement) -> Optional[str]:
        for expression in self.candidates(element):
            if self.is_unique(expression, element):
                return expression
        return None

    def synthesize(self, element: HtmlElement) -> Locator:
        """Build the Locator for ``element``; ``primary`` is None when nothing is unique."""
        primary = self.primary(element)
        full_path = self.full_path(element)
        if primary is None:
            logger.debug(f"No unique locator for <{element.tag}>, falling back to {full_path}")
        return Locator(primary=primary, full_path=full_path)

    def relative_path(self, element: HtmlElement) -> str:
        """
        Path from the nearest ancestor with a stable id, or from the top of the tree.

        Stops below the document element, or at the top of a shadow tree.
        """
        scope = get_root_node(element)
        stop = scope.root if scope is not None else None
        excluded = stop if isinstance(scope, Document) else None

        parts = []
        current = element
        while current is not None and current is not excluded:
            if current is not element and self.is_stable_id(current.get("id")):
                parts.insert(0, f"//*[@id={xpath_literal(current.get('id'))}]")
                return "/".join(parts)

            part = nodes.tag_name(current)
            siblings = nodes.same_tag_siblings(current)
            if len(siblings) > 1:
                part += f"[{siblings.index(current) + 1}]"
            parts.insert(0, part)

            parent = current.getparent()
            if parent is None or parent is stop:
                break
            current = parent

        if not parts:
            return f"//{nodes.tag_name(element)}"
        return "//" + "/".join(parts)

    def full_path(self, element: HtmlElement) -> str:
        """Absolute path with a position index at every level, never verified."""
        scope = get_root_node(element)
        stop = scope.root if scope is not None and scope.is_shadow_root else None

        parts = []
        current = element
        while current is not None:
            siblings = nodes.same_tag_siblings(current)
            parts.insert(0, f"{nodes.tag_name(current)}[{siblings.index(current) + 1}]")
            parent = current.getparent()
            if parent is None or parent is stop:
                break
            current = parent
        return "/" + "/".join(parts)

    def scoped_path(self, element: HtmlElement) -> str:
        """Relative path when unique within the element's scope, else the full path."""
        relative = self.relative_path(element)
        if self.is_unique(relative, element):
            return relative
        return self.full_path(element)

    def inner_selector(self, element: HtmlElement) -> str:
        """
        CSS child-combinator path from the top of the element's tree scope.

        The walk stops at the first ancestor with an id. Framework-generated
        classes are skipped and at most two classes are kept per level.
        """
        scope = get_root_node(element)
        stop = scope.root if scope is not None else None

        parts = []
        current = element
        while current is not None and current is not stop:
            element_id = current.get("id")
            if element_id:
                parts.insert(0, f"#{css_escape(element_id)}")
                break
            part = nodes.tag_name(current)
            classes = [c for c in (current.get("class") or "").split() if not GENERATED_CLASS.match(c)][:2]
            part += "".join(f".{css_escape(c)}" for c in classes)
            siblings = nodes.same_tag_siblings(current)
            if len(siblings) > 1:
                part += f":nth-of-type({siblings.index(current) + 1})"
            parts.insert(0, part)
            current = current.getparent()
        return " > ".join(parts)
