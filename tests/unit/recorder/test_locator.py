"""
Tests for the locator synthesizer.
"""

import lxml.html
import pytest

from action_recorder.config.settings import LocatorSettings
from action_recorder.dom import Document, open_shadow_root
from action_recorder.recorder.locator import LocatorSynthesizer, css_escape, xpath_literal


def _doc(html):
    return Document.from_html(html, url="https://shop.test/")


class TestXPathLiteral:
    """Test XPath string quoting."""

    def test_plain(self):
        assert xpath_literal("Save") == '"Save"'

    def test_double_quotes(self):
        assert xpath_literal('say "hi"') == "'say \"hi\"'"

    def test_both_quotes(self):
        """Test values with both quote kinds become a concat() call."""
        literal = xpath_literal("say \"it's\"")
        assert literal == "concat(\"say \", '\"', \"it's\", '\"', \"\")"

    def test_both_quotes_evaluate(self):
        """Test the concat() form matches the original value."""
        value = "say \"it's\""
        doc = _doc(f"<button aria-label='{value.replace(chr(39), '&#39;')}'>x</button>")
        assert len(doc.evaluate(f"//*[@aria-label={xpath_literal(value)}]")) == 1


class TestCSSEscape:
    """Test CSS identifier escaping."""

    def test_plain_identifiers_unchanged(self):
        assert css_escape("main-nav_2") == "main-nav_2"

    def test_leading_digits(self):
        assert css_escape("1a") == "\\31 a"
        assert css_escape("-2x") == "-\\32 x"

    def test_punctuation(self):
        assert css_escape("a.b:c") == "a\\.b\\:c"
        assert css_escape("-") == "\\-"


class TestCandidateLadder:
    """Test the candidate priority order."""

    @pytest.fixture
    def synthesizer(self):
        return LocatorSynthesizer()

    def test_stable_id(self, synthesizer):
        doc = _doc('<form><button id="submit">Go</button></form>')
        locator = synthesizer.synthesize(doc.find_first("//button"))
        assert locator.primary == '//button[@id="submit"]'

    def test_dynamic_ids_are_skipped(self, synthesizer):
        """Test framework-generated ids fall through to test attributes."""
        doc = _doc('<button id="react-select-3" data-testid="save">Save</button>')
        locator = synthesizer.synthesize(doc.find_first("//button"))
        assert locator.primary == '//*[@data-testid="save"]'

    @pytest.mark.parametrize("value", ["123abc", "ember42", "ng-c12", ":r1:", "   "])
    def test_unstable_id_values(self, synthesizer, value):
        assert not synthesizer.is_stable_id(value)

    def test_duplicate_id_not_used(self, synthesizer):
        """Test an id shared by two elements is not unique and is skipped."""
        doc = _doc('<input id="dup" name="first"><input id="dup" name="second">')
        locator = synthesizer.synthesize(doc.evaluate("//input")[1])
        assert locator.primary == '//input[@name="second"]'

    def test_test_attribute_priority(self, synthesizer):
        """Test data-testid wins over data-cy when both are present."""
        doc = _doc('<div data-cy="c" data-testid="t">x</div>')
        locator = synthesizer.synthesize(doc.find_first("//div"))
        assert locator.primary == '//*[@data-testid="t"]'

    def test_name(self, synthesizer):
        doc = _doc('<input name="email">')
        assert synthesizer.synthesize(doc.find_first("//input")).primary == '//input[@name="email"]'

    def test_aria_label(self, synthesizer):
        doc = _doc('<span role="button" aria-label="Close">x</span>')
        assert synthesizer.synthesize(doc.find_first("//span")).primary == '//*[@aria-label="Close"]'

    def test_long_aria_label_ignored(self, synthesizer):
        label = "x" * 60
        doc = _doc(f'<span aria-label="{label}">y</span>')
        assert "aria-label" not in synthesizer.synthesize(doc.find_first("//span")).primary

    def test_link_text(self, synthesizer):
        doc = _doc('<nav><a href="/help">  Help\tCenter </a></nav>')
        assert synthesizer.synthesize(doc.find_first("//a")).primary == '//a[normalize-space()="Help Center"]'

    def test_text_only_for_buttons_and_links(self, synthesizer):
        doc = _doc("<p>Hello</p><p>World</p>")
        locator = synthesizer.synthesize(doc.evaluate("//p")[1])
        assert locator.primary == "//body/p[2]"

    def test_placeholder(self, synthesizer):
        doc = _doc('<input placeholder="Search">')
        assert synthesizer.synthesize(doc.find_first("//input")).primary == '//input[@placeholder="Search"]'

    def test_relative_path_from_stable_ancestor(self, synthesizer):
        """Test the path is anchored at the nearest ancestor with a stable id."""
        doc = _doc('<div id="main"><div></div><div><span>x</span></div></div>')
        locator = synthesizer.synthesize(doc.find_first("//span"))
        assert locator.primary == '//*[@id="main"]/div[2]/span'

    def test_quotes_in_values(self, synthesizer):
        doc = _doc("<input name='say \"hi\"'>")
        locator = synthesizer.synthesize(doc.find_first("//input"))
        assert locator.primary == "//input[@name='say \"hi\"']"

    def test_custom_test_attributes(self):
        synthesizer = LocatorSynthesizer(LocatorSettings(test_attributes=["data-qa"]))
        doc = _doc('<div data-testid="ignored" data-qa="picked">x</div>')
        assert synthesizer.synthesize(doc.find_first("//div")).primary == '//*[@data-qa="picked"]'


class TestFullPath:
    """Test the position-indexed fallback path."""

    def test_full_path(self):
        doc = _doc('<div id="main"><div></div><div><span>x</span></div></div>')
        locator = LocatorSynthesizer().synthesize(doc.find_first("//span"))
        assert locator.full_path == "/html[1]/body[1]/div[1]/div[2]/span[1]"
        assert doc.find_first(locator.full_path) is doc.find_first("//span")

    def test_best_falls_back_to_full_path(self):
        from action_recorder.recorder.models import Locator
        assert Locator(primary=None, full_path="/html[1]").best == "/html[1]"


class TestShadowScopes:
    """Test locators are unique within the element's own tree scope."""

    HTML = """
    <button id="go">Outside</button>
    <x-widget id="widget">
      <template shadowrootmode="open">
        <div><span>a</span><span>b</span></div>
        <button id="go">Inside</button>
      </template>
    </x-widget>
    """

    def test_same_id_in_both_scopes(self):
        """Test an id repeated across a shadow boundary is unique in each scope."""
        doc = _doc(self.HTML)
        root = open_shadow_root(doc.find_first("//x-widget"))
        synthesizer = LocatorSynthesizer()

        outside = synthesizer.synthesize(doc.find_first("//button"))
        inside = synthesizer.synthesize(root.find_first("//button"))

        assert outside.primary == inside.primary == '//button[@id="go"]'

    def test_paths_are_relative_to_shadow_root(self):
        doc = _doc(self.HTML)
        root = open_shadow_root(doc.find_first("//x-widget"))
        span = root.evaluate("//span")[1]
        locator = LocatorSynthesizer().synthesize(span)

        assert locator.primary == "//div/span[2]"
        assert locator.full_path == "/div[1]/span[2]"
        assert root.find_first(locator.full_path) is span


class TestPurity:
    """Test synthesis is a pure, repeatable query."""

    def test_idempotent_and_side_effect_free(self):
        doc = _doc('<ul><li>a</li><li data-cy="second">b</li></ul>')
        element = doc.evaluate("//li")[1]
        before = lxml.html.tostring(doc.root)
        synthesizer = LocatorSynthesizer()

        first = synthesizer.synthesize(element)
        second = synthesizer.synthesize(element)

        assert first == second
        assert lxml.html.tostring(doc.root) == before

    def test_is_unique_rejects_invalid_xpath(self):
        doc = _doc("<p>x</p>")
        assert not LocatorSynthesizer().is_unique("//p[", doc.find_first("//p"))

    def test_primary_always_selects_the_element(self):
        doc = _doc(
            '<form><input name="q"><input name="q"><button>Go</button><button>Go</button>'
            '<a href="#">More</a></form>'
        )
        synthesizer = LocatorSynthesizer()
        for element in doc.find_first("//form").iter():
            if element.tag == "form":
                continue
            locator = synthesizer.synthesize(element)
            assert doc.evaluate(locator.primary) == [element]
