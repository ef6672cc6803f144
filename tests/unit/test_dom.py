"""
Tests for the DOM model: scopes, windows, events, mutations and the user driver.
"""

import pytest

from action_recorder.dom import (
    Document,
    Event,
    MutationObserver,
    UserDriver,
    Window,
    attach_shadow,
    build_window,
    dispatch_event,
    get_root_node,
    insert_html,
    is_connected,
    load_bundle,
    open_shadow_root,
    origin_of,
    remove,
)
from action_recorder.dom import nodes
from action_recorder.exceptions import CrossOriginAccessError, DetachedNodeError, DOMError, XPathEvaluationError

SHADOW_PAGE = """
<html><body>
  <my-app id="app">
    <template shadowrootmode="open">
      <my-panel id="panel">
        <template shadowrootmode="open"><button id="inner">Go</button></template>
      </my-panel>
    </template>
  </my-app>
  <secret-box id="vault">
    <template shadowrootmode="closed"><input id="pin"></template>
  </secret-box>
</body></html>
"""


class TestScopes:
    """Test documents and shadow roots."""

    def test_declarative_shadow_roots(self):
        """Test templates become shadow roots and leave the light tree."""
        doc = Document.from_html(SHADOW_PAGE, url="https://a.test/")
        app = doc.find_first("//my-app")
        root = open_shadow_root(app)

        assert root is not None
        assert root.mode == "open"
        assert doc.find_first("//template") is None
        assert doc.find_first('//button[@id="inner"]') is None

    def test_nested_shadow_roots(self):
        """Test a declarative root inside a shadow tree attaches to its host."""
        doc = Document.from_html(SHADOW_PAGE, url="https://a.test/")
        outer = open_shadow_root(doc.find_first("//my-app"))
        panel = outer.find_first("//my-panel")
        inner = open_shadow_root(panel)
        button = inner.find_first('//button[@id="inner"]')

        assert button is not None
        assert get_root_node(button) is inner
        assert get_root_node(panel) is outer
        assert inner.document is doc

    def test_closed_roots_are_hidden_from_script(self):
        """Test open_shadow_root does not reveal closed roots."""
        doc = Document.from_html(SHADOW_PAGE, url="https://a.test/")
        vault = doc.find_first("//secret-box")

        assert open_shadow_root(vault) is None
        assert doc.shadow_root_of(vault).mode == "closed"

    def test_invalid_xpath(self):
        """Test invalid expressions raise XPathEvaluationError."""
        doc = Document.from_html("<p>x</p>")
        with pytest.raises(XPathEvaluationError):
            doc.evaluate("//p[")

    def test_attach_shadow_twice(self):
        """Test a host can only have one shadow root."""
        doc = Document.from_html("<div id='host'></div>")
        host = doc.find_first("//div")
        attach_shadow(host)
        with pytest.raises(DOMError):
            attach_shadow(host)

    def test_detached_nodes(self):
        """Test removed nodes are no longer connected."""
        doc = Document.from_html("<div><span id='s'>x</span></div>")
        span = doc.find_first("//span")
        assert is_connected(span)
        remove(span)
        assert not is_connected(span)


class TestWindows:
    """Test windows, origins and the frame tree."""

    def test_origin_of(self):
        """Test origin serialization."""
        assert origin_of("https://a.test/x?y=1") == "https://a.test"
        assert origin_of("https://a.test:443/") == "https://a.test"
        assert origin_of("http://a.test:8080/") == "http://a.test:8080"
        assert origin_of("about:blank") is None

    def test_srcdoc_inherits_origin(self):
        """Test srcdoc frames run in their parent's origin."""
        top = build_window({
            "url": "https://a.test/",
            "html": '<iframe srcdoc="<p>hi</p>"></iframe>',
            "frames": [{"index": 0}],
        })
        child = top.frames[0]
        assert child.url == "about:srcdoc"
        assert child.origin == "https://a.test"

    def test_cross_origin_document_access(self):
        """Test reading a cross-origin parent document is blocked."""
        top = build_window({
            "url": "https://a.test/",
            "html": "<iframe></iframe>",
            "frames": [{"index": 0, "url": "https://b.test/", "html": "<p>b</p>"}],
        })
        child = top.frames[0]

        assert top.get_document(top) is top.document
        with pytest.raises(CrossOriginAccessError):
            top.get_document(child)

    def test_frame_index_out_of_range(self):
        """Test a frame entry must match a frame element."""
        with pytest.raises(DOMError):
            build_window({"url": "https://a.test/", "html": "<p></p>", "frames": [{"index": 0}]})

    def test_iter_windows(self):
        """Test windows are listed depth first."""
        top = build_window({
            "url": "https://a.test/",
            "html": "<iframe name='one'></iframe><iframe name='two'></iframe>",
            "frames": [
                {"index": 0, "html": "<iframe name='deep'></iframe>", "frames": [{"index": 0}]},
                {"index": 1},
            ],
        })
        names = [w.name for w in top.iter_windows()]
        assert names == ["", "one", "deep", "two"]

    def test_post_message(self):
        """Test messages reach listeners with their source."""
        window = Window.from_html("<p></p>", url="https://a.test/")
        received = []
        window.add_message_listener(lambda data, source: received.append((data, source)))
        window.post_message({"hello": 1}, source=window)
        assert received == [({"hello": 1}, window)]

    def test_load_bundle_yaml(self, tmp_path):
        """Test bundles load from YAML files."""
        path = tmp_path / "page.yaml"
        path.write_text("page:\n  url: https://a.test/\n  html: <p id='x'>x</p>\n")
        bundle = load_bundle(path)
        assert bundle["url"] == "https://a.test/"


class TestEvents:
    """Test event dispatch across shadow boundaries."""

    @pytest.fixture
    def doc(self):
        return Document.from_html(SHADOW_PAGE, url="https://a.test/")

    def test_capture_order_and_retargeting(self, doc):
        """Test capture listeners run outermost first with retargeted targets."""
        outer = open_shadow_root(doc.find_first("//my-app"))
        inner = open_shadow_root(outer.find_first("//my-panel"))
        button = inner.find_first("//button")
        seen = []
        doc.add_event_listener("click", lambda e: seen.append(("doc", e.target.tag)), capture=True)
        outer.add_event_listener("click", lambda e: seen.append(("outer", e.target.tag)), capture=True)
        inner.add_event_listener("click", lambda e: seen.append(("inner", e.target.tag)), capture=True)

        dispatch_event(button, Event("click"))

        assert seen == [("doc", "my-app"), ("outer", "my-panel"), ("inner", "button")]

    def test_stop_propagation(self, doc):
        """Test a capture listener that stops the event hides it from inner scopes."""
        outer = open_shadow_root(doc.find_first("//my-app"))
        button = open_shadow_root(outer.find_first("//my-panel")).find_first("//button")
        seen = []
        doc.add_event_listener("click", lambda e: (seen.append("doc"), e.stop_propagation()), capture=True)
        outer.add_event_listener("click", lambda e: seen.append("outer"), capture=True)
        doc.add_event_listener("click", lambda e: seen.append("doc-bubble"))

        dispatch_event(button, Event("click"))

        assert seen == ["doc"]

    def test_composed_path_sees_open_trees(self, doc):
        """Test the document listener can see the real target through open roots."""
        outer = open_shadow_root(doc.find_first("//my-app"))
        button = open_shadow_root(outer.find_first("//my-panel")).find_first("//button")
        paths = []
        doc.add_event_listener("click", lambda e: paths.append(e.composed_path()[0]), capture=True)

        dispatch_event(button, Event("click"))

        assert paths == [button]

    def test_composed_path_hides_closed_trees(self, doc):
        """Test closed shadow content surfaces as the host."""
        vault = doc.find_first("//secret-box")
        pin = doc.shadow_root_of(vault).find_first("//input")
        paths = []
        doc.add_event_listener("click", lambda e: paths.append(e.composed_path()[0]), capture=True)

        dispatch_event(pin, Event("click"))

        assert paths == [vault]

    def test_change_is_not_composed(self, doc):
        """Test change events stay inside their shadow tree."""
        outer = open_shadow_root(doc.find_first("//my-app"))
        button = open_shadow_root(outer.find_first("//my-panel")).find_first("//button")
        seen = []
        doc.add_event_listener("change", lambda e: seen.append(e), capture=True)

        dispatch_event(button, Event("change"))

        assert seen == []

    def test_throwing_listener_does_not_abort(self, doc):
        """Test later listeners still run after one raises."""
        button = doc.find_first("//my-app")
        seen = []

        def boom(event):
            raise RuntimeError("boom")

        doc.add_event_listener("click", boom, capture=True)
        doc.add_event_listener("click", lambda e: seen.append(e.type), capture=True)
        dispatch_event(button, Event("click"))
        assert seen == ["click"]


class TestMutations:
    """Test structural observation."""

    def test_observer_sees_insertions(self):
        """Test insert_html notifies observers of the scope."""
        doc = Document.from_html("<div id='list'></div>")
        records = []
        observer = MutationObserver(lambda recs, obs: records.extend(recs))
        observer.observe(doc)

        added = insert_html(doc.find_first("//div"), "<x-card></x-card><x-card></x-card>")

        assert len(added) == 2
        assert records[0].added_nodes == added

    def test_observer_does_not_cross_shadow_boundary(self):
        """Test insertions in a shadow root are not seen by a document observer."""
        doc = Document.from_html("<div id='host'></div>")
        root = attach_shadow(doc.find_first("//div"))
        records = []
        observer = MutationObserver(lambda recs, obs: records.extend(recs))
        observer.observe(doc)

        insert_html(root, "<span>inside</span>")

        assert records == []

    def test_disconnect(self):
        """Test a disconnected observer hears nothing."""
        doc = Document.from_html("<div></div>")
        records = []
        observer = MutationObserver(lambda recs, obs: records.extend(recs))
        observer.observe(doc)
        observer.disconnect()
        insert_html(doc.find_first("//div"), "<p></p>")
        assert records == []


class TestUserDriver:
    """Test user gestures fire browser-like event sequences."""

    @pytest.fixture
    def doc(self):
        return Document.from_html(
            "<form><input id='q'><input type='checkbox' id='agree'>"
            "<select id='size'><option value='s'>Small</option><option value='l'>Large</option></select>"
            "<button id='go'>Go</button></form>",
            url="https://a.test/",
        )

    def _log(self, doc):
        seen = []
        for event_type in ("click", "input", "change", "keydown", "focusout"):
            doc.add_event_listener(event_type, lambda e: seen.append((e.type, e.target.get("id"))), capture=True)
        return seen

    def test_type_fires_input_per_character(self, doc):
        """Test typing fires one input event per character."""
        seen = self._log(doc)
        field = doc.find_first("//input[@id='q']")
        UserDriver().type(field, "abc")

        assert seen == [("input", "q")] * 3
        assert nodes.form_value(field) == "abc"

    def test_click_moves_focus(self, doc):
        """Test clicking elsewhere fires focusout on the focused element."""
        seen = self._log(doc)
        driver = UserDriver()
        driver.type(doc.find_first("//input[@id='q']"), "a")
        driver.click(doc.find_first("//button"))

        assert seen[-2:] == [("focusout", "q"), ("click", "go")]

    def test_checkbox_click(self, doc):
        """Test a checkbox toggles and fires click, input, change."""
        seen = self._log(doc)
        box = doc.find_first("//input[@id='agree']")
        UserDriver().click(box)

        assert nodes.is_checked(box)
        assert seen == [("click", "agree"), ("input", "agree"), ("change", "agree")]

    def test_select(self, doc):
        """Test selecting an option."""
        select = doc.find_first("//select")
        UserDriver().select(select, "l")
        assert nodes.form_value(select) == "l"
        assert nodes.selected_option_label(select) == "Large"

    def test_select_unknown_value(self, doc):
        """Test selecting a missing option fails."""
        with pytest.raises(DOMError):
            UserDriver().select(doc.find_first("//select"), "xl")

    def test_detached_element(self, doc):
        """Test gestures on detached elements fail."""
        button = doc.find_first("//button")
        remove(button)
        with pytest.raises(DetachedNodeError):
            UserDriver().click(button)
