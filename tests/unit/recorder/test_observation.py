"""
Tests for the capture session: states, shadow root discovery and input coalescing.
"""

from unittest.mock import Mock

import pytest

from action_recorder.dom import attach_shadow, insert_html, open_shadow_root
from action_recorder.exceptions import RecorderStateError
from action_recorder.recorder.models import ActionKind, AssertionType
from action_recorder.recorder.normalizer import ActionNormalizer
from action_recorder.recorder.observation import ASSERTION_CURSOR, CaptureSession, CaptureState

PAGE = """
<form>
  <input id="q" name="q">
  <textarea id="notes"></textarea>
  <input id="agree" type="checkbox">
  <select id="size"><option value="s">Small</option><option value="l">Large</option></select>
  <button id="go">Go</button>
  <span id="total">Total: $42</span>
</form>
<div id="slot"></div>
<my-app id="app">
  <template shadowrootmode="open">
    <my-panel id="panel"><template shadowrootmode="open"><button id="inner">Inside</button></template></my-panel>
  </template>
</my-app>
<secret-box id="vault"><template shadowrootmode="closed"><button id="hidden">Secret</button></template></secret-box>
"""


@pytest.fixture
def window(make_window):
    return make_window(PAGE)


@pytest.fixture
def emitter():
    return Mock()


@pytest.fixture
def completed():
    return Mock()


@pytest.fixture
def session(window, emitter, clock, completed):
    normalizer = ActionNormalizer(window, emitter, clock=clock)
    return CaptureSession(window, normalizer, on_assertion_complete=completed)


def _actions(emitter):
    return [c.args[0] for c in emitter.emit.call_args_list]


def _kinds(emitter):
    return [a.kind for a in _actions(emitter)]


def _el(window, xpath):
    return window.document.find_first(xpath)


class TestLifecycle:
    """Test session state transitions."""

    def test_start_and_stop(self, session, window):
        assert session.state == CaptureState.IDLE
        session.start()
        assert session.state == CaptureState.RECORDING
        assert session.is_recording
        session.stop()
        assert session.state == CaptureState.IDLE

    def test_double_start(self, session):
        session.start()
        with pytest.raises(RecorderStateError):
            session.start()

    def test_stop_when_idle(self, session):
        with pytest.raises(RecorderStateError):
            session.stop()

    def test_stop_releases_listeners(self, session, window):
        session.start()
        roots = session.observed_roots
        session.stop()

        assert session.observed_roots == []
        assert all(not root.has_listeners() for root in roots)
        assert all(root.observers == [] for root in roots)

    def test_nothing_recorded_after_stop(self, session, window, driver, emitter):
        session.start()
        session.stop()
        driver.click(_el(window, "//button"))
        emitter.emit.assert_not_called()

    def test_restart(self, session, window, driver, emitter, clock):
        session.start()
        session.stop()
        session.start()
        driver.click(_el(window, "//button"))
        assert _kinds(emitter) == [ActionKind.CLICK]


class TestShadowDiscovery:
    """Test open shadow roots are found and observed exactly once."""

    def test_initial_scan(self, session, window):
        session.start()
        roots = session.observed_roots
        hosts = [getattr(root, "host", None) for root in roots]

        assert roots[0] is window.document
        assert [h.tag for h in hosts[1:]] == ["my-app", "my-panel"]
        assert len(set(map(id, roots))) == len(roots)

    def test_click_in_nested_shadow_recorded_once(self, session, window, driver, emitter):
        session.start()
        outer = open_shadow_root(_el(window, "//my-app"))
        button = open_shadow_root(outer.find_first("//my-panel")).find_first("//button")

        driver.click(button)

        (action,) = _actions(emitter)
        assert action.locator.primary == '//button[@id="inner"]'
        assert [s.host_tag for s in action.shadow_context] == ["my-app", "my-panel"]

    def test_closed_root_reports_host(self, session, window, driver, emitter):
        """Test clicks inside a closed root surface as clicks on the host."""
        session.start()
        vault = _el(window, "//secret-box")
        hidden = window.document.shadow_root_of(vault).find_first("//button")

        driver.click(hidden)

        (action,) = _actions(emitter)
        assert action.locator.primary == '//secret-box[@id="vault"]'
        assert action.shadow_context == ()

    def test_inserted_subtree_with_shadow_root(self, session, window, driver, emitter):
        session.start()
        before = len(session.observed_roots)

        insert_html(
            _el(window, '//div[@id="slot"]'),
            '<x-card><template shadowrootmode="open"><button id="late">Late</button></template></x-card>',
        )
        card = _el(window, "//x-card")
        driver.click(open_shadow_root(card).find_first("//button"))

        assert len(session.observed_roots) == before + 1
        (action,) = _actions(emitter)
        assert action.locator.primary == '//button[@id="late"]'
        assert action.shadow_context[0].host_tag == "x-card"

    def test_attach_shadow_while_recording(self, session, window, driver, emitter):
        session.start()
        host = _el(window, '//div[@id="slot"]')
        root = attach_shadow(host)
        insert_html(root, '<input id="late-field">')
        insert_html(root, '<deep-x><template shadowrootmode="open"><button id="deepest">D</button></template></deep-x>')

        driver.click(open_shadow_root(root.find_first("//deep-x")).find_first("//button"))

        (action,) = _actions(emitter)
        assert [s.host_tag for s in action.shadow_context] == ["div", "deep-x"]

    def test_closed_roots_are_not_observed(self, session, window):
        session.start()
        before = len(session.observed_roots)
        attach_shadow(_el(window, '//div[@id="slot"]'), mode="closed")
        assert len(session.observed_roots) == before

    def test_roots_found_twice_are_observed_once(self, session, window):
        """Test a root reported by the attach hook and a mutation is processed once."""
        session.start()
        insert_html(
            _el(window, '//div[@id="slot"]'),
            '<x-a><template shadowrootmode="open"><x-b><template shadowrootmode="open"><i>x</i></template></x-b></template></x-a>',
        )
        roots = session.observed_roots
        assert len(set(map(id, roots))) == len(roots)
        assert [r.host.tag for r in roots[-2:]] == ["x-a", "x-b"]


class TestInputCoalescing:
    """Test text entry becomes one input action with the final value."""

    def test_blur_flushes(self, session, window, driver, emitter):
        session.start()
        field = _el(window, '//input[@id="q"]')

        driver.type(field, "abc")
        assert emitter.emit.call_count == 0
        assert session.pending_elements == [field]

        driver.blur()

        (action,) = _actions(emitter)
        assert action.kind == ActionKind.INPUT
        assert action.value == "abc"
        assert session.pending_elements == []

    def test_enter_flushes_then_keypress(self, session, window, driver, emitter):
        session.start()
        field = _el(window, '//input[@id="q"]')
        driver.type(field, "shoes")
        driver.press(field, "Enter")

        actions = _actions(emitter)
        assert [a.kind for a in actions] == [ActionKind.INPUT, ActionKind.KEYPRESS]
        assert actions[1].key == "Enter"

    def test_tab_flushes(self, session, window, driver, emitter):
        session.start()
        driver.type(_el(window, '//textarea'), "hello")
        driver.press(key="Tab")
        assert _kinds(emitter) == [ActionKind.INPUT]

    def test_other_keys_ignored(self, session, window, driver, emitter):
        session.start()
        driver.press(_el(window, '//input[@id="q"]'), "a")
        emitter.emit.assert_not_called()

    def test_click_elsewhere_flushes_first(self, session, window, driver, emitter):
        session.start()
        driver.type(_el(window, '//input[@id="q"]'), "abc")
        driver.click(_el(window, "//button"))
        assert _kinds(emitter) == [ActionKind.INPUT, ActionKind.CLICK]

    def test_stop_flushes(self, session, window, driver, emitter):
        session.start()
        driver.type(_el(window, '//input[@id="q"]'), "unsaved")
        session.stop()
        (action,) = _actions(emitter)
        assert action.value == "unsaved"

    def test_retyping_records_final_value(self, session, window, driver, emitter):
        session.start()
        field = _el(window, '//input[@id="q"]')
        driver.type(field, "ab")
        driver.type(field, "xyz")
        driver.blur()
        (action,) = _actions(emitter)
        assert action.value == "xyz"


class TestChanges:
    """Test select and checkbox changes."""

    def test_select(self, session, window, driver, emitter):
        session.start()
        driver.select(_el(window, "//select"), "l")

        (action,) = _actions(emitter)
        assert action.kind == ActionKind.SELECT
        assert action.value == "l"
        assert action.option_label == "Large"

    def test_checkbox(self, session, window, driver, emitter):
        session.start()
        driver.click(_el(window, '//input[@id="agree"]'))

        actions = _actions(emitter)
        assert [a.kind for a in actions] == [ActionKind.CLICK, ActionKind.CHECK]
        assert actions[1].checked is True


class TestAssertionMode:
    """Test the assertion sub-state."""

    def test_next_click_is_an_assertion(self, session, window, driver, emitter, completed):
        session.start()
        session.enter_assertion_mode(AssertionType.TEXT)
        body = window.document.body
        assert session.state == CaptureState.ASSERTION_PENDING
        assert ASSERTION_CURSOR in body.get("style")

        driver.click(_el(window, '//span[@id="total"]'))

        (action,) = _actions(emitter)
        assert action.kind == ActionKind.ASSERTION
        assert action.expected_value == "Total: $42"
        assert session.state == CaptureState.RECORDING
        assert body.get("style") is None
        completed.assert_called_once_with(action)

    def test_only_one_assertion(self, session, window, driver, emitter):
        session.start()
        session.enter_assertion_mode("element")
        span = _el(window, '//span[@id="total"]')
        driver.click(span)
        driver.click(_el(window, "//button"))
        assert _kinds(emitter) == [ActionKind.ASSERTION, ActionKind.CLICK]

    def test_body_style_restored(self, session, window):
        body = window.document.body
        body.set("style", "margin: 0;")
        session.start()
        session.enter_assertion_mode()
        assert body.get("style") == f"margin: 0; {ASSERTION_CURSOR}"
        session.exit_assertion_mode()
        assert body.get("style") == "margin: 0;"

    def test_exit_records_nothing(self, session, window, driver, emitter, completed):
        session.start()
        session.enter_assertion_mode()
        session.exit_assertion_mode()
        assert session.state == CaptureState.RECORDING
        completed.assert_not_called()
        emitter.emit.assert_not_called()

    def test_needs_recording(self, session):
        with pytest.raises(RecorderStateError):
            session.enter_assertion_mode()
        with pytest.raises(RecorderStateError):
            session.exit_assertion_mode()

    def test_stop_leaves_assertion_mode(self, session, window):
        session.start()
        session.enter_assertion_mode()
        session.stop()
        assert session.state == CaptureState.IDLE
        assert session.assertion_type is None
        assert window.document.body.get("style") is None
