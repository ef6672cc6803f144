"""
Integration tests for scripted captures.

These drive whole pages (frames, nested shadow roots, dynamic content)
through the scenario runner and check the sealed recording.
"""

import pytest

from action_recorder.exceptions import ScenarioError
from action_recorder.recorder.models import PASSWORD_MASK, ActionKind, AssertionType
from action_recorder.recorder.observation import CaptureState
from action_recorder.scenario import ScenarioRunner, load_scenario


SHOP = {
    "url": "https://shop.test/",
    "html": """
        <html><body>
          <h1 id="panel-header">Cart</h1>
          <button id="submit">Go</button>
          <span id="total">Total: $42</span>
          <my-app id="app">
            <template shadowrootmode="open">
              <my-panel>
                <template shadowrootmode="open"><button>Deep</button></template>
              </my-panel>
            </template>
          </my-app>
          <iframe name="f1" src="/frame"></iframe>
          <iframe name="pay" id="payframe"></iframe>
          <div id="late"></div>
        </body></html>
    """,
    "frames": [
        {"index": 0, "url": "https://shop.test/frame", "html": '<input id="q"><input id="pw" type="password">'},
        {"index": 1, "url": "https://pay.test/", "html": '<input id="card" name="card">'},
    ],
}


@pytest.fixture
def runner(make_window, settings):
    return ScenarioRunner(make_window(bundle=SHOP), settings=settings)


class TestScenarioRecording:
    """Test recordings produced by scenarios."""

    def test_click(self, runner):
        recording = runner.run({"name": "Checkout", "steps": [{"click": '//button[@id="submit"]'}]})

        assert recording.sealed
        assert recording.name == "Checkout"
        assert recording.url == "https://shop.test/"
        (action,) = recording.actions
        assert action.kind == ActionKind.CLICK
        assert action.locator.primary == '//button[@id="submit"]'
        assert action.description == 'Clicked the "Go" button'

    def test_input_in_frame(self, runner):
        recording = runner.run({
            "steps": [
                {"type": {"target": '//input[@id="q"]', "frame": ["f1"], "text": "abc"}},
                "blur",
            ]
        })

        (action,) = recording.actions
        assert action.kind == ActionKind.INPUT
        assert action.value == "abc"
        assert action.frame_context[0].name == "f1"
        assert action.frame_context[0].selector == 'iframe[name="f1"]'
        assert action.url == "https://shop.test/frame"

    def test_nested_shadow_click(self, runner):
        recording = runner.run({
            "steps": [{"click": {"target": "//button", "shadow": ["//my-app", "//my-panel"]}}]
        })

        (action,) = recording.actions
        assert [host.host_tag for host in action.shadow_context] == ["my-app", "my-panel"]
        assert action.shadow_context[0].host_locator == '//my-app[@id="app"]'

    def test_text_assertion(self, runner):
        runner.coordinator.start("Assertions")
        runner.run_step({"assert": "text"})
        assert runner.recorders[0].state == CaptureState.ASSERTION_PENDING

        runner.run_step({"click": '//span[@id="total"]'})

        (action,) = runner.coordinator.recording.actions
        assert action.kind == ActionKind.ASSERTION
        assert action.assertion_type == AssertionType.TEXT
        assert action.expected_value == "Total: $42"
        assert all(r.state == CaptureState.RECORDING for r in runner.recorders)

    def test_password_is_masked(self, runner):
        recording = runner.run({
            "steps": [
                {"type": {"target": '//input[@id="pw"]', "frame": ["f1"], "text": "hunter2"}},
                {"press": "Tab"},
            ]
        })

        (action,) = recording.actions
        assert action.value == PASSWORD_MASK
        assert "hunter2" not in recording.to_json()

    def test_cross_origin_frame_after_handshake(self, runner):
        recording = runner.run({
            "steps": [
                "collect-frames",
                {"type": {"target": "//input", "frame": ["pay"], "text": "4242"}},
                "blur",
            ]
        })

        (action,) = recording.actions
        (frame,) = action.frame_context
        assert frame.selector == 'iframe[name="pay"]'
        assert not frame.cross_origin_blocked

    def test_dynamic_content(self, runner):
        recording = runner.run({
            "steps": [
                {"append": {"target": '//div[@id="late"]', "html": '<button id="more">More</button>'}},
                {"click": '//button[@id="more"]'},
            ]
        })

        (action,) = recording.actions
        assert action.locator.primary == '//button[@id="more"]'

    def test_page_markers(self, runner):
        recording = runner.run({
            "steps": [
                {"monitor": "start"},
                {"monitor": "check"},
                {"set-text": {"target": '//h1[@id="panel-header"]', "text": "Checkout"}},
                {"monitor": "check"},
                {"monitor": "check"},
                {"page-marker": "Manual"},
            ]
        })

        assert [m.page_name for m in recording.page_markers] == ["Cart", "Checkout", "Manual"]

    def test_steps_advance_the_clock(self, runner):
        recording = runner.run({"steps": [{"wait": 1000}, {"click": "//button"}]})
        assert recording.actions[0].timestamp - recording.start_time == 2000


class TestScenarioErrors:
    """Test malformed and failing steps."""

    def test_unknown_step(self, runner):
        with pytest.raises(ScenarioError) as exc_info:
            runner.run({"steps": [{"click": "//button"}, {"fly": "away"}]})
        assert exc_info.value.step == 2
        assert not runner.coordinator.is_recording

    def test_missing_element(self, runner):
        with pytest.raises(ScenarioError) as exc_info:
            runner.run({"steps": [{"click": '//button[@id="nope"]'}]})
        assert "No element matches" in str(exc_info.value)

    def test_missing_frame(self, runner):
        with pytest.raises(ScenarioError):
            runner.run({"steps": [{"click": {"target": "//input", "frame": ["nope"]}}]})

    def test_invalid_step_shape(self, runner):
        with pytest.raises(ScenarioError):
            runner.run({"steps": [{"click": "//button", "type": "x"}]})

    def test_unknown_monitor_command(self, runner):
        with pytest.raises(ScenarioError):
            runner.run({"steps": [{"monitor": "pause"}]})


class TestLoadScenario:
    """Test reading scenario files."""

    def test_mapping(self, tmp_path):
        path = tmp_path / "search.yaml"
        path.write_text("name: Search\nsteps:\n  - click: //button\n", encoding="utf-8")
        assert load_scenario(path) == {"name": "Search", "steps": [{"click": "//button"}]}

    def test_bare_list(self, tmp_path):
        path = tmp_path / "login.yaml"
        path.write_text("- blur\n", encoding="utf-8")
        assert load_scenario(path) == {"steps": ["blur"], "name": "login"}

    def test_no_steps(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("name: Empty\n", encoding="utf-8")
        with pytest.raises(ScenarioError):
            load_scenario(path)
