"""
Scenario runner - scripted captures.

A scenario is a YAML document listing user steps. The runner installs a
frame recorder in every window of the page, starts a recording at the
coordinator, replays the steps through a UserDriver (which fires the
events a browser would) and returns the sealed Recording.

    name: Search
    steps:
      - click: '//button[@id="submit"]'
      - type: {target: '//input[@id="q"]', frame: [f1], text: abc}
      - click: {target: '//button', shadow: ['//my-app', '//my-panel']}
      - assert: text
      - click: '//span[@id="total"]'
      - page-marker: Results

Targets are an XPath, or a mapping with ``target`` plus optional ``frame``
(frame indices or names, outermost first) and ``shadow`` (host XPaths,
outermost first). The user can reach into any frame or shadow root,
closed ones included.

Time is simulated: every step advances the clock by ``step_gap_ms``, and
``wait: <ms>`` advances it further.
"""

import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import yaml
from lxml.html import HtmlElement

from action_recorder.config.settings import Settings
from action_recorder.dom import mutation
from action_recorder.dom.driver import UserDriver
from action_recorder.dom.scope import TreeScope, attach_shadow
from action_recorder.dom.window import Window
from action_recorder.exceptions import ActionRecorderError, ScenarioError, XPathEvaluationError
from action_recorder.recorder.agent import FrameRecorder, install_recorders
from action_recorder.recorder.models import AssertionType, Recording
from action_recorder.transport import MessageType, RecordingCoordinator
from action_recorder.utils.clock import ManualClock

logger = logging.getLogger(__name__)

DEFAULT_START_MS = 1_700_000_000_000
DEFAULT_STEP_GAP_MS = 500


def load_scenario(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Read a scenario file.

    Raises:
        ScenarioError: If the file is not a mapping with a ``steps`` list
    """
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if isinstance(data, list):
        data = {"steps": data}
    if not isinstance(data, dict) or not isinstance(data.get("steps"), list):
        raise ScenarioError(f"Scenario {path} must contain a list of steps")
    data.setdefault("name", path.stem)
    return data


class ScenarioRunner:
    """
    Replays scenario steps against a window tree while recording.

    Example:
        >>> runner = ScenarioRunner(load_window("page.yaml"))
        >>> recording = runner.run(load_scenario("steps.yaml"))
        >>> len(recording)
        3
    """

    def __init__(
        self,
        window: Window,
        settings: Optional[Settings] = None,
        clock: Optional[ManualClock] = None,
        step_gap_ms: int = DEFAULT_STEP_GAP_MS,
    ):
        self.window = window
        self.settings = settings or Settings()
        self.clock = clock or ManualClock(DEFAULT_START_MS)
        self.step_gap_ms = step_gap_ms
        self.driver = UserDriver()

        self.coordinator = RecordingCoordinator(clock=self.clock)
        self.recorders: List[FrameRecorder] = install_recorders(
            window, self.coordinator.channel, settings=self.settings, clock=self.clock
        )
        self.coordinator.register_frames(self.recorders)

        self._steps: Dict[str, Callable[[Any], None]] = {
            "click": lambda arg: self.driver.click(self.resolve(arg)),
            "type": self._type,
            "blur": lambda arg: self.driver.blur(),
            "press": self._press,
            "select": self._select,
            "check": self._check,
            "assert": self._assert,
            "exit-assert": lambda arg: self._exit_assertion_everywhere(),
            "page-marker": self._page_marker,
            "append": self._append,
            "attach-shadow": self._attach_shadow,
            "set-text": self._set_text,
            "remove": lambda arg: mutation.remove(self.resolve(arg)),
            "collect-frames": lambda arg: self.coordinator.broadcast(
                {"type": MessageType.COLLECT_IFRAME_INFO.value}
            ),
            "monitor": self._monitor,
            "wait": lambda arg: self.clock.advance(int(arg)),
        }

    # Running

    def run(self, scenario: Dict[str, Any]) -> Recording:
        """
        Record a whole scenario.

        Returns:
            The sealed Recording

        Raises:
            ScenarioError: If a step is malformed or cannot be performed
        """
        self.coordinator.start(scenario.get("name"), url=scenario.get("url") or self.window.url)
        try:
            for number, step in enumerate(scenario.get("steps") or [], start=1):
                self.run_step(step, number)
        finally:
            recording = self.coordinator.stop()
        logger.info(f"Scenario recorded {len(recording)} action(s)")
        return recording

    def run_step(self, step: Any, number: Optional[int] = None) -> None:
        if isinstance(step, str):
            step = {step: None}
        if not isinstance(step, dict) or len(step) != 1:
            raise ScenarioError(f"Step must be a single-key mapping: {step!r}", number)
        verb, arg = next(iter(step.items()))
        handler = self._steps.get(verb)
        if handler is None:
            raise ScenarioError(f"Unknown step: {verb}", number)

        self.clock.advance(self.step_gap_ms)
        logger.debug(f"Step {number}: {verb}")
        try:
            handler(arg)
        except ScenarioError as e:
            if e.step is None:
                e.step = number
                e.details["step"] = number
            raise
        except (ActionRecorderError, ValueError, KeyError, TypeError) as e:
            raise ScenarioError(f"Step {number} ({verb}) failed: {e}", number) from e

    # Targets

    def window_for(self, frames: List[Union[int, str]]) -> Window:
        """Walk down the frame tree by index or by frame name/id."""
        window = self.window
        for key in frames or []:
            elements = window.document.frame_elements()
            if isinstance(key, int):
                element = elements[key] if 0 <= key < len(elements) else None
            else:
                element = next((el for el in elements if key in (el.get("name"), el.get("id"))), None)
            child = window.document.content_window(element) if element is not None else None
            if child is None or child.document is None:
                raise ScenarioError(f"No frame {key!r} in {window.url}")
            window = child
        return window

    def scope_for(self, where: Dict[str, Any]) -> TreeScope:
        scope: TreeScope = self.window_for(where.get("frame") or []).document
        for host_xpath in where.get("shadow") or []:
            host = self._find(scope, host_xpath)
            root = scope.document.shadow_root_of(host)
            if root is None:
                raise ScenarioError(f"Element {host_xpath} has no shadow root")
            scope = root
        return scope

    def resolve(self, where: Union[str, Dict[str, Any]]) -> HtmlElement:
        """Find the element a step targets."""
        if isinstance(where, str):
            where = {"target": where}
        if not isinstance(where, dict) or not where.get("target"):
            raise ScenarioError(f"Step target missing: {where!r}")
        return self._find(self.scope_for(where), where["target"])

    def _find(self, scope: TreeScope, xpath: str) -> HtmlElement:
        try:
            element = scope.find_first(xpath)
        except XPathEvaluationError as e:
            raise ScenarioError(f"Invalid XPath {xpath}: {e}") from e
        if element is None:
            raise ScenarioError(f"No element matches {xpath}")
        return element

    # Steps

    def _type(self, arg: Dict[str, Any]) -> None:
        self.driver.type(self.resolve(arg), str(arg["text"]), clear=arg.get("clear", True))

    def _press(self, arg: Union[str, Dict[str, Any], None]) -> None:
        if arg is None or isinstance(arg, str):
            self.driver.press(key=arg or "Enter")
            return
        element = self.resolve(arg) if arg.get("target") else None
        self.driver.press(element, key=arg.get("key", "Enter"))

    def _select(self, arg: Dict[str, Any]) -> None:
        self.driver.select(self.resolve(arg), str(arg["value"]))

    def _check(self, arg: Union[str, Dict[str, Any]]) -> None:
        checked = arg.get("checked", True) if isinstance(arg, dict) else True
        self.driver.check(self.resolve(arg), checked)

    def _assert(self, arg: Optional[str]) -> None:
        assertion_type = AssertionType(arg or AssertionType.ELEMENT.value)
        self.coordinator.broadcast({
            "type": MessageType.ENTER_ASSERTION_MODE.value,
            "assertionType": assertion_type.value,
        })

    def _exit_assertion_everywhere(self) -> None:
        self.coordinator.broadcast({"type": MessageType.EXIT_ASSERTION_MODE.value})

    def _page_marker(self, arg: str) -> None:
        self.coordinator.handle_message({"type": MessageType.ADD_PAGE_MARKER.value, "pageName": arg})

    def _container(self, arg: Dict[str, Any]):
        """An element, or a shadow root when only frames and hosts are given."""
        if arg.get("target"):
            return self.resolve(arg)
        return self.scope_for(arg)

    def _append(self, arg: Dict[str, Any]) -> None:
        mutation.insert_html(self._container(arg), arg["html"])

    def _attach_shadow(self, arg: Dict[str, Any]) -> None:
        root = attach_shadow(self.resolve(arg), arg.get("mode", "open"))
        if arg.get("html"):
            mutation.insert_html(root, arg["html"])

    def _set_text(self, arg: Dict[str, Any]) -> None:
        mutation.set_text(self.resolve(arg), str(arg["text"]))

    def _monitor(self, arg: str) -> None:
        if arg == "start":
            self.coordinator.broadcast({"type": MessageType.START_PAGE_MONITOR.value})
        elif arg == "stop":
            self.coordinator.broadcast({"type": MessageType.STOP_PAGE_MONITOR.value})
        elif arg == "check":
            for recorder in self.recorders:
                recorder.check_page()
        else:
            raise ScenarioError(f"Unknown monitor command: {arg}")


def run_scenario(window: Window, scenario: Dict[str, Any], settings: Optional[Settings] = None) -> Recording:
    return ScenarioRunner(window, settings=settings).run(scenario)
