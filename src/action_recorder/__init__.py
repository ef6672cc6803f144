"""
Action Recorder - records user interactions on web pages as replayable actions.

Every click, text entry, selection, key press and assertion becomes an
Action carrying redundant XPath locators, the chain of frames to enter
and the chain of shadow hosts to pierce. Recordings export as annotated
JSON or as runnable Playwright scripts.

Example:
    >>> from action_recorder import ScenarioRunner, load_window, load_scenario
    >>> runner = ScenarioRunner(load_window("page.yaml"))
    >>> recording = runner.run(load_scenario("steps.yaml"))
    >>> print(recording.to_json())
"""

__version__ = "0.1.0"

# Public API exports
from action_recorder.config.settings import Settings
from action_recorder.dom.builder import build_window, load_window
from action_recorder.recorder.models import Action, ActionKind, Recording
from action_recorder.recorder.agent import FrameRecorder, install_recorders
from action_recorder.transport.coordinator import RecordingCoordinator
from action_recorder.export import JSONExporter, PlaywrightScriptGenerator
from action_recorder.scenario import ScenarioRunner, load_scenario

__all__ = [
    "Settings",
    "build_window",
    "load_window",
    "Action",
    "ActionKind",
    "Recording",
    "FrameRecorder",
    "install_recorders",
    "RecordingCoordinator",
    "JSONExporter",
    "PlaywrightScriptGenerator",
    "ScenarioRunner",
    "load_scenario",
    "__version__",
]
