"""
Pytest configuration and fixtures.
"""

import pytest

from action_recorder.config import Settings, reset_settings
from action_recorder.dom import UserDriver, build_window
from action_recorder.recorder import install_recorders
from action_recorder.transport import RecordingCoordinator
from action_recorder.utils.clock import ManualClock


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Never leak the settings singleton between tests."""
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def settings():
    """Provide test settings."""
    return Settings()


@pytest.fixture
def clock():
    """A manual clock starting at a fixed instant."""
    return ManualClock(1_700_000_000_000)


@pytest.fixture
def driver():
    return UserDriver()


@pytest.fixture
def make_window():
    """Build a window tree from a page bundle, or from bare markup."""
    def _make(html=None, url="https://shop.test/", frames=None, bundle=None):
        if bundle is None:
            bundle = {"url": url, "html": html, "frames": frames or []}
        return build_window(bundle)
    return _make


@pytest.fixture
def recording_page(settings, clock):
    """
    Install recorders on a window and start a recording.

    Returns a callable taking the window and returning (coordinator, recorders).
    """
    def _start(window, name="Test recording"):
        coordinator = RecordingCoordinator(clock=clock)
        recorders = install_recorders(window, coordinator.channel, settings=settings, clock=clock)
        coordinator.register_frames(recorders)
        coordinator.start(name, url=window.url)
        return coordinator, recorders
    return _start
