"""
Recorder - turns page interactions into canonical Actions.

Components, leaf first:
    LocatorSynthesizer  stable XPath locators
    ContextTracer       frame chain and shadow-host chain
    ValueExtractor      user-visible values, password masking
    ActionNormalizer    assembles, deduplicates and emits Actions
    CaptureSession      listeners, shadow-root discovery, input coalescing
    FrameRecorder       per-window command endpoint

Usage:
    from action_recorder.recorder import install_recorders
    from action_recorder.transport import RecordingCoordinator

    coordinator = RecordingCoordinator()
    coordinator.register_frames(install_recorders(window, coordinator.channel))
    coordinator.start("Login flow", url=window.url)
"""

from action_recorder.recorder.models import (
    PASSWORD_MASK,
    Action,
    ActionKind,
    AssertionType,
    ElementSnapshot,
    FrameDescriptor,
    Locator,
    Recording,
    ShadowHostDescriptor,
)
from action_recorder.recorder.locator import LocatorSynthesizer, xpath_literal
from action_recorder.recorder.context import (
    ContextTracer,
    FrameIdentityResolver,
    HandshakeFrameResolver,
    SameOriginFrameResolver,
)
from action_recorder.recorder.values import ValueExtractor
from action_recorder.recorder.emitter import ActionEmitter
from action_recorder.recorder.normalizer import ActionNormalizer
from action_recorder.recorder.observation import CaptureSession, CaptureState
from action_recorder.recorder.page_monitor import PageMonitor
from action_recorder.recorder.agent import FrameRecorder, install_recorders

__all__ = [
    "PASSWORD_MASK",
    "Action",
    "ActionKind",
    "AssertionType",
    "ElementSnapshot",
    "FrameDescriptor",
    "Locator",
    "Recording",
    "ShadowHostDescriptor",
    "LocatorSynthesizer",
    "xpath_literal",
    "ContextTracer",
    "FrameIdentityResolver",
    "HandshakeFrameResolver",
    "SameOriginFrameResolver",
    "ValueExtractor",
    "ActionEmitter",
    "ActionNormalizer",
    "CaptureSession",
    "CaptureState",
    "PageMonitor",
    "FrameRecorder",
    "install_recorders",
]
