"""
Action Normalizer - folds an element and an interaction into an Action.

For one element the normalizer gathers the locator, the frame chain, the
frame index, the shadow chain, an element snapshot, the kind-specific
payload, a description and a timestamp. Assembly is all-or-nothing: if
anything goes wrong the action is logged and dropped, never half-built.

Identical consecutive actions (same kind, same locator) inside the
deduplication window collapse into one, since a single gesture often
reaches the recorder through more than one listener.
"""

import logging
from typing import Optional, Tuple, Union

from lxml.html import HtmlElement

from action_recorder.config.settings import CaptureSettings, LocatorSettings
from action_recorder.dom import nodes
from action_recorder.dom.scope import is_connected, open_shadow_root
from action_recorder.dom.window import Window
from action_recorder.recorder.context import ContextTracer
from action_recorder.recorder.describe import describe
from action_recorder.recorder.emitter import ActionEmitter
from action_recorder.recorder.locator import LocatorSynthesizer
from action_recorder.recorder.models import Action, ActionKind, AssertionType, PASSWORD_MASK
from action_recorder.recorder.snapshot import take_snapshot
from action_recorder.recorder.values import ValueExtractor
from action_recorder.utils.clock import SystemClock

logger = logging.getLogger(__name__)


class ActionNormalizer:
    """
    Builds canonical Actions for one window and hands them to an emitter.

    Example:
        >>> normalizer = ActionNormalizer(window, emitter)
        >>> action = normalizer.record(ActionKind.CLICK, button)
        >>> action.locator.primary
        '//button[@id="submit"]'
    """

    def __init__(
        self,
        window: Window,
        emitter: Optional[ActionEmitter] = None,
        settings: Optional[CaptureSettings] = None,
        locator_settings: Optional[LocatorSettings] = None,
        clock=None,
        tracer: Optional[ContextTracer] = None,
        extractor: Optional[ValueExtractor] = None,
    ):
        self.window = window
        self.emitter = emitter
        self.settings = settings or CaptureSettings()
        self.clock = clock or SystemClock()
        self.synthesizer = tracer.synthesizer if tracer else LocatorSynthesizer(locator_settings)
        self.tracer = tracer or ContextTracer(self.synthesizer)
        self.extractor = extractor or ValueExtractor()
        self._last: Optional[Tuple[ActionKind, str, int]] = None

    def _is_duplicate(self, kind: ActionKind, key: str, now: int) -> bool:
        if self._last is None:
            return False
        last_kind, last_key, last_time = self._last
        return last_kind == kind and last_key == key and (now - last_time) < self.settings.dedup_window_ms

    def normalize(
        self,
        kind: ActionKind,
        element: Optional[HtmlElement],
        value: Optional[str] = None,
        option_label: Optional[str] = None,
        checked: Optional[bool] = None,
        key: Optional[str] = None,
        assertion_type: Optional[Union[AssertionType, str]] = None,
        expected_value: Optional[str] = None,
        dedup: bool = True,
    ) -> Optional[Action]:
        """
        Assemble an Action for ``element``.

        Only consecutive actions are compared for deduplication; with
        ``dedup=False`` the check is skipped but the action still becomes
        the one the next action is compared against.

        Returns:
            The Action, or None for a missing or detached element, a
            duplicate inside the deduplication window, or a failed assembly
        """
        if element is None or not is_connected(element):
            return None

        try:
            locator = self.synthesizer.synthesize(element)
            now = self.clock.now_ms()
            dedup_key = locator.primary or locator.full_path
            if dedup and self._is_duplicate(kind, dedup_key, now):
                logger.debug(f"Skipping duplicate: {kind.value} {dedup_key}")
                return None

            if nodes.is_password_input(element):
                value = PASSWORD_MASK if value is not None else None
                expected_value = PASSWORD_MASK if expected_value is not None else None
            if assertion_type is not None:
                assertion_type = AssertionType(assertion_type)

            frame_context = self.tracer.trace_frame_context(self.window)
            action = Action(
                kind=kind,
                timestamp=now,
                locator=locator,
                element=take_snapshot(
                    element,
                    in_iframe=not self.window.is_top,
                    extractor=self.extractor,
                    text_limit=self.settings.snapshot_text_length,
                ),
                frame_context=frame_context,
                frame_index=self.tracer.frame_index(self.window),
                shadow_context=self.tracer.trace_shadow_context(element),
                description=describe(
                    kind,
                    element,
                    value=value,
                    checked=checked,
                    key=key,
                    assertion_type=assertion_type.value if assertion_type else None,
                    expected_value=expected_value,
                    text_limit=self.settings.description_text_length,
                ),
                value=value,
                option_label=option_label,
                checked=checked,
                key=key,
                assertion_type=assertion_type,
                expected_value=expected_value,
            )
        except Exception as e:
            logger.warning(f"Error recording {kind.value} action: {e}", exc_info=True)
            return None

        self._last = (kind, dedup_key, now)
        logger.debug(f"Action: {kind.value} {dedup_key}")
        return action

    def record(self, kind: ActionKind, element: Optional[HtmlElement], **payload) -> Optional[Action]:
        """Normalize and emit. Returns the emitted Action, or None."""
        action = self.normalize(kind, element, **payload)
        if action is not None and self.emitter is not None:
            self.emitter.emit(action)
        return action

    def expected_value(self, element: HtmlElement) -> Optional[str]:
        """What an assertion on ``element`` should expect to find."""
        value = self.extractor.recordable_value(element)
        if value:
            return value
        limit = self.settings.snapshot_text_length
        shadow_root = open_shadow_root(element)
        if shadow_root is not None:
            text = shadow_root.text_content().strip()
            if text:
                return text[:limit]
        text = nodes.text_content(element).strip()
        return text[:limit] or None

    def record_assertion(
        self,
        element: Optional[HtmlElement],
        assertion_type: Union[AssertionType, str] = AssertionType.ELEMENT,
    ) -> Optional[Action]:
        """Record an assertion on ``element``; assertions are never deduplicated."""
        if element is None or not is_connected(element):
            return None
        return self.record(
            ActionKind.ASSERTION,
            element,
            assertion_type=AssertionType(assertion_type),
            expected_value=self.expected_value(element),
            dedup=False,
        )
