"""
JSON Exporter - full-detail export of a Recording.

The export keeps everything a test author or a code generator needs:
metadata, a page-marker summary, and every action with its locators,
element details and context (frame chain, frame switch selectors, shadow
host chain). Context a replayer cannot handle automatically, closed
shadow roots and unidentified cross-origin frames, is called out in
``manualIntervention`` notes.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from action_recorder.recorder.models import Action, ActionKind, Recording

logger = logging.getLogger(__name__)


def _iso(timestamp_ms: Optional[int]) -> Optional[str]:
    if not timestamp_ms:
        return None
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc).isoformat().replace("+00:00", "Z")


class JSONExporter:
    """
    Exports Recordings to the detailed JSON format.

    Example:
        >>> exporter = JSONExporter()
        >>> text = exporter.export(recording)
    """

    def __init__(self, indent: int = 2):
        self.indent = indent

    def export(self, recording: Recording, exported_at: Optional[datetime] = None) -> str:
        return json.dumps(self.to_dict(recording, exported_at), indent=self.indent)

    def to_dict(self, recording: Recording, exported_at: Optional[datetime] = None) -> Dict[str, Any]:
        actions = list(recording.actions)
        exported_at = exported_at or datetime.now(timezone.utc)
        duration = None
        if recording.end_time and recording.start_time:
            duration = f"{round((recording.end_time - recording.start_time) / 1000)}s"
        return {
            "metadata": {
                "name": recording.name or "Unnamed Recording",
                "id": recording.id or None,
                "url": recording.url,
                "startTime": _iso(recording.start_time),
                "endTime": _iso(recording.end_time),
                "duration": duration,
                "totalActions": len(actions),
                "exportedAt": exported_at.isoformat(),
            },
            "pageMarkers": self.page_markers(actions),
            "actions": [self.format_action(action, index) for index, action in enumerate(actions)],
        }

    def page_markers(self, actions: List[Action]) -> List[Dict[str, Any]]:
        return [
            {"index": index, "pageName": action.page_name, "timestamp": _iso(action.timestamp)}
            for index, action in enumerate(actions)
            if action.kind == ActionKind.PAGE_MARKER
        ]

    def format_action(self, action: Action, index: int) -> Dict[str, Any]:
        if action.kind == ActionKind.PAGE_MARKER:
            return {
                "index": index,
                "type": action.kind.value,
                "pageName": action.page_name,
                "timestamp": _iso(action.timestamp),
            }

        element = action.element
        formatted: Dict[str, Any] = {
            "index": index,
            "type": action.kind.value,
            "description": action.description or None,
            "locator": {
                "xpath": action.locator.primary if action.locator else None,
                "fullXPath": action.locator.full_path if action.locator else None,
            },
            "element": {
                "tag": element.tag,
                "type": element.type,
                "id": element.id,
                "name": element.name,
                "className": element.class_name,
                "text": element.text,
                "placeholder": element.placeholder,
                "ariaLabel": element.aria_label,
            } if element else None,
            "context": self.context(action),
            "timestamp": _iso(action.timestamp),
        }

        if action.kind == ActionKind.ASSERTION:
            formatted["assertionType"] = action.assertion_type.value if action.assertion_type else "element"
            formatted["expectedValue"] = action.expected_value
        elif action.kind == ActionKind.INPUT:
            formatted["value"] = action.value or ""
        elif action.kind == ActionKind.SELECT:
            formatted["value"] = action.value or ""
            formatted["selectedText"] = action.option_label or ""
        elif action.kind == ActionKind.KEYPRESS:
            formatted["key"] = action.key or ""
        elif action.kind == ActionKind.CHECK:
            formatted["checked"] = bool(action.checked)
        return formatted

    def context(self, action: Action) -> Dict[str, Any]:
        context: Dict[str, Any] = {"inIframe": False, "inShadowDOM": False}
        notes = []

        if action.frame_context:
            context["inIframe"] = True
            context["iframeDepth"] = len(action.frame_context)
            context["iframePath"] = [
                {
                    "xpath": frame.locator,
                    "fullXPath": frame.full_path,
                    "selector": frame.selector,
                    "id": frame.id,
                    "name": frame.name,
                    "index": frame.index,
                    "crossOrigin": frame.cross_origin_blocked,
                }
                for frame in action.frame_context
            ]
            context["iframeSelector"] = " → ".join(
                frame.selector or f"(//iframe)[{(frame.index or 0) + 1}]" for frame in action.frame_context
            )
            for frame in action.frame_context:
                if frame.cross_origin_blocked:
                    notes.append(
                        f"Frame at level {frame.index} is cross-origin and could not be identified; "
                        f"verify the frame selector {frame.selector} by hand"
                    )

        if action.frame_index is not None:
            context["frameIndex"] = action.frame_index

        if action.shadow_context:
            context["inShadowDOM"] = True
            context["shadowDepth"] = len(action.shadow_context)
            context["shadowPath"] = [shadow.to_dict() for shadow in action.shadow_context]
            context["shadowHostChain"] = [s.host_locator for s in action.shadow_context if s.host_locator]
            for shadow in action.shadow_context:
                if shadow.is_closed:
                    notes.append(
                        f"Shadow root of <{shadow.host_tag}> is closed; "
                        f"{shadow.inner_path} cannot be reached by script"
                    )

        if notes:
            context["manualIntervention"] = notes
        return context
