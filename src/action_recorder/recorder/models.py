"""
Recording data model.

Actions are immutable records of one user interaction, with everything a
replayer needs to find the element again: redundant locators, the chain
of frames to enter and the chain of shadow hosts to pierce. A Recording
is an append-only list of Actions that is sealed when capture stops.

The dictionary form produced by ``to_dict()`` is the canonical wire and
file format.
"""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from action_recorder.exceptions import RecordingSealedError

logger = logging.getLogger(__name__)

PASSWORD_MASK = "****"


class ActionKind(str, Enum):
    """Kinds of recordable actions."""
    CLICK = "click"
    INPUT = "input"
    SELECT = "select"
    CHECK = "check"
    KEYPRESS = "keypress"
    ASSERTION = "assertion"
    PAGE_MARKER = "page-marker"


class AssertionType(str, Enum):
    """What an assertion checks."""
    ELEMENT = "element"
    TEXT = "text"


@dataclass(frozen=True)
class Locator:
    """
    Redundant locators for one element.

    Attributes:
        primary: Shortest stable XPath that matched exactly this element, or None
        full_path: Absolute position-indexed path, always present
    """
    primary: Optional[str]
    full_path: str

    @property
    def best(self) -> str:
        return self.primary or self.full_path


@dataclass(frozen=True)
class ElementSnapshot:
    """Element properties captured at action time."""
    tag: str
    type: Optional[str] = None
    id: Optional[str] = None
    name: Optional[str] = None
    class_list: Tuple[str, ...] = ()
    text: Optional[str] = None
    placeholder: Optional[str] = None
    value: Optional[str] = None
    href: Optional[str] = None
    role: Optional[str] = None
    aria_label: Optional[str] = None
    visible: bool = True
    in_shadow_dom: bool = False
    in_iframe: bool = False

    @property
    def class_name(self) -> Optional[str]:
        return " ".join(self.class_list) or None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tag": self.tag,
            "type": self.type,
            "id": self.id,
            "name": self.name,
            "className": self.class_name,
            "text": self.text,
            "placeholder": self.placeholder,
            "value": self.value,
            "href": self.href,
            "role": self.role,
            "ariaLabel": self.aria_label,
            "visible": self.visible,
            "inShadowDOM": self.in_shadow_dom,
            "inIframe": self.in_iframe,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ElementSnapshot":
        return cls(
            tag=data.get("tag") or "",
            type=data.get("type"),
            id=data.get("id"),
            name=data.get("name"),
            class_list=tuple((data.get("className") or "").split()),
            text=data.get("text"),
            placeholder=data.get("placeholder"),
            value=data.get("value"),
            href=data.get("href"),
            role=data.get("role"),
            aria_label=data.get("ariaLabel"),
            visible=data.get("visible", True),
            in_shadow_dom=data.get("inShadowDOM", False),
            in_iframe=data.get("inIframe", False),
        )


@dataclass(frozen=True)
class FrameDescriptor:
    """
    Identity of one frame element on the way from the top window down.

    A descriptor with ``cross_origin_blocked`` set is a sentinel: the
    frame could not be identified and the chain ends there.
    """
    locator: Optional[str] = None
    full_path: Optional[str] = None
    id: Optional[str] = None
    name: Optional[str] = None
    src: Optional[str] = None
    title: Optional[str] = None
    class_name: Optional[str] = None
    index: Optional[int] = None
    selector: Optional[str] = None
    cross_origin_blocked: bool = False
    note: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "xpath": self.locator,
            "fullXPath": self.full_path,
            "id": self.id,
            "name": self.name,
            "src": self.src,
            "title": self.title,
            "className": self.class_name,
            "index": self.index,
            "selector": self.selector,
        }
        if self.cross_origin_blocked:
            result["crossOrigin"] = True
        if self.note:
            result["note"] = self.note
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FrameDescriptor":
        return cls(
            locator=data.get("xpath"),
            full_path=data.get("fullXPath"),
            id=data.get("id"),
            name=data.get("name"),
            src=data.get("src"),
            title=data.get("title"),
            class_name=data.get("className"),
            index=data.get("index"),
            selector=data.get("selector"),
            cross_origin_blocked=bool(data.get("crossOrigin", False)),
            note=data.get("note") or data.get("message"),
        )


@dataclass(frozen=True)
class ShadowHostDescriptor:
    """One shadow boundary: the host and the element's path inside its root."""
    host_locator: str
    host_tag: str
    inner_path: str
    mode: str = "open"
    host_id: Optional[str] = None
    host_class: Optional[str] = None
    inner_selector: Optional[str] = None

    @property
    def is_closed(self) -> bool:
        return self.mode == "closed"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hostXPath": self.host_locator,
            "hostTag": self.host_tag,
            "hostId": self.host_id,
            "hostClass": self.host_class,
            "innerXPath": self.inner_path,
            "innerSelector": self.inner_selector,
            "shadowMode": self.mode,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ShadowHostDescriptor":
        return cls(
            host_locator=data.get("hostXPath") or "",
            host_tag=data.get("hostTag") or "",
            inner_path=data.get("innerXPath") or "",
            inner_selector=data.get("innerSelector"),
            mode=data.get("shadowMode") or "open",
            host_id=data.get("hostId"),
            host_class=data.get("hostClass"),
        )


@dataclass(frozen=True)
class Action:
    """
    A single recorded user action.

    ``locator`` is None only for page markers. ``frame_context`` and
    ``shadow_context`` run outermost first and are empty at top level.
    """
    kind: ActionKind
    timestamp: int
    locator: Optional[Locator] = None
    element: Optional[ElementSnapshot] = None
    frame_context: Tuple[FrameDescriptor, ...] = ()
    frame_index: Optional[int] = None
    shadow_context: Tuple[ShadowHostDescriptor, ...] = ()
    description: str = ""
    value: Optional[str] = None
    option_label: Optional[str] = None
    checked: Optional[bool] = None
    key: Optional[str] = None
    assertion_type: Optional[AssertionType] = None
    expected_value: Optional[str] = None
    page_name: Optional[str] = None
    frame_id: Optional[int] = None
    url: Optional[str] = None

    @property
    def in_iframe(self) -> bool:
        return bool(self.frame_context)

    @property
    def in_shadow_dom(self) -> bool:
        return bool(self.shadow_context)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the canonical dictionary form."""
        result: Dict[str, Any] = {
            "type": self.kind.value,
            "xpath": self.locator.primary if self.locator else None,
            "fullXPath": self.locator.full_path if self.locator else None,
            "element": self.element.to_dict() if self.element else None,
            "iframe": [f.to_dict() for f in self.frame_context] or None,
            "frameIndex": self.frame_index,
            "shadow": [s.to_dict() for s in self.shadow_context] or None,
            "description": self.description,
        }
        if self.value is not None:
            result["value"] = self.value
        if self.option_label is not None:
            result["text"] = self.option_label
        if self.key is not None:
            result["key"] = self.key
        if self.checked is not None:
            result["checked"] = self.checked
        if self.assertion_type is not None:
            result["assertionType"] = self.assertion_type.value
        if self.expected_value is not None:
            result["expectedValue"] = self.expected_value
        if self.page_name is not None:
            result["pageName"] = self.page_name
        if self.frame_id is not None:
            result["frameId"] = self.frame_id
        if self.url is not None:
            result["url"] = self.url
        result["timestamp"] = self.timestamp
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Action":
        """Create from the canonical dictionary form."""
        locator = None
        if data.get("fullXPath") is not None or data.get("xpath") is not None:
            locator = Locator(primary=data.get("xpath"), full_path=data.get("fullXPath") or "")
        assertion_type = data.get("assertionType")
        return cls(
            kind=ActionKind(data["type"]),
            timestamp=int(data.get("timestamp") or 0),
            locator=locator,
            element=ElementSnapshot.from_dict(data["element"]) if data.get("element") else None,
            frame_context=tuple(FrameDescriptor.from_dict(f) for f in data.get("iframe") or []),
            frame_index=data.get("frameIndex"),
            shadow_context=tuple(ShadowHostDescriptor.from_dict(s) for s in data.get("shadow") or []),
            description=data.get("description") or "",
            value=data.get("value"),
            option_label=data.get("text"),
            checked=data.get("checked"),
            key=data.get("key"),
            assertion_type=AssertionType(assertion_type) if assertion_type else None,
            expected_value=data.get("expectedValue"),
            page_name=data.get("pageName"),
            frame_id=data.get("frameId"),
            url=data.get("url"),
        )


@dataclass
class Recording:
    """
    A complete recording session.

    Actions can only be appended, and only until the recording is sealed.
    """
    id: str
    name: str
    url: Optional[str] = None
    start_time: int = 0
    end_time: Optional[int] = None
    _actions: List[Action] = field(default_factory=list, init=False, repr=False)

    @property
    def actions(self) -> Tuple[Action, ...]:
        return tuple(self._actions)

    @property
    def sealed(self) -> bool:
        return self.end_time is not None

    @property
    def page_markers(self) -> List[Action]:
        return [a for a in self._actions if a.kind == ActionKind.PAGE_MARKER]

    def append(self, action: Action) -> None:
        """
        Append an action.

        Raises:
            RecordingSealedError: If the recording was already sealed
        """
        if self.sealed:
            raise RecordingSealedError("Cannot append to a sealed recording", self.id)
        self._actions.append(action)

    def seal(self, end_time: int) -> None:
        if self.sealed:
            return
        self.end_time = end_time
        logger.debug(f"Sealed recording {self.id} with {len(self._actions)} action(s)")

    def __len__(self) -> int:
        return len(self._actions)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "name": self.name,
            "url": self.url,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "actions": [a.to_dict() for a in self._actions],
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Recording":
        """Create from dictionary. The result is sealed if the data has an end time."""
        recording = cls(
            id=data.get("id") or "",
            name=data.get("name") or "",
            url=data.get("url"),
            start_time=int(data.get("startTime") or 0),
        )
        for item in data.get("actions", []):
            recording.append(Action.from_dict(item))
        if data.get("endTime") is not None:
            recording.seal(int(data["endTime"]))
        return recording

    @classmethod
    def from_json(cls, json_str: str) -> "Recording":
        """Create from JSON string."""
        return cls.from_dict(json.loads(json_str))
