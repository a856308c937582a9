"""
Recorder Data Model

Immutable records shared by every stage of the recording pipeline:
element descriptors, captured actions, recording sessions, network
requests and synthesized wait strategies.

Raw payloads arrive as camelCase dicts from the in-page listener; the
``from_dict`` constructors normalize them into these types.
"""

import logging
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Dict, List, Any, Optional, Tuple, Mapping

from .errors import UnsupportedFrameworkError

# Configure logging
logger = logging.getLogger(__name__)


# ==================== Enums ====================

class ActionType(str, Enum):
    """Types of recordable actions"""
    CLICK = "click"
    INPUT = "input"
    CHANGE = "change"
    KEYDOWN = "keydown"
    SUBMIT = "submit"
    NAVIGATION = "navigation"
    HOVER = "hover"
    SCROLL = "scroll"
    SELECT = "select"
    UPLOAD = "upload"
    DRAG = "drag"


# Names some listeners emit for the same action types
ACTION_TYPE_ALIASES = {
    "navigate": ActionType.NAVIGATION,
    "key_down": ActionType.KEYDOWN,
    "key_press": ActionType.KEYDOWN,
    "keypress": ActionType.KEYDOWN,
    "drag-drop": ActionType.DRAG,
    "drag_drop": ActionType.DRAG,
    "file_upload": ActionType.UPLOAD,
    "type": ActionType.INPUT,
}


class SessionStatus(str, Enum):
    RECORDING = "recording"
    PAUSED = "paused"
    COMPLETED = "completed"


class RequestStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    ERROR = "error"


class Framework(str, Enum):
    """Target automation frameworks for generated scripts"""
    PLAYWRIGHT = "playwright"
    SELENIUM = "selenium"
    CYPRESS = "cypress"
    PUPPETEER = "puppeteer"

    @classmethod
    def parse(cls, value: Any) -> "Framework":
        if isinstance(value, cls):
            return value
        normalized = str(value or "").strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        raise UnsupportedFrameworkError(str(value))


class WaitKind(str, Enum):
    """Synchronization directives a generated step may need"""
    ELEMENT_EXISTS = "element_exists"
    ELEMENT_VISIBLE = "element_visible"
    ELEMENT_LOADED = "element_loaded"
    ELEMENT_CLICKABLE = "element_clickable"
    ELEMENT_ENABLED = "element_enabled"
    ELEMENT_FOCUSED = "element_focused"
    FORM_READY = "form_ready"
    FORM_VALID = "form_valid"
    ELEMENT_DRAGGABLE = "element_draggable"
    DROP_ZONE_READY = "drop_zone_ready"
    MODAL_READY = "modal_ready"
    ELEMENT_STABLE = "element_stable"
    SCROLL_STABLE = "scroll_stable"
    ANIMATION_COMPLETE = "animation_complete"
    LAZY_LOAD_COMPLETE = "lazy_load_complete"
    NETWORK_IDLE = "network_idle"
    NAVIGATION_COMPLETE = "navigation_complete"
    TAB_READY = "tab_ready"
    PAGE_LOAD = "page_load"
    CUSTOM = "custom"


# ==================== Element & Action ====================

def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    value = str(value)
    return value if value != "" else None


@dataclass(frozen=True)
class ElementDescriptor:
    """Snapshot of the target element's identifying attributes"""
    tag_name: str
    id: Optional[str] = None
    name: Optional[str] = None
    type: Optional[str] = None
    placeholder: Optional[str] = None
    text_content: Optional[str] = None
    class_list: Tuple[str, ...] = ()
    attributes: Mapping[str, str] = field(default_factory=dict)
    test_attributes: Mapping[str, str] = field(default_factory=dict)
    css_selector: Optional[str] = None
    xpath: Optional[str] = None
    stable_classes: Tuple[str, ...] = ()
    styles: Mapping[str, str] = field(default_factory=dict)

    @property
    def tag(self) -> str:
        return (self.tag_name or "").lower()

    @property
    def input_type(self) -> str:
        return (self.type or self.attributes.get("type") or "").lower()

    @property
    def is_password(self) -> bool:
        return self.input_type == "password"

    def attribute(self, key: str) -> Optional[str]:
        return _text(self.attributes.get(key))

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["ElementDescriptor"]:
        if not data:
            return None
        if isinstance(data, ElementDescriptor):
            return data

        class_list = data.get("classList", data.get("class_list"))
        if class_list is None:
            class_name = data.get("className", data.get("class_name")) or ""
            class_list = class_name.split() if isinstance(class_name, str) else []

        attributes = {str(k): str(v) for k, v in (data.get("attributes") or {}).items() if v is not None}
        test_attributes = data.get("testAttributes", data.get("test_attributes")) or {}

        return cls(
            tag_name=str(data.get("tagName", data.get("tag_name")) or "").lower(),
            id=_text(data.get("id")),
            name=_text(data.get("name")),
            type=_text(data.get("type")),
            placeholder=_text(data.get("placeholder")),
            text_content=_text(data.get("textContent", data.get("text_content", data.get("text")))),
            class_list=tuple(c for c in class_list if c),
            attributes=attributes,
            test_attributes={str(k): str(v) for k, v in test_attributes.items() if v is not None},
            css_selector=_text(data.get("cssSelector", data.get("css_selector"))),
            xpath=_text(data.get("xpath")),
            stable_classes=tuple(data.get("stableClasses", data.get("stable_classes")) or ()),
            styles=dict(data.get("styles") or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result["class_list"] = list(self.class_list)
        result["stable_classes"] = list(self.stable_classes)
        result["attributes"] = dict(self.attributes)
        result["test_attributes"] = dict(self.test_attributes)
        result["styles"] = dict(self.styles)
        return result


@dataclass(frozen=True)
class IframeInfo:
    """Frame an action happened in, identified by its origin"""
    origin: str
    src: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["IframeInfo"]:
        if not data:
            return None
        if isinstance(data, IframeInfo):
            return data
        origin = data.get("origin") or data.get("src")
        if not origin:
            return None
        return cls(origin=str(origin), src=_text(data.get("src")))


@dataclass(frozen=True)
class Action:
    """A single captured user interaction"""
    id: str
    type: ActionType
    timestamp: float
    tab_id: Optional[int] = None
    element: Optional[ElementDescriptor] = None
    value: Optional[str] = None
    url: Optional[str] = None
    key: Optional[str] = None
    title: Optional[str] = None
    iframe_info: Optional[IframeInfo] = None

    @staticmethod
    def parse_type(value: Any) -> ActionType:
        if isinstance(value, ActionType):
            return value
        raw = str(value or "").strip().lower()
        if raw in ACTION_TYPE_ALIASES:
            return ACTION_TYPE_ALIASES[raw]
        return ActionType(raw)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Action":
        """Build an action from a raw listener payload.

        Raises ValueError for unknown action types.
        """
        if isinstance(data, Action):
            return data

        action_type = cls.parse_type(data.get("type"))
        timestamp = data.get("timestamp") or 0
        value = data.get("value")
        tab_id = data.get("tabId", data.get("tab_id"))

        return cls(
            id=str(data.get("id") or f"action_{timestamp}"),
            type=action_type,
            timestamp=float(timestamp),
            tab_id=int(tab_id) if tab_id is not None else None,
            element=ElementDescriptor.from_dict(data.get("element") or data.get("target")),
            value=None if value is None else str(value),
            url=_text(data.get("url")),
            key=_text(data.get("key")),
            title=_text(data.get("title")),
            iframe_info=IframeInfo.from_dict(data.get("iframeInfo", data.get("iframe_info"))),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "timestamp": self.timestamp,
            "tab_id": self.tab_id,
            "element": self.element.to_dict() if self.element else None,
            "value": self.value,
            "url": self.url,
            "key": self.key,
            "title": self.title,
            "iframe_info": asdict(self.iframe_info) if self.iframe_info else None,
        }


# ==================== Session ====================

@dataclass(frozen=True)
class TabContext:
    """Browser tab a recording is bound to"""
    tab_id: Optional[int]
    url: str = ""
    title: str = ""


@dataclass(frozen=True)
class RecordingSession:
    """Snapshot of a recording session.

    Sessions are replaced, never mutated: each state transition
    produces a new snapshot via ``dataclasses.replace``.
    """
    id: str
    tab_id: int
    url: str
    title: str
    start_time: float
    status: SessionStatus = SessionStatus.RECORDING
    actions: Tuple[Action, ...] = ()
    end_time: Optional[float] = None
    duration: Optional[float] = None
    paused_at: Optional[float] = None
    resumed_at: Optional[float] = None

    @property
    def is_active(self) -> bool:
        return self.status != SessionStatus.COMPLETED

    @property
    def action_count(self) -> int:
        return len(self.actions)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RecordingSession":
        return cls(
            id=data["id"],
            tab_id=data["tab_id"],
            url=data.get("url", ""),
            title=data.get("title", ""),
            start_time=data["start_time"],
            status=SessionStatus(data.get("status", SessionStatus.COMPLETED.value)),
            actions=tuple(Action.from_dict(a) for a in data.get("actions", [])),
            end_time=data.get("end_time"),
            duration=data.get("duration"),
            paused_at=data.get("paused_at"),
            resumed_at=data.get("resumed_at"),
        )

    def to_dict(self, include_actions: bool = True) -> Dict[str, Any]:
        result = {
            "id": self.id,
            "tab_id": self.tab_id,
            "url": self.url,
            "title": self.title,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration": self.duration,
            "status": self.status.value,
            "action_count": self.action_count,
            "paused_at": self.paused_at,
            "resumed_at": self.resumed_at,
        }
        if include_actions:
            result["actions"] = [a.to_dict() for a in self.actions]
        return result


# ==================== Network ====================

@dataclass(frozen=True)
class NetworkRequest:
    """Consolidated record of one request's lifecycle"""
    id: str
    url: str
    method: str
    resource_type: str
    start_time: float
    timestamp: float
    status: RequestStatus = RequestStatus.PENDING
    tab_id: Optional[int] = None
    frame_id: Optional[int] = None
    request_headers: Mapping[str, str] = field(default_factory=dict)
    response_headers: Mapping[str, str] = field(default_factory=dict)
    request_body: Optional[str] = None
    status_code: Optional[int] = None
    status_line: Optional[str] = None
    end_time: Optional[float] = None
    duration: Optional[float] = None
    error: Optional[str] = None
    from_cache: bool = False

    @property
    def is_terminal(self) -> bool:
        return self.status != RequestStatus.PENDING

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result["status"] = self.status.value
        result["request_headers"] = dict(self.request_headers)
        result["response_headers"] = dict(self.response_headers)
        return result


# ==================== Waits & Generation ====================

@dataclass(frozen=True)
class WaitStrategy:
    """A synchronization directive for one generated step"""
    kind: WaitKind
    selectors: Tuple[str, ...] = ()
    timeout: Optional[int] = None
    duration: Optional[int] = None
    conditions: Tuple[str, ...] = ()
    condition: Optional[Mapping[str, Any]] = None
    description: str = ""

    @property
    def selector(self) -> Optional[str]:
        return self.selectors[0] if self.selectors else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "selectors": list(self.selectors),
            "timeout": self.timeout,
            "duration": self.duration,
            "conditions": list(self.conditions),
            "condition": dict(self.condition) if self.condition else None,
            "description": self.description,
        }


@dataclass
class TestContext:
    """Facts about a recorded flow that shape the generated test"""
    __test__ = False

    urls: List[str] = field(default_factory=list)
    start_url: Optional[str] = None
    requires_auth: bool = False
    has_form_submission: bool = False
    test_name: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class GenerationOptions:
    """Switches for a single script generation request"""
    include_assertions: bool = True
    include_waits: bool = True
    include_comments: bool = True
    include_network_assertions: bool = False
    mock_network: bool = False
    page_objects: bool = False
    test_name: Optional[str] = None
    start_url: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "GenerationOptions":
        if not data:
            return cls()
        if isinstance(data, GenerationOptions):
            return data
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        for camel, snake in (
            ("includeAssertions", "include_assertions"),
            ("includeWaits", "include_waits"),
            ("includeComments", "include_comments"),
            ("includeNetworkAssertions", "include_network_assertions"),
            ("mockNetwork", "mock_network"),
            ("pageObjects", "page_objects"),
            ("testName", "test_name"),
            ("startUrl", "start_url"),
        ):
            if camel in data and snake not in known:
                known[snake] = data[camel]
        return cls(**known)
