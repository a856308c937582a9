"""
Network Correlation Engine

Folds the browser's per-phase request events (start, request headers,
response headers, completion or error) into one record per request.

Each event is applied by a pure reducer to an immutable snapshot.
Snapshots live in an in-flight arena keyed by request id until a
terminal event moves them to the append-only finalized list.
"""

import re
import json
import time
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, List, Any, Optional, Callable, Mapping

from ..config import ScribeConfig
from ..models import NetworkRequest, RequestStatus
from .classifier import RequestClassification, classify
from .exporter import export_network_data

# Configure logging
logger = logging.getLogger(__name__)


EXCLUDED_RESOURCE_TYPES = frozenset(["stylesheet", "font", "image", "media"])
INCLUDED_RESOURCE_TYPES = frozenset(["fetch", "xmlhttprequest", "document", "script", "websocket"])

# Tracker, analytics and asset URLs that never belong in a test
EXCLUDED_URL_PATTERNS = [
    re.compile(p, re.IGNORECASE) for p in (
        r"^chrome-extension://",
        r"^moz-extension://",
        r"^data:image/",
        r"\.woff2?(\?|$)",
        r"\.ttf(\?|$)",
        r"\.eot(\?|$)",
        r"google.*analytics",
        r"googletagmanager\.com",
        r"facebook\.net",
        r"doubleclick\.net",
        r"hotjar\.com",
        r"segment\.(io|com)",
        r"mixpanel\.com",
    )
]

RESOURCE_TYPE_ALIASES = {
    "xhr": "xmlhttprequest",
    "main_frame": "document",
    "sub_frame": "document",
}


class NetworkEventKind(str, Enum):
    START = "start"
    REQUEST_HEADERS = "request_headers"
    RESPONSE_HEADERS = "response_headers"
    COMPLETED = "completed"
    ERROR = "error"


# Browser webRequest listener names mapped to event kinds
EVENT_KIND_ALIASES = {
    "onbeforerequest": NetworkEventKind.START,
    "onbeforesendheaders": NetworkEventKind.REQUEST_HEADERS,
    "onsendheaders": NetworkEventKind.REQUEST_HEADERS,
    "onheadersreceived": NetworkEventKind.RESPONSE_HEADERS,
    "onresponsestarted": NetworkEventKind.RESPONSE_HEADERS,
    "oncompleted": NetworkEventKind.COMPLETED,
    "onerroroccurred": NetworkEventKind.ERROR,
}


def normalize_headers(headers: Any) -> Dict[str, str]:
    """Lower-cased header map from a name/value list or a mapping."""
    if not headers:
        return {}
    if isinstance(headers, Mapping):
        return {str(k).lower(): str(v) for k, v in headers.items()}
    result = {}
    for header in headers:
        name = header.get("name")
        if name:
            result[str(name).lower()] = str(header.get("value", ""))
    return result


def normalize_resource_type(resource_type: Optional[str]) -> str:
    raw = (resource_type or "other").lower()
    return RESOURCE_TYPE_ALIASES.get(raw, raw)


def extract_body(body: Any, max_size: int) -> Optional[str]:
    """Best-effort text rendition of a captured request body, capped."""
    if body is None:
        return None
    if isinstance(body, str):
        text = body
    elif isinstance(body, Mapping) and "formData" in body:
        text = json.dumps(body["formData"])
    elif isinstance(body, Mapping) and isinstance(body.get("raw"), list):
        chunks = [c.get("bytes") for c in body["raw"] if isinstance(c, Mapping)]
        text = "".join(c for c in chunks if isinstance(c, str))
    else:
        text = json.dumps(body)
    if not text:
        return None
    return text[:max_size]


@dataclass(frozen=True)
class NetworkEvent:
    """One lifecycle event for one request"""
    kind: NetworkEventKind
    request_id: str
    timestamp: float
    url: Optional[str] = None
    method: Optional[str] = None
    resource_type: Optional[str] = None
    tab_id: Optional[int] = None
    frame_id: Optional[int] = None
    request_headers: Optional[Dict[str, str]] = None
    response_headers: Optional[Dict[str, str]] = None
    body: Any = None
    status_code: Optional[int] = None
    status_line: Optional[str] = None
    error: Optional[str] = None
    from_cache: bool = False
    wall_time: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NetworkEvent":
        raw_kind = str(data.get("event") or data.get("kind") or "").strip()
        kind = EVENT_KIND_ALIASES.get(raw_kind.lower()) or NetworkEventKind(raw_kind.lower())
        tab_id = data.get("tabId", data.get("tab_id"))
        frame_id = data.get("frameId", data.get("frame_id"))
        request_headers = data.get("requestHeaders", data.get("request_headers"))
        response_headers = data.get("responseHeaders", data.get("response_headers"))
        status_code = data.get("statusCode", data.get("status_code"))
        request_id = data.get("requestId", data.get("request_id", data.get("id")))
        if request_id is None or str(request_id) == "":
            raise ValueError(f"Network event {raw_kind!r} has no request id")

        return cls(
            kind=kind,
            request_id=str(request_id),
            timestamp=float(data.get("timeStamp", data.get("timestamp")) or 0),
            url=data.get("url"),
            method=data.get("method"),
            resource_type=data.get("type", data.get("resource_type")),
            tab_id=int(tab_id) if tab_id is not None else None,
            frame_id=int(frame_id) if frame_id is not None else None,
            request_headers=normalize_headers(request_headers) if request_headers is not None else None,
            response_headers=normalize_headers(response_headers) if response_headers is not None else None,
            body=data.get("requestBody", data.get("body")),
            status_code=int(status_code) if status_code is not None else None,
            status_line=data.get("statusLine", data.get("status_line")),
            error=data.get("error"),
            from_cache=bool(data.get("fromCache", data.get("from_cache", False))),
            wall_time=data.get("wallTime", data.get("wall_time")),
        )


def apply_event(
    request: Optional[NetworkRequest],
    event: NetworkEvent,
    max_body_size: int = 100000,
) -> Optional[NetworkRequest]:
    """Reduce one event onto a request snapshot.

    Returns the new snapshot, or None when a non-start event has no
    snapshot to apply to.
    """
    if event.kind == NetworkEventKind.START:
        return NetworkRequest(
            id=event.request_id,
            url=event.url or "",
            method=(event.method or "GET").upper(),
            resource_type=normalize_resource_type(event.resource_type),
            start_time=event.timestamp,
            timestamp=event.wall_time if event.wall_time is not None else event.timestamp,
            tab_id=event.tab_id,
            frame_id=event.frame_id,
            request_headers=event.request_headers or {},
            request_body=extract_body(event.body, max_body_size),
        )

    if request is None:
        return None

    if event.kind == NetworkEventKind.REQUEST_HEADERS:
        return replace(request, request_headers={**request.request_headers, **(event.request_headers or {})})

    if event.kind == NetworkEventKind.RESPONSE_HEADERS:
        return replace(
            request,
            response_headers={**request.response_headers, **(event.response_headers or {})},
            status_code=event.status_code if event.status_code is not None else request.status_code,
            status_line=event.status_line or request.status_line,
        )

    status = RequestStatus.COMPLETED if event.kind == NetworkEventKind.COMPLETED else RequestStatus.ERROR
    return replace(
        request,
        status=status,
        end_time=event.timestamp,
        duration=event.timestamp - request.start_time,
        status_code=event.status_code if event.status_code is not None else request.status_code,
        status_line=event.status_line or request.status_line,
        response_headers={**request.response_headers, **(event.response_headers or {})},
        error=event.error if status == RequestStatus.ERROR else None,
        from_cache=event.from_cache or request.from_cache,
    )


@dataclass
class NetworkSummary:
    total_requests: int = 0
    requests_by_type: Dict[str, int] = field(default_factory=dict)
    requests_by_status: Dict[str, int] = field(default_factory=dict)
    average_response_time: float = 0.0
    error_count: int = 0
    api_requests: List[Dict[str, Any]] = field(default_factory=list)
    graphql_operations: int = 0
    websocket_connections: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_requests": self.total_requests,
            "requests_by_type": dict(self.requests_by_type),
            "requests_by_status": dict(self.requests_by_status),
            "average_response_time": self.average_response_time,
            "error_count": self.error_count,
            "api_requests": list(self.api_requests),
            "graphql_operations": self.graphql_operations,
            "websocket_connections": self.websocket_connections,
        }


def status_bucket(request: NetworkRequest) -> str:
    if request.status == RequestStatus.COMPLETED and request.status_code is not None:
        return str((request.status_code // 100) * 100)
    return request.status.value


class NetworkCorrelationEngine:
    """Correlates request lifecycle events into finalized request records"""

    def __init__(self, config: Optional[ScribeConfig] = None, clock: Optional[Callable[[], float]] = None):
        self.config = config or ScribeConfig()
        self.clock = clock or (lambda: time.time() * 1000)
        self.is_recording = False
        self._in_flight: Dict[str, NetworkRequest] = {}
        self._finalized: List[NetworkRequest] = []
        self._finalized_ids: set = set()
        self._classifications: Dict[str, RequestClassification] = {}
        self.recording_started_at: Optional[float] = None

    # ==================== Recording ====================

    def start_recording(self):
        self.is_recording = True
        self.recording_started_at = self.clock()
        self._in_flight.clear()
        self._finalized.clear()
        self._finalized_ids.clear()
        self._classifications.clear()
        logger.info("Network recording started")

    def stop_recording(self) -> Dict[str, Any]:
        self.is_recording = False
        if self._in_flight:
            logger.info(f"Network recording stopped with {len(self._in_flight)} requests still in flight")
        else:
            logger.info("Network recording stopped")
        return {
            "requests": [r.to_dict() for r in self._finalized],
            "summary": self.summary().to_dict(),
        }

    # ==================== Ingestion ====================

    def should_record(self, url: str, resource_type: str) -> bool:
        if resource_type in EXCLUDED_RESOURCE_TYPES:
            return False
        if INCLUDED_RESOURCE_TYPES and resource_type not in INCLUDED_RESOURCE_TYPES:
            return False
        return not any(pattern.search(url or "") for pattern in EXCLUDED_URL_PATTERNS)

    def ingest(self, event: Any) -> Optional[NetworkRequest]:
        """Apply one lifecycle event; returns the affected snapshot."""
        if not isinstance(event, NetworkEvent):
            event = NetworkEvent.from_dict(event)

        if not self.is_recording:
            return None

        if event.kind == NetworkEventKind.START:
            resource_type = normalize_resource_type(event.resource_type)
            if not self.should_record(event.url or "", resource_type):
                logger.debug(f"Filtered {resource_type} request {event.url}")
                return None
            if event.request_id in self._finalized_ids:
                logger.debug(f"Ignoring restart of finalized request {event.request_id}")
                return None
            if self.config.stale_request_timeout_ms:
                self.evict_stale(event.timestamp)
            snapshot = apply_event(None, event, self.config.max_body_size)
            self._in_flight[snapshot.id] = snapshot
            return snapshot

        current = self._in_flight.get(event.request_id)
        snapshot = apply_event(current, event, self.config.max_body_size)
        if snapshot is None:
            return None

        if snapshot.is_terminal:
            del self._in_flight[snapshot.id]
            self._finalized.append(snapshot)
            self._finalized_ids.add(snapshot.id)
        else:
            self._in_flight[snapshot.id] = snapshot
        return snapshot

    def evict_stale(self, now: Optional[float] = None) -> int:
        """Drop in-flight requests older than the configured timeout."""
        timeout = self.config.stale_request_timeout_ms
        if not timeout:
            return 0
        now = self.clock() if now is None else now
        stale = [rid for rid, r in self._in_flight.items() if now - r.start_time > timeout]
        for rid in stale:
            del self._in_flight[rid]
        if stale:
            logger.debug(f"Evicted {len(stale)} stale in-flight requests")
        return len(stale)

    # ==================== Queries ====================

    @property
    def requests(self) -> List[NetworkRequest]:
        return list(self._finalized)

    @property
    def in_flight(self) -> List[NetworkRequest]:
        return list(self._in_flight.values())

    def requests_for_tab(self, tab_id: int) -> List[NetworkRequest]:
        return [r for r in self._finalized if r.tab_id == tab_id]

    def requests_between(self, start: float, end: float) -> List[NetworkRequest]:
        return [r for r in self._finalized if start <= r.timestamp <= end]

    def classification(self, request: NetworkRequest) -> RequestClassification:
        cached = self._classifications.get(request.id)
        if cached is None:
            cached = classify(request)
            if request.is_terminal:
                self._classifications[request.id] = cached
        return cached

    def api_requests(self) -> List[NetworkRequest]:
        return [r for r in self._finalized if self.classification(r).is_api]

    def graphql_requests(self) -> List[NetworkRequest]:
        return [r for r in self._finalized if self.classification(r).is_graphql]

    def websocket_requests(self) -> List[NetworkRequest]:
        return [r for r in self._finalized if self.classification(r).is_websocket]

    def summary(self) -> NetworkSummary:
        summary = NetworkSummary(total_requests=len(self._finalized))
        total_duration = 0.0

        for request in self._finalized:
            summary.requests_by_type[request.resource_type] = summary.requests_by_type.get(request.resource_type, 0) + 1
            bucket = status_bucket(request)
            summary.requests_by_status[bucket] = summary.requests_by_status.get(bucket, 0) + 1
            total_duration += request.duration or 0

            if request.status == RequestStatus.ERROR or (request.status_code or 0) >= 400:
                summary.error_count += 1

            classification = self.classification(request)
            if classification.is_api:
                summary.api_requests.append({
                    "url": request.url,
                    "method": request.method,
                    "status": request.status_code,
                    "duration": request.duration,
                })
            if classification.is_graphql:
                summary.graphql_operations += 1
            if classification.is_websocket:
                summary.websocket_connections += 1

        if self._finalized:
            summary.average_response_time = total_duration / len(self._finalized)
        return summary

    def export(self, export_format: str = "json") -> str:
        return export_network_data(self, export_format)
