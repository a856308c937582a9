"""
Network Export

Serializes correlated requests as a plain JSON report or as a
HAR 1.2 log that browser devtools and proxies can import.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Dict, List, Any, Iterable
from urllib.parse import urlparse, parse_qsl

from ..errors import UnsupportedFormatError
from ..models import NetworkRequest, RequestStatus

# Configure logging
logger = logging.getLogger(__name__)


HAR_VERSION = "1.2"
CREATOR_NAME = "Scribe Recorder"
CREATOR_VERSION = "1.0.0"
EXPORT_FORMATS = ("json", "har")


def _iso(timestamp_ms: float) -> str:
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc).isoformat().replace("+00:00", "Z")


def _content_length(headers: Dict[str, str]) -> int:
    raw = headers.get("content-length", "")
    return int(raw) if raw.isdigit() else -1


def _har_headers(headers: Dict[str, str]) -> List[Dict[str, str]]:
    return [{"name": name, "value": value} for name, value in headers.items()]


def har_entry(request: NetworkRequest, max_body_size: int = 100000) -> Dict[str, Any]:
    duration = request.duration or 0
    parsed = urlparse(request.url)
    har_request: Dict[str, Any] = {
        "method": request.method,
        "url": request.url,
        "httpVersion": "HTTP/1.1",
        "headers": _har_headers(request.request_headers),
        "queryString": [{"name": k, "value": v} for k, v in parse_qsl(parsed.query, keep_blank_values=True)],
        "cookies": [],
        "headersSize": -1,
        "bodySize": len(request.request_body) if request.request_body else 0,
    }
    if request.request_body:
        har_request["postData"] = {
            "mimeType": request.request_headers.get("content-type", "application/octet-stream"),
            "text": request.request_body[:max_body_size],
        }

    if request.status == RequestStatus.ERROR:
        status_text = request.error or "error"
    else:
        status_text = request.status_line or ""

    return {
        "startedDateTime": _iso(request.timestamp),
        "time": duration,
        "request": har_request,
        "response": {
            "status": request.status_code or 0,
            "statusText": status_text,
            "httpVersion": "HTTP/1.1",
            "headers": _har_headers(request.response_headers),
            "cookies": [],
            "content": {
                "size": _content_length(request.response_headers),
                "mimeType": request.response_headers.get("content-type", ""),
            },
            "redirectURL": request.response_headers.get("location", ""),
            "headersSize": -1,
            "bodySize": -1,
        },
        "cache": {},
        "timings": {
            "send": 0,
            "wait": duration,
            "receive": 0,
        },
    }


def build_har(requests: Iterable[NetworkRequest], max_body_size: int = 100000) -> Dict[str, Any]:
    """HAR 1.2 log with one entry per finalized request."""
    return {
        "log": {
            "version": HAR_VERSION,
            "creator": {"name": CREATOR_NAME, "version": CREATOR_VERSION},
            "pages": [],
            "entries": [har_entry(r, max_body_size) for r in requests],
        }
    }


def build_json_report(engine) -> Dict[str, Any]:
    requests = engine.requests
    return {
        "metadata": {
            "exported_at": datetime.now(timezone.utc).isoformat(),
            "total_requests": len(requests),
            "recording_started_at": engine.recording_started_at,
            "version": CREATOR_VERSION,
        },
        "requests": [r.to_dict() for r in requests],
        "summary": engine.summary().to_dict(),
    }


def export_network_data(engine, export_format: str = "json") -> str:
    """Serialize an engine's finalized requests in the given format."""
    export_format = (export_format or "").lower()
    if export_format == "json":
        payload = build_json_report(engine)
    elif export_format == "har":
        payload = build_har(engine.requests, engine.config.max_body_size)
    else:
        raise UnsupportedFormatError(export_format)

    logger.info(f"Exported {len(engine.requests)} requests as {export_format}")
    return json.dumps(payload, indent=2)
