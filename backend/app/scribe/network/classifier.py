"""
Request Classification

Pure predicates that label captured requests as API calls, GraphQL
operations or WebSocket handshakes. A body that fails to parse is a
negative classification, never an error.
"""

import re
import json
import logging
from dataclasses import dataclass, field
from typing import Dict, Any, Optional
from urllib.parse import urlparse

from ..models import NetworkRequest

# Configure logging
logger = logging.getLogger(__name__)


API_RESOURCE_TYPES = frozenset(["xmlhttprequest", "fetch"])
API_URL_MARKERS = ("/api/", "/rest/", "/graphql", "api.", ".json", "/v1/", "/v2/", "/v3/")

GRAPHQL_OPERATION_NAME = re.compile(r"(?:query|mutation|subscription)\s+(\w+)", re.IGNORECASE)
GRAPHQL_BODY_FIELDS = ("query", "mutation", "operationName")


@dataclass(frozen=True)
class GraphQLOperation:
    operation_type: str
    operation_name: Optional[str]
    variables: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class WebSocketConnection:
    url: str
    protocol: str
    subprotocol: Optional[str] = None


@dataclass(frozen=True)
class RequestClassification:
    is_api: bool
    is_graphql: bool
    is_websocket: bool
    graphql: Optional[GraphQLOperation] = None
    websocket: Optional[WebSocketConnection] = None


def is_api_request(request: NetworkRequest) -> bool:
    if request.resource_type in API_RESOURCE_TYPES:
        return True
    url = request.url.lower()
    return any(marker in url for marker in API_URL_MARKERS)


def _json_body(request: NetworkRequest) -> Optional[Any]:
    if not request.request_body:
        return None
    try:
        return json.loads(request.request_body)
    except (ValueError, TypeError):
        logger.debug(f"Request body for {request.id} is not JSON")
        return None


def _graphql_payload(request: NetworkRequest) -> Optional[Dict[str, Any]]:
    body = _json_body(request)
    # Batched operations: classify by the first entry
    if isinstance(body, list) and body:
        body = body[0]
    if isinstance(body, dict) and any(isinstance(body.get(f), str) for f in GRAPHQL_BODY_FIELDS):
        return body
    return None


def is_graphql_request(request: NetworkRequest) -> bool:
    content_type = request.request_headers.get("content-type", "")
    if "application/graphql" in content_type:
        return True
    if "/graphql" in urlparse(request.url).path.lower():
        return True
    return _graphql_payload(request) is not None


def operation_type_of(query: str) -> str:
    text = query.strip().lower()
    for keyword in ("query", "mutation", "subscription"):
        if text.startswith(keyword):
            return keyword
    if text.startswith("{"):
        return "query"
    return "unknown"


def parse_graphql_operation(request: NetworkRequest) -> Optional[GraphQLOperation]:
    """Operation type, name and variables from a GraphQL request body.

    Persisted queries carry only an ``operationName``; their type is
    ``unknown``.
    """
    payload = _graphql_payload(request)
    if payload is None:
        return None

    query = payload.get("query")
    if not isinstance(query, str):
        query = payload.get("mutation") if isinstance(payload.get("mutation"), str) else ""
    match = GRAPHQL_OPERATION_NAME.search(query)
    name = match.group(1) if match else payload.get("operationName")
    variables = payload.get("variables")

    return GraphQLOperation(
        operation_type=operation_type_of(query),
        operation_name=name if isinstance(name, str) else None,
        variables=variables if isinstance(variables, dict) else {},
    )


def is_websocket_request(request: NetworkRequest) -> bool:
    scheme = urlparse(request.url).scheme.lower()
    if scheme in ("ws", "wss"):
        return True
    headers = request.request_headers
    if headers.get("upgrade", "").lower() == "websocket":
        return True
    return "upgrade" in headers.get("connection", "").lower()


def parse_websocket_connection(request: NetworkRequest) -> Optional[WebSocketConnection]:
    if not is_websocket_request(request):
        return None
    scheme = urlparse(request.url).scheme.lower()
    protocol = "wss" if scheme in ("wss", "https") else "ws"
    return WebSocketConnection(
        url=request.url,
        protocol=protocol,
        subprotocol=request.request_headers.get("sec-websocket-protocol"),
    )


def classify(request: NetworkRequest) -> RequestClassification:
    graphql = is_graphql_request(request)
    websocket = is_websocket_request(request)
    return RequestClassification(
        is_api=is_api_request(request),
        is_graphql=graphql,
        is_websocket=websocket,
        graphql=parse_graphql_operation(request) if graphql else None,
        websocket=parse_websocket_connection(request) if websocket else None,
    )
