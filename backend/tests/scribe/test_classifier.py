"""
Unit tests for request classification.

Tests API, GraphQL and WebSocket detection on finalized requests.
"""

import json
import pytest
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent.parent / "app"))

from scribe.models import NetworkRequest, RequestStatus
from scribe.network.classifier import (
    classify, is_api_request, is_graphql_request, is_websocket_request,
    parse_graphql_operation, operation_type_of,
)


def request(url="https://shop.example.com/", resource_type="fetch", body=None, headers=None) -> NetworkRequest:
    return NetworkRequest(
        id="r1",
        url=url,
        method="POST" if body else "GET",
        resource_type=resource_type,
        start_time=0,
        timestamp=0,
        status=RequestStatus.COMPLETED,
        request_headers=headers or {},
        request_body=body,
        status_code=200,
    )


class TestApiDetection:
    """Test API request detection."""

    def test_fetch_is_api(self):
        """Test that fetch and XHR requests are API calls."""
        assert is_api_request(request(resource_type="fetch")) is True
        assert is_api_request(request(resource_type="xmlhttprequest")) is True

    def test_api_url_marker(self):
        """Test that API-shaped URLs are API calls regardless of type."""
        assert is_api_request(request("https://shop.example.com/api/cart", resource_type="document")) is True
        assert is_api_request(request("https://shop.example.com/v2/items", resource_type="script")) is True

    def test_document_is_not_api(self):
        """Test that a plain page load is not an API call."""
        assert is_api_request(request("https://shop.example.com/about", resource_type="document")) is False


class TestGraphQL:
    """Test GraphQL detection and parsing."""

    def test_named_query(self):
        """Test that a named query body yields its type and name."""
        body = json.dumps({"query": "query GetUser { user { id } }", "variables": {"id": 7}})
        req = request("https://shop.example.com/gql", body=body)

        operation = parse_graphql_operation(req)

        assert is_graphql_request(req) is True
        assert operation.operation_type == "query"
        assert operation.operation_name == "GetUser"
        assert operation.variables == {"id": 7}

    def test_operation_name_fallback(self):
        """Test that operationName is used for anonymous operations."""
        body = json.dumps({"query": "{ cart { total } }", "operationName": "Cart"})

        operation = parse_graphql_operation(request(body=body))

        assert operation.operation_type == "query"
        assert operation.operation_name == "Cart"

    def test_graphql_path(self):
        """Test detection by URL path."""
        assert is_graphql_request(request("https://shop.example.com/graphql")) is True

    def test_graphql_content_type(self):
        """Test detection by content type."""
        req = request(headers={"content-type": "application/graphql"})

        assert is_graphql_request(req) is True

    def test_batched_operations(self):
        """Test that a batched body is classified by its first entry."""
        body = json.dumps([{"query": "mutation AddItem { add }"}, {"query": "query Other { x }"}])

        operation = parse_graphql_operation(request(body=body))

        assert operation.operation_type == "mutation"
        assert operation.operation_name == "AddItem"

    def test_non_json_body(self):
        """Test that a non-JSON body is not GraphQL."""
        assert is_graphql_request(request(body="a=1&b=2")) is False

    def test_persisted_query(self):
        """Test that a body with only operationName is GraphQL."""
        body = json.dumps({
            "operationName": "GetUser",
            "variables": {"id": 7},
            "extensions": {"persistedQuery": {"version": 1, "sha256Hash": "abc123"}},
        })
        req = request("https://shop.example.com/api/data", body=body)

        operation = parse_graphql_operation(req)

        assert is_graphql_request(req) is True
        assert operation.operation_type == "unknown"
        assert operation.operation_name == "GetUser"

    def test_mutation_field(self):
        """Test that a body carrying a mutation field is GraphQL."""
        body = json.dumps({"mutation": "mutation AddItem { add }"})
        req = request("https://shop.example.com/api/data", body=body)

        operation = parse_graphql_operation(req)

        assert is_graphql_request(req) is True
        assert operation.operation_type == "mutation"
        assert operation.operation_name == "AddItem"

    def test_plain_json_body(self):
        """Test that JSON without GraphQL fields is not GraphQL."""
        req = request("https://shop.example.com/api/data", body=json.dumps({"name": "query"}))

        assert is_graphql_request(req) is False

    def test_operation_type_of(self):
        """Test operation type keywords."""
        assert operation_type_of("subscription OnMessage { m }") == "subscription"
        assert operation_type_of("fragment X on Y { z }") == "unknown"

    def test_operation_type_ignores_case(self):
        """Test that keywords match regardless of case and whitespace."""
        assert operation_type_of("Query GetUser { id }") == "query"
        assert operation_type_of("  MUTATION AddItem { add }") == "mutation"

        body = json.dumps({"query": "Query GetUser { id }"})
        operation = parse_graphql_operation(request(body=body))
        assert operation.operation_type == "query"
        assert operation.operation_name == "GetUser"


class TestWebSocket:
    """Test WebSocket detection."""

    def test_ws_scheme(self):
        """Test detection by URL scheme."""
        classification = classify(request("wss://chat.example.com/socket", resource_type="websocket"))

        assert classification.is_websocket is True
        assert classification.websocket.protocol == "wss"

    def test_upgrade_header(self):
        """Test detection by upgrade headers."""
        req = request(headers={"upgrade": "websocket", "sec-websocket-protocol": "graphql-ws"})

        classification = classify(req)

        assert classification.is_websocket is True
        assert classification.websocket.protocol == "wss"
        assert classification.websocket.subprotocol == "graphql-ws"

    def test_plain_request(self):
        """Test that plain requests are not WebSockets."""
        assert is_websocket_request(request()) is False
