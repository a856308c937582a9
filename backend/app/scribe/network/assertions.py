"""
Network Assertion Snippets

Secondary generation pass that turns captured traffic into response
assertions for API calls and into mocks for GraphQL operations and
WebSocket connections, in each target framework's idiom.
"""

import logging
import re
from typing import List, Sequence, Tuple
from urllib.parse import urlparse

from ..models import Framework, NetworkRequest, RequestStatus
from .classifier import RequestClassification

# Configure logging
logger = logging.getLogger(__name__)


NetworkEntry = Tuple[NetworkRequest, RequestClassification]


def _literal(value: str) -> str:
    return (
        value.replace("\\", "\\\\").replace("'", "\\'").replace('"', '\\"')
        .replace("\n", "\\n").replace("\r", "\\r")
    )


def _identifier(value: str) -> str:
    return re.sub(r"\W", "_", value)


def _path(url: str) -> str:
    parsed = urlparse(url)
    return parsed.path or "/"


def _asserted(network: Sequence[NetworkEntry]) -> List[NetworkRequest]:
    """API requests that completed with a status code."""
    return [
        request for request, classification in network
        if classification.is_api
        and not classification.is_websocket
        and request.status == RequestStatus.COMPLETED
        and request.status_code is not None
    ]


# ==================== Assertions ====================

def _response_match(request: NetworkRequest) -> str:
    path = _literal(_path(request.url))
    return (
        f"r.url().includes('{path}') && r.request().method() === '{request.method}'"
        f" && r.status() === {request.status_code}"
    )


def render_network_setup(framework: Framework, network: Sequence[NetworkEntry]) -> List[str]:
    """Listeners that must be registered before the first navigation."""
    requests = _asserted(network)
    if not requests:
        return []

    if framework in (Framework.PLAYWRIGHT, Framework.PUPPETEER):
        return [
            "const responses = [];",
            "page.on('response', response => responses.push(response));",
            "",
        ]
    if framework == Framework.CYPRESS:
        lines = []
        for index, request in enumerate(requests, 1):
            path = _literal(_path(request.url))
            lines.append(f"cy.intercept('{request.method}', '**{path}*').as('request{index}');")
        return lines + [""]
    return []


def render_network_assertions(framework: Framework, network: Sequence[NetworkEntry]) -> List[str]:
    requests = _asserted(network)
    if not requests:
        return []

    if framework == Framework.PLAYWRIGHT:
        lines = ["", "// Network assertions"]
        for request in requests:
            lines.append(f"expect(responses.some(r => {_response_match(request)})).toBeTruthy();")
        return lines

    if framework == Framework.PUPPETEER:
        lines = ["", "// Network assertions"]
        for request in requests:
            lines.append(f"assert.ok(responses.some(r => {_response_match(request)}));")
        return lines

    if framework == Framework.CYPRESS:
        lines = ["", "// Network assertions"]
        for index, request in enumerate(requests, 1):
            lines.append(f"cy.wait('@request{index}').its('response.statusCode').should('eq', {request.status_code});")
        return lines

    # Selenium has no response API without a proxy
    lines = ["", "# Network assertions (need a proxy such as selenium-wire to enforce)"]
    for request in requests:
        lines.append(f"# {request.method} {_path(request.url)} -> {request.status_code}")
    return lines


# ==================== Mocks ====================

def _graphql_operations(network: Sequence[NetworkEntry]) -> List[Tuple[str, str]]:
    operations = []
    for request, classification in network:
        operation = classification.graphql
        if operation and operation.operation_name:
            key = (operation.operation_name, _path(request.url))
            if key not in operations:
                operations.append(key)
    return operations


def _websockets(network: Sequence[NetworkEntry]) -> List[str]:
    urls = []
    for _, classification in network:
        if classification.websocket and classification.websocket.url not in urls:
            urls.append(classification.websocket.url)
    return urls


def render_graphql_mocks(framework: Framework, network: Sequence[NetworkEntry]) -> List[str]:
    operations = _graphql_operations(network)
    if not operations:
        return []

    lines = ["# GraphQL operations seen while recording"] if framework == Framework.SELENIUM else ["// GraphQL mocks"]
    for name, path in operations:
        path = _literal(path)
        literal = _literal(name)
        if framework == Framework.PLAYWRIGHT:
            lines += [
                f"await page.route('**{path}', async route => {{",
                "  const body = route.request().postDataJSON();",
                f"  if (body && body.operationName === '{literal}') {{",
                "    return route.fulfill({ json: { data: {} } });",
                "  }",
                "  return route.continue();",
                "});",
            ]
        elif framework == Framework.CYPRESS:
            lines += [
                f"cy.intercept('POST', '**{path}', (req) => {{",
                f"  if (req.body.operationName === '{literal}') {{",
                f"    req.alias = 'gql{_identifier(name)}';",
                "    req.reply({ data: {} });",
                "  }",
                "});",
            ]
        elif framework == Framework.SELENIUM:
            lines.append(f"# {literal} via {path}")

    if framework == Framework.PUPPETEER:
        names = ", ".join(f"'{_literal(name)}'" for name, _ in operations)
        lines += [
            f"const mockedOperations = [{names}];",
            "await page.setRequestInterception(true);",
            "page.on('request', request => {",
            "  let body = null;",
            "  try { body = JSON.parse(request.postData() || 'null'); } catch (e) { body = null; }",
            "  if (body && mockedOperations.includes(body.operationName)) {",
            "    return request.respond({ contentType: 'application/json', body: JSON.stringify({ data: {} }) });",
            "  }",
            "  return request.continue();",
            "});",
        ]
    return lines


def render_websocket_mocks(framework: Framework, network: Sequence[NetworkEntry]) -> List[str]:
    urls = _websockets(network)
    if not urls:
        return []

    lines = []
    for url in urls:
        literal = _literal(url)
        if framework == Framework.PLAYWRIGHT:
            lines += [
                "// WebSocket stub",
                f"await page.routeWebSocket('{literal}', ws => {{",
                "  ws.onMessage(message => ws.send(message));",
                "});",
            ]
        elif framework == Framework.PUPPETEER:
            lines += [
                "// WebSocket monitor",
                "const cdp = await page.createCDPSession();",
                "await cdp.send('Network.enable');",
                "cdp.on('Network.webSocketCreated', ({ url }) => console.log('WebSocket opened', url));",
            ]
            break
        elif framework == Framework.CYPRESS:
            lines.append(f"// WebSocket {literal} is not interceptable with cy.intercept; stub it in the app under test")
        else:
            lines.append(f"# WebSocket {literal} opened during recording")
    return lines


def render_network_mocks(framework: Framework, network: Sequence[NetworkEntry], mock: bool = False) -> List[str]:
    """Everything that goes ahead of the recorded steps.

    GraphQL and WebSocket stubs replace live traffic, so they are only
    emitted when mocking is requested.
    """
    setup = render_network_setup(framework, network)
    if not mock:
        return setup
    lines = render_graphql_mocks(framework, network)
    websocket_lines = render_websocket_mocks(framework, network)
    if lines and websocket_lines:
        lines.append("")
    lines += websocket_lines
    if lines:
        lines.append("")
    return setup + lines
