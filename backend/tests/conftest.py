"""
Pytest configuration and shared fixtures for Scribe recorder tests.
"""

import pytest
import sys
from pathlib import Path
from unittest.mock import Mock, AsyncMock
from typing import Dict, Any, List, Optional

# Add backend app to path
sys.path.insert(0, str(Path(__file__).parent.parent / "app"))

from scribe.config import ScribeConfig


# ==================== Mock Page Fixture ====================

@pytest.fixture
def mock_page():
    """Create a mock Playwright page object."""
    page = AsyncMock()

    # Basic properties
    page.url = "https://example.com/login"
    page.main_frame = Mock()
    page.is_closed = Mock(return_value=False)

    # Events
    page.on = Mock()

    # Evaluation
    page.evaluate = AsyncMock(return_value=True)
    page.expose_binding = AsyncMock(return_value=None)

    return page


# ==================== Collaborator Fixture ====================

@pytest.fixture
def fake_collaborator():
    """In-page listener double recording every call."""
    collaborator = Mock()
    collaborator.start_recording = AsyncMock(return_value=None)
    collaborator.pause_recording = AsyncMock(return_value=None)
    collaborator.resume_recording = AsyncMock(return_value=None)
    collaborator.stop_recording = AsyncMock(return_value=[])
    return collaborator


# ==================== Clock Fixtures ====================

class ManualClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, now: float = 1_700_000_000_000):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float):
        self.now += ms


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def no_sleep():
    """Async sleep double that records requested delays."""
    return AsyncMock(return_value=None)


@pytest.fixture
def config():
    return ScribeConfig()


# ==================== Sample Data ====================

def make_element(tag_name: str = "button", **kwargs) -> Dict[str, Any]:
    """Element descriptor payload as captured in the page."""
    element = {"tagName": tag_name}
    element.update(kwargs)
    return element


def make_action(
    action_type: str,
    element: Optional[Dict[str, Any]] = None,
    timestamp: float = 1000,
    url: str = "https://app.example.com/login",
    **kwargs
) -> Dict[str, Any]:
    """Recorded action payload as captured in the page."""
    action = {
        "id": f"action_{int(timestamp)}_{action_type}",
        "type": action_type,
        "timestamp": timestamp,
        "url": url,
        "element": element,
    }
    action.update(kwargs)
    return action


@pytest.fixture
def login_actions() -> List[Dict[str, Any]]:
    """Email, password and submit on a login form, ending on the dashboard."""
    return [
        make_action(
            "input",
            make_element("input", id="email", type="email", name="email"),
            timestamp=1000,
            value="user@example.com",
        ),
        make_action(
            "input",
            make_element("input", id="password", type="password", name="password"),
            timestamp=2000,
            value="s3cret",
        ),
        make_action(
            "click",
            make_element("button", type="submit", textContent="Sign in",
                         testAttributes={"data-testid": "login-submit"}),
            timestamp=3000,
        ),
        make_action(
            "navigation",
            None,
            timestamp=4000,
            url="https://app.example.com/dashboard",
        ),
    ]


# ==================== Temp Directory Fixture ====================

@pytest.fixture
def temp_data_dir(tmp_path):
    """Create a temporary data directory for tests."""
    data_dir = tmp_path / "data" / "recordings"
    data_dir.mkdir(parents=True)
    return data_dir
