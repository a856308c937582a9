"""
Unit tests for the action optimizer.

Tests duplicate suppression and test context derivation.
"""

import pytest
from datetime import date
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent.parent / "app"))

from scribe.models import Action, ElementDescriptor
from scribe.core.action_optimizer import (
    same_element, deduplicate, derive_context, optimize_actions, default_test_name,
)


def action(action_type="click", timestamp=0, url="https://shop.example.com/", **element) -> Action:
    return Action.from_dict({
        "id": f"{action_type}_{timestamp}",
        "type": action_type,
        "timestamp": timestamp,
        "url": url,
        "element": dict({"tagName": "button"}, **element) if element else None,
    })


class TestSameElement:
    """Test element identity."""

    def test_same_id(self):
        """Test that matching ids identify the same element."""
        a = ElementDescriptor.from_dict({"tagName": "input", "id": "q"})
        b = ElementDescriptor.from_dict({"tagName": "input", "id": "q", "name": "other"})

        assert same_element(a, b) is True

    def test_name_requires_same_tag(self):
        """Test that name matches only count for the same tag."""
        a = ElementDescriptor.from_dict({"tagName": "input", "name": "q"})
        b = ElementDescriptor.from_dict({"tagName": "select", "name": "q"})

        assert same_element(a, b) is False

    def test_missing_element(self):
        """Test that missing descriptors never match."""
        a = ElementDescriptor.from_dict({"tagName": "input", "id": "q"})

        assert same_element(a, None) is False
        assert same_element(None, None) is False


class TestDeduplicate:
    """Test duplicate suppression."""

    def test_double_click_collapsed(self):
        """Test that two clicks within the window collapse into one."""
        actions = [action(timestamp=1000, id="buy"), action(timestamp=1200, id="buy")]

        result = deduplicate(actions)

        assert [a.id for a in result] == ["click_1000"]

    def test_outside_window_kept(self):
        """Test that clicks further apart than the window are kept."""
        actions = [action(timestamp=1000, id="buy"), action(timestamp=1500, id="buy")]

        assert len(deduplicate(actions)) == 2

    def test_different_elements_kept(self):
        """Test that clicks on different elements are kept."""
        actions = [action(timestamp=1000, id="buy"), action(timestamp=1100, id="sell")]

        assert len(deduplicate(actions)) == 2

    def test_different_types_kept(self):
        """Test that different action types on one element are kept."""
        actions = [action("click", 1000, id="q"), action("input", 1100, id="q")]

        assert len(deduplicate(actions)) == 2

    def test_compares_against_last_retained(self):
        """Test that a burst keeps one action per window."""
        actions = [action(timestamp=t, id="buy") for t in (0, 300, 600, 900)]

        result = deduplicate(actions)

        assert [a.timestamp for a in result] == [0, 600]

    def test_actions_without_element_never_merge(self):
        """Test that element-less actions are never duplicates."""
        actions = [action("navigation", 0), action("navigation", 10)]

        assert len(deduplicate(actions)) == 2

    def test_custom_window(self):
        """Test a configurable window."""
        actions = [action(timestamp=1000, id="buy"), action(timestamp=1500, id="buy")]

        assert len(deduplicate(actions, window_ms=1000)) == 1


class TestDeriveContext:
    """Test test context derivation."""

    def test_urls_in_first_seen_order(self):
        """Test that URLs are collected once, in order."""
        actions = [
            action(timestamp=1, url="https://a.example.com/"),
            action(timestamp=2, url="https://b.example.com/"),
            action(timestamp=3, url="https://a.example.com/"),
        ]

        context = derive_context(actions)

        assert context.urls == ["https://a.example.com/", "https://b.example.com/"]
        assert context.start_url == "https://a.example.com/"

    def test_requires_auth_from_password_field(self):
        """Test that a password field marks the flow as authenticated."""
        actions = [action("input", 1, tagName="input", type="password", id="pw")]

        assert derive_context(actions).requires_auth is True

    def test_form_submission_from_submit_text(self):
        """Test that a click on a 'Submit' button counts as form submission."""
        actions = [action("click", 1, textContent="Submit order")]

        assert derive_context(actions).has_form_submission is True

    def test_form_submission_from_submit_action(self):
        """Test that a submit action counts as form submission."""
        actions = [action("submit", 1, tagName="form", id="f")]

        assert derive_context(actions).has_form_submission is True

    def test_default_test_name(self):
        """Test the dated default test name."""
        context = derive_context([], today=date(2026, 10, 18))

        assert context.test_name == "Recorded user flow - October 18, 2026"
        assert default_test_name(date(2024, 3, 5)) == "Recorded user flow - March 5, 2024"

    def test_explicit_start_url_and_name(self):
        """Test that explicit values win over derived ones."""
        context = derive_context([action(timestamp=1)], start_url="https://x.example.com/", test_name="Checkout")

        assert context.start_url == "https://x.example.com/"
        assert context.test_name == "Checkout"

    def test_empty_flow(self):
        """Test context of an empty flow."""
        context = derive_context([])

        assert context.urls == []
        assert context.start_url is None


class TestOptimizeActions:
    """Test the combined pass."""

    def test_context_derived_from_retained_actions(self):
        """Test that context reflects the deduplicated list."""
        actions = [
            action(timestamp=1000, id="buy"),
            action(timestamp=1100, id="buy", url="https://shop.example.com/other"),
        ]

        flow = optimize_actions(actions)

        assert len(flow.actions) == 1
        assert flow.context.urls == ["https://shop.example.com/"]
