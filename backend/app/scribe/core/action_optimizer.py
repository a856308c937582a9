"""
Action Optimizer

Collapses the noise a DOM listener produces (an input event per
keystroke, double-fired clicks) into a canonical step list and derives
the facts about the flow that shape the generated test.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Sequence

from ..models import Action, ActionType, ElementDescriptor, TestContext

# Configure logging
logger = logging.getLogger(__name__)


DEFAULT_DEDUP_WINDOW_MS = 500


@dataclass
class OptimizedFlow:
    """Deduplicated actions plus derived context"""
    actions: List[Action]
    context: TestContext


def same_element(a: Optional[ElementDescriptor], b: Optional[ElementDescriptor]) -> bool:
    """Two descriptors point at the same logical element."""
    if a is None or b is None:
        return False
    if a.id and a.id == b.id:
        return True
    if a.name and a.name == b.name and a.tag == b.tag:
        return True
    if a.css_selector and a.css_selector == b.css_selector:
        return True
    return False


def is_duplicate(action: Action, previous: Action, window_ms: int = DEFAULT_DEDUP_WINDOW_MS) -> bool:
    return (
        action.type == previous.type
        and same_element(action.element, previous.element)
        and abs(action.timestamp - previous.timestamp) < window_ms
    )


def deduplicate(actions: Sequence[Action], window_ms: int = DEFAULT_DEDUP_WINDOW_MS) -> List[Action]:
    """Drop an action that repeats the last retained one within the window.

    Only adjacent pairs are compared, so a burst that outlasts the window
    keeps one action per window.
    """
    retained: List[Action] = []
    for action in actions:
        if retained and is_duplicate(action, retained[-1], window_ms):
            logger.debug(f"Dropping duplicate {action.type.value} action {action.id}")
            continue
        retained.append(action)
    return retained


def default_test_name(today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"Recorded user flow - {today.strftime('%B')} {today.day}, {today.year}"


def derive_context(
    actions: Sequence[Action],
    start_url: Optional[str] = None,
    test_name: Optional[str] = None,
    today: Optional[date] = None,
) -> TestContext:
    urls: List[str] = []
    for action in actions:
        if action.url and action.url not in urls:
            urls.append(action.url)

    requires_auth = any(a.element is not None and a.element.is_password for a in actions)
    has_form_submission = any(
        a.type == ActionType.SUBMIT
        or (
            a.type == ActionType.CLICK
            and a.element is not None
            and "submit" in (a.element.text_content or "").lower()
        )
        for a in actions
    )

    return TestContext(
        urls=urls,
        start_url=start_url or (urls[0] if urls else None),
        requires_auth=requires_auth,
        has_form_submission=has_form_submission,
        test_name=test_name or default_test_name(today),
    )


def optimize_actions(
    actions: Sequence[Action],
    window_ms: int = DEFAULT_DEDUP_WINDOW_MS,
    start_url: Optional[str] = None,
    test_name: Optional[str] = None,
    today: Optional[date] = None,
) -> OptimizedFlow:
    """Deduplicate the action stream and derive its test context."""
    optimized = deduplicate(actions, window_ms)
    if len(optimized) != len(actions):
        logger.info(f"Optimized {len(actions)} actions down to {len(optimized)}")
    context = derive_context(optimized, start_url=start_url, test_name=test_name, today=today)
    return OptimizedFlow(actions=optimized, context=context)
