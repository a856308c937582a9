"""
Wait Strategy Engine

Infers what a generated step must wait for before acting. Each action
is analyzed three ways:

- by action type (a click needs a clickable, settled element),
- by element markers (lazy, animated or framework-toggled content),
- by the transition from the previous action (URL change, modal, tab).

Proposals are pooled, deduplicated, merged per kind, ordered from
cheap existence checks to expensive page-level waits, and given
default timeouts.
"""

import re
import json
import logging
from typing import Dict, List, Any, Optional, Sequence

from ..models import Action, ActionType, ElementDescriptor, WaitKind, WaitStrategy
from .selector_resolver import SelectorResolver, get_selector_resolver

# Configure logging
logger = logging.getLogger(__name__)


# Existence and visibility first, page-level and custom waits last
WAIT_PRIORITY: List[WaitKind] = [
    WaitKind.ELEMENT_EXISTS,
    WaitKind.ELEMENT_VISIBLE,
    WaitKind.ELEMENT_LOADED,
    WaitKind.ELEMENT_CLICKABLE,
    WaitKind.ELEMENT_ENABLED,
    WaitKind.ELEMENT_FOCUSED,
    WaitKind.FORM_READY,
    WaitKind.FORM_VALID,
    WaitKind.ELEMENT_DRAGGABLE,
    WaitKind.DROP_ZONE_READY,
    WaitKind.MODAL_READY,
    WaitKind.ELEMENT_STABLE,
    WaitKind.SCROLL_STABLE,
    WaitKind.ANIMATION_COMPLETE,
    WaitKind.LAZY_LOAD_COMPLETE,
    WaitKind.NETWORK_IDLE,
    WaitKind.NAVIGATION_COMPLETE,
    WaitKind.TAB_READY,
    WaitKind.PAGE_LOAD,
    WaitKind.CUSTOM,
]

DEFAULT_TIMEOUT = 5000
DEFAULT_TIMEOUTS: Dict[WaitKind, int] = {
    WaitKind.ELEMENT_STABLE: 2000,
    WaitKind.SCROLL_STABLE: 2000,
    WaitKind.ANIMATION_COMPLETE: 3000,
    WaitKind.NETWORK_IDLE: 10000,
    WaitKind.NAVIGATION_COMPLETE: 30000,
    WaitKind.PAGE_LOAD: 30000,
}

DYNAMIC_MARKER_ATTRIBUTES = ("data-dynamic", "v-if", "ng-if", "*ngIf")
ASYNC_MARKER_ATTRIBUTES = ("data-async", "loading")
ANIMATION_CLASS_PATTERN = re.compile(r"fade|slide|animate|transition", re.IGNORECASE)
FORM_TAGS = frozenset(["input", "select", "textarea", "form"])
MODAL_TOGGLE_ATTRIBUTES = ("data-toggle", "data-bs-toggle")


def default_timeout(kind: WaitKind) -> int:
    return DEFAULT_TIMEOUTS.get(kind, DEFAULT_TIMEOUT)


def _priority(kind: WaitKind) -> int:
    return WAIT_PRIORITY.index(kind)


def _strategy_key(strategy: WaitStrategy) -> tuple:
    condition = json.dumps(dict(strategy.condition), sort_keys=True) if strategy.condition else None
    return (
        strategy.kind,
        strategy.selectors,
        strategy.timeout,
        strategy.duration,
        strategy.conditions,
        condition,
    )


def _union(*groups: Sequence[str]) -> tuple:
    seen: List[str] = []
    for group in groups:
        for item in group:
            if item not in seen:
                seen.append(item)
    return tuple(seen)


def _max_optional(a: Optional[int], b: Optional[int]) -> Optional[int]:
    if a is None:
        return b
    if b is None:
        return a
    return max(a, b)


def merge_strategies(strategies: Sequence[WaitStrategy]) -> List[WaitStrategy]:
    """Remove exact duplicates, then fold same-kind waits into one."""
    unique: List[WaitStrategy] = []
    seen = set()
    for strategy in strategies:
        key = _strategy_key(strategy)
        if key not in seen:
            seen.add(key)
            unique.append(strategy)

    merged: Dict[WaitKind, WaitStrategy] = {}
    for strategy in unique:
        existing = merged.get(strategy.kind)
        if existing is None:
            merged[strategy.kind] = strategy
            continue
        merged[strategy.kind] = WaitStrategy(
            kind=existing.kind,
            selectors=_union(existing.selectors, strategy.selectors),
            timeout=_max_optional(existing.timeout, strategy.timeout),
            duration=_max_optional(existing.duration, strategy.duration),
            conditions=_union(existing.conditions, strategy.conditions),
            condition=existing.condition or strategy.condition,
            description=existing.description or strategy.description,
        )
    return list(merged.values())


def order_strategies(strategies: Sequence[WaitStrategy]) -> List[WaitStrategy]:
    return sorted(strategies, key=lambda s: _priority(s.kind))


def apply_default_timeouts(strategies: Sequence[WaitStrategy]) -> List[WaitStrategy]:
    result = []
    for strategy in strategies:
        if strategy.timeout is None:
            strategy = WaitStrategy(
                kind=strategy.kind,
                selectors=strategy.selectors,
                timeout=default_timeout(strategy.kind),
                duration=strategy.duration,
                conditions=strategy.conditions,
                condition=strategy.condition,
                description=strategy.description,
            )
        result.append(strategy)
    return result


class WaitStrategyEngine:
    """Synthesizes wait directives for recorded actions"""

    def __init__(self, resolver: Optional[SelectorResolver] = None):
        self.resolver = resolver or get_selector_resolver()

    # ==================== Analyses ====================

    def analyze_action_type(self, action: Action, selector: Optional[str]) -> List[WaitStrategy]:
        selectors = (selector,) if selector else ()
        kind = action.type

        if kind == ActionType.CLICK:
            return [
                WaitStrategy(WaitKind.ELEMENT_CLICKABLE, selectors, description="Wait for element to be clickable"),
                WaitStrategy(WaitKind.ELEMENT_STABLE, selectors, duration=500, description="Wait for element to settle"),
            ]
        if kind in (ActionType.INPUT, ActionType.CHANGE):
            return [
                WaitStrategy(WaitKind.ELEMENT_ENABLED, selectors, description="Wait for element to be enabled"),
                WaitStrategy(WaitKind.ELEMENT_FOCUSED, selectors, description="Wait for element to accept focus"),
            ]
        if kind == ActionType.SELECT:
            return [WaitStrategy(WaitKind.ELEMENT_ENABLED, selectors, description="Wait for element to be enabled")]
        if kind == ActionType.KEYDOWN:
            return [WaitStrategy(WaitKind.ELEMENT_FOCUSED, selectors, description="Wait for element to accept focus")]
        if kind == ActionType.NAVIGATION:
            return [WaitStrategy(
                WaitKind.PAGE_LOAD,
                timeout=30000,
                conditions=("domcontentloaded", "networkidle"),
                description="Wait for page to load",
            )]
        if kind == ActionType.SUBMIT:
            return [
                WaitStrategy(WaitKind.FORM_VALID, selectors, description="Wait for form to validate"),
                WaitStrategy(WaitKind.NETWORK_IDLE, timeout=5000, description="Wait for submission requests"),
            ]
        if kind == ActionType.HOVER:
            return [WaitStrategy(WaitKind.ELEMENT_VISIBLE, selectors, description="Wait for element to be visible")]
        if kind == ActionType.SCROLL:
            return [
                WaitStrategy(WaitKind.SCROLL_STABLE, description="Wait for scrolling to stop"),
                WaitStrategy(WaitKind.LAZY_LOAD_COMPLETE, description="Wait for lazy content"),
            ]
        if kind == ActionType.DRAG:
            return [
                WaitStrategy(WaitKind.ELEMENT_DRAGGABLE, selectors, description="Wait for element to be draggable"),
                WaitStrategy(WaitKind.DROP_ZONE_READY, selectors, description="Wait for drop zone"),
            ]
        if kind == ActionType.UPLOAD:
            return [WaitStrategy(WaitKind.ELEMENT_EXISTS, selectors, description="Wait for file input")]
        return []

    def analyze_element(self, element: Optional[ElementDescriptor], selector: Optional[str]) -> List[WaitStrategy]:
        if element is None:
            return []

        selectors = (selector,) if selector else ()
        class_names = " ".join(element.class_list)
        strategies = []

        dynamic = (
            any(element.attribute(attr) is not None for attr in DYNAMIC_MARKER_ATTRIBUTES)
            or "dynamic" in class_names
        )
        if dynamic:
            strategies.append(WaitStrategy(
                WaitKind.ELEMENT_STABLE, selectors, duration=1000,
                description="Wait for dynamic element to stabilize",
            ))

        if any(element.attribute(attr) is not None for attr in ASYNC_MARKER_ATTRIBUTES) or "lazy" in class_names:
            strategies.append(WaitStrategy(
                WaitKind.ELEMENT_LOADED, selectors, timeout=5000,
                description="Wait for async content to load",
            ))

        animated_style = any(
            (element.styles.get(prop) or "none") not in ("none", "", "all 0s ease 0s")
            for prop in ("animation", "transition")
        )
        if animated_style or ANIMATION_CLASS_PATTERN.search(class_names):
            strategies.append(WaitStrategy(
                WaitKind.ANIMATION_COMPLETE, selectors,
                description="Wait for animations to finish",
            ))

        if element.tag in FORM_TAGS:
            strategies.append(WaitStrategy(
                WaitKind.FORM_READY, selectors,
                description="Wait for form control to be ready",
            ))

        return strategies

    def analyze_transition(self, action: Action, previous: Optional[Action]) -> List[WaitStrategy]:
        if previous is None:
            return []

        strategies = []

        if action.url and previous.url and action.url != previous.url:
            strategies.append(WaitStrategy(
                WaitKind.NAVIGATION_COMPLETE,
                condition={"from": previous.url, "to": action.url},
                description="Wait for navigation to complete",
            ))

        opens_modal = (
            previous.type == ActionType.CLICK
            and previous.element is not None
            and any(previous.element.attribute(attr) == "modal" for attr in MODAL_TOGGLE_ATTRIBUTES)
        )
        in_modal = action.element is not None and any("modal" in c for c in action.element.class_list)
        if opens_modal or in_modal:
            strategies.append(WaitStrategy(
                WaitKind.MODAL_READY,
                condition={"action": "open" if opens_modal else "interact"},
                description="Wait for modal to be ready",
            ))

        if action.tab_id is not None and previous.tab_id is not None and action.tab_id != previous.tab_id:
            strategies.append(WaitStrategy(
                WaitKind.TAB_READY,
                condition={"tab_id": action.tab_id},
                description="Wait for tab switch",
            ))

        return strategies

    # ==================== Synthesis ====================

    def determine(
        self,
        action: Action,
        previous: Optional[Action] = None,
        selector: Optional[str] = None,
    ) -> List[WaitStrategy]:
        """Ordered, merged wait strategies for one action."""
        if selector is None and action.element is not None:
            selector = self.resolver.resolve_selector(action.element)

        proposals = (
            self.analyze_action_type(action, selector)
            + self.analyze_element(action.element, selector)
            + self.analyze_transition(action, previous)
        )
        return self.finalize(proposals)

    def finalize(self, proposals: Sequence[WaitStrategy]) -> List[WaitStrategy]:
        return apply_default_timeouts(order_strategies(merge_strategies(proposals)))

    def determine_all(self, actions: Sequence[Action]) -> List[List[WaitStrategy]]:
        result = []
        previous = None
        for action in actions:
            result.append(self.determine(action, previous))
            previous = action
        return result
