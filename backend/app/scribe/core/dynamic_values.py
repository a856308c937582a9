"""
Dynamic Value Detection

Heuristics for attribute values and class names that look generated
by a framework or build tool rather than written by a developer.
Such values change between page loads and make brittle locators.
"""

import re
from typing import Iterable, List, Optional, Pattern, Tuple


# Values that look produced by an id generator, a bundler or a clock
DYNAMIC_VALUE_PATTERNS: Tuple[Pattern, ...] = (
    re.compile(r"(?=[a-f]*\d)[0-9a-f]{8,}", re.IGNORECASE),           # hex runs
    re.compile(r"\d{10,}"),                                            # timestamps
    re.compile(r"^(?=.*\d)(?=.*[a-z])[a-z0-9]{16,}$", re.IGNORECASE),  # random tokens
    re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-", re.IGNORECASE),  # uuids
    re.compile(r"^(uuid|temp|tmp|generated|auto|uid)[-_]", re.IGNORECASE),
    re.compile(r"^:r[0-9a-z]*:$"),                                     # React useId
    re.compile(r"^(ember|ext-gen|yui_)\d+"),
    re.compile(r"^(mui|radix|headlessui|react-select|downshift|rc-tabs)-"),
    re.compile(r"^ng-\d"),
    re.compile(r"-\d{3,}$"),
    re.compile(r"__[A-Za-z0-9_-]{5,}$"),                               # CSS modules hash
)

# Class names emitted by CSS-in-JS libraries and CSS modules
UNSTABLE_CLASS_PATTERNS: Tuple[Pattern, ...] = (
    re.compile(r"^(?=.*\d)[a-z0-9]{6,}$", re.IGNORECASE),
    re.compile(r"^style__"),
    re.compile(r"^css-[a-z0-9]+$", re.IGNORECASE),
    re.compile(r"^sc-"),
    re.compile(r"^jss\d+"),
    re.compile(r"^emotion-"),
    re.compile(r"^ant-\d"),
    re.compile(r"makeStyles"),
    re.compile(r"__[A-Za-z0-9_-]{5,}$"),
)

# State classes that come and go with interaction
STATE_CLASSES = frozenset([
    "active", "focus", "focused", "hover", "selected", "disabled",
    "open", "closed", "visible", "hidden", "show", "hide", "is-active",
])


def looks_generated(value: Optional[str]) -> bool:
    """True when the value matches any dynamic-value pattern."""
    if not value:
        return False
    value = str(value).strip()
    return any(pattern.search(value) for pattern in DYNAMIC_VALUE_PATTERNS)


def is_stable_class(class_name: str) -> bool:
    if not class_name or class_name.lower() in STATE_CLASSES:
        return False
    if any(pattern.search(class_name) for pattern in UNSTABLE_CLASS_PATTERNS):
        return False
    return not looks_generated(class_name)


def stable_classes(class_list: Iterable[str], limit: int = 2) -> List[str]:
    """Return up to ``limit`` classes that survive the stability filters."""
    result = []
    for class_name in class_list:
        if is_stable_class(class_name):
            result.append(class_name)
            if len(result) >= limit:
                break
    return result
