"""
Selector Resolver

Derives a single locator for a recorded element by walking a fixed
priority of identifying attributes. Attributes that look generated
(hashed ids, CSS-in-JS classes, timestamps) are skipped so the
generated script survives the next deploy.

Priority:
1. id
2. explicit test-attribute map
3. common test-automation attributes
4. name (form controls)
5. type + placeholder (text inputs)
6. aria-label
7. stable class hints
8. precomputed CSS selector (non-positional)
9. visible text (buttons and links)
10. precomputed XPath
11. bare tag name
"""

import re
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from ..config import get_config
from ..models import ElementDescriptor
from .dynamic_values import looks_generated

# Configure logging
logger = logging.getLogger(__name__)


UNKNOWN_SELECTOR = "unknown"
TEXT_SELECTOR_PREFIX = "text="

TEST_ATTRIBUTES = (
    "data-testid",
    "data-test",
    "data-test-id",
    "data-cy",
    "data-qa",
    "data-automation",
    "data-automation-id",
    "data-e2e",
)

FORM_CONTROL_TAGS = frozenset(["input", "select", "textarea", "button"])
TEXT_INPUT_TYPES = frozenset(["", "text", "email", "password", "search", "tel", "url", "number"])
TEXT_SELECTOR_TAGS = frozenset(["button", "a"])
POSITIONAL_MARKERS = ("nth-child", "nth-of-type")

_CSS_IDENT = re.compile(r"^-?[A-Za-z_][A-Za-z0-9_-]*$")


class LocatorStrategy(str, Enum):
    """Locator kinds understood by strategy-typed drivers such as Selenium"""
    ID = "id"
    NAME = "name"
    CSS = "css"
    XPATH = "xpath"
    TAG = "tag"


@dataclass(frozen=True)
class SelectorResolution:
    """Which rule matched and what it produced"""
    rule: str
    selector: str
    strategy: LocatorStrategy
    value: str


def quote_attribute(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def attribute_selector(name: str, value: str, tag: str = "") -> str:
    return f"{tag}[{name}={quote_attribute(value)}]"


def id_selector(element_id: str) -> str:
    if _CSS_IDENT.match(element_id):
        return f"#{element_id}"
    return attribute_selector("id", element_id)


def xpath_literal(text: str) -> str:
    if "'" not in text:
        return f"'{text}'"
    if '"' not in text:
        return f'"{text}"'
    parts = text.split("'")
    return "concat(" + ", \"'\", ".join(f"'{p}'" for p in parts) + ")"


def is_text_selector(selector: str) -> bool:
    return selector.startswith(TEXT_SELECTOR_PREFIX)


def text_selector_value(selector: str) -> str:
    """Unwrap the literal text from a ``text="..."`` selector."""
    raw = selector[len(TEXT_SELECTOR_PREFIX):]
    if len(raw) >= 2 and raw[0] == '"' and raw[-1] == '"':
        raw = raw[1:-1].replace('\\"', '"').replace("\\\\", "\\")
    return raw


def is_xpath_selector(selector: str) -> bool:
    return selector.startswith("/") or selector.startswith("(")


class SelectorResolver:
    """Resolves element descriptors to locators"""

    def __init__(self, text_max_length: int = 30):
        self.text_max_length = text_max_length

    def resolve(self, element: Optional[ElementDescriptor]) -> SelectorResolution:
        if element is None:
            return SelectorResolution("unknown", UNKNOWN_SELECTOR, LocatorStrategy.TAG, UNKNOWN_SELECTOR)

        tag = element.tag

        # 1. id
        if element.id and not looks_generated(element.id):
            return SelectorResolution("id", id_selector(element.id), LocatorStrategy.ID, element.id)

        # 2. explicit test-attribute map
        for key, value in element.test_attributes.items():
            if value:
                selector = attribute_selector(key, value)
                return SelectorResolution("test_attribute", selector, LocatorStrategy.CSS, selector)

        # 3. common test attributes
        for key in TEST_ATTRIBUTES:
            value = element.attribute(key)
            if value and not looks_generated(value):
                selector = attribute_selector(key, value)
                return SelectorResolution("test_attribute", selector, LocatorStrategy.CSS, selector)

        # 4. name on form controls
        if element.name and tag in FORM_CONTROL_TAGS:
            selector = attribute_selector("name", element.name)
            return SelectorResolution("name", selector, LocatorStrategy.NAME, element.name)

        # 5. type + placeholder on text inputs
        if tag == "input" and element.placeholder and element.input_type in TEXT_INPUT_TYPES:
            input_type = element.input_type or "text"
            selector = (
                attribute_selector("type", input_type, tag="input")
                + attribute_selector("placeholder", element.placeholder)
            )
            return SelectorResolution("placeholder", selector, LocatorStrategy.CSS, selector)

        # 6. aria-label
        aria_label = element.attribute("aria-label")
        if aria_label and not looks_generated(aria_label):
            selector = attribute_selector("aria-label", aria_label)
            return SelectorResolution("aria_label", selector, LocatorStrategy.CSS, selector)

        # 7. stable class hints
        if element.stable_classes:
            classes = "".join(f".{c}" for c in element.stable_classes[:2])
            selector = f"{tag}{classes}"
            return SelectorResolution("stable_class", selector, LocatorStrategy.CSS, selector)

        # 8. precomputed CSS, unless positional
        if element.css_selector and not any(m in element.css_selector for m in POSITIONAL_MARKERS):
            return SelectorResolution("css", element.css_selector, LocatorStrategy.CSS, element.css_selector)

        # 9. visible text on buttons and links
        if tag in TEXT_SELECTOR_TAGS and element.text_content:
            text = " ".join(element.text_content.split())[:self.text_max_length].strip()
            if text and not looks_generated(text):
                selector = TEXT_SELECTOR_PREFIX + quote_attribute(text)
                xpath = f"//{tag}[contains(normalize-space(.), {xpath_literal(text)})]"
                return SelectorResolution("text", selector, LocatorStrategy.XPATH, xpath)

        # 10. precomputed XPath
        if element.xpath:
            return SelectorResolution("xpath", element.xpath, LocatorStrategy.XPATH, element.xpath)

        # 11. bare tag
        if tag:
            return SelectorResolution("tag", tag, LocatorStrategy.TAG, tag)

        logger.debug("Element descriptor has no usable attributes, falling back to unknown selector")
        return SelectorResolution("unknown", UNKNOWN_SELECTOR, LocatorStrategy.TAG, UNKNOWN_SELECTOR)

    def resolve_selector(self, element: Optional[ElementDescriptor]) -> str:
        return self.resolve(element).selector

    def resolve_strategy(self, element: Optional[ElementDescriptor]) -> Tuple[LocatorStrategy, str]:
        resolution = self.resolve(element)
        return resolution.strategy, resolution.value


# Global resolver instance
_resolver: Optional[SelectorResolver] = None


def get_selector_resolver() -> SelectorResolver:
    global _resolver
    if _resolver is None:
        _resolver = SelectorResolver(text_max_length=get_config().text_selector_max_length)
    return _resolver


def resolve_selector(element: Optional[ElementDescriptor]) -> str:
    """Single best locator string for the element."""
    return get_selector_resolver().resolve_selector(element)


def resolve_strategy(element: Optional[ElementDescriptor]) -> Tuple[LocatorStrategy, str]:
    """Best (strategy, value) pair for the element."""
    return get_selector_resolver().resolve_strategy(element)
