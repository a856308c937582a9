"""
Page Object Grouping

Collects the elements a flow touches into one page object per page
URL. Each generator renders the grouped pages as classes in its own
language ahead of the recorded test.
"""

import re
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple
from urllib.parse import urlparse

from ..models import Action, ElementDescriptor
from ..core.selector_resolver import SelectorResolution, SelectorResolver

# Configure logging
logger = logging.getLogger(__name__)


WORD = re.compile(r"[A-Za-z0-9]+")
INDEX_SEGMENTS = frozenset(["index.html", "index.htm", "index.php"])
# Members every rendered page class already defines
RESERVED_NAMES = frozenset(["page", "url", "goto", "visit", "open", "find", "driver", "wait", "selectors", "element", "constructor"])


@dataclass(frozen=True)
class PageElement:
    """A named element on a page object"""
    name: str
    resolution: SelectorResolution


@dataclass(frozen=True)
class PageObject:
    """Elements grouped under one page URL"""
    class_name: str
    url: str
    elements: Tuple[PageElement, ...]


# ==================== Naming ====================

def to_camel(text: str) -> str:
    words = WORD.findall(text or "")
    if not words:
        return ""
    name = words[0][0].lower() + words[0][1:] + "".join(w[0].upper() + w[1:] for w in words[1:])
    if name[0].isdigit():
        name = "el" + name[0].upper() + name[1:]
    return name


def to_pascal(text: str) -> str:
    camel = to_camel(text)
    return camel[0].upper() + camel[1:] if camel else ""


def to_constant(name: str) -> str:
    """loginButton -> LOGIN_BUTTON"""
    return re.sub(r"(?<=[a-z0-9])(?=[A-Z])", "_", name).upper()


def normalize_page_url(url: str) -> str:
    """Drop the query string and fragment."""
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        return url.split("?", 1)[0].split("#", 1)[0]
    return f"{parsed.scheme}://{parsed.netloc}{parsed.path or '/'}"


def page_class_name(url: str) -> str:
    segments = [s for s in urlparse(url).path.split("/") if s and s.lower() not in INDEX_SEGMENTS]
    name = to_pascal(segments[-1]) if segments else ""
    return f"{name or 'Home'}Page"


def element_name(element: ElementDescriptor) -> str:
    candidates = [
        element.name,
        element.id,
        f"{element.placeholder} field" if element.placeholder else None,
        (element.text_content or "")[:20],
        element.class_list[0] if element.class_list else None,
        element.tag,
    ]
    for candidate in candidates:
        name = to_camel(candidate or "")
        if name:
            return name
    return "element"


def _unique(name: str, taken: Dict[str, int]) -> str:
    count = taken.get(name, 0) + 1
    taken[name] = count
    return name if count == 1 else f"{name}{count}"


# ==================== Grouping ====================

def build_page_objects(
    actions: Sequence[Action],
    resolver: SelectorResolver,
    start_url: Optional[str] = None,
) -> List[PageObject]:
    """Group resolved selectors by the page they were used on.

    Pages keep first-visit order and elements keep first-use order; a
    selector used twice on the same page is listed once.
    """
    pages: Dict[str, Dict[str, PageElement]] = {}
    names: Dict[str, Dict[str, int]] = {}
    current_url = start_url

    for action in actions:
        if action.url:
            current_url = action.url
        if action.element is None or not current_url:
            continue

        page_url = normalize_page_url(current_url)
        elements = pages.setdefault(page_url, {})
        resolution = resolver.resolve(action.element)
        if resolution.selector in elements:
            continue
        name = element_name(action.element)
        if name in RESERVED_NAMES:
            name += "Element"
        name = _unique(name, names.setdefault(page_url, {}))
        elements[resolution.selector] = PageElement(name=name, resolution=resolution)

    class_names: Dict[str, int] = {}
    page_objects = []
    for url, elements in pages.items():
        page_objects.append(PageObject(
            class_name=_unique(page_class_name(url), class_names),
            url=url,
            elements=tuple(elements.values()),
        ))
    logger.debug(f"Grouped {len(actions)} actions into {len(page_objects)} page objects")
    return page_objects
