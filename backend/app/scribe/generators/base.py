"""
Script Generator Base

Walks an optimized action list and asks a framework-specific subclass
to render each step. The walk owns everything that is the same for
every target: URL tracking, selector resolution, wait synthesis, step
comments, and the closing URL assertion.
"""

import re
import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from ..models import (
    Action, ActionType, Framework, GenerationOptions, TestContext, WaitKind, WaitStrategy,
)
from ..core.selector_resolver import (
    LocatorStrategy, SelectorResolution, SelectorResolver, get_selector_resolver,
    is_text_selector, is_xpath_selector,
)
from ..core.wait_strategy import WaitStrategyEngine
from ..network.assertions import NetworkEntry, render_network_assertions, render_network_mocks
from .page_objects import PageObject, build_page_objects

# Configure logging
logger = logging.getLogger(__name__)


# Waits rendered after the step's own statement
POST_ACTION_WAITS = frozenset([WaitKind.PAGE_LOAD, WaitKind.NETWORK_IDLE, WaitKind.NAVIGATION_COMPLETE])
PRESENCE_WAITS = frozenset([WaitKind.ELEMENT_EXISTS, WaitKind.ELEMENT_LOADED])
ENABLED_WAITS = frozenset([WaitKind.ELEMENT_CLICKABLE, WaitKind.ELEMENT_ENABLED])

FILL_ACTIONS = frozenset([ActionType.INPUT, ActionType.CHANGE])
CHECKABLE_TYPES = frozenset(["checkbox", "radio"])


def escape_literal(value: Optional[str], quotes: str = "'\"") -> str:
    """Escape text for a string literal delimited by any of ``quotes``."""
    if value is None:
        return ""
    text = str(value).replace("\\", "\\\\")
    for quote in quotes:
        text = text.replace(quote, "\\" + quote)
    return text.replace("\n", "\\n").replace("\r", "\\r")


def iframe_selector(origin: str) -> str:
    return f'iframe[src*="{origin}"]'


def slugify(text: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "_", text.lower()).strip("_")
    return slug or "recorded_flow"


class ScriptGenerator(ABC):
    """Renders one framework's test script from recorded actions"""

    framework: Framework
    indent = "  "
    body_depth = 1
    comment_prefix = "//"

    def __init__(
        self,
        resolver: Optional[SelectorResolver] = None,
        wait_engine: Optional[WaitStrategyEngine] = None,
    ):
        self.resolver = resolver or get_selector_resolver()
        self.wait_engine = wait_engine or WaitStrategyEngine(self.resolver)

    # ==================== Walk ====================

    def generate(
        self,
        actions: Sequence[Action],
        context: TestContext,
        options: Optional[GenerationOptions] = None,
        network: Sequence[NetworkEntry] = (),
    ) -> str:
        options = options or GenerationOptions()
        self.current_frame: Optional[str] = None
        self.prepare(actions)

        body: List[str] = []
        if options.include_network_assertions and network:
            body.extend(self.network_mocks(network, options))

        current_url: Optional[str] = None
        previous: Optional[Action] = None
        step = 0

        for action in actions:
            step_lines: List[str] = []
            self.current_frame = action.iframe_info.origin if action.iframe_info else None

            navigated = False
            if action.url and action.url != current_url:
                step_lines.extend(self.navigate(action.url))
                current_url = action.url
                navigated = True

            resolution = self.resolver.resolve(action.element) if action.element is not None else None
            waits = self.waits_for(action, previous, resolution, options)
            pre_waits = [w for w in waits if w.kind not in POST_ACTION_WAITS]
            post_waits = [w for w in waits if w.kind in POST_ACTION_WAITS]

            if action.type == ActionType.NAVIGATION:
                if navigated:
                    step_lines.extend(self.render_waits(post_waits, resolution))
            else:
                statements = self.action_statements(action, resolution, options)
                if statements:
                    if action.type != ActionType.SUBMIT:
                        step_lines.extend(self.render_waits(post_waits, resolution))
                    scoped = self.render_waits(pre_waits, resolution) + statements
                    step_lines.extend(self.scope_to_frame(action, scoped))
                    if action.type == ActionType.SUBMIT:
                        step_lines.extend(self.render_waits(post_waits, resolution))
                else:
                    logger.debug(f"No {self.framework.value} statement for {action.type.value} action {action.id}")

            if step_lines:
                step += 1
                if options.include_comments:
                    body.append(self.comment(f"Step {step}: {self.describe(action, resolution)}"))
                body.extend(step_lines)
                body.append("")

            previous = action

        if options.include_assertions and current_url and current_url != context.start_url:
            body.extend(self.url_assertion(current_url))

        if options.include_network_assertions and network:
            body.extend(self.network_assertions(network))

        while body and body[-1] == "":
            body.pop()

        self.current_frame = None
        lines = self.imports(context, options)
        if options.page_objects:
            pages = build_page_objects(actions, self.resolver, context.start_url)
            for page in pages:
                lines.extend(self.page_object(page))
        lines.extend(self.header(context, options))
        prefix = self.indent * self.body_depth
        lines.extend(prefix + line if line else "" for line in body)
        lines.extend(self.footer(context, options))
        return "\n".join(lines) + "\n"

    def prepare(self, actions: Sequence[Action]):
        """Hook for generators that need to scan the whole flow first."""

    def waits_for(
        self,
        action: Action,
        previous: Optional[Action],
        resolution: Optional[SelectorResolution],
        options: GenerationOptions,
    ) -> List[WaitStrategy]:
        if not options.include_waits:
            return []
        selector = resolution.selector if resolution else None
        return self.wait_engine.determine(action, previous, selector)

    def action_statements(
        self,
        action: Action,
        resolution: Optional[SelectorResolution],
        options: GenerationOptions,
    ) -> List[str]:
        if resolution is None:
            resolution = self.resolver.resolve(None)

        element = action.element
        kind = action.type
        lines: List[str] = []

        if kind == ActionType.CLICK:
            lines += self.pre_check(resolution, action)
            lines += self.click(resolution, action)
        elif kind == ActionType.SELECT or (kind == ActionType.CHANGE and element is not None and element.tag == "select"):
            lines += self.pre_check(resolution, action)
            lines += self.select(resolution, action.value or "")
        elif kind == ActionType.CHANGE and element is not None and element.input_type in CHECKABLE_TYPES:
            lines += self.pre_check(resolution, action)
            lines += self.click(resolution, action)
        elif kind in FILL_ACTIONS:
            lines += self.pre_check(resolution, action)
            lines += self.fill(resolution, action.value or "")
            if options.include_assertions and not (element is not None and element.is_password):
                lines += self.value_assertion(resolution, action.value or "")
        elif kind == ActionType.KEYDOWN:
            if (action.key or "").lower() != "enter":
                return []
            lines += self.press_enter(resolution, action)
        elif kind == ActionType.SUBMIT:
            lines += self.submit(resolution, action)
        elif kind == ActionType.HOVER:
            lines += self.pre_check(resolution, action)
            lines += self.hover(resolution, action)
        elif kind == ActionType.SCROLL:
            if element is None:
                return []
            lines += self.scroll(resolution, action)
        elif kind == ActionType.UPLOAD:
            lines += self.upload(resolution, action.value or "")
        return lines

    def render_waits(self, waits: Sequence[WaitStrategy], resolution: Optional[SelectorResolution]) -> List[str]:
        lines: List[str] = []
        for wait in waits:
            lines.extend(self.render_wait(wait, resolution))
        return lines

    def render_wait(self, wait: WaitStrategy, resolution: Optional[SelectorResolution]) -> List[str]:
        """Statements for one wait; kinds the target auto-waits for render nothing."""
        if wait.kind == WaitKind.PAGE_LOAD:
            return self.wait_for_page_load(wait)
        if wait.kind == WaitKind.NETWORK_IDLE:
            return self.wait_for_network_idle(wait)
        if wait.kind == WaitKind.NAVIGATION_COMPLETE:
            target = (wait.condition or {}).get("to")
            return self.wait_for_url(target, wait) if target else []
        if resolution is None:
            return []
        if wait.kind in PRESENCE_WAITS:
            return self.wait_for_presence(self.wait_target(wait, resolution), wait)
        if wait.kind in ENABLED_WAITS:
            return self.wait_for_enabled(self.wait_target(wait, resolution), wait)
        return []

    def wait_target(self, wait: WaitStrategy, resolution: SelectorResolution) -> SelectorResolution:
        """Merged waits over several CSS selectors become one selector group."""
        selectors = [s for s in wait.selectors if s != resolution.selector]
        if not selectors:
            return resolution
        group = (resolution.selector,) + tuple(selectors)
        if any(is_text_selector(s) or is_xpath_selector(s) for s in group):
            return resolution
        joined = ", ".join(group)
        return SelectorResolution("css", joined, LocatorStrategy.CSS, joined)

    def describe(self, action: Action, resolution: Optional[SelectorResolution]) -> str:
        if action.type == ActionType.NAVIGATION:
            return f"navigate to {action.url}"
        target = resolution.selector if resolution else "page"
        if action.type in FILL_ACTIONS:
            if action.element is not None and action.element.is_password:
                return f"fill {target} with password"
            return f"fill {target}"
        if action.type == ActionType.KEYDOWN:
            return f"press {action.key} on {target}"
        return f"{action.type.value} {target}"

    def comment(self, text: str) -> str:
        return f"{self.comment_prefix} {text.replace(chr(10), ' ')}"

    def scope_to_frame(self, action: Action, statements: List[str]) -> List[str]:
        """Wrap statements so they run inside the action's iframe."""
        return statements

    def quote(self, value: Optional[str]) -> str:
        return f"'{escape_literal(value)}'"

    # ==================== Target hooks ====================

    def imports(self, context: TestContext, options: GenerationOptions) -> List[str]:
        """Lines that precede everything else, ending with the blank separator."""
        return []

    @abstractmethod
    def page_object(self, page: PageObject) -> List[str]:
        """One page class followed by its blank separator."""

    @abstractmethod
    def header(self, context: TestContext, options: GenerationOptions) -> List[str]:
        ...

    @abstractmethod
    def footer(self, context: TestContext, options: GenerationOptions) -> List[str]:
        ...

    @abstractmethod
    def navigate(self, url: str) -> List[str]:
        ...

    @abstractmethod
    def pre_check(self, resolution: SelectorResolution, action: Action) -> List[str]:
        ...

    @abstractmethod
    def click(self, resolution: SelectorResolution, action: Action) -> List[str]:
        ...

    @abstractmethod
    def fill(self, resolution: SelectorResolution, value: str) -> List[str]:
        ...

    @abstractmethod
    def value_assertion(self, resolution: SelectorResolution, value: str) -> List[str]:
        ...

    @abstractmethod
    def press_enter(self, resolution: SelectorResolution, action: Action) -> List[str]:
        ...

    @abstractmethod
    def submit(self, resolution: SelectorResolution, action: Action) -> List[str]:
        ...

    @abstractmethod
    def hover(self, resolution: SelectorResolution, action: Action) -> List[str]:
        ...

    @abstractmethod
    def select(self, resolution: SelectorResolution, value: str) -> List[str]:
        ...

    @abstractmethod
    def scroll(self, resolution: SelectorResolution, action: Action) -> List[str]:
        ...

    @abstractmethod
    def upload(self, resolution: SelectorResolution, value: str) -> List[str]:
        ...

    @abstractmethod
    def url_assertion(self, url: str) -> List[str]:
        ...

    def wait_for_page_load(self, wait: WaitStrategy) -> List[str]:
        return []

    def wait_for_network_idle(self, wait: WaitStrategy) -> List[str]:
        return []

    def wait_for_url(self, url: str, wait: WaitStrategy) -> List[str]:
        return []

    def wait_for_presence(self, resolution: SelectorResolution, wait: WaitStrategy) -> List[str]:
        return []

    def wait_for_enabled(self, resolution: SelectorResolution, wait: WaitStrategy) -> List[str]:
        return []

    def network_mocks(self, network: Sequence[NetworkEntry], options: GenerationOptions) -> List[str]:
        return render_network_mocks(self.framework, network, mock=options.mock_network)

    def network_assertions(self, network: Sequence[NetworkEntry]) -> List[str]:
        return render_network_assertions(self.framework, network)
