"""
Cypress generator (JavaScript).

Iframe steps use the cypress-iframe plugin and XPath locators use
@cypress/xpath; the generated test notes which plugins it needs.
"""

from typing import List, Sequence

from ..models import Action, Framework, GenerationOptions, TestContext, WaitStrategy
from ..core.selector_resolver import (
    SelectorResolution, is_text_selector, is_xpath_selector, text_selector_value,
)
from .base import ScriptGenerator, escape_literal, iframe_selector
from .page_objects import PageObject


class CypressGenerator(ScriptGenerator):
    framework = Framework.CYPRESS
    body_depth = 2
    uses_iframes = False
    uses_xpath = False

    def prepare(self, actions: Sequence[Action]):
        self.uses_iframes = any(a.iframe_info for a in actions)
        self.uses_xpath = any(
            a.element is not None and is_xpath_selector(self.resolver.resolve_selector(a.element))
            for a in actions
        )

    def chain(self, resolution: SelectorResolution) -> str:
        selector = resolution.selector
        if self.current_frame:
            root = f"cy.iframe({self.quote(iframe_selector(self.current_frame))})"
            if is_text_selector(selector):
                return f"{root}.contains({self.quote(self._text_tag(resolution))}, {self.quote(text_selector_value(selector))})"
            if is_xpath_selector(selector):
                return f"{root}.xpath({self.quote(selector)})"
            return f"{root}.find({self.quote(selector)})"
        if is_text_selector(selector):
            return f"cy.contains({self.quote(self._text_tag(resolution))}, {self.quote(text_selector_value(selector))})"
        if is_xpath_selector(selector):
            return f"cy.xpath({self.quote(selector)})"
        return f"cy.get({self.quote(selector)})"

    def _text_tag(self, resolution: SelectorResolution) -> str:
        # value holds //tag[contains(...)] for text matches
        return resolution.value[2:].split("[", 1)[0] or "*"

    def imports(self, context: TestContext, options: GenerationOptions) -> List[str]:
        lines = []
        if self.uses_iframes:
            lines.append("// Requires the cypress-iframe plugin")
        if self.uses_xpath:
            lines.append("// Requires the @cypress/xpath plugin")
        if lines:
            lines.append("")
        return lines

    def page_object(self, page: PageObject) -> List[str]:
        lines = [
            self.comment(f"Page object for {page.url}"),
            f"class {page.class_name} {{",
            "  visit() {",
            f"    cy.visit({self.quote(page.url)});",
            "    return this;",
            "  }",
        ]
        for element in page.elements:
            lines += [
                "",
                f"  get {element.name}() {{",
                f"    return {self.chain(element.resolution)};",
                "  }",
            ]
        return lines + ["}", ""]

    def header(self, context: TestContext, options: GenerationOptions) -> List[str]:
        return [
            f"describe({self.quote(context.test_name)}, () => {{",
            "  it('replays the recorded flow', () => {",
        ]

    def footer(self, context: TestContext, options: GenerationOptions) -> List[str]:
        return ["  });", "});"]

    def scope_to_frame(self, action: Action, statements: List[str]) -> List[str]:
        if not self.current_frame:
            return statements
        return [f"cy.frameLoaded({self.quote(iframe_selector(self.current_frame))});"] + statements

    def navigate(self, url: str) -> List[str]:
        return [f"cy.visit({self.quote(url)});"]

    def pre_check(self, resolution: SelectorResolution, action: Action) -> List[str]:
        return [f"{self.chain(resolution)}.should('be.visible');"]

    def click(self, resolution: SelectorResolution, action: Action) -> List[str]:
        return [f"{self.chain(resolution)}.click();"]

    def fill(self, resolution: SelectorResolution, value: str) -> List[str]:
        if not value:
            return [f"{self.chain(resolution)}.clear();"]
        options = ", { parseSpecialCharSequences: false }" if "{" in value else ""
        return [f"{self.chain(resolution)}.clear().type({self.quote(value)}{options});"]

    def value_assertion(self, resolution: SelectorResolution, value: str) -> List[str]:
        return [f"{self.chain(resolution)}.should('have.value', {self.quote(value)});"]

    def press_enter(self, resolution: SelectorResolution, action: Action) -> List[str]:
        return [f"{self.chain(resolution)}.type('{{enter}}');"]

    def submit(self, resolution: SelectorResolution, action: Action) -> List[str]:
        return [f"{self.chain(resolution)}.submit();"]

    def hover(self, resolution: SelectorResolution, action: Action) -> List[str]:
        return [f"{self.chain(resolution)}.trigger('mouseover');"]

    def select(self, resolution: SelectorResolution, value: str) -> List[str]:
        return [f"{self.chain(resolution)}.select({self.quote(value)});"]

    def scroll(self, resolution: SelectorResolution, action: Action) -> List[str]:
        return [f"{self.chain(resolution)}.scrollIntoView();"]

    def upload(self, resolution: SelectorResolution, value: str) -> List[str]:
        return [f"{self.chain(resolution)}.selectFile({self.quote(value)});"]

    def url_assertion(self, url: str) -> List[str]:
        return [f"cy.url().should('eq', {self.quote(url)});"]

    def wait_for_page_load(self, wait: WaitStrategy) -> List[str]:
        return [f"cy.document({{ timeout: {wait.timeout} }}).its('readyState').should('eq', 'complete');"]

    def wait_for_url(self, url: str, wait: WaitStrategy) -> List[str]:
        return [f"cy.url({{ timeout: {wait.timeout} }}).should('eq', '{escape_literal(url)}');"]

    def wait_for_presence(self, resolution: SelectorResolution, wait: WaitStrategy) -> List[str]:
        if self.current_frame or is_text_selector(resolution.selector) or is_xpath_selector(resolution.selector):
            return [f"{self.chain(resolution)}.should('exist');"]
        return [f"cy.get({self.quote(resolution.selector)}, {{ timeout: {wait.timeout} }}).should('exist');"]

    def wait_for_enabled(self, resolution: SelectorResolution, wait: WaitStrategy) -> List[str]:
        if self.current_frame or is_text_selector(resolution.selector) or is_xpath_selector(resolution.selector):
            return [f"{self.chain(resolution)}.should('be.enabled');"]
        return [f"cy.get({self.quote(resolution.selector)}, {{ timeout: {wait.timeout} }}).should('be.enabled');"]
