"""
Playwright Test generator (JavaScript, @playwright/test).
"""

from typing import List

from ..models import Action, Framework, GenerationOptions, TestContext, WaitStrategy
from ..core.selector_resolver import SelectorResolution, is_xpath_selector
from .base import ScriptGenerator, iframe_selector
from .page_objects import PageObject


class PlaywrightGenerator(ScriptGenerator):
    framework = Framework.PLAYWRIGHT

    def locator(self, resolution: SelectorResolution) -> str:
        selector = resolution.selector
        if is_xpath_selector(selector):
            selector = f"xpath={selector}"
        scope = "page"
        if self.current_frame:
            scope = f"page.frameLocator({self.quote(iframe_selector(self.current_frame))})"
        return f"{scope}.locator({self.quote(selector)})"

    def imports(self, context: TestContext, options: GenerationOptions) -> List[str]:
        return ["import { test, expect } from '@playwright/test';", ""]

    def page_object(self, page: PageObject) -> List[str]:
        lines = [
            self.comment(f"Page object for {page.url}"),
            f"class {page.class_name} {{",
            "  constructor(page) {",
            "    this.page = page;",
            f"    this.url = {self.quote(page.url)};",
        ]
        for element in page.elements:
            lines.append(f"    this.{element.name} = {self.locator(element.resolution)};")
        return lines + [
            "  }",
            "",
            "  async goto() {",
            "    await this.page.goto(this.url);",
            "  }",
            "}",
            "",
        ]

    def header(self, context: TestContext, options: GenerationOptions) -> List[str]:
        return [
            f"test({self.quote(context.test_name)}, async ({{ page }}) => {{",
        ]

    def footer(self, context: TestContext, options: GenerationOptions) -> List[str]:
        return ["});"]

    def navigate(self, url: str) -> List[str]:
        return [f"await page.goto({self.quote(url)});"]

    def pre_check(self, resolution: SelectorResolution, action: Action) -> List[str]:
        return [f"await expect({self.locator(resolution)}).toBeVisible();"]

    def click(self, resolution: SelectorResolution, action: Action) -> List[str]:
        return [f"await {self.locator(resolution)}.click();"]

    def fill(self, resolution: SelectorResolution, value: str) -> List[str]:
        locator = self.locator(resolution)
        return [
            f"await {locator}.clear();",
            f"await {locator}.fill({self.quote(value)});",
        ]

    def value_assertion(self, resolution: SelectorResolution, value: str) -> List[str]:
        return [f"await expect({self.locator(resolution)}).toHaveValue({self.quote(value)});"]

    def press_enter(self, resolution: SelectorResolution, action: Action) -> List[str]:
        return [f"await {self.locator(resolution)}.press('Enter');"]

    def submit(self, resolution: SelectorResolution, action: Action) -> List[str]:
        return [f"await {self.locator(resolution)}.evaluate(form => form.requestSubmit());"]

    def hover(self, resolution: SelectorResolution, action: Action) -> List[str]:
        return [f"await {self.locator(resolution)}.hover();"]

    def select(self, resolution: SelectorResolution, value: str) -> List[str]:
        return [f"await {self.locator(resolution)}.selectOption({self.quote(value)});"]

    def scroll(self, resolution: SelectorResolution, action: Action) -> List[str]:
        return [f"await {self.locator(resolution)}.scrollIntoViewIfNeeded();"]

    def upload(self, resolution: SelectorResolution, value: str) -> List[str]:
        return [f"await {self.locator(resolution)}.setInputFiles({self.quote(value)});"]

    def url_assertion(self, url: str) -> List[str]:
        return [f"await expect(page).toHaveURL({self.quote(url)});"]

    def wait_for_page_load(self, wait: WaitStrategy) -> List[str]:
        state = "networkidle" if "networkidle" in wait.conditions else "load"
        return [f"await page.waitForLoadState('{state}', {{ timeout: {wait.timeout} }});"]

    def wait_for_network_idle(self, wait: WaitStrategy) -> List[str]:
        return [f"await page.waitForLoadState('networkidle', {{ timeout: {wait.timeout} }});"]

    def wait_for_url(self, url: str, wait: WaitStrategy) -> List[str]:
        return [f"await page.waitForURL({self.quote(url)}, {{ timeout: {wait.timeout} }});"]

    def wait_for_presence(self, resolution: SelectorResolution, wait: WaitStrategy) -> List[str]:
        return [f"await {self.locator(resolution)}.first().waitFor({{ state: 'attached', timeout: {wait.timeout} }});"]

    def wait_for_enabled(self, resolution: SelectorResolution, wait: WaitStrategy) -> List[str]:
        return [f"await expect({self.locator(resolution)}.first()).toBeEnabled({{ timeout: {wait.timeout} }});"]
