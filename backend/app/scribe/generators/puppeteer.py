"""
Puppeteer generator (Node.js script with assert).

Text and XPath locators use Puppeteer's ::-p-text and ::-p-xpath
query handlers so every step takes a plain selector string.
"""

from typing import List

from ..models import Action, Framework, GenerationOptions, TestContext, WaitStrategy
from ..core.selector_resolver import (
    SelectorResolution, is_text_selector, is_xpath_selector, text_selector_value,
)
from .base import ScriptGenerator, escape_literal
from .page_objects import PageObject


class PuppeteerGenerator(ScriptGenerator):
    framework = Framework.PUPPETEER
    body_depth = 2

    @property
    def target(self) -> str:
        return "frame" if self.current_frame else "page"

    def selector(self, resolution: SelectorResolution) -> str:
        selector = resolution.selector
        if is_text_selector(selector):
            selector = f"::-p-text({text_selector_value(selector)})"
        elif is_xpath_selector(selector):
            selector = f"::-p-xpath({selector})"
        return self.quote(selector)

    def imports(self, context: TestContext, options: GenerationOptions) -> List[str]:
        return [
            "const puppeteer = require('puppeteer');",
            "const assert = require('assert');",
            "",
        ]

    def page_object(self, page: PageObject) -> List[str]:
        lines = [
            self.comment(f"Page object for {page.url}"),
            f"class {page.class_name} {{",
            "  constructor(page) {",
            "    this.page = page;",
            f"    this.url = {self.quote(page.url)};",
            "    this.selectors = {",
        ]
        for element in page.elements:
            lines.append(f"      {element.name}: {self.selector(element.resolution)},")
        return lines + [
            "    };",
            "  }",
            "",
            "  async goto() {",
            "    await this.page.goto(this.url);",
            "  }",
            "",
            "  async element(name) {",
            "    return this.page.waitForSelector(this.selectors[name], { visible: true });",
            "  }",
            "}",
            "",
        ]

    def header(self, context: TestContext, options: GenerationOptions) -> List[str]:
        return [
            self.comment(context.test_name),
            "(async () => {",
            "  const browser = await puppeteer.launch({ headless: true });",
            "  const page = await browser.newPage();",
            "",
            "  try {",
        ]

    def footer(self, context: TestContext, options: GenerationOptions) -> List[str]:
        return [
            "  } finally {",
            "    await browser.close();",
            "  }",
            "})();",
        ]

    def scope_to_frame(self, action: Action, statements: List[str]) -> List[str]:
        if not self.current_frame:
            return statements
        origin = escape_literal(self.current_frame)
        return (
            ["{", f"  const frame = page.frames().find(f => f.url().includes('{origin}'));"]
            + [self.indent + line for line in statements]
            + ["}"]
        )

    def navigate(self, url: str) -> List[str]:
        return [f"await page.goto({self.quote(url)}, {{ waitUntil: 'networkidle2' }});"]

    def pre_check(self, resolution: SelectorResolution, action: Action) -> List[str]:
        return [f"await {self.target}.waitForSelector({self.selector(resolution)}, {{ visible: true }});"]

    def click(self, resolution: SelectorResolution, action: Action) -> List[str]:
        return [f"await {self.target}.click({self.selector(resolution)});"]

    def fill(self, resolution: SelectorResolution, value: str) -> List[str]:
        selector = self.selector(resolution)
        return [
            f"await {self.target}.$eval({selector}, el => {{ el.value = ''; }});",
            f"await {self.target}.type({selector}, {self.quote(value)});",
        ]

    def value_assertion(self, resolution: SelectorResolution, value: str) -> List[str]:
        selector = self.selector(resolution)
        return [f"assert.strictEqual(await {self.target}.$eval({selector}, el => el.value), {self.quote(value)});"]

    def press_enter(self, resolution: SelectorResolution, action: Action) -> List[str]:
        return [
            f"await {self.target}.focus({self.selector(resolution)});",
            "await page.keyboard.press('Enter');",
        ]

    def submit(self, resolution: SelectorResolution, action: Action) -> List[str]:
        return [f"await {self.target}.$eval({self.selector(resolution)}, form => form.requestSubmit());"]

    def hover(self, resolution: SelectorResolution, action: Action) -> List[str]:
        return [f"await {self.target}.hover({self.selector(resolution)});"]

    def select(self, resolution: SelectorResolution, value: str) -> List[str]:
        return [f"await {self.target}.select({self.selector(resolution)}, {self.quote(value)});"]

    def scroll(self, resolution: SelectorResolution, action: Action) -> List[str]:
        return [f"await {self.target}.$eval({self.selector(resolution)}, el => el.scrollIntoView());"]

    def upload(self, resolution: SelectorResolution, value: str) -> List[str]:
        return [f"await (await {self.target}.$({self.selector(resolution)})).uploadFile({self.quote(value)});"]

    def url_assertion(self, url: str) -> List[str]:
        return [f"assert.strictEqual(page.url(), {self.quote(url)});"]

    def wait_for_page_load(self, wait: WaitStrategy) -> List[str]:
        return [f"await page.waitForFunction(() => document.readyState === 'complete', {{ timeout: {wait.timeout} }});"]

    def wait_for_network_idle(self, wait: WaitStrategy) -> List[str]:
        return [f"await page.waitForNetworkIdle({{ timeout: {wait.timeout} }});"]

    def wait_for_url(self, url: str, wait: WaitStrategy) -> List[str]:
        return [
            f"await page.waitForFunction(url => window.location.href === url, "
            f"{{ timeout: {wait.timeout} }}, {self.quote(url)});"
        ]

    def wait_for_presence(self, resolution: SelectorResolution, wait: WaitStrategy) -> List[str]:
        return [f"await {self.target}.waitForSelector({self.selector(resolution)}, {{ timeout: {wait.timeout} }});"]

    def wait_for_enabled(self, resolution: SelectorResolution, wait: WaitStrategy) -> List[str]:
        if is_text_selector(resolution.selector) or is_xpath_selector(resolution.selector):
            return []
        return [
            f"await {self.target}.waitForFunction(sel => {{ const el = document.querySelector(sel); return !!el && !el.disabled; }}, "
            f"{{ timeout: {wait.timeout} }}, {self.quote(resolution.selector)});"
        ]
