"""
Selenium generator (Python, pytest style).

Locators are emitted as (By.X, value) tuples chosen by the
strategy-typed selector resolver, and every element is acquired
through an explicit WebDriverWait condition.
"""

from typing import List

from ..models import Action, ActionType, Framework, GenerationOptions, TestContext, WaitStrategy
from ..core.selector_resolver import LocatorStrategy, SelectorResolution
from .base import ScriptGenerator, escape_literal, iframe_selector, slugify
from .page_objects import PageObject, to_constant


BY_CONSTANTS = {
    LocatorStrategy.ID: "By.ID",
    LocatorStrategy.NAME: "By.NAME",
    LocatorStrategy.CSS: "By.CSS_SELECTOR",
    LocatorStrategy.XPATH: "By.XPATH",
    LocatorStrategy.TAG: "By.TAG_NAME",
}

CLICKABLE_ACTIONS = frozenset([ActionType.CLICK, ActionType.CHANGE, ActionType.HOVER])
DOUBLE_QUOTE = '"'


class SeleniumGenerator(ScriptGenerator):
    framework = Framework.SELENIUM
    indent = "    "
    body_depth = 2
    comment_prefix = "#"

    def quote(self, value) -> str:
        return f'"{escape_literal(value, quotes=DOUBLE_QUOTE)}"'

    def by(self, resolution: SelectorResolution) -> str:
        return f"({BY_CONSTANTS[resolution.strategy]}, {self.quote(resolution.value)})"

    def acquire(self, resolution: SelectorResolution, clickable: bool) -> str:
        condition = "element_to_be_clickable" if clickable else "visibility_of_element_located"
        return f"element = wait.until(EC.{condition}({self.by(resolution)}))"

    def imports(self, context: TestContext, options: GenerationOptions) -> List[str]:
        return [
            "from selenium import webdriver",
            "from selenium.webdriver.common.action_chains import ActionChains",
            "from selenium.webdriver.common.by import By",
            "from selenium.webdriver.common.keys import Keys",
            "from selenium.webdriver.support import expected_conditions as EC",
            "from selenium.webdriver.support.ui import Select, WebDriverWait",
            "",
            "",
        ]

    def page_object(self, page: PageObject) -> List[str]:
        lines = [
            f"class {page.class_name}:",
            f'    """Page object for {escape_literal(page.url, quotes=DOUBLE_QUOTE)}"""',
            "",
            f"    URL = {self.quote(page.url)}",
        ]
        for element in page.elements:
            lines.append(f"    {to_constant(element.name)} = {self.by(element.resolution)}")
        return lines + [
            "",
            "    def __init__(self, driver, timeout=10):",
            "        self.driver = driver",
            "        self.wait = WebDriverWait(driver, timeout)",
            "",
            "    def open(self):",
            "        self.driver.get(self.URL)",
            "",
            "    def find(self, locator):",
            "        return self.wait.until(EC.visibility_of_element_located(locator))",
            "",
            "",
        ]

    def header(self, context: TestContext, options: GenerationOptions) -> List[str]:
        return [
            f"def test_{slugify(context.test_name)}():",
            f'    """{escape_literal(context.test_name, quotes=DOUBLE_QUOTE)}"""',
            "    driver = webdriver.Chrome()",
            "    wait = WebDriverWait(driver, 10)",
            "",
            "    try:",
        ]

    def footer(self, context: TestContext, options: GenerationOptions) -> List[str]:
        return [
            "    finally:",
            "        driver.quit()",
        ]

    def scope_to_frame(self, action: Action, statements: List[str]) -> List[str]:
        if not self.current_frame:
            return statements
        frame = f"(By.CSS_SELECTOR, {self.quote(iframe_selector(self.current_frame))})"
        return (
            [f"wait.until(EC.frame_to_be_available_and_switch_to_it({frame}))"]
            + statements
            + ["driver.switch_to.default_content()"]
        )

    def navigate(self, url: str) -> List[str]:
        return [f"driver.get({self.quote(url)})"]

    def pre_check(self, resolution: SelectorResolution, action: Action) -> List[str]:
        return [self.acquire(resolution, clickable=action.type in CLICKABLE_ACTIONS)]

    def click(self, resolution: SelectorResolution, action: Action) -> List[str]:
        return ["element.click()"]

    def fill(self, resolution: SelectorResolution, value: str) -> List[str]:
        return [
            "element.clear()",
            f"element.send_keys({self.quote(value)})",
        ]

    def value_assertion(self, resolution: SelectorResolution, value: str) -> List[str]:
        return [f'assert element.get_attribute("value") == {self.quote(value)}']

    def press_enter(self, resolution: SelectorResolution, action: Action) -> List[str]:
        return [
            self.acquire(resolution, clickable=False),
            "element.send_keys(Keys.ENTER)",
        ]

    def submit(self, resolution: SelectorResolution, action: Action) -> List[str]:
        return [
            f"element = wait.until(EC.presence_of_element_located({self.by(resolution)}))",
            "element.submit()",
        ]

    def hover(self, resolution: SelectorResolution, action: Action) -> List[str]:
        return ["ActionChains(driver).move_to_element(element).perform()"]

    def select(self, resolution: SelectorResolution, value: str) -> List[str]:
        return [f"Select(element).select_by_value({self.quote(value)})"]

    def scroll(self, resolution: SelectorResolution, action: Action) -> List[str]:
        return [
            f"element = wait.until(EC.presence_of_element_located({self.by(resolution)}))",
            'driver.execute_script("arguments[0].scrollIntoView();", element)',
        ]

    def upload(self, resolution: SelectorResolution, value: str) -> List[str]:
        return [
            f"element = wait.until(EC.presence_of_element_located({self.by(resolution)}))",
            f"element.send_keys({self.quote(value)})",
        ]

    def url_assertion(self, url: str) -> List[str]:
        return [f"assert driver.current_url == {self.quote(url)}"]

    def wait_for_page_load(self, wait: WaitStrategy) -> List[str]:
        return [
            f"WebDriverWait(driver, {wait.timeout / 1000:g}).until("
            f'lambda d: d.execute_script("return document.readyState") == "complete")'
        ]

    def wait_for_url(self, url: str, wait: WaitStrategy) -> List[str]:
        return [f"WebDriverWait(driver, {wait.timeout / 1000:g}).until(EC.url_to_be({self.quote(url)}))"]

    def wait_for_presence(self, resolution: SelectorResolution, wait: WaitStrategy) -> List[str]:
        return [
            f"WebDriverWait(driver, {wait.timeout / 1000:g}).until("
            f"EC.presence_of_element_located({self.by(resolution)}))"
        ]
