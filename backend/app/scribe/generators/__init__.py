"""
Script Generators

One generator per target framework, looked up by Framework. Every
generator consumes the same optimized action list and test context.
"""

import logging
from typing import Any, Dict, Optional, Sequence, Type

from ..errors import UnsupportedFrameworkError
from ..models import Action, Framework, GenerationOptions
from ..core.action_optimizer import optimize_actions
from .base import NetworkEntry, ScriptGenerator, escape_literal
from .cypress import CypressGenerator
from .playwright import PlaywrightGenerator
from .puppeteer import PuppeteerGenerator
from .selenium import SeleniumGenerator

# Configure logging
logger = logging.getLogger(__name__)


GENERATORS: Dict[Framework, Type[ScriptGenerator]] = {
    Framework.PLAYWRIGHT: PlaywrightGenerator,
    Framework.SELENIUM: SeleniumGenerator,
    Framework.CYPRESS: CypressGenerator,
    Framework.PUPPETEER: PuppeteerGenerator,
}


def get_generator(framework: Any) -> ScriptGenerator:
    """Generator instance for a framework name or enum member."""
    target = Framework.parse(framework)
    generator_class = GENERATORS.get(target)
    if generator_class is None:
        raise UnsupportedFrameworkError(str(framework))
    return generator_class()


def generate_script(
    framework: Any,
    actions: Sequence[Any],
    options: Optional[Any] = None,
    network: Sequence[NetworkEntry] = (),
    dedup_window_ms: int = 500,
) -> str:
    """Compile recorded actions into a test script for one framework."""
    generator = get_generator(framework)
    options = GenerationOptions.from_dict(options)
    parsed = [Action.from_dict(a) for a in actions]

    flow = optimize_actions(
        parsed,
        window_ms=dedup_window_ms,
        start_url=options.start_url,
        test_name=options.test_name,
    )
    logger.info(f"Generating {generator.framework.value} script from {len(flow.actions)} actions")
    return generator.generate(flow.actions, flow.context, options, network)


__all__ = [
    "GENERATORS",
    "ScriptGenerator",
    "PlaywrightGenerator",
    "SeleniumGenerator",
    "CypressGenerator",
    "PuppeteerGenerator",
    "escape_literal",
    "generate_script",
    "get_generator",
]
