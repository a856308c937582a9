"""
Core Compilation Module

Selector resolution, duplicate suppression and wait inference shared
by every script generator.
"""

from .selector_resolver import SelectorResolver, LocatorStrategy, resolve_selector, resolve_strategy
from .action_optimizer import optimize_actions, OptimizedFlow
from .wait_strategy import WaitStrategyEngine

__all__ = [
    "SelectorResolver",
    "LocatorStrategy",
    "resolve_selector",
    "resolve_strategy",
    "optimize_actions",
    "OptimizedFlow",
    "WaitStrategyEngine"
]
