"""
Recording Module

Session lifecycle, history and the Playwright-backed page listener.
"""

from .session_manager import SessionManager, InPageCollaborator
from .history import SessionHistory
from .export import export_session
from .playwright_bridge import PlaywrightCollaborator

__all__ = [
    "SessionManager",
    "InPageCollaborator",
    "SessionHistory",
    "export_session",
    "PlaywrightCollaborator"
]
