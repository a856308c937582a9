"""
Scribe Recorder

Records user interactions in a browser tab and compiles them into
runnable end-to-end test scripts for Playwright, Selenium, Cypress and
Puppeteer. Network traffic observed during a recording is correlated
into request records that can be exported as HAR or asserted in the
generated script.
"""

from .config import ScribeConfig, get_config
from .errors import (
    ScribeError,
    InvariantViolationError,
    SessionAlreadyActiveError,
    NotFoundError,
    NoActiveSessionError,
    SessionNotFoundError,
    NoTabError,
    UnsupportedTargetError,
    UnsupportedFrameworkError,
    UnsupportedFormatError,
    CollaboratorUnavailableError,
)
from .models import (
    Action,
    ActionType,
    ElementDescriptor,
    Framework,
    GenerationOptions,
    NetworkRequest,
    RecordingSession,
    SessionStatus,
    TabContext,
    TestContext,
    WaitKind,
    WaitStrategy,
)
from .generators import generate_script, get_generator
from .service import RecorderService, get_recorder_service

__all__ = [
    # Config
    "ScribeConfig",
    "get_config",
    # Errors
    "ScribeError",
    "InvariantViolationError",
    "SessionAlreadyActiveError",
    "NotFoundError",
    "NoActiveSessionError",
    "SessionNotFoundError",
    "NoTabError",
    "UnsupportedTargetError",
    "UnsupportedFrameworkError",
    "UnsupportedFormatError",
    "CollaboratorUnavailableError",
    # Models
    "Action",
    "ActionType",
    "ElementDescriptor",
    "Framework",
    "GenerationOptions",
    "NetworkRequest",
    "RecordingSession",
    "SessionStatus",
    "TabContext",
    "TestContext",
    "WaitKind",
    "WaitStrategy",
    # Generation
    "generate_script",
    "get_generator",
    # Service
    "RecorderService",
    "get_recorder_service",
]

__version__ = "1.0.0"
