"""
Recorder Errors

Exception hierarchy raised by the recording pipeline. The API layer
maps each family onto an HTTP status.
"""


class ScribeError(Exception):
    """Base class for recorder failures"""


class InvariantViolationError(ScribeError):
    """An operation would break a state invariant"""


class SessionAlreadyActiveError(InvariantViolationError):
    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Recording session already active: {session_id}")


class NotFoundError(ScribeError):
    """The referenced entity does not exist"""


class NoActiveSessionError(NotFoundError):
    def __init__(self, message: str = "No active recording session"):
        super().__init__(message)


class SessionNotFoundError(NotFoundError):
    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session not found: {session_id}")


class NoTabError(NotFoundError):
    def __init__(self):
        super().__init__("No tab ID provided")


class UnsupportedTargetError(ScribeError):
    """Unknown code generation target or export format"""


class UnsupportedFrameworkError(UnsupportedTargetError):
    def __init__(self, framework: str):
        self.framework = framework
        super().__init__(f"Unsupported framework: {framework}")


class UnsupportedFormatError(UnsupportedTargetError):
    def __init__(self, export_format: str):
        self.export_format = export_format
        super().__init__(f"Unsupported export format: {export_format}")


class CollaboratorUnavailableError(ScribeError):
    """The in-page listener could not be reached"""
