#!/usr/bin/env python3
"""
Errors raised by the session store, mode parsing and prompt dispatch.
"""

from typing import Optional


class TutorError(Exception):
    """Base class for kdtutor errors"""


class NotFoundError(TutorError):
    """An operation referenced a session id that does not exist"""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session not found: {session_id}")


class InvalidModeError(TutorError):
    """A mode outside the known set of learning modes"""

    def __init__(self, mode):
        self.mode = mode
        super().__init__(f"Unknown mode: {mode}")


class ExternalServiceError(TutorError):
    """The model endpoint call failed (network, auth, malformed response...)"""

    def __init__(self, message: str, provider: Optional[str] = None, kind: Optional[str] = None):
        self.provider = provider
        self.kind = kind
        super().__init__(message)
