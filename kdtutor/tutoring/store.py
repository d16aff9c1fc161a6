#!/usr/bin/env python3
"""
In-memory session store. Sessions live for the lifetime of the process.
"""

import logging
import uuid
from datetime import datetime
from typing import List, Optional

from ..config import get_default_thinking_budget
from .errors import NotFoundError
from .state import (
    ConversationSession,
    DEFAULT_MODE,
    Message,
    SessionContext,
    parse_mode,
)

logger = logging.getLogger(__name__)


class SessionStore:
    """Newest-first list of sessions plus the current selection"""

    def __init__(self, default_thinking_budget: Optional[int] = None):
        self._sessions: List[ConversationSession] = []
        self._current_id: Optional[str] = None
        self.default_thinking_budget = (
            default_thinking_budget if default_thinking_budget is not None
            else get_default_thinking_budget()
        )

    @property
    def sessions(self) -> List[ConversationSession]:
        return list(self._sessions)

    @property
    def current(self) -> Optional[ConversationSession]:
        if self._current_id is None:
            return None
        return self._find(self._current_id)

    def __len__(self) -> int:
        return len(self._sessions)

    def _find(self, session_id: str) -> Optional[ConversationSession]:
        for session in self._sessions:
            if session.id == session_id:
                return session
        return None

    def get(self, session_id: str) -> ConversationSession:
        session = self._find(session_id)
        if session is None:
            raise NotFoundError(session_id)
        return session

    def create_session(self) -> ConversationSession:
        """New empty session at the front of the list; becomes current"""
        session = ConversationSession(
            id=uuid.uuid4().hex[:8],
            title=f"Session {datetime.now().strftime('%H:%M:%S')}",
            context=SessionContext(thinking_budget=self.default_thinking_budget),
            mode=DEFAULT_MODE,
        )
        self._sessions.insert(0, session)
        self._current_id = session.id
        logger.debug("Created session %s", session.id)
        return session

    def select(self, session_id: str) -> ConversationSession:
        session = self.get(session_id)
        self._current_id = session.id
        return session

    def update_context(self, session_id: str, **updates) -> SessionContext:
        """Merge the given fields into the session context"""
        session = self.get(session_id)
        session.context = session.context.merged(**updates)
        session.touch()
        return session.context

    def set_mode(self, session_id: str, mode) -> ConversationSession:
        session = self.get(session_id)
        session.mode = parse_mode(mode)
        session.touch()
        return session

    def append_message(self, session_id: str, message: Message) -> ConversationSession:
        session = self.get(session_id)
        session.history.append(message)
        session.touch()
        return session

    def clear_all(self):
        """Drop every session. Callers create a replacement afterwards."""
        logger.debug("Clearing %d session(s)", len(self._sessions))
        self._sessions = []
        self._current_id = None
