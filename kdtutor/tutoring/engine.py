#!/usr/bin/env python3
"""
TutoringEngine - the application-state controller.
Owns the session store, the prompt library, the dispatcher, the queue of
images waiting to be sent and the "sending" flag. All mutations go through
its commands.
"""

import logging
from pathlib import Path
from typing import List, Optional, Union

from ..config import get_history_limit
from .dispatcher import PromptDispatcher
from .errors import ExternalServiceError, NotFoundError
from .images import decode_data_url, encode_image_file
from .prompts import PromptConfig, PromptLibrary
from .state import ConversationSession, LearningMode, Message, SessionContext
from .store import SessionStore

logger = logging.getLogger(__name__)


class TutoringEngine:
    """Routes user commands to the store and the dispatcher"""

    def __init__(
        self,
        store: Optional[SessionStore] = None,
        prompts: Optional[PromptLibrary] = None,
        dispatcher: Optional[PromptDispatcher] = None,
        mode: Optional[str] = None,
    ):
        self.store = store if store is not None else SessionStore()
        self.prompts = prompts if prompts is not None else PromptLibrary()
        self.dispatcher = (
            dispatcher if dispatcher is not None
            else PromptDispatcher(history_limit=get_history_limit())
        )
        self.sending = False
        self._pending_images: List[str] = []

        if self.store.current is None:
            self.store.create_session()
        if mode:
            self.set_mode(mode)

    # === Sessions ===

    @property
    def current(self) -> Optional[ConversationSession]:
        return self.store.current

    def _require_current(self) -> ConversationSession:
        session = self.store.current
        if session is None:
            raise NotFoundError('<none>')
        return session

    def new_session(self) -> ConversationSession:
        return self.store.create_session()

    def select_session(self, session_id: str) -> ConversationSession:
        return self.store.select(session_id)

    def clear_history(self) -> ConversationSession:
        """Drop all sessions and start a fresh one"""
        self.store.clear_all()
        return self.store.create_session()

    def update_context(self, **updates) -> SessionContext:
        return self.store.update_context(self._require_current().id, **updates)

    def set_mode(self, mode) -> LearningMode:
        return self.store.set_mode(self._require_current().id, mode).mode

    def active_prompt(self) -> PromptConfig:
        return self.prompts.get(self._require_current().mode)

    # === Image queue ===

    @property
    def pending_images(self) -> List[str]:
        return list(self._pending_images)

    def attach_image(self, path: Union[str, Path]) -> int:
        """Queue an image file; returns the queue length"""
        self._pending_images.append(encode_image_file(path))
        return len(self._pending_images)

    def attach_data_url(self, data_url: str) -> int:
        """Queue an already-encoded image; raises ValueError if it does not decode"""
        decode_data_url(data_url)
        self._pending_images.append(data_url)
        return len(self._pending_images)

    def remove_image(self, index: int) -> str:
        """Remove a queued image by position (0-based)"""
        if not 0 <= index < len(self._pending_images):
            raise IndexError(f"No queued image at position {index + 1}")
        return self._pending_images.pop(index)

    # === Sending ===

    def can_send(self, text: str) -> bool:
        return (
            self.store.current is not None
            and not self.sending
            and bool(text.strip() or self._pending_images)
        )

    def send(self, text: str) -> Optional[Message]:
        """
        Append the user turn, then ask the model.

        Returns the assistant message, or None when there is nothing to send
        (no session, empty input, or a request already in flight). Raises
        ExternalServiceError when the endpoint call fails; the user turn stays
        in history and the queued images are not restored.
        """
        if not self.can_send(text):
            if self.sending:
                logger.warning("A request is already in flight; ignoring send")
            return None

        session = self.store.current
        mode = session.mode
        prior_history = list(session.history)
        images = self._pending_images

        user_message = Message.user(text, mode=mode, images=images)
        self.store.append_message(session.id, user_message)
        self._pending_images = []
        self.sending = True

        try:
            config = self.prompts.get(mode)
            result = self.dispatcher.dispatch(
                config,
                user_message.content,
                prior_history,
                session.context,
                session.context.thinking_budget,
                list(user_message.images) or None,
            )
            assistant_message = Message.assistant(result.text, mode=mode, citations=result.citations)
            self.store.append_message(session.id, assistant_message)
            return assistant_message
        except ExternalServiceError as e:
            logger.error("Request in %s mode failed: %s", mode.value, e)
            raise
        finally:
            self.sending = False
