#!/usr/bin/env python3
"""
Tutoring core: sessions, prompt templates and prompt dispatch.

Learning modes:
- Intuition (default): everyday analogies, no jargon up front
- Principle: first-principles derivation and assumptions
- Academic: definitions, schools of thought, critique
- Paper: argument checks and academic phrasing
- Literature: Q-M-F-C paper digest
- Image extraction: courseware screenshots to structured text
- Export: turn the session into clean notes
"""

from .state import (
    LearningMode,
    SessionContext,
    Message,
    Citation,
    ConversationSession,
    parse_mode,
)
from .errors import (
    TutorError,
    NotFoundError,
    InvalidModeError,
    ExternalServiceError,
)
from .prompts import PromptConfig, PromptLibrary, ModelOption, DEFAULT_PROMPTS, DEFAULT_MODELS
from .store import SessionStore
from .dispatcher import PromptDispatcher, DispatchResult, render_template, build_contents
from .engine import TutoringEngine

__all__ = [
    'LearningMode',
    'SessionContext',
    'Message',
    'Citation',
    'ConversationSession',
    'parse_mode',
    'TutorError',
    'NotFoundError',
    'InvalidModeError',
    'ExternalServiceError',
    'PromptConfig',
    'PromptLibrary',
    'ModelOption',
    'DEFAULT_PROMPTS',
    'DEFAULT_MODELS',
    'SessionStore',
    'PromptDispatcher',
    'DispatchResult',
    'render_template',
    'build_contents',
    'TutoringEngine',
]
