#!/usr/bin/env python3
"""
State for the tutoring assistant: learning modes, per-session context,
messages and conversation sessions.
"""

import time
import uuid
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import List, Optional, Tuple

from ..config import DEFAULT_THINKING_BUDGET
from .errors import InvalidModeError


class LearningMode(Enum):
    """Available learning modes. Each one selects a prompt template and model."""
    IMAGE_EXTRACTION = 'image_extraction'  # Courseware screenshot -> structured text
    INTUITION = 'intuition_mode'           # Everyday analogies (DEFAULT)
    PRINCIPLE = 'principle_mode'           # First-principles derivation
    ACADEMIC = 'academic_mode'             # Rigorous academic treatment
    PAPER = 'paper_mode'                   # Paper writing advisor
    LITERATURE = 'literature_mode'         # Q-M-F-C literature digest
    EXPORT = 'export_format'               # Notes export formatting


DEFAULT_MODE = LearningMode.INTUITION

MODE_ALIASES = {
    'image': LearningMode.IMAGE_EXTRACTION,
    'intuition': LearningMode.INTUITION,
    'principle': LearningMode.PRINCIPLE,
    'academic': LearningMode.ACADEMIC,
    'paper': LearningMode.PAPER,
    'literature': LearningMode.LITERATURE,
    'export': LearningMode.EXPORT,
}


def parse_mode(value) -> LearningMode:
    """Parse a mode from an enum member, its value, its name or a short alias"""
    if isinstance(value, LearningMode):
        return value
    if isinstance(value, str):
        key = value.strip().lower()
        for mode in LearningMode:
            if key in (mode.value, mode.name.lower()):
                return mode
        if key in MODE_ALIASES:
            return MODE_ALIASES[key]
    raise InvalidModeError(value)


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class SessionContext:
    """Free-text course context used to fill prompt placeholders"""
    instructor_name: str = ''
    research_field: str = ''
    institution: str = ''
    course_name: str = ''
    theoretical_framework: str = ''
    thinking_budget: int = DEFAULT_THINKING_BUDGET

    @classmethod
    def field_names(cls) -> List[str]:
        return [f.name for f in fields(cls)]

    def merged(self, **updates) -> 'SessionContext':
        """Copy with the given fields replaced; all other fields are kept"""
        unknown = set(updates) - set(self.field_names())
        if unknown:
            raise ValueError(f"Unknown context field(s): {', '.join(sorted(unknown))}")

        if 'thinking_budget' in updates:
            budget = int(updates['thinking_budget'])
            if budget < 0:
                raise ValueError("thinking_budget must be >= 0")
            updates['thinking_budget'] = budget

        return replace(self, **updates)


@dataclass(frozen=True)
class Citation:
    """A grounding link attached to an assistant answer"""
    uri: str
    title: str


@dataclass(frozen=True)
class Message:
    """A single conversation turn. Immutable once created."""
    id: str
    role: str                               # user|assistant
    content: str
    mode: Optional[LearningMode] = None
    timestamp: int = field(default_factory=now_ms)
    type: str = 'text'                      # text|image
    images: Tuple[str, ...] = ()            # data URLs
    citations: Tuple[Citation, ...] = ()

    @classmethod
    def user(cls, content: str, mode: Optional[LearningMode] = None, images=None) -> 'Message':
        images = tuple(images or ())
        return cls(
            id=uuid.uuid4().hex,
            role='user',
            content=content,
            mode=mode,
            type='image' if images else 'text',
            images=images,
        )

    @classmethod
    def assistant(cls, content: str, mode: Optional[LearningMode] = None, citations=None) -> 'Message':
        return cls(
            id=uuid.uuid4().hex,
            role='assistant',
            content=content,
            mode=mode,
            citations=tuple(citations or ()),
        )


@dataclass
class ConversationSession:
    """One conversation: its context, append-only history and active mode"""
    id: str
    title: str
    context: SessionContext = field(default_factory=SessionContext)
    history: List[Message] = field(default_factory=list)
    mode: LearningMode = DEFAULT_MODE
    last_active: int = field(default_factory=now_ms)

    def touch(self):
        self.last_active = now_ms()

    def preview(self, width: int = 60) -> str:
        """Last message text, for session listings"""
        if not self.history:
            return '(no messages)'
        text = self.history[-1].content.replace('\n', ' ').strip() or '(image)'
        return text if len(text) <= width else text[:width - 3] + '...'
