"""
Interactive REPL for the tutoring assistant.
"""

from .session import TutorREPL

__all__ = ['TutorREPL']
