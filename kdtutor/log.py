#!/usr/bin/env python3
"""
Logging setup. Diagnostics go through the stdlib logging tree under the
'kdtutor' logger and are rendered by rich; user-facing output goes through
the REPL console instead.
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(level: Optional[str] = None, console: Console = None) -> logging.Logger:
    """Attach a RichHandler to the package logger (idempotent)"""
    if level is None:
        from .config import get_log_level
        level = get_log_level()

    logger = logging.getLogger('kdtutor')
    logger.setLevel(getattr(logging, str(level).upper(), logging.WARNING))

    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
        logger.addHandler(handler)
        logger.propagate = False

    return logger
