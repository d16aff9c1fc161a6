#!/usr/bin/env python3
"""
kdtutor - Knowledge Deconstruction Tutor CLI

Usage:
    kdtutor                                   # interactive REPL
    kdtutor --mode principle "why does entropy increase?"
    kdtutor --setup
    kdtutor --export-prompts > prompts.json
"""

import argparse
import sys

from rich.console import Console
from rich.markdown import Markdown

from . import __version__
from .config import clear_api_key, prompt_for_api_key
from .log import setup_logging
from .repl.commands import CONTEXT_FIELDS
from .tutoring import (
    ExternalServiceError,
    InvalidModeError,
    PromptLibrary,
    TutoringEngine,
)
from .tutoring.prompts import DEFAULT_MODELS

MODE_CHOICES = ['intuition', 'principle', 'academic', 'paper', 'literature', 'image', 'export']


def _parse_context(pairs) -> dict:
    """--set field=value pairs -> SessionContext updates"""
    updates = {}
    for pair in pairs or []:
        if '=' not in pair:
            raise argparse.ArgumentTypeError(f"Expected field=value, got '{pair}'")
        key, value = pair.split('=', 1)
        key = key.strip().lower()
        updates[CONTEXT_FIELDS.get(key, key)] = value.strip()
    return updates


def _print_modes(console: Console):
    for config in PromptLibrary().all():
        console.print(f"[cyan]{config.mode.value:18}[/cyan] {config.name}  [dim]{config.model}[/dim]")
        console.print(f"  {config.description}")


def _print_models(console: Console):
    for option in DEFAULT_MODELS:
        console.print(f"[cyan]{option.id}[/cyan] - {option.name} (max thinking: {option.max_thinking_budget})")
        console.print(f"  {option.description}")


def main(argv=None) -> int:
    """Main CLI entry point"""

    parser = argparse.ArgumentParser(
        description='kdtutor - Knowledge deconstruction tutor on top of Gemini',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  kdtutor --setup                                   # Configure API key (first time)
  kdtutor                                           # Start interactive mode (intuition by default)
  kdtutor --mode academic                           # Start in academic mode
  kdtutor "what is entropy"                         # One question, then exit
  kdtutor --set instructor="Dr. Lee" --set course=Thermodynamics "what is entropy"
  kdtutor --modes                                   # Explain learning modes
  kdtutor --export-prompts > prompts.json           # Dump prompt configs as JSON
        """
    )

    parser.add_argument('question', nargs='?', help='Ask one question and exit')
    parser.add_argument('-i', '--interactive', action='store_true',
                        help='Start the interactive REPL (default when no question is given)')
    parser.add_argument('--mode', default='intuition', choices=MODE_CHOICES,
                        help='Learning mode (default: intuition)')
    parser.add_argument('--set', dest='context', action='append', metavar='FIELD=VALUE',
                        help=f"Set a context field ({', '.join(CONTEXT_FIELDS)})")
    parser.add_argument('--image', action='append', metavar='PATH',
                        help='Attach an image to the first message (one-shot or REPL)')
    parser.add_argument('--setup', action='store_true',
                        help='Configure kdtutor (set API key)')
    parser.add_argument('--clear-key', nargs='?', const='all', metavar='PROVIDER',
                        help='Remove stored API key(s) from the config file')
    parser.add_argument('--modes', action='store_true', help='List learning modes')
    parser.add_argument('--models', action='store_true', help='List built-in models')
    parser.add_argument('--export-prompts', action='store_true',
                        help='Print the default prompt configs as JSON')
    parser.add_argument('--log-level', default=None,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Diagnostic log level (default: from config, WARNING)')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    args = parser.parse_args(argv)
    setup_logging(args.log_level)
    console = Console()

    if args.setup:
        return 0 if prompt_for_api_key(console=console) else 1

    if args.clear_key:
        removed = clear_api_key(None if args.clear_key == 'all' else args.clear_key)
        if removed:
            console.print(f"Removed stored key(s) for: {', '.join(removed)}")
        else:
            console.print("No stored API keys found.")
        return 0

    if args.modes:
        _print_modes(console)
        return 0

    if args.models:
        _print_models(console)
        return 0

    if args.export_prompts:
        print(PromptLibrary().export_json())
        return 0

    try:
        context = _parse_context(args.context)
        engine = TutoringEngine(mode=args.mode)
        if context:
            engine.update_context(**context)
    except (argparse.ArgumentTypeError, InvalidModeError, ValueError) as e:
        parser.error(str(e))

    for path in args.image or []:
        try:
            engine.attach_image(path)
        except (OSError, ValueError) as e:
            parser.error(f"Could not attach {path}: {e}")

    if args.question and not args.interactive:
        try:
            with console.status("[dim]Thinking...[/dim]"):
                reply = engine.send(args.question)
        except ExternalServiceError as e:
            console.print(f"[red]Request failed: {e}[/red]")
            return 1
        if reply is not None:
            console.print(Markdown(reply.content))
            for link in reply.citations:
                console.print(f"[dim]- {link.title}: {link.uri}[/dim]")
        return 0

    from .repl import TutorREPL
    repl = TutorREPL(engine=engine, console=console)
    if args.question:
        repl._process_command(args.question)
    repl.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
