#!/usr/bin/env python3
"""
Interactive REPL for the tutoring assistant.
"""

import logging
import os
import shlex
from datetime import datetime
from typing import Optional

from prompt_toolkit import PromptSession
from prompt_toolkit.history import FileHistory
from prompt_toolkit.auto_suggest import AutoSuggestFromHistory
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from ..config import get_config_dir
from ..llm import get_preferred_provider
from ..tutoring import (
    ExternalServiceError,
    InvalidModeError,
    LearningMode,
    Message,
    NotFoundError,
    TutoringEngine,
    parse_mode,
)
from ..tutoring.prompts import DEFAULT_MODELS, model_option
from .commands import COMMANDS, CONTEXT_FIELDS, get_command_help

logger = logging.getLogger(__name__)

# Progress ladder shown in the prompt
LADDER = [LearningMode.INTUITION, LearningMode.PRINCIPLE, LearningMode.ACADEMIC]

MODE_LABELS = {
    LearningMode.INTUITION: '🌱 intuition',
    LearningMode.PRINCIPLE: '🔬 principle',
    LearningMode.ACADEMIC: '📚 academic',
    LearningMode.PAPER: '📝 paper',
    LearningMode.LITERATURE: '📖 literature',
    LearningMode.IMAGE_EXTRACTION: '📷 image',
    LearningMode.EXPORT: '🗂 export',
}


class TutorREPL:
    """Interactive REPL around a TutoringEngine"""

    def __init__(self, engine: TutoringEngine = None, mode: str = None, console: Console = None):
        self.console = console or Console()
        self.engine = engine or TutoringEngine()
        if mode:
            self.engine.set_mode(mode)
        self.prompt_session: Optional[PromptSession] = None

    def _make_prompt_session(self) -> PromptSession:
        history_path = get_config_dir() / 'repl_history'
        return PromptSession(
            history=FileHistory(str(history_path)),
            auto_suggest=AutoSuggestFromHistory(),
        )

    def run(self):
        """Main REPL loop"""
        if self.prompt_session is None:
            self.prompt_session = self._make_prompt_session()
        self._print_welcome()

        while True:
            try:
                user_input = self.prompt_session.prompt(self._get_prompt())

                if not user_input.strip():
                    continue

                result = self._process_command(user_input.strip())

                if result == 'exit':
                    self._handle_exit()
                    break

            except KeyboardInterrupt:
                self.console.print("\n[dim]Use 'exit' to quit[/dim]")
            except EOFError:
                self._handle_exit()
                break

    def _print_welcome(self):
        welcome = """
[bold blue]kdtutor[/bold blue] - Knowledge Deconstruction Tutor

Intuition -> principle -> academic: pick a mode and ask.

[dim]Commands: mode, set, attach, sessions, prompt, help
Type 'help' for all commands or 'help <cmd>' for details.[/dim]
"""
        self.console.print(Panel(welcome, border_style="blue"))

        provider = get_preferred_provider()
        if provider:
            self.console.print(f"[green]{provider} API key found.[/green]")
        else:
            self.console.print("[yellow]Note: No API key configured. Run 'kdtutor --setup' or set GEMINI_API_KEY.[/yellow]")

    def _get_prompt(self) -> str:
        """Context-aware prompt: current mode and queued images"""
        session = self.engine.current
        parts = ['kdtutor']
        if session:
            parts.append(f"[{session.mode.value.replace('_mode', '')}]")
        pending = len(self.engine.pending_images)
        if pending:
            parts.append(f"(+{pending} img)")
        return ' '.join(parts) + '> '

    def _process_command(self, user_input: str) -> Optional[str]:
        """Process user input and dispatch to handlers"""
        parts = user_input.split(maxsplit=1)
        command = parts[0].lower()
        args = parts[1] if len(parts) > 1 else ''

        handlers = {
            'new': self._cmd_new,
            'sessions': self._cmd_sessions,
            'switch': self._cmd_switch,
            'clear-all': self._cmd_clear_all,
            'history': self._cmd_history,
            'mode': self._cmd_mode,
            'modes': self._cmd_modes,
            'context': self._cmd_context,
            'set': self._cmd_set,
            'budget': self._cmd_budget,
            'attach': self._cmd_attach,
            'images': self._cmd_images,
            'detach': self._cmd_detach,
            'send': self._cmd_send,
            'prompt': self._cmd_prompt,
            'models': self._cmd_models,
            'export': self._cmd_export,
            'help': self._cmd_help,
            'clear': self._cmd_clear,
            'exit': lambda _: 'exit',
            'quit': lambda _: 'exit',
        }

        handler = handlers.get(command)
        if handler:
            return handler(args)

        # Anything else is a message for the tutor
        return self._cmd_send(user_input)

    # === Sessions ===

    def _cmd_new(self, args: str) -> None:
        session = self.engine.new_session()
        self.console.print(f"\n[green]New session:[/green] {session.title} [dim]({session.id})[/dim]")

    def _cmd_sessions(self, args: str) -> None:
        sessions = self.engine.store.sessions
        current = self.engine.current

        table = Table(title="Sessions")
        table.add_column("ID", style="cyan")
        table.add_column("Title")
        table.add_column("Turns", justify="right")
        table.add_column("Mode")
        table.add_column("Last message")

        for s in sessions:
            marker = '* ' if current and s.id == current.id else ''
            table.add_row(
                marker + s.id,
                s.title,
                str(len(s.history)),
                MODE_LABELS.get(s.mode, s.mode.value),
                escape(s.preview(40)),
            )

        self.console.print(table)

    def _cmd_switch(self, args: str) -> None:
        if not args:
            self.console.print("[red]Usage: switch <session_id>[/red]")
            return
        try:
            session = self.engine.select_session(args.strip())
            self.console.print(f"[green]Switched to[/green] {session.title}")
        except NotFoundError as e:
            self.console.print(f"[red]{e}[/red]")

    def _cmd_clear_all(self, args: str) -> None:
        session = self.engine.clear_history()
        self.console.print(f"[yellow]All sessions cleared.[/yellow] Started {session.title}")

    def _cmd_history(self, args: str) -> None:
        session = self.engine.current
        if not session or not session.history:
            self.console.print("[dim]No messages yet.[/dim]")
            return
        for msg in session.history:
            self._show_message(msg)

    # === Modes ===

    def _cmd_mode(self, args: str) -> None:
        if not args:
            mode = self.engine.current.mode
            config = self.engine.prompts.get(mode)
            self.console.print(f"\nMode: [bold]{MODE_LABELS[mode]}[/bold] - {config.name} [dim]({config.model})[/dim]")
            self.console.print(self._ladder(mode))
            return
        try:
            mode = self.engine.set_mode(args)
            config = self.engine.prompts.get(mode)
            self.console.print(f"[green]Switched to {MODE_LABELS[mode]}[/green] - {config.description}")
        except InvalidModeError as e:
            self.console.print(f"[red]{e}[/red]")
            self.console.print(f"[dim]Choose from: {', '.join(label.split()[-1] for label in MODE_LABELS.values())}[/dim]")

    def _ladder(self, mode: LearningMode) -> str:
        steps = []
        for step in LADDER:
            label = MODE_LABELS[step]
            steps.append(f"[bold]{label}[/bold]" if step == mode else f"[dim]{label}[/dim]")
        return ' -> '.join(steps)

    def _cmd_modes(self, args: str) -> None:
        current = self.engine.current.mode

        table = Table(title="Learning Modes")
        table.add_column("Mode", style="cyan")
        table.add_column("Prompt")
        table.add_column("Model")
        table.add_column("Description")

        for config in self.engine.prompts.all():
            mode = config.mode
            name = config.name + (' [yellow](edited)[/yellow]' if self.engine.prompts.is_modified(mode) else '')
            table.add_row(
                ('* ' if mode == current else '') + MODE_LABELS[mode],
                name,
                config.model,
                config.description,
            )

        self.console.print(table)

    # === Context ===

    def _cmd_context(self, args: str) -> None:
        context = self.engine.current.context
        table = Table(title="Course Context")
        table.add_column("Field (set ...)", style="cyan")
        table.add_column("Value")
        for alias, attr in CONTEXT_FIELDS.items():
            value = getattr(context, attr)
            table.add_row(alias, str(value) if value not in ('', None) else '[dim]-[/dim]')
        self.console.print(table)

    def _cmd_set(self, args: str) -> None:
        parts = args.split(maxsplit=1)
        if not parts:
            self.console.print("[red]Usage: set <field> <value>[/red]")
            self.console.print(f"[dim]Fields: {', '.join(CONTEXT_FIELDS)}[/dim]")
            return

        alias = parts[0].lower()
        value = parts[1] if len(parts) > 1 else ''
        attr = CONTEXT_FIELDS.get(alias, alias)
        try:
            self.engine.update_context(**{attr: value})
        except ValueError as e:
            self.console.print(f"[red]{e}[/red]")
            return

        if attr == 'thinking_budget':
            self._warn_budget()
        self.console.print(f"[green]{alias}[/green] = {value or '[dim](empty)[/dim]'}")

    def _cmd_budget(self, args: str) -> None:
        if not args:
            self.console.print(f"Thinking budget: {self.engine.current.context.thinking_budget}")
            return
        self._cmd_set(f"budget {args}")

    def _warn_budget(self):
        """Budgets are passed through as-is; flag ones above the model's max"""
        budget = self.engine.current.context.thinking_budget
        option = model_option(self.engine.active_prompt().model)
        if option and budget > option.max_thinking_budget:
            self.console.print(
                f"[yellow]Note: {option.name} supports up to {option.max_thinking_budget} thinking tokens.[/yellow]"
            )

    # === Images ===

    def _cmd_attach(self, args: str) -> None:
        if not args:
            self.console.print("[red]Usage: attach <path> [path...][/red]")
            return
        for path in shlex.split(args):
            try:
                count = self.engine.attach_image(path)
                self.console.print(f"[green]Queued[/green] {path} [dim]({count} pending)[/dim]")
            except (OSError, ValueError) as e:
                self.console.print(f"[red]Could not attach {path}: {e}[/red]")

    def _cmd_images(self, args: str) -> None:
        pending = self.engine.pending_images
        if not pending:
            self.console.print("[dim]No images queued.[/dim]")
            return
        for i, image in enumerate(pending, 1):
            kind = image.split(';', 1)[0].replace('data:', '') if image.startswith('data:') else 'image'
            self.console.print(f"  {i}. {kind} [dim]({len(image) * 3 // 4 // 1024} KB)[/dim]")

    def _cmd_detach(self, args: str) -> None:
        try:
            self.engine.remove_image(int(args) - 1)
            self.console.print(f"[green]Removed image {args}[/green]")
        except ValueError:
            self.console.print("[red]Usage: detach <number>[/red]")
        except IndexError as e:
            self.console.print(f"[red]{e}[/red]")

    # === Sending ===

    def _cmd_send(self, args: str) -> None:
        if not self.engine.can_send(args):
            if self.engine.sending:
                self.console.print("[yellow]Still waiting for the previous answer.[/yellow]")
            else:
                self.console.print("[dim]Nothing to send. Type a question or attach an image.[/dim]")
            return

        mode = self.engine.current.mode
        try:
            with self.console.status(f"[dim]Thinking ({MODE_LABELS[mode]})...[/dim]"):
                reply = self.engine.send(args)
        except ExternalServiceError as e:
            self.console.print(f"[red]Request failed: {e}[/red]")
            return

        if reply is not None:
            self._show_message(reply)

    def _show_message(self, msg: Message):
        stamp = datetime.fromtimestamp(msg.timestamp / 1000).strftime('%H:%M:%S')
        label = self.engine.prompts.get(msg.mode).name if msg.mode else 'chat'

        if msg.role == 'user':
            images = f" [dim](+{len(msg.images)} image)[/dim]" if msg.images else ''
            self.console.print(f"\n[bold blue]you[/bold blue]{images}: {escape(msg.content)}")
            return

        self.console.print()
        self.console.print(Markdown(msg.content))
        if msg.citations:
            self.console.print("\n[dim]Sources:[/dim]")
            for link in msg.citations:
                self.console.print(f"  [link={link.uri}]{escape(link.title)}[/link] [dim]{escape(link.uri)}[/dim]")
        self.console.print(f"[dim]{stamp} · {label}[/dim]")

    # === Prompt configuration ===

    def _cmd_prompt(self, args: str) -> None:
        parts = args.split()
        action = parts[0].lower() if parts else ''

        try:
            if action == 'edit' and len(parts) >= 2:
                self._edit_prompt(parts[1])
            elif action == 'model' and len(parts) >= 3:
                config = self.engine.prompts.update(parts[1], model=parts[2])
                if not model_option(parts[2]):
                    self.console.print(f"[yellow]Note: {parts[2]} is not a built-in model.[/yellow]")
                self.console.print(f"[green]{config.name}[/green] now uses {config.model}")
            elif action == 'reset' and len(parts) >= 2:
                config = self.engine.prompts.reset(parts[1])
                self.console.print(f"[green]{config.name}[/green] restored to default")
            elif action in ('edit', 'model', 'reset'):
                self.console.print(f"[red]Usage: {escape(COMMANDS['prompt']['usage'])}[/red]")
            else:
                mode = parse_mode(action) if action else self.engine.current.mode
                self._show_prompt(mode)
        except InvalidModeError as e:
            self.console.print(f"[red]{e}[/red]")

    def _show_prompt(self, mode: LearningMode):
        config = self.engine.prompts.get(mode)
        title = f"{config.name} · v{config.version} · {config.model} · updated {config.last_modified}"
        self.console.print(Panel(Text(config.prompt), title=escape(title), border_style="cyan"))

    def _edit_prompt(self, mode_name: str):
        mode = parse_mode(mode_name)
        config = self.engine.prompts.get(mode)
        if self.prompt_session is None:
            self.prompt_session = self._make_prompt_session()

        self.console.print("[dim]Editing prompt. Esc+Enter to save, Ctrl-C to cancel.[/dim]")
        try:
            text = self.prompt_session.prompt('> ', multiline=True, default=config.prompt)
        except KeyboardInterrupt:
            self.console.print("[dim]Edit cancelled.[/dim]")
            return

        if text != config.prompt:
            self.engine.prompts.update(mode, prompt=text)
            self.console.print(f"[green]{config.name} saved.[/green]")

    def _cmd_models(self, args: str) -> None:
        table = Table(title="Models")
        table.add_column("ID", style="cyan")
        table.add_column("Name")
        table.add_column("Max thinking", justify="right")
        table.add_column("Recommended for")
        for option in DEFAULT_MODELS:
            table.add_row(
                option.id,
                option.name,
                str(option.max_thinking_budget) if option.supports_thinking else '-',
                ', '.join(MODE_LABELS[m] for m in option.recommended_for),
            )
        self.console.print(table)

    def _cmd_export(self, args: str) -> None:
        self.console.print_json(self.engine.prompts.export_json())

    # === Utilities ===

    def _cmd_help(self, args: str) -> None:
        self.console.print(get_command_help(args if args else None), markup=False)

    def _cmd_clear(self, args: str) -> None:
        os.system('clear' if os.name != 'nt' else 'cls')

    def _handle_exit(self):
        self.console.print("[dim]Sessions are not saved. Goodbye![/dim]")
