#!/usr/bin/env python3
"""
Command definitions for the tutoring REPL.
"""

COMMANDS = {
    # Sessions
    'new': {
        'help': 'Start a new conversation session',
        'usage': 'new',
        'examples': ['new'],
    },
    'sessions': {
        'help': 'List all sessions (newest first)',
        'usage': 'sessions',
        'examples': ['sessions'],
    },
    'switch': {
        'help': 'Make another session current',
        'usage': 'switch <session_id>',
        'examples': ['switch 3f2a9c1d'],
    },
    'clear-all': {
        'help': 'Delete every session and start a fresh one',
        'usage': 'clear-all',
        'examples': ['clear-all'],
    },
    'history': {
        'help': 'Show the messages of the current session',
        'usage': 'history',
        'examples': ['history'],
    },

    # Learning modes
    'mode': {
        'help': 'Show or switch the learning mode',
        'usage': 'mode [intuition|principle|academic|paper|literature|image|export]',
        'examples': ['mode', 'mode principle', 'mode literature'],
    },
    'modes': {
        'help': 'List learning modes with their prompt and model',
        'usage': 'modes',
        'examples': ['modes'],
    },

    # Course context
    'context': {
        'help': 'Show the course context used to fill prompt templates',
        'usage': 'context',
        'examples': ['context'],
    },
    'set': {
        'help': 'Set a context field (instructor, field, institution, course, framework, budget)',
        'usage': 'set <field> <value>',
        'examples': ['set instructor Dr. Lee', 'set course Strategic Management', 'set field psychology'],
    },
    'budget': {
        'help': 'Set the thinking budget for this session (0 disables it)',
        'usage': 'budget <tokens>',
        'examples': ['budget 8192', 'budget 0'],
    },

    # Images
    'attach': {
        'help': 'Queue image file(s) to send with the next message',
        'usage': 'attach <path> [path...]',
        'examples': ['attach ~/slides/week3.png', 'attach a.jpg b.jpg'],
    },
    'images': {
        'help': 'List queued images',
        'usage': 'images',
        'examples': ['images'],
    },
    'detach': {
        'help': 'Remove a queued image by position',
        'usage': 'detach <number>',
        'examples': ['detach 1'],
    },
    'send': {
        'help': 'Send a message (plain input is sent too; use this for image-only sends)',
        'usage': 'send [text]',
        'examples': ['send', 'send Summarize this slide'],
    },

    # Prompt configuration
    'prompt': {
        'help': 'Show, edit, rebind or reset a mode prompt',
        'usage': 'prompt [mode] | prompt edit <mode> | prompt model <mode> <model_id> | prompt reset <mode>',
        'examples': ['prompt', 'prompt academic', 'prompt edit intuition',
                     'prompt model paper gemini-3-flash-preview', 'prompt reset paper'],
    },
    'models': {
        'help': 'List available models',
        'usage': 'models',
        'examples': ['models'],
    },
    'export': {
        'help': 'Print all prompt configs as JSON',
        'usage': 'export',
        'examples': ['export'],
    },

    # Utilities
    'help': {
        'help': 'Show available commands',
        'usage': 'help [command]',
        'examples': ['help', 'help set'],
    },
    'clear': {
        'help': 'Clear the screen',
        'usage': 'clear',
        'examples': ['clear'],
    },
    'exit': {
        'help': 'Exit the REPL',
        'usage': 'exit',
        'examples': ['exit', 'quit'],
    },
    'quit': {
        'help': 'Exit the REPL (alias for exit)',
        'usage': 'quit',
        'examples': ['quit'],
    },
}

# `set` field aliases -> SessionContext attribute
CONTEXT_FIELDS = {
    'instructor': 'instructor_name',
    'field': 'research_field',
    'institution': 'institution',
    'course': 'course_name',
    'framework': 'theoretical_framework',
    'budget': 'thinking_budget',
}


def get_command_help(command: str = None) -> str:
    """Get help text for a command or all commands"""
    if command and command in COMMANDS:
        cmd = COMMANDS[command]
        lines = [
            f"  {command}: {cmd['help']}",
            f"  Usage: {cmd['usage']}",
        ]
        if cmd.get('examples'):
            lines.append(f"  Examples: {', '.join(cmd['examples'])}")
        return '\n'.join(lines)

    groups = {
        'Sessions': ['new', 'sessions', 'switch', 'history', 'clear-all'],
        'Learning': ['mode', 'modes', 'send'],
        'Context': ['context', 'set', 'budget'],
        'Images': ['attach', 'images', 'detach'],
        'Prompts': ['prompt', 'models', 'export'],
        'Utilities': ['help', 'clear', 'exit'],
    }

    lines = ["Available commands:\n"]
    for group, cmds in groups.items():
        lines.append(f"  {group}:")
        for cmd in cmds:
            if cmd in COMMANDS:
                lines.append(f"    {cmd:12} - {COMMANDS[cmd]['help']}")
        lines.append("")

    lines.append("Anything else you type is sent to the tutor in the current mode.")
    lines.append("Type 'help <command>' for detailed help on a specific command.")
    return '\n'.join(lines)
