#!/usr/bin/env python3
"""
Configuration management for kdtutor.
Handles API keys and user preferences with secure local storage.
"""

import os
import json
from pathlib import Path
from typing import Optional, Dict, Any, List

from rich.console import Console
from rich.prompt import Confirm, IntPrompt, Prompt


DEFAULT_THINKING_BUDGET = 8192

DEFAULTS: Dict[str, Any] = {
    'default_thinking_budget': DEFAULT_THINKING_BUDGET,
    'history_limit': None,
    'log_level': 'WARNING',
}


def get_config_dir() -> Path:
    """Get the kdtutor config directory (~/.kdtutor, or $KDTUTOR_HOME)"""
    override = os.getenv('KDTUTOR_HOME')
    config_dir = Path(override) if override else Path.home() / '.kdtutor'
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_config_path() -> Path:
    """Get the config file path"""
    return get_config_dir() / 'config.json'


def load_config() -> Dict[str, Any]:
    """Load configuration from file"""
    config_path = get_config_path()
    if config_path.exists():
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError):
            return {}
    return {}


def save_config(config: Dict[str, Any]) -> None:
    """Save configuration to file"""
    config_path = get_config_path()
    with open(config_path, 'w', encoding='utf-8') as f:
        json.dump(config, f, indent=2, ensure_ascii=False)
    # Secure the file (read/write only for owner)
    config_path.chmod(0o600)


def get_config_value(key: str, default: Any = None) -> Any:
    """Get a specific config value, falling back to built-in defaults"""
    config = load_config()
    if key in config:
        return config[key]
    if default is None:
        return DEFAULTS.get(key)
    return default


def set_config_value(key: str, value: Any) -> None:
    """Set a specific config value"""
    config = load_config()
    config[key] = value
    save_config(config)


def get_default_thinking_budget() -> int:
    """Thinking budget given to new sessions"""
    value = get_config_value('default_thinking_budget')
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return DEFAULT_THINKING_BUDGET


def get_history_limit() -> Optional[int]:
    """Max prior messages sent per request; None sends the whole history"""
    value = get_config_value('history_limit')
    if value in (None, '', 0):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def get_log_level() -> str:
    """Log level from $KDTUTOR_LOG_LEVEL or the config file"""
    return (os.getenv('KDTUTOR_LOG_LEVEL') or get_config_value('log_level') or 'WARNING').upper()


def store_api_key(provider: str, api_key: str, preferred: bool = True) -> None:
    """Persist a provider key, optionally making it the preferred provider"""
    from .llm import PROVIDERS

    config = load_config()
    config[PROVIDERS[provider]['config_key']] = api_key
    if preferred:
        config['preferred_provider'] = provider
    save_config(config)


def clear_api_key(provider: str = None) -> List[str]:
    """Remove stored key(s); returns the providers whose key was removed"""
    from .llm import PROVIDERS

    targets = [provider] if provider else list(PROVIDERS)
    config = load_config()
    removed = []
    for name in targets:
        key = PROVIDERS.get(name, {}).get('config_key')
        if key and key in config:
            del config[key]
            removed.append(name)

    if config.get('preferred_provider') in removed:
        del config['preferred_provider']
    if removed:
        save_config(config)
    return removed


def prompt_for_api_key(provider: str = None, console: Console = None) -> Optional[str]:
    """
    Interactive key setup (kdtutor --setup).

    Asks for a provider when none is given, reads the key without echo and
    either saves it to the config file or exports it for this process only.
    Returns the key, or None when the user cancels.
    """
    from .llm import PROVIDERS

    console = console or Console()
    names = list(PROVIDERS)
    console.rule("LLM API Key Setup")

    try:
        if not provider:
            console.print("Built-in prompts target Gemini; Anthropic and OpenAI work for re-bound modes.")
            for i, name in enumerate(names, 1):
                console.print(f"  {i}. {PROVIDERS[name]['display_name']}")
            choice = IntPrompt.ask("Provider", choices=[str(i) for i in range(1, len(names) + 1)],
                                   default=1, console=console)
            provider = names[choice - 1]

        info = PROVIDERS[provider]
        console.print(f"\n[bold]{info['display_name']}[/bold]: get a key at {info['url']}")

        api_key = Prompt.ask("API key (hidden)", password=True, console=console).strip()
        if not api_key:
            console.print("[yellow]No key entered. Requests will fail until one is set.[/yellow]")
            return None

        if not api_key.startswith(info['key_prefix']) and not Confirm.ask(
            f"Key does not start with '{info['key_prefix']}'. Use it anyway?", default=False, console=console
        ):
            return None

        if Confirm.ask(f"Save to {get_config_path()}?", default=True, console=console):
            store_api_key(provider, api_key)
            console.print(f"[green]Saved. {info['display_name']} is now the preferred provider.[/green]")
        else:
            # Session-only key: exposed through the environment the client reads
            os.environ[info['env_vars'][0]] = api_key
            console.print("[dim]Key kept for this process only.[/dim]")
        return api_key

    except (KeyboardInterrupt, EOFError):
        console.print("\n[dim]Cancelled.[/dim]")
        return None
