#!/usr/bin/env python3
"""
Tests for configuration, logging setup and the command-line entry point.
"""

import json
import logging
from unittest.mock import patch

from kdtutor.cli import main
from kdtutor.config import (
    clear_api_key,
    get_config_dir,
    get_config_path,
    get_config_value,
    get_default_thinking_budget,
    get_history_limit,
    get_log_level,
    load_config,
    set_config_value,
    store_api_key,
)
from kdtutor.log import setup_logging
from kdtutor.repl import TutorREPL


class TestConfig:
    """Tests for the JSON config file"""

    def test_config_dir_override(self, isolated_config):
        assert get_config_dir() == isolated_config
        assert isolated_config.is_dir()

    def test_missing_file(self):
        assert load_config() == {}
        assert get_config_value('default_thinking_budget') == 8192
        assert get_config_value('unknown', 'fallback') == 'fallback'

    def test_set_value_and_permissions(self):
        set_config_value('history_limit', 20)
        assert load_config() == {'history_limit': 20}
        assert get_history_limit() == 20
        assert (get_config_path().stat().st_mode & 0o777) == 0o600

    def test_corrupt_file(self):
        get_config_path().write_text('{not json')
        assert load_config() == {}

    def test_thinking_budget(self):
        assert get_default_thinking_budget() == 8192
        set_config_value('default_thinking_budget', 'garbage')
        assert get_default_thinking_budget() == 8192
        set_config_value('default_thinking_budget', 0)
        assert get_default_thinking_budget() == 0

    def test_history_limit_default(self):
        assert get_history_limit() is None
        set_config_value('history_limit', 0)
        assert get_history_limit() is None

    def test_log_level(self, monkeypatch):
        assert get_log_level() == 'WARNING'
        set_config_value('log_level', 'info')
        assert get_log_level() == 'INFO'
        monkeypatch.setenv('KDTUTOR_LOG_LEVEL', 'debug')
        assert get_log_level() == 'DEBUG'

    def test_store_and_clear_keys(self):
        store_api_key('gemini', 'AIzaSaved')
        store_api_key('openai', 'sk-saved', preferred=False)
        config = load_config()
        assert config['gemini_api_key'] == 'AIzaSaved'
        assert config['preferred_provider'] == 'gemini'

        assert clear_api_key('gemini') == ['gemini']
        assert 'preferred_provider' not in load_config()
        assert clear_api_key() == ['openai']
        assert clear_api_key() == []


class TestLogging:
    """Tests for setup_logging"""

    def test_idempotent(self):
        logger = setup_logging('DEBUG')
        handlers = len(logger.handlers)
        setup_logging('ERROR')

        assert len(logger.handlers) == handlers
        assert logger.level == logging.ERROR
        assert logger.name == 'kdtutor'
        assert not logger.propagate


class TestCLI:
    """Tests for the argparse entry point"""

    def test_export_prompts(self, capsys):
        assert main(['--export-prompts']) == 0
        data = json.loads(capsys.readouterr().out)
        assert 'intuition_mode' in data
        assert data['principle_mode']['model'] == 'gemini-3-pro-preview'

    def test_modes(self, capsys):
        assert main(['--modes']) == 0
        assert 'literature_mode' in capsys.readouterr().out

    def test_one_shot_without_key_fails(self, capsys):
        assert main(['what is entropy']) == 1
        assert 'Request failed' in capsys.readouterr().out

    def test_clear_key(self, capsys):
        store_api_key('anthropic', 'sk-ant-saved')
        assert main(['--clear-key']) == 0
        assert 'anthropic' in capsys.readouterr().out
        assert load_config().get('anthropic_api_key') is None

    def test_image_queued_for_repl(self, tmp_path):
        image = tmp_path / 'slide.png'
        image.write_bytes(b'\x89PNG\r\n\x1a\n')

        with patch.object(TutorREPL, 'run', autospec=True) as run:
            assert main(['--image', str(image)]) == 0

        repl = run.call_args.args[0]
        assert len(repl.engine.pending_images) == 1
        assert repl.engine.current.history == []
