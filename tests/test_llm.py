#!/usr/bin/env python3
"""
Tests for the provider-neutral LLM layer. SDK clients are patched out.
"""

from types import SimpleNamespace
from unittest.mock import patch

import pytest

from kdtutor.config import set_config_value
from kdtutor.llm import (
    AnthropicClient,
    GeminiClient,
    GroundingLink,
    LLMError,
    LLMResponse,
    ModelRequest,
    OpenAIClient,
    Part,
    Turn,
    create_llm_client,
    get_api_key_for_provider,
    get_available_providers,
    get_preferred_provider,
    provider_for_model,
)


def make_request(thinking_budget=None, with_image=False):
    parts = [Part.from_text('what is on this slide?')]
    if with_image:
        parts.append(Part.from_bytes(b'imgbytes', 'image/png'))
    return ModelRequest(
        model='gemini-3-flash-preview',
        system_instruction='You are a tutor.',
        contents=[
            Turn(role='user', parts=[Part.from_text('hello')]),
            Turn(role='model', parts=[Part.from_text('hi there')]),
            Turn(role='user', parts=parts),
        ],
        thinking_budget=thinking_budget,
    )


def gemini_response(text='answer', chunks=None, usage=None):
    candidate = SimpleNamespace(grounding_metadata=SimpleNamespace(grounding_chunks=chunks))
    return SimpleNamespace(text=text, candidates=[candidate], usage_metadata=usage)


class TestProviderRegistry:
    """Tests for provider lookup and key resolution"""

    def test_provider_for_model(self):
        assert provider_for_model('gemini-3-pro-preview') == 'gemini'
        assert provider_for_model('models/gemini-2.5-flash') == 'gemini'
        assert provider_for_model('claude-sonnet-4-20250514') == 'anthropic'
        assert provider_for_model('gpt-4o') == 'openai'
        assert provider_for_model('o3-mini') == 'openai'
        assert provider_for_model('mystery-model') is None
        assert provider_for_model('') is None

    def test_key_from_env(self, monkeypatch):
        monkeypatch.setenv('GOOGLE_API_KEY', 'AIzaEnv')
        assert get_api_key_for_provider('gemini') == 'AIzaEnv'

    def test_env_order(self, monkeypatch):
        monkeypatch.setenv('GOOGLE_API_KEY', 'AIzaSecond')
        monkeypatch.setenv('GEMINI_API_KEY', 'AIzaFirst')
        assert get_api_key_for_provider('gemini') == 'AIzaFirst'

    def test_key_from_config(self):
        set_config_value('anthropic_api_key', 'sk-ant-config')
        assert get_api_key_for_provider('anthropic') == 'sk-ant-config'
        assert get_available_providers() == ['anthropic']

    def test_unknown_provider(self):
        assert get_api_key_for_provider('mistral') is None

    def test_preferred_provider(self, monkeypatch):
        monkeypatch.setenv('GEMINI_API_KEY', 'AIzaEnv')
        monkeypatch.setenv('OPENAI_API_KEY', 'sk-env')
        assert get_preferred_provider() == 'gemini'

        set_config_value('preferred_provider', 'openai')
        assert get_preferred_provider() == 'openai'

    def test_preferred_provider_without_key_falls_back(self, monkeypatch):
        monkeypatch.setenv('OPENAI_API_KEY', 'sk-env')
        set_config_value('preferred_provider', 'anthropic')
        assert get_preferred_provider() == 'openai'

    def test_create_client_without_key(self):
        assert create_llm_client('gemini') is None
        assert create_llm_client() is None

    def test_create_client(self, monkeypatch):
        monkeypatch.setenv('GEMINI_API_KEY', 'AIzaEnv')
        with patch('google.genai.Client') as mock_client:
            client = create_llm_client('gemini')
        assert isinstance(client, GeminiClient)
        mock_client.assert_called_once_with(api_key='AIzaEnv')


class TestGeminiClient:
    """Tests for GeminiClient request building and response parsing"""

    @pytest.fixture
    def gemini(self):
        with patch('google.genai.Client') as mock_client:
            client = GeminiClient(api_key='AIzaTest')
        client.client = mock_client.return_value
        return client

    def _call_kwargs(self, gemini):
        return gemini.client.models.generate_content.call_args.kwargs

    def test_no_thinking_config_without_budget(self, gemini):
        gemini.client.models.generate_content.return_value = gemini_response()
        gemini.generate(make_request(thinking_budget=None))

        config = self._call_kwargs(gemini)['config']
        assert config.system_instruction == 'You are a tutor.'
        assert config.thinking_config is None

    def test_thinking_budget_passed(self, gemini):
        gemini.client.models.generate_content.return_value = gemini_response()
        gemini.generate(make_request(thinking_budget=8192))

        config = self._call_kwargs(gemini)['config']
        assert config.thinking_config.thinking_budget == 8192

    def test_contents_conversion(self, gemini):
        gemini.client.models.generate_content.return_value = gemini_response()
        gemini.generate(make_request(with_image=True))

        kwargs = self._call_kwargs(gemini)
        contents = kwargs['contents']
        assert kwargs['model'] == 'gemini-3-flash-preview'
        assert [c.role for c in contents] == ['user', 'model', 'user']
        assert contents[0].parts[0].text == 'hello'
        last = contents[2].parts
        assert last[0].text == 'what is on this slide?'
        assert last[1].inline_data.mime_type == 'image/png'
        assert last[1].inline_data.data == b'imgbytes'

    def test_response_with_citations(self, gemini):
        chunks = [
            SimpleNamespace(web=SimpleNamespace(uri='https://a.example', title='A'), maps=None),
            SimpleNamespace(web=SimpleNamespace(uri='https://b.example', title=None), maps=None),
            SimpleNamespace(web=None, maps=SimpleNamespace(uri='https://maps.example', title='Map')),
        ]
        usage = SimpleNamespace(prompt_token_count=12, candidates_token_count=34)
        gemini.client.models.generate_content.return_value = gemini_response(
            'Entropy measures...', chunks, usage)

        result = gemini.generate(make_request())

        assert isinstance(result, LLMResponse)
        assert result.ok
        assert result.text == 'Entropy measures...'
        assert result.citations == [
            GroundingLink('https://a.example', 'A'),
            GroundingLink('https://b.example', 'Grounding Source'),
            GroundingLink('https://maps.example', 'Map'),
        ]
        assert result.usage == {'input_tokens': 12, 'output_tokens': 34}

    def test_empty_text(self, gemini):
        gemini.client.models.generate_content.return_value = gemini_response(text=None)
        result = gemini.generate(make_request())
        assert result.text == ''
        assert result.citations == []

    def test_transport_error(self, gemini):
        gemini.client.models.generate_content.side_effect = ConnectionError('network down')
        result = gemini.generate(make_request())

        assert isinstance(result, LLMError)
        assert not result.ok
        assert result.provider == 'gemini'
        assert result.kind == 'ConnectionError'
        assert 'network down' in str(result)

    def test_malformed_response(self, gemini):
        class Broken:
            @property
            def text(self):
                raise ValueError('no parts')

        gemini.client.models.generate_content.return_value = Broken()
        result = gemini.generate(make_request())
        assert isinstance(result, LLMError)
        assert result.kind == 'malformed_response'


class TestAnthropicClient:
    """Tests for AnthropicClient"""

    @pytest.fixture
    def claude(self):
        with patch('anthropic.Anthropic') as mock_client:
            client = AnthropicClient(api_key='sk-ant-test')
        client.client = mock_client.return_value
        client.client.messages.create.return_value = SimpleNamespace(
            content=[
                SimpleNamespace(type='thinking', thinking='...'),
                SimpleNamespace(type='text', text='Hello '),
                SimpleNamespace(type='text', text='world'),
            ],
            usage=SimpleNamespace(input_tokens=5, output_tokens=7),
        )
        return client

    def test_request_shape(self, claude):
        result = claude.generate(make_request(with_image=True))

        kwargs = claude.client.messages.create.call_args.kwargs
        assert kwargs['system'] == 'You are a tutor.'
        assert kwargs['max_tokens'] == 4096
        assert 'thinking' not in kwargs
        assert [m['role'] for m in kwargs['messages']] == ['user', 'assistant', 'user']
        image = kwargs['messages'][2]['content'][1]
        assert image['type'] == 'image'
        assert image['source']['media_type'] == 'image/png'

        assert result.text == 'Hello world'
        assert result.usage == {'input_tokens': 5, 'output_tokens': 7}

    def test_thinking_budget(self, claude):
        claude.generate(make_request(thinking_budget=2048))
        kwargs = claude.client.messages.create.call_args.kwargs
        assert kwargs['thinking'] == {'type': 'enabled', 'budget_tokens': 2048}
        assert kwargs['max_tokens'] > 2048

    def test_error(self, claude):
        claude.client.messages.create.side_effect = RuntimeError('overloaded')
        result = claude.generate(make_request())
        assert isinstance(result, LLMError)
        assert result.provider == 'anthropic'


class TestOpenAIClient:
    """Tests for OpenAIClient"""

    @pytest.fixture
    def gpt(self):
        with patch('openai.OpenAI') as mock_client:
            client = OpenAIClient(api_key='sk-test')
        client.client = mock_client.return_value
        return client

    def test_request_and_citations(self, gpt):
        annotation = SimpleNamespace(url_citation=SimpleNamespace(url='https://a.example', title='A'))
        message = SimpleNamespace(content='answer', annotations=[annotation])
        gpt.client.chat.completions.create.return_value = SimpleNamespace(
            choices=[SimpleNamespace(message=message)],
            usage=SimpleNamespace(prompt_tokens=3, completion_tokens=4),
        )

        result = gpt.generate(make_request(thinking_budget=1024, with_image=True))

        messages = gpt.client.chat.completions.create.call_args.kwargs['messages']
        assert messages[0] == {'role': 'system', 'content': 'You are a tutor.'}
        assert messages[2] == {'role': 'assistant', 'content': 'hi there'}
        image = messages[3]['content'][1]
        assert image['image_url']['url'].startswith('data:image/png;base64,')

        assert result.text == 'answer'
        assert result.citations == [GroundingLink('https://a.example', 'A')]

    def test_no_choices(self, gpt):
        gpt.client.chat.completions.create.return_value = SimpleNamespace(choices=[], usage=None)
        result = gpt.generate(make_request())
        assert isinstance(result, LLMError)
        assert result.kind == 'malformed_response'

    def test_error(self, gpt):
        gpt.client.chat.completions.create.side_effect = TimeoutError('slow')
        result = gpt.generate(make_request())
        assert isinstance(result, LLMError)
        assert result.kind == 'TimeoutError'
