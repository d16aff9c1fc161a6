"""
Shared fixtures: isolate config from the real home directory and API keys.
"""

import pytest

from kdtutor.llm import LLMResponse, BaseLLMClient


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    monkeypatch.setenv('KDTUTOR_HOME', str(tmp_path / 'kdtutor_home'))
    for var in ('GEMINI_API_KEY', 'GOOGLE_API_KEY', 'ANTHROPIC_API_KEY', 'OPENAI_API_KEY', 'KDTUTOR_LOG_LEVEL'):
        monkeypatch.delenv(var, raising=False)
    return tmp_path / 'kdtutor_home'


class FakeClient(BaseLLMClient):
    """Records requests and answers with a canned result (or raises)"""

    provider = 'fake'

    def __init__(self, result=None, exc=None):
        self.result = result if result is not None else LLMResponse(text='ok', model='m', provider='fake')
        self.exc = exc
        self.requests = []

    def generate(self, request):
        self.requests.append(request)
        if self.exc is not None:
            raise self.exc
        return self.result


@pytest.fixture
def fake_client():
    return FakeClient()


@pytest.fixture
def make_client():
    return FakeClient
