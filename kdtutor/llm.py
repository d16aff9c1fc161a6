#!/usr/bin/env python3
"""
Unified LLM client supporting multiple providers.

Every provider receives the same provider-neutral ModelRequest (system
instruction, role-tagged transcript of text/image parts, optional thinking
budget) and answers with a tagged result: LLMResponse on success, LLMError
on any failure. SDK objects never leave this module.
"""

import base64
import logging
import os
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List, Union

from .config import load_config

logger = logging.getLogger(__name__)

DEFAULT_CITATION_TITLE = 'Grounding Source'


@dataclass(frozen=True)
class Part:
    """One piece of a turn: either text or an inline binary attachment"""
    text: Optional[str] = None
    data: Optional[bytes] = None
    mime_type: Optional[str] = None

    @classmethod
    def from_text(cls, text: str) -> 'Part':
        return cls(text=text)

    @classmethod
    def from_bytes(cls, data: bytes, mime_type: str) -> 'Part':
        return cls(data=data, mime_type=mime_type)

    @property
    def is_inline(self) -> bool:
        return self.data is not None

    def b64(self) -> str:
        return base64.b64encode(self.data or b'').decode('ascii')


@dataclass(frozen=True)
class Turn:
    """A role-tagged transcript entry. Roles are 'user' or 'model'."""
    role: str
    parts: List[Part] = field(default_factory=list)

    def text(self) -> str:
        return '\n'.join(p.text for p in self.parts if p.text)


@dataclass
class ModelRequest:
    """Everything a provider needs for one generate call"""
    model: str
    system_instruction: str
    contents: List[Turn]
    thinking_budget: Optional[int] = None


@dataclass(frozen=True)
class GroundingLink:
    """A source reference returned by the endpoint (uri may be empty)"""
    uri: str
    title: str = DEFAULT_CITATION_TITLE


@dataclass
class LLMResponse:
    """Unified response from any LLM provider"""
    text: str
    model: str
    provider: str
    citations: List[GroundingLink] = field(default_factory=list)
    usage: Optional[Dict[str, int]] = None

    ok = True


@dataclass
class LLMError:
    """Structured failure from any LLM provider"""
    provider: str
    kind: str
    message: str

    ok = False

    def __str__(self) -> str:
        return f"{self.provider}: {self.kind}: {self.message}"


LLMResult = Union[LLMResponse, LLMError]


class BaseLLMClient(ABC):
    """Abstract base class for LLM clients"""

    provider = 'unknown'

    @abstractmethod
    def generate(self, request: ModelRequest) -> LLMResult:
        """Run a single request/response exchange"""
        pass

    def _failure(self, exc: Exception) -> LLMError:
        logger.warning("%s request failed: %s", self.provider, exc)
        return LLMError(provider=self.provider, kind=type(exc).__name__, message=str(exc))


class GeminiClient(BaseLLMClient):
    """Google Gemini client (google-genai SDK)"""

    DEFAULT_MODEL = "gemini-3-flash-preview"

    def __init__(self, api_key: str, model: str = None):
        from google import genai
        self.client = genai.Client(api_key=api_key)
        self.model = model or self.DEFAULT_MODEL
        self.provider = "gemini"

    def _convert_contents(self, contents: List[Turn]) -> List[Any]:
        """Convert neutral turns to Gemini Content objects"""
        from google.genai import types

        converted = []
        for turn in contents:
            parts = []
            for part in turn.parts:
                if part.is_inline:
                    parts.append(types.Part(
                        inline_data=types.Blob(mime_type=part.mime_type, data=part.data)
                    ))
                else:
                    parts.append(types.Part(text=part.text))
            converted.append(types.Content(role=turn.role, parts=parts))
        return converted

    def _build_config(self, request: ModelRequest) -> Any:
        from google.genai import types

        kwargs: Dict[str, Any] = {'system_instruction': request.system_instruction}
        if request.thinking_budget:
            kwargs['thinking_config'] = types.ThinkingConfig(thinking_budget=request.thinking_budget)
        return types.GenerateContentConfig(**kwargs)

    def generate(self, request: ModelRequest) -> LLMResult:
        model = request.model or self.model
        try:
            response = self.client.models.generate_content(
                model=model,
                contents=self._convert_contents(request.contents),
                config=self._build_config(request),
            )
        except Exception as e:
            return self._failure(e)

        try:
            return LLMResponse(
                text=response.text or '',
                model=model,
                provider=self.provider,
                citations=self._extract_citations(response),
                usage=self._extract_usage(response),
            )
        except (AttributeError, IndexError, TypeError, ValueError) as e:
            logger.error("Malformed Gemini response: %s", e)
            return LLMError(provider=self.provider, kind='malformed_response', message=str(e))

    @staticmethod
    def _extract_citations(response: Any) -> List[GroundingLink]:
        candidates = getattr(response, 'candidates', None) or []
        if not candidates:
            return []
        metadata = getattr(candidates[0], 'grounding_metadata', None)
        chunks = getattr(metadata, 'grounding_chunks', None) or []

        links = []
        for chunk in chunks:
            source = getattr(chunk, 'web', None) or getattr(chunk, 'maps', None)
            links.append(GroundingLink(
                uri=getattr(source, 'uri', None) or '',
                title=getattr(source, 'title', None) or DEFAULT_CITATION_TITLE,
            ))
        return links

    @staticmethod
    def _extract_usage(response: Any) -> Optional[Dict[str, int]]:
        usage = getattr(response, 'usage_metadata', None)
        if usage is None:
            return None
        return {
            "input_tokens": getattr(usage, 'prompt_token_count', None) or 0,
            "output_tokens": getattr(usage, 'candidates_token_count', None) or 0,
        }


class AnthropicClient(BaseLLMClient):
    """Anthropic Claude client"""

    DEFAULT_MODEL = "claude-sonnet-4-20250514"

    def __init__(self, api_key: str, model: str = None, max_tokens: int = 4096):
        from anthropic import Anthropic
        self.client = Anthropic(api_key=api_key)
        self.model = model or self.DEFAULT_MODEL
        self.max_tokens = max_tokens
        self.provider = "anthropic"

    def _convert_contents(self, contents: List[Turn]) -> List[Dict]:
        messages = []
        for turn in contents:
            blocks = []
            for part in turn.parts:
                if part.is_inline:
                    blocks.append({
                        "type": "image",
                        "source": {"type": "base64", "media_type": part.mime_type, "data": part.b64()},
                    })
                else:
                    blocks.append({"type": "text", "text": part.text})
            messages.append({
                "role": "user" if turn.role == "user" else "assistant",
                "content": blocks,
            })
        return messages

    def _build_kwargs(self, request: ModelRequest) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {
            'model': request.model or self.model,
            'max_tokens': self.max_tokens,
            'system': request.system_instruction,
            'messages': self._convert_contents(request.contents),
        }
        if request.thinking_budget:
            # max_tokens must exceed the thinking budget
            kwargs['thinking'] = {"type": "enabled", "budget_tokens": request.thinking_budget}
            kwargs['max_tokens'] = request.thinking_budget + self.max_tokens
        return kwargs

    def generate(self, request: ModelRequest) -> LLMResult:
        kwargs = self._build_kwargs(request)
        try:
            response = self.client.messages.create(**kwargs)
        except Exception as e:
            return self._failure(e)

        text = ''.join(
            block.text for block in response.content
            if getattr(block, 'type', None) == 'text'
        )
        return LLMResponse(
            text=text,
            model=kwargs['model'],
            provider=self.provider,
            usage={
                "input_tokens": response.usage.input_tokens,
                "output_tokens": response.usage.output_tokens,
            } if getattr(response, 'usage', None) else None
        )


class OpenAIClient(BaseLLMClient):
    """OpenAI GPT client"""

    DEFAULT_MODEL = "gpt-4o"

    def __init__(self, api_key: str, model: str = None):
        from openai import OpenAI
        self.client = OpenAI(api_key=api_key)
        self.model = model or self.DEFAULT_MODEL
        self.provider = "openai"

    def _convert_contents(self, request: ModelRequest) -> List[Dict]:
        messages = [{"role": "system", "content": request.system_instruction}]
        for turn in request.contents:
            if turn.role != "user":
                messages.append({"role": "assistant", "content": turn.text()})
                continue
            content = []
            for part in turn.parts:
                if part.is_inline:
                    content.append({
                        "type": "image_url",
                        "image_url": {"url": f"data:{part.mime_type};base64,{part.b64()}"},
                    })
                else:
                    content.append({"type": "text", "text": part.text})
            messages.append({"role": "user", "content": content})
        return messages

    def generate(self, request: ModelRequest) -> LLMResult:
        model = request.model or self.model
        if request.thinking_budget:
            logger.debug("OpenAI has no thinking budget parameter; not sent")
        try:
            response = self.client.chat.completions.create(
                model=model,
                messages=self._convert_contents(request),
            )
        except Exception as e:
            return self._failure(e)

        if not response.choices:
            return LLMError(provider=self.provider, kind='malformed_response', message='no choices returned')

        message = response.choices[0].message
        citations = []
        for annotation in getattr(message, 'annotations', None) or []:
            url_citation = getattr(annotation, 'url_citation', None)
            if url_citation is not None:
                citations.append(GroundingLink(
                    uri=url_citation.url or '',
                    title=url_citation.title or DEFAULT_CITATION_TITLE,
                ))

        return LLMResponse(
            text=message.content or '',
            model=model,
            provider=self.provider,
            citations=citations,
            usage={
                "input_tokens": response.usage.prompt_tokens,
                "output_tokens": response.usage.completion_tokens,
            } if response.usage else None
        )


# Provider registry
PROVIDERS = {
    "gemini": {
        "client_class": GeminiClient,
        "env_vars": ["GEMINI_API_KEY", "GOOGLE_API_KEY"],
        "config_key": "gemini_api_key",
        "key_prefix": "AI",
        "display_name": "Google (Gemini)",
        "url": "https://aistudio.google.com/app/apikey",
        "package": "google-genai",
    },
    "anthropic": {
        "client_class": AnthropicClient,
        "env_vars": ["ANTHROPIC_API_KEY"],
        "config_key": "anthropic_api_key",
        "key_prefix": "sk-ant-",
        "display_name": "Anthropic (Claude)",
        "url": "https://console.anthropic.com/settings/keys",
        "package": "anthropic",
    },
    "openai": {
        "client_class": OpenAIClient,
        "env_vars": ["OPENAI_API_KEY"],
        "config_key": "openai_api_key",
        "key_prefix": "sk-",
        "display_name": "OpenAI (GPT)",
        "url": "https://platform.openai.com/api-keys",
        "package": "openai",
    },
}

_MODEL_PREFIXES = [
    (re.compile(r'^(models/)?gemini', re.I), 'gemini'),
    (re.compile(r'^claude', re.I), 'anthropic'),
    (re.compile(r'^(gpt|o\d|chatgpt)', re.I), 'openai'),
]


def provider_for_model(model_id: str) -> Optional[str]:
    """Guess the provider serving a model id"""
    for pattern, provider in _MODEL_PREFIXES:
        if pattern.match(model_id or ''):
            return provider
    return None


def get_available_providers() -> List[str]:
    """Get list of providers with configured API keys"""
    return [p for p in PROVIDERS if get_api_key_for_provider(p)]


def get_api_key_for_provider(provider: str) -> Optional[str]:
    """Get API key for a specific provider"""
    if provider not in PROVIDERS:
        return None

    info = PROVIDERS[provider]

    for env_var in info["env_vars"]:
        api_key = os.getenv(env_var)
        if api_key:
            return api_key

    config = load_config()
    return config.get(info["config_key"])


def get_preferred_provider() -> Optional[str]:
    """Get the user's preferred provider from config, or first available"""
    config = load_config()
    preferred = config.get("preferred_provider")

    if preferred and get_api_key_for_provider(preferred):
        return preferred

    available = get_available_providers()
    return available[0] if available else None


def create_llm_client(
    provider: str = None,
    model: str = None,
) -> Optional[BaseLLMClient]:
    """
    Create an LLM client for the specified or preferred provider.

    Args:
        provider: Provider name (gemini, anthropic, openai). If None, uses preferred.
        model: Model name override. If None, uses provider default.

    Returns:
        LLM client instance or None if no provider available.
    """
    if provider is None:
        provider = get_preferred_provider()

    if provider is None or provider not in PROVIDERS:
        return None

    api_key = get_api_key_for_provider(provider)
    if not api_key:
        return None

    info = PROVIDERS[provider]
    client_class = info["client_class"]

    try:
        return client_class(api_key=api_key, model=model)
    except ImportError:
        logger.warning("%s SDK not installed. Run: pip install %s", provider, info["package"])
        return None
