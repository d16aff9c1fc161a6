#!/usr/bin/env python3
"""
Prompt dispatch: fill a mode's template with the session context, assemble
the transcript, and make one request to the model endpoint.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from ..llm import (
    BaseLLMClient,
    LLMError,
    ModelRequest,
    Part,
    Turn,
    PROVIDERS,
    create_llm_client,
    get_api_key_for_provider,
    provider_for_model,
)
from .errors import ExternalServiceError
from .images import decode_data_url
from .prompts import PromptConfig
from .state import Citation, Message, SessionContext

logger = logging.getLogger(__name__)

UNSPECIFIED = '未指定'
EMPTY_RESPONSE_TEXT = 'No response received.'
IMAGE_ONLY_MARKER = '[image]'

PLACEHOLDERS = (
    'instructor_name',
    'research_field',
    'institution',
    'course_name',
    'theoretical_framework',
)

_PLACEHOLDER = re.compile(r'\{(\w+)\}')


def render_template(template: str, context: SessionContext) -> str:
    """Substitute known placeholders; unknown ones are left as they are"""
    def substitute(match):
        name = match.group(1)
        if name not in PLACEHOLDERS:
            return match.group(0)
        value = getattr(context, name) or ''
        return value if value.strip() else UNSPECIFIED

    return _PLACEHOLDER.sub(substitute, template)


def build_contents(
    history: Sequence[Message],
    user_text: str,
    images: Optional[Sequence[str]] = None,
    limit: Optional[int] = None,
) -> List[Turn]:
    """Prior history (text only) followed by the new user turn"""
    prior = list(history)
    if limit is not None and limit >= 0:
        prior = prior[-limit:] if limit else []
        # Transcript starts with a user turn
        while prior and prior[0].role != 'user':
            prior.pop(0)

    contents = []
    for msg in prior:
        text = msg.content
        if not text.strip() and msg.images:
            text = IMAGE_ONLY_MARKER
        contents.append(Turn(
            role='user' if msg.role == 'user' else 'model',
            parts=[Part.from_text(text)],
        ))

    parts = []
    if user_text or not images:
        parts.append(Part.from_text(user_text))
    for position, image in enumerate(images or [], 1):
        try:
            mime_type, data = decode_data_url(image)
        except ValueError as e:
            raise ExternalServiceError(
                f"Image {position} could not be decoded: {e}", kind='malformed_image',
            ) from e
        parts.append(Part.from_bytes(data, mime_type))
    contents.append(Turn(role='user', parts=parts))

    return contents


@dataclass
class DispatchResult:
    """Assistant text plus any grounding links"""
    text: str
    citations: List[Citation] = field(default_factory=list)


class PromptDispatcher:
    """Sends one templated request per call; no retry, no streaming"""

    def __init__(self, client: Optional[BaseLLMClient] = None, history_limit: Optional[int] = None):
        self.client = client
        self.history_limit = history_limit
        self._clients: Dict[str, BaseLLMClient] = {}

    def client_for(self, model: str) -> BaseLLMClient:
        """The injected client, or a cached provider client for this model"""
        if self.client is not None:
            return self.client

        provider = provider_for_model(model)
        if provider is None:
            raise ExternalServiceError(f"No provider known for model '{model}'", kind='configuration')

        if provider not in self._clients:
            if not get_api_key_for_provider(provider):
                raise ExternalServiceError(
                    f"No {provider} API key configured. Run 'kdtutor --setup'.",
                    provider=provider,
                    kind='configuration',
                )
            client = create_llm_client(provider)
            if client is None:
                raise ExternalServiceError(
                    f"The {provider} SDK is not installed. Run: pip install {PROVIDERS[provider]['package']}",
                    provider=provider,
                    kind='missing_sdk',
                )
            self._clients[provider] = client
        return self._clients[provider]

    def build_request(
        self,
        config: PromptConfig,
        user_text: str,
        history: Sequence[Message],
        context: SessionContext,
        thinking_budget: int = 0,
        images: Optional[Sequence[str]] = None,
    ) -> ModelRequest:
        return ModelRequest(
            model=config.model,
            system_instruction=render_template(config.prompt, context),
            contents=build_contents(history, user_text, images, self.history_limit),
            thinking_budget=thinking_budget if thinking_budget and thinking_budget > 0 else None,
        )

    def dispatch(
        self,
        config: PromptConfig,
        user_text: str,
        history: Sequence[Message],
        context: SessionContext,
        thinking_budget: int = 0,
        images: Optional[Sequence[str]] = None,
    ) -> DispatchResult:
        request = self.build_request(config, user_text, history, context, thinking_budget, images)
        client = self.client_for(config.model)

        logger.debug(
            "Dispatching %s to %s (%d turns, thinking budget: %s)",
            config.id, request.model, len(request.contents), request.thinking_budget,
        )
        try:
            result = client.generate(request)
        except Exception as e:
            logger.error("Model endpoint call failed: %s", e)
            raise ExternalServiceError(str(e), kind=type(e).__name__) from e

        if isinstance(result, LLMError):
            raise ExternalServiceError(str(result), provider=result.provider, kind=result.kind)

        citations = [
            Citation(uri=link.uri, title=link.title)
            for link in result.citations
            if link.uri
        ]
        return DispatchResult(text=result.text or EMPTY_RESPONSE_TEXT, citations=citations)
