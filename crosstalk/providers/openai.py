"""OpenAI provider built on the official Python SDK."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator, Sequence
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import openai
from openai import OpenAI  # type: ignore

from ..config import OpenAISettings
from ..errors import ProviderError, ProviderErrorKind
from .base import PROBE_TIMEOUT_S, ActivationResult, ChatProvider, ContextManagement, Model

if TYPE_CHECKING:
    from ..core.session import Message

API_KEY_ENV_VAR = "OPENAI_API_KEY"

# The API has no route listing only chat models, so the table is maintained
# by hand together with the context length of each model.
OPENAI_MODELS = (
    ("gpt-4o-mini", 128000),
    ("gpt-4o", 128000),
    ("gpt-4-turbo", 128000),
    ("gpt-4", 8192),
    ("gpt-3.5-turbo", 16385),
)

# Cheapest flagship model, used unless the user overrides it.
DEFAULT_MODEL = "gpt-4o-mini"


class OpenAIProvider(ChatProvider):
    """Thin wrapper around the OpenAI SDK hiding streaming details."""

    id = "openai"
    DEFAULT_PRIORITY = 10
    context_management = ContextManagement.EXPLICIT
    _logger = logging.getLogger(__name__)

    def __init__(
        self,
        settings: Optional[OpenAISettings] = None,
        *,
        client: Optional[OpenAI] = None,
    ) -> None:
        settings = settings or OpenAISettings()
        super().__init__(settings)
        self.api_key = settings.api_key or os.getenv(API_KEY_ENV_VAR)
        self.api_base = settings.api_base
        self._client = client

    @property
    def client(self) -> OpenAI:
        # Built lazily: an "enabled" provider may still lack a key until used.
        if self._client is None:
            client_kwargs: Dict[str, Any] = {"api_key": self.api_key or ""}
            if self.api_base:
                client_kwargs["base_url"] = self.api_base
            self._client = OpenAI(**client_kwargs)  # type: ignore[arg-type]
        return self._client

    def is_activated(self, timeout: float = PROBE_TIMEOUT_S) -> ActivationResult:
        result = super().is_activated(timeout=timeout)
        if result.activated and not self.api_key:
            self._logger.warning(
                'the "openai" provider is enabled but no API key is defined, '
                "either add it to the config or define %s",
                API_KEY_ENV_VAR,
            )
        return result

    def probe(self, timeout: float) -> ActivationResult:
        if not self.api_key:
            return ActivationResult.failed(
                f"no API key, add it to the config or define {API_KEY_ENV_VAR}"
            )
        return ActivationResult.ok()

    def list_models(self) -> list[Model]:
        return [
            Model(name=name, provider_id=self.id, context_length=context)
            for name, context in OPENAI_MODELS
        ]

    def default_model(self) -> Optional[str]:
        return DEFAULT_MODEL

    def complete(self, conversation: Sequence["Message"], model: str) -> Iterator[str]:
        messages: List[Dict[str, Any]] = [
            {"role": m.role, "content": m.content} for m in conversation
        ]
        try:
            stream = self.client.chat.completions.create(  # type: ignore[call-overload]
                model=model,
                messages=messages,
                stream=True,
            )
            # Leaving the block (exhaustion, error or close()) releases the connection.
            with stream:
                for chunk in stream:
                    if not chunk.choices:
                        continue
                    choice = chunk.choices[0]
                    if choice.finish_reason is not None:
                        self._logger.debug("openai finished: reason=%s", choice.finish_reason)
                    content = choice.delta.content if choice.delta is not None else None
                    if content:
                        yield content
        except openai.OpenAIError as exc:
            raise self._translate(exc) from exc

    def _translate(self, exc: openai.OpenAIError) -> ProviderError:
        """Map an SDK exception onto a ProviderError kind."""
        if isinstance(exc, openai.APITimeoutError):
            return ProviderError(self.id, ProviderErrorKind.TIMED_OUT, str(exc))
        if isinstance(exc, openai.APIConnectionError):
            return ProviderError(self.id, ProviderErrorKind.CONNECTION, str(exc))
        if isinstance(exc, openai.APIStatusError):
            if getattr(exc, "code", None) == "context_length_exceeded":
                return ProviderError(
                    self.id, ProviderErrorKind.CONTEXT_EXCEEDED, exc.message, status_code=exc.status_code
                )
            return ProviderError.from_status(self.id, exc.status_code, exc.message)
        return ProviderError(self.id, ProviderErrorKind.UNSPECIFIED, str(exc))
