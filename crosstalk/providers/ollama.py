"""Ollama provider implementation."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator, Sequence
from typing import TYPE_CHECKING, Any, Optional

import httpx

from ..config import OllamaSettings
from ..errors import ProviderError, ProviderErrorKind
from .base import ActivationResult, ChatProvider, ContextManagement, Model

if TYPE_CHECKING:
    from ..core.session import Message

_DEFAULT_BASE_URL = "http://localhost:11434"
_TAGS_PATH = "/api/tags"
_CHAT_PATH = "/api/chat"


class OllamaProvider(ChatProvider):
    """Minimal wrapper for a local Ollama server."""

    id = "ollama"
    DEFAULT_PRIORITY = 20
    context_management = ContextManagement.IMPLICIT
    _logger = logging.getLogger(__name__)

    def __init__(
        self,
        settings: Optional[OllamaSettings] = None,
        *,
        timeout_s: float = 60.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        settings = settings or OllamaSettings()
        super().__init__(settings)
        self.base_url = (settings.api_base or _DEFAULT_BASE_URL).rstrip("/")
        self._client = httpx.Client(base_url=self.base_url, timeout=timeout_s, transport=transport)

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()

    def probe(self, timeout: float) -> ActivationResult:
        # A server that answers the tag listing is considered awake.
        self._tags(timeout=timeout)
        return ActivationResult.ok()

    def list_models(self) -> list[Model]:
        return [
            Model(name=tag["name"], provider_id=self.id)
            for tag in self._tags()
            if isinstance(tag, dict) and "name" in tag
        ]

    def default_model(self) -> Optional[str]:
        return None

    def complete(self, conversation: Sequence["Message"], model: str) -> Iterator[str]:
        payload = {
            "model": model,
            "messages": [{"role": m.role, "content": m.content} for m in conversation],
            "stream": True,
        }
        try:
            with self._client.stream("POST", _CHAT_PATH, json=payload) as response:
                if response.status_code >= 400:
                    response.read()
                    raise self._status_error(response)

                # Ollama streams one JSON object per line; the last one has "done": true.
                for line in response.iter_lines():
                    if not line.strip():
                        continue
                    chunk = self._decode(line)
                    if "error" in chunk:
                        raise ProviderError(self.id, ProviderErrorKind.UNSPECIFIED, str(chunk["error"]))
                    if chunk.get("done"):
                        self._logger.debug(
                            "ollama finished: reason=%s prompt_tokens=%s completion_tokens=%s",
                            chunk.get("done_reason"),
                            chunk.get("prompt_eval_count"),
                            chunk.get("eval_count"),
                        )
                        return
                    content = (chunk.get("message") or {}).get("content")
                    if content:
                        yield content
        except httpx.TimeoutException as exc:
            raise ProviderError(self.id, ProviderErrorKind.TIMED_OUT, str(exc)) from exc
        except httpx.TransportError as exc:
            raise ProviderError(self.id, ProviderErrorKind.CONNECTION, str(exc)) from exc

        raise ProviderError(self.id, ProviderErrorKind.UNEXPECTED_RESPONSE, "stream ended before completion")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _tags(self, timeout: Optional[float] = None) -> list[Any]:
        kwargs: dict[str, Any] = {}
        if timeout is not None:
            kwargs["timeout"] = timeout
        try:
            response = self._client.get(_TAGS_PATH, **kwargs)
        except httpx.TimeoutException as exc:
            raise ProviderError(self.id, ProviderErrorKind.TIMED_OUT, str(exc)) from exc
        except httpx.TransportError as exc:
            raise ProviderError(self.id, ProviderErrorKind.CONNECTION, str(exc)) from exc

        if response.status_code >= 400:
            raise self._status_error(response)
        data = self._decode(response.text)
        models = data.get("models")
        if not isinstance(models, list):
            raise ProviderError(self.id, ProviderErrorKind.UNEXPECTED_RESPONSE, "missing 'models' in tag listing")
        return models

    def _decode(self, text: str) -> dict[str, Any]:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ProviderError(self.id, ProviderErrorKind.UNEXPECTED_RESPONSE, str(exc)) from exc
        if not isinstance(data, dict):
            raise ProviderError(self.id, ProviderErrorKind.UNEXPECTED_RESPONSE, "expected a JSON object")
        return data

    def _status_error(self, response: httpx.Response) -> ProviderError:
        detail = response.text
        try:
            body = json.loads(detail)
            if isinstance(body, dict) and "error" in body:
                detail = str(body["error"])
        except json.JSONDecodeError:
            pass
        return ProviderError.from_status(self.id, response.status_code, detail or response.reason_phrase)
