"""Provider registry and model resolution.

The registry holds the activated providers. Users choose a model with a
"model spec"::

    <model spec> := <model name> | <provider id> "/" <model name>

``ollama/llama3`` asks for llama3 through Ollama explicitly, while a bare
``llama3`` is ambiguous and is resolved to a provider that serves it.

Each provider has a priority between 0 (provider of last resort) and 255.
When several providers serve the same model the one with the highest
priority wins; providers with equal priority are ordered by registration,
which keeps resolution stable within a run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ..errors import (
    DuplicateProviderError,
    InvalidModelSpecError,
    NoActivatedProvidersError,
    NoDefaultModelError,
    NoProviderForModelError,
    ProviderError,
    UnknownProviderError,
)
from ..providers.base import ActivationResult, ChatProvider, Model

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModelSpec:
    """A model name, optionally qualified with the provider serving it."""

    model: str
    provider_id: Optional[str] = None

    @property
    def is_ambiguous(self) -> bool:
        return self.provider_id is None

    @classmethod
    def parse(cls, text: str) -> "ModelSpec":
        """Parse ``[provider/]model``; the model name itself may not contain ``/``."""
        provider_id, sep, model = text.partition("/")
        if not sep:
            provider_id, model = "", text
        if not model or "/" in model or (sep and not provider_id):
            raise InvalidModelSpecError(text)
        return cls(model=model, provider_id=provider_id or None)

    def __str__(self) -> str:
        if self.provider_id is None:
            return self.model
        return f"{self.provider_id}/{self.model}"


@dataclass(frozen=True)
class ActivationRecord:
    """Diagnostic entry kept for every configured provider."""

    provider_id: str
    priority: int
    result: ActivationResult


class Registry:
    """Activated providers, ordered for resolution."""

    def __init__(self, default_model: Optional[str] = None) -> None:
        # Global default model spec from the configuration.
        self.default_model = default_model
        self._providers: Dict[str, ChatProvider] = {}
        self._order: List[str] = []
        self._activations: Dict[str, ActivationRecord] = {}

    # ---------------- Population ----------------

    def register(self, provider: ChatProvider) -> None:
        if provider.id in self._providers:
            raise DuplicateProviderError(provider.id)
        self._providers[provider.id] = provider
        self._order.append(provider.id)
        self._activations[provider.id] = ActivationRecord(provider.id, provider.priority, ActivationResult.ok())
        logger.debug("registered provider %s (priority %d)", provider.id, provider.priority)

    def record_activation(self, provider: ChatProvider, result: ActivationResult) -> None:
        """Keep *result* for diagnostics and register the provider if activated."""
        if result.activated:
            self.register(provider)
        else:
            self._activations[provider.id] = ActivationRecord(provider.id, provider.priority, result)
            logger.debug("provider %s not activated: %s", provider.id, result.reason)

    # ---------------- Read access ----------------

    def is_empty(self) -> bool:
        return not self._providers

    def providers(self) -> List[ChatProvider]:
        """Activated providers by descending priority, ties in registration order."""
        ranked = sorted(enumerate(self._order), key=lambda item: (-self._providers[item[1]].priority, item[0]))
        return [self._providers[provider_id] for _, provider_id in ranked]

    def provider(self, provider_id: str) -> ChatProvider:
        try:
            return self._providers[provider_id]
        except KeyError as exc:
            raise UnknownProviderError(provider_id, configured=provider_id in self._activations) from exc

    def activations(self) -> List[ActivationRecord]:
        """Activation outcome of every configured provider."""
        return sorted(self._activations.values(), key=lambda record: (-record.priority, record.provider_id))

    def preferred_provider(self) -> ChatProvider:
        providers = self.providers()
        if not providers:
            raise NoActivatedProvidersError()
        return providers[0]

    def models(self, provider_id: Optional[str] = None) -> List[Model]:
        """Models of one provider, or of every activated provider in order."""
        if provider_id is not None:
            return self.provider(provider_id).list_models()
        models: List[Model] = []
        for provider in self.providers():
            models.extend(provider.list_models())
        return models

    # ---------------- Resolution ----------------

    def resolve(self, spec: Optional[ModelSpec]) -> Tuple[ChatProvider, str]:
        """Map *spec* (or the default when None) onto a provider and model name."""
        if spec is None:
            return self.resolve_default()

        if not spec.is_ambiguous:
            # The provider validates the model name itself when completing.
            return self.provider(spec.provider_id), spec.model  # type: ignore[arg-type]

        for provider in self.providers():
            try:
                if provider.serves_model(spec.model):
                    return provider, spec.model
            except ProviderError as exc:
                logger.warning("skipping %s while resolving %s: %s", provider.id, spec.model, exc)
        raise NoProviderForModelError(spec.model)

    def resolve_default(self) -> Tuple[ChatProvider, str]:
        """Resolve the default model.

        An explicit global default always wins. Otherwise the most preferred
        activated provider that declares a default supplies it, so a cloud
        provider takes over when a preferred local one is offline.
        """
        if self.default_model:
            return self.resolve(ModelSpec.parse(self.default_model))

        for provider in self.providers():
            model = provider.configured_default or provider.default_model()
            if model:
                return provider, model
        raise NoDefaultModelError()
