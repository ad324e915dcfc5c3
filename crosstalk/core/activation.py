"""Startup activation of the configured providers."""

from __future__ import annotations

import logging
from typing import Iterable, List

from ..config import Config
from ..providers.base import PROBE_TIMEOUT_S, ChatProvider
from ..providers.ollama import OllamaProvider
from ..providers.openai import OpenAIProvider
from .registry import Registry

logger = logging.getLogger(__name__)


def build_providers(config: Config) -> List[ChatProvider]:
    """Construct every provider known to crosstalk from its settings."""
    return [
        OllamaProvider(config.providers.ollama),
        OpenAIProvider(config.providers.openai),
    ]


def activate(
    registry: Registry,
    providers: Iterable[ChatProvider],
    timeout: float = PROBE_TIMEOUT_S,
) -> Registry:
    """Evaluate each provider once and record the outcome in *registry*."""
    for provider in providers:
        result = provider.is_activated(timeout=timeout)
        registry.record_activation(provider, result)
        if result.activated:
            logger.debug("activated provider %s", provider.id)
    return registry


def populate_registry(config: Config, timeout: float = PROBE_TIMEOUT_S) -> Registry:
    """Build the registry used for the rest of the run."""
    registry = Registry(default_model=config.default_model)
    return activate(registry, build_providers(config), timeout=timeout)
