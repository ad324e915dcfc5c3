"""Provider definitions for crosstalk."""

from .base import PROBE_TIMEOUT_S, ActivationResult, ChatProvider, ContextManagement, Model
from .ollama import OllamaProvider
from .openai import OpenAIProvider

__all__ = [
    "PROBE_TIMEOUT_S",
    "ActivationResult",
    "ChatProvider",
    "ContextManagement",
    "Model",
    "OllamaProvider",
    "OpenAIProvider",
]
