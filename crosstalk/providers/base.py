"""Provider-agnostic interface implemented by every chat backend.

Each backend (e.g. Ollama or OpenAI) subclasses :class:`ChatProvider` and
supplies four capabilities: a runtime activation probe, model listing, an
optional native default model and a streaming completion. The rest of the
package never special-cases a provider by its id.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, ClassVar, Optional

from ..config import ActivationPolicy, ProviderSettings
from ..errors import ActivationError, ProviderError

if TYPE_CHECKING:
    from ..core.session import Message

logger = logging.getLogger(__name__)

# Upper bound for a single activation probe, in seconds.
PROBE_TIMEOUT_S = 2.0


@dataclass(frozen=True)
class Model:
    """A model offered by a provider; the name is opaque to crosstalk."""

    name: str
    provider_id: str
    context_length: Optional[int] = None


@dataclass(frozen=True)
class ActivationResult:
    """Outcome of evaluating whether a provider can be used."""

    activated: bool
    reason: Optional[str] = None

    @classmethod
    def ok(cls) -> "ActivationResult":
        return cls(True)

    @classmethod
    def failed(cls, reason: str) -> "ActivationResult":
        return cls(False, reason)


class ContextManagement(Enum):
    """How the conversation context is handled between API calls."""

    # The caller sends the whole conversation and gets an error once it no longer fits.
    EXPLICIT = "explicit"
    # The API may truncate the context without telling the caller.
    IMPLICIT = "implicit"


class ChatProvider(ABC):
    """Abstract base class for provider implementations."""

    id: ClassVar[str]
    DEFAULT_PRIORITY: ClassVar[int] = 0
    context_management: ClassVar[ContextManagement] = ContextManagement.EXPLICIT

    def __init__(self, settings: Optional[ProviderSettings] = None) -> None:
        self.settings = settings or ProviderSettings()

    @property
    def priority(self) -> int:
        if self.settings.priority is not None:
            return self.settings.priority
        return self.DEFAULT_PRIORITY

    @property
    def configured_default(self) -> Optional[str]:
        """Default model set in the configuration for this provider."""
        return self.settings.default_model or None

    def is_activated(self, timeout: float = PROBE_TIMEOUT_S) -> ActivationResult:
        """Apply the activation policy, probing the backend only for ``auto``."""
        policy = self.settings.activate
        if policy is ActivationPolicy.DISABLED:
            return ActivationResult.failed("disabled by configuration")
        if policy is ActivationPolicy.ENABLED:
            return ActivationResult.ok()

        try:
            return self.probe(timeout)
        except (ActivationError, ProviderError) as exc:
            logger.debug("probe for %s failed: %s", self.id, exc)
            return ActivationResult.failed(str(exc))

    def serves_model(self, name: str) -> bool:
        """Return True if *name* is one of the models this provider lists."""
        return any(model.name == name for model in self.list_models())

    @abstractmethod
    def probe(self, timeout: float) -> ActivationResult:
        """Check at runtime whether the backend is usable."""
        raise NotImplementedError

    @abstractmethod
    def list_models(self) -> list[Model]:
        """Return the models offered by the provider; raises ProviderError."""
        raise NotImplementedError

    @abstractmethod
    def default_model(self) -> Optional[str]:
        """Return the provider's own default model, if it designates one."""
        raise NotImplementedError

    @abstractmethod
    def complete(self, conversation: Sequence["Message"], model: str) -> Iterator[str]:
        """Stream the model's reply to *conversation* as text fragments.

        The returned iterator is lazy and can be consumed once. Closing it
        before exhaustion aborts the request and releases the connection.
        """
        raise NotImplementedError
