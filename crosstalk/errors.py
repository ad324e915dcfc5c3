"""Exception hierarchy for crosstalk."""

from __future__ import annotations

from enum import Enum
from typing import Optional


class CrosstalkError(Exception):
    """Base exception for the crosstalk package."""


class ConfigError(CrosstalkError):
    """Raised when the configuration file cannot be read or validated."""


class ActivationError(CrosstalkError):
    """Raised by a provider probe when the provider cannot be used."""

    def __init__(self, provider: str, reason: str) -> None:
        super().__init__(f"{provider}: {reason}")
        self.provider = provider
        self.reason = reason


class DuplicateProviderError(CrosstalkError):
    """Raised when the same provider is registered twice."""

    def __init__(self, provider: str) -> None:
        super().__init__(f'provider "{provider}" is already registered')
        self.provider = provider


class ResolutionError(CrosstalkError):
    """Base class for failures to map a model spec onto a provider and model."""

    hint: Optional[str] = None


class InvalidModelSpecError(ResolutionError):
    hint = 'model specs take the form "MODEL" or "PROVIDER/MODEL"'

    def __init__(self, spec: str) -> None:
        super().__init__(f'invalid model spec "{spec}"')
        self.spec = spec


class UnknownProviderError(ResolutionError):
    """The provider named in a spec does not exist or is not activated."""

    hint = 'run "xtalk list providers" to see which providers are activated'

    def __init__(self, provider: str, *, configured: bool = False) -> None:
        state = "is not activated" if configured else "does not exist"
        super().__init__(f'provider "{provider}" {state}')
        self.provider = provider
        self.configured = configured


class NoProviderForModelError(ResolutionError):
    hint = 'run "xtalk list models" to see the available models'

    def __init__(self, model: str) -> None:
        super().__init__(f'model "{model}" is not served by any of the available providers')
        self.model = model


class NoDefaultModelError(ResolutionError):
    hint = "specify a model with -m or set default_model in the configuration"

    def __init__(self) -> None:
        super().__init__("none of the available providers provide a default model")


class NoActivatedProvidersError(ResolutionError):
    hint = "at least one provider needs to be active to start a chat"

    def __init__(self) -> None:
        super().__init__("none of the chat providers are active")


class ProviderErrorKind(str, Enum):
    """General categories of errors raised by providers."""

    CONNECTION = "connection"
    TIMED_OUT = "timed_out"
    AUTHENTICATION = "authentication"
    EXCESS_USAGE = "excess_usage"
    API_OVERLOADED = "api_overloaded"
    NOT_FOUND = "not_found"
    BAD_REQUEST = "bad_request"
    INTERNAL_ERROR = "internal_error"
    UNEXPECTED_RESPONSE = "unexpected_response"
    CONTEXT_EXCEEDED = "context_exceeded"
    UNSPECIFIED = "unspecified"


_KIND_MESSAGES = {
    ProviderErrorKind.CONNECTION: "failed to connect to the API service",
    ProviderErrorKind.TIMED_OUT: "request timed out",
    ProviderErrorKind.AUTHENTICATION: "authentication failed or not provided",
    ProviderErrorKind.EXCESS_USAGE: "rate limit exceeded or quota crossed",
    ProviderErrorKind.API_OVERLOADED: "API server(s) are currently overloaded",
    ProviderErrorKind.NOT_FOUND: "the requested resource was not found",
    ProviderErrorKind.BAD_REQUEST: "the request was bad or malformed",
    ProviderErrorKind.INTERNAL_ERROR: "the server encountered an internal error",
    ProviderErrorKind.UNEXPECTED_RESPONSE: "API response was unexpected or malformed",
    ProviderErrorKind.CONTEXT_EXCEEDED: "the model context was exceeded",
    ProviderErrorKind.UNSPECIFIED: "an unspecified error occurred",
}


class ProviderError(CrosstalkError):
    """Transport, authentication or API failures reported by a provider."""

    def __init__(
        self,
        provider: str,
        kind: ProviderErrorKind,
        detail: str | None = None,
        status_code: int | None = None,
    ) -> None:
        message = f"{provider}: {_KIND_MESSAGES[kind]}"
        if status_code is not None:
            message += f" (status {status_code})"
        if detail:
            message += f": {detail}"
        super().__init__(message)
        self.provider = provider
        self.kind = kind
        self.detail = detail
        self.status_code = status_code

    @classmethod
    def from_status(cls, provider: str, status_code: int, detail: str | None = None) -> "ProviderError":
        """Categorise an HTTP error status."""
        if status_code in (401, 403):
            kind = ProviderErrorKind.AUTHENTICATION
        elif status_code == 404:
            kind = ProviderErrorKind.NOT_FOUND
        elif status_code == 429:
            kind = ProviderErrorKind.EXCESS_USAGE
        elif status_code == 503:
            kind = ProviderErrorKind.API_OVERLOADED
        elif 400 <= status_code < 500:
            kind = ProviderErrorKind.BAD_REQUEST
        elif status_code >= 500:
            kind = ProviderErrorKind.INTERNAL_ERROR
        else:
            kind = ProviderErrorKind.UNSPECIFIED
        return cls(provider, kind, detail, status_code=status_code)


class EditorError(CrosstalkError):
    """The external editor could not be launched or exited unsuccessfully."""
