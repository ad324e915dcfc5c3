"""Configuration discovery and parsing.

The configuration is a TOML file. When no path is given explicitly the first
existing file among ``~/.config/xtalk/config.toml``, ``~/.xtalk.toml`` and
``/etc/xtalk.toml`` is used; without any of them every setting keeps its
default.
"""

from __future__ import annotations

import logging
import tomllib
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, Field, ValidationError, model_validator

from .errors import ConfigError

logger = logging.getLogger(__name__)

USER_CONFIG_PATHS = (".config/xtalk/config.toml", ".xtalk.toml")
SYSTEM_CONFIG_PATH = Path("/etc/xtalk.toml")


class ActivationPolicy(str, Enum):
    """When a provider should be activated."""

    AUTO = "auto"
    ENABLED = "enabled"
    DISABLED = "disabled"


class Keybindings(str, Enum):
    EMACS = "emacs"
    VI = "vi"


class ProviderSettings(BaseModel):
    """Settings shared by every provider."""

    activate: ActivationPolicy = ActivationPolicy.AUTO
    default_model: Optional[str] = None
    priority: Optional[int] = Field(default=None, ge=0, le=255)


class HTTPProviderSettings(ProviderSettings):
    """Settings of a provider reached over HTTP."""

    api_base: Optional[str] = None

    @model_validator(mode="after")
    def check_api_base(self) -> "HTTPProviderSettings":
        """Reject an API base that is not an absolute http(s) URL."""
        if self.api_base is None:
            return self
        try:
            url = httpx.URL(self.api_base)
        except httpx.InvalidURL as exc:
            raise ValueError(f'API base "{self.api_base}" failed to parse: {exc}') from exc
        if url.scheme not in ("http", "https") or not url.host:
            raise ValueError(f'API base "{self.api_base}" is not an http(s) URL')
        return self


class OllamaSettings(HTTPProviderSettings):
    """Local Ollama server; ``activate = "enabled"`` skips the startup probe of ``api_base``."""


class OpenAISettings(HTTPProviderSettings):
    # Takes precedence over the OPENAI_API_KEY environment variable.
    api_key: Optional[str] = None


class ProvidersConfig(BaseModel):
    ollama: OllamaSettings = Field(default_factory=OllamaSettings)
    openai: OpenAISettings = Field(default_factory=OpenAISettings)


class Config(BaseModel):
    """Top-level configuration."""

    # Binary (or command line) used to edit prompts; receives the file as last argument.
    editor: Optional[str] = None
    # Model spec overriding the defaults declared by the providers.
    default_model: Optional[str] = None
    keybindings: Keybindings = Keybindings.EMACS
    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)


def find_config_path(home: Optional[Path] = None) -> Optional[Path]:
    """Return the first existing configuration file, if any."""
    home = home if home is not None else Path.home()
    for relative in USER_CONFIG_PATHS:
        candidate = home / relative
        if candidate.exists():
            return candidate
    if SYSTEM_CONFIG_PATH.exists():
        return SYSTEM_CONFIG_PATH
    return None


def extraneous_keys(raw: Dict[str, Any], model: type[BaseModel], prefix: str = "") -> List[str]:
    """Return the dotted paths of keys in *raw* that *model* does not define."""
    extra: List[str] = []
    for key, value in raw.items():
        path = f"{prefix}{key}"
        field = model.model_fields.get(key)
        if field is None:
            extra.append(path)
            continue
        annotation = field.annotation
        if isinstance(value, dict) and isinstance(annotation, type) and issubclass(annotation, BaseModel):
            extra.extend(extraneous_keys(value, annotation, prefix=f"{path}."))
    return extra


def parse_config(text: str, source: str = "<config>") -> Config:
    try:
        raw = tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"failed to parse config {source}: {exc}") from exc

    for key in extraneous_keys(raw, Config):
        logger.warning('config contains extraneous key "%s", ignoring', key)

    try:
        return Config.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(f"invalid config {source}: {exc}") from exc


def read_config(path: Optional[Path] = None) -> Config:
    """Load the configuration from *path* or from the discovered location."""
    path = path or find_config_path()
    if path is None:
        logger.debug("no configuration file found, using defaults")
        return Config()

    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"failed to read config {path}: {exc}") from exc

    logger.debug("loading configuration from %s", path)
    return parse_config(text, source=str(path))
