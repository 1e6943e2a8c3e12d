"""
LLM configuration: which provider backs a run, and with which credentials.

Loaded from the environment (``.env`` files are read first, explicit
variables win) or from a JSON document such as ``.env.llm``:

    {"provider": "claude", "model": "claude-3-5-sonnet-20241022",
     "api_key": "sk-...", "max_tokens": 4000, "temperature": 0.7}
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

from .env import load_default_env
from .exceptions import HuddleError, ProviderConfigurationError
from .models import DEFAULT_MODELS

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = ".env.llm"
DEFAULT_MAX_TOKENS = 4000
DEFAULT_TEMPERATURE = 0.7

PROVIDER_ALIASES = {"claude": "anthropic", "google": "gemini"}

# (provider, env prefix, key variables) in lookup order.
ENV_PROVIDERS: Tuple[Tuple[str, str, Tuple[str, ...]], ...] = (
    ("anthropic", "CLAUDE", ("CLAUDE_API_KEY", "ANTHROPIC_API_KEY")),
    ("openai", "OPENAI", ("OPENAI_API_KEY",)),
    ("perplexity", "PERPLEXITY", ("PERPLEXITY_API_KEY",)),
    ("gemini", "GEMINI", ("GEMINI_API_KEY", "GOOGLE_API_KEY")),
)


def normalize_provider(provider: str) -> str:
    name = provider.strip().lower()
    return PROVIDER_ALIASES.get(name, name)


@dataclass
class LLMConfig:
    """
    Selects and configures the provider adapter for one orchestrator.

    Attributes:
        provider: Provider name (``anthropic``/``claude``, ``openai``,
            ``gemini``, ``perplexity`` or ``local``).
        model: Model id. Empty means the provider's default model.
        api_key: Vendor API key. Not needed for ``local``.
        base_url: Optional endpoint override.
        max_tokens: Output token cap per provider call.
        temperature: Sampling temperature.
    """

    provider: str
    model: str = ""
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    max_tokens: int = DEFAULT_MAX_TOKENS
    temperature: float = DEFAULT_TEMPERATURE

    def __post_init__(self) -> None:
        self.provider = normalize_provider(self.provider)
        if not self.model:
            default = DEFAULT_MODELS.get(self.provider)
            self.model = default.id if default else ""

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "LLMConfig":
        """
        Build a config from the first provider whose API key is set.

        Raises:
            ProviderConfigurationError: If no provider key is present.
        """
        if environ is None:
            load_default_env()
            environ = os.environ

        for provider, prefix, key_vars in ENV_PROVIDERS:
            api_key = next((environ[var] for var in key_vars if environ.get(var)), None)
            if not api_key:
                continue
            return cls(
                provider=provider,
                model=environ.get(f"{prefix}_MODEL", ""),
                api_key=api_key,
                base_url=environ.get(f"{prefix}_BASE_URL") or None,
                max_tokens=_int(environ, f"{prefix}_MAX_TOKENS", DEFAULT_MAX_TOKENS),
                temperature=_float(environ, f"{prefix}_TEMPERATURE", DEFAULT_TEMPERATURE),
            )

        raise ProviderConfigurationError(
            provider_name="any",
            missing_config=(
                "No LLM API key found (CLAUDE_API_KEY, OPENAI_API_KEY, "
                "PERPLEXITY_API_KEY, GEMINI_API_KEY)"
            ),
            env_var="CLAUDE_API_KEY",
        )

    @classmethod
    def from_file(cls, path: str | Path = DEFAULT_CONFIG_FILE) -> "LLMConfig":
        """
        Load a config from a JSON file.

        Raises:
            HuddleError: If the file is missing, unreadable or lacks ``provider``.
        """
        config_path = Path(path)
        try:
            data = json.loads(config_path.read_text())
        except FileNotFoundError as exc:
            raise HuddleError(f"LLM config file not found: {config_path}") from exc
        except (OSError, json.JSONDecodeError) as exc:
            raise HuddleError(f"Could not read LLM config {config_path}: {exc}") from exc

        if not isinstance(data, dict) or not data.get("provider"):
            raise HuddleError(f"LLM config {config_path} must be an object with a 'provider' key")
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LLMConfig":
        return cls(
            provider=str(data["provider"]),
            model=str(data.get("model") or ""),
            api_key=data.get("api_key"),
            base_url=data.get("base_url"),
            max_tokens=int(data.get("max_tokens") or DEFAULT_MAX_TOKENS),
            temperature=float(
                DEFAULT_TEMPERATURE if data.get("temperature") is None else data["temperature"]
            ),
        )

    @classmethod
    def load(cls, path: str | Path = DEFAULT_CONFIG_FILE) -> "LLMConfig":
        """Environment first, then the JSON file."""
        try:
            return cls.from_env()
        except ProviderConfigurationError:
            if not Path(path).exists():
                raise
            logger.debug("No LLM key in environment, reading %s", path)
            return cls.from_file(path)

    def to_dict(self, redact: bool = True) -> Dict[str, Any]:
        data = asdict(self)
        if redact and data.get("api_key"):
            data["api_key"] = "***"
        return data

    def save(self, path: str | Path = DEFAULT_CONFIG_FILE) -> None:
        Path(path).write_text(json.dumps(self.to_dict(redact=False), indent=2))


def _int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r", name, raw)
        return default


def _float(environ: Mapping[str, str], name: str, default: float) -> float:
    raw = environ.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r", name, raw)
        return default


__all__ = [
    "LLMConfig",
    "normalize_provider",
    "DEFAULT_CONFIG_FILE",
    "DEFAULT_MAX_TOKENS",
    "DEFAULT_TEMPERATURE",
]
