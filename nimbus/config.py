"""Global configuration: constants, environment profiles, logging setup."""

from __future__ import annotations

import logging
import os
from typing import Any, Mapping

from pydantic import BaseModel

from nimbus.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Replacement text shown when the text generator fails or times out
FALLBACK_MESSAGE = (
    "I apologize, but I am currently experiencing high network latency. "
    "Please try again in a moment."
)

DEFAULT_GENERATION_TIMEOUT = 30.0
DEFAULT_OLLAMA_HOST = "http://localhost:11434"
DEFAULT_MODEL = "mistral"

GENERATION_PROVIDERS = ("ollama", "static")

# All known configuration keys with defaults
_CONFIG_KEYS: dict[str, dict[str, Any]] = {
    "NIMBUS_ENV": {"default": "development", "description": "Environment profile"},
    "NIMBUS_LOG_LEVEL": {"default": "INFO", "description": "Logging level"},
    "NIMBUS_OLLAMA_HOST": {"default": DEFAULT_OLLAMA_HOST, "description": "Ollama LLM server"},
    "NIMBUS_MODEL": {"default": DEFAULT_MODEL, "description": "Model used for text generation"},
    "NIMBUS_GENERATION_TIMEOUT": {
        "default": str(DEFAULT_GENERATION_TIMEOUT),
        "description": "Seconds before a text-generation call is abandoned",
    },
    "NIMBUS_GENERATION_PROVIDER": {
        "default": "ollama",
        "description": "Text generator backend: 'ollama' or 'static'",
    },
}

_PROFILES: dict[str, dict[str, str]] = {
    "development": {
        "NIMBUS_LOG_LEVEL": "DEBUG",
    },
    "production": {
        "NIMBUS_LOG_LEVEL": "WARNING",
    },
    "testing": {
        "NIMBUS_LOG_LEVEL": "DEBUG",
        "NIMBUS_GENERATION_PROVIDER": "static",
        "NIMBUS_GENERATION_TIMEOUT": "2.0",
    },
}


class Settings(BaseModel):
    """Resolved runtime settings."""

    env: str = "development"
    log_level: str = "INFO"
    ollama_host: str = DEFAULT_OLLAMA_HOST
    model: str = DEFAULT_MODEL
    generation_timeout: float = DEFAULT_GENERATION_TIMEOUT
    generation_provider: str = "ollama"


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Load merged settings: defaults -> profile -> environment variables.

    Parameters
    ----------
    environ:
        Mapping to read ``NIMBUS_*`` keys from.  Defaults to ``os.environ``.

    Raises
    ------
    ConfigurationError
        If the profile is unknown or a value cannot be interpreted.
    """
    if environ is None:
        environ = os.environ

    config: dict[str, str] = {key: info["default"] for key, info in _CONFIG_KEYS.items()}

    env_name = environ.get("NIMBUS_ENV", config["NIMBUS_ENV"])
    if env_name not in _PROFILES:
        raise ConfigurationError(
            f"Unknown NIMBUS_ENV profile {env_name!r}; expected one of {sorted(_PROFILES)}"
        )
    config["NIMBUS_ENV"] = env_name
    config.update(_PROFILES[env_name])

    for key in _CONFIG_KEYS:
        if key in environ and key != "NIMBUS_ENV":
            config[key] = environ[key]

    try:
        timeout = float(config["NIMBUS_GENERATION_TIMEOUT"])
    except ValueError:
        raise ConfigurationError(
            f"NIMBUS_GENERATION_TIMEOUT must be a number, got {config['NIMBUS_GENERATION_TIMEOUT']!r}"
        ) from None
    if timeout <= 0:
        raise ConfigurationError("NIMBUS_GENERATION_TIMEOUT must be positive")

    provider = config["NIMBUS_GENERATION_PROVIDER"].lower()
    if provider not in GENERATION_PROVIDERS:
        raise ConfigurationError(
            f"NIMBUS_GENERATION_PROVIDER must be one of {GENERATION_PROVIDERS}, got {provider!r}"
        )

    level = config["NIMBUS_LOG_LEVEL"].upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ConfigurationError(f"Unknown NIMBUS_LOG_LEVEL {level!r}")

    return Settings(
        env=env_name,
        log_level=level,
        ollama_host=config["NIMBUS_OLLAMA_HOST"],
        model=config["NIMBUS_MODEL"],
        generation_timeout=timeout,
        generation_provider=provider,
    )


def configure_logging(settings: Settings) -> None:
    """Apply the configured log level to the package logger."""
    logging.getLogger("nimbus").setLevel(settings.log_level)
    logger.debug("Logging configured at %s for %s profile", settings.log_level, settings.env)
