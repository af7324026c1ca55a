"""Resolve API key and model: explicit argument -> config file -> environment/default."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash"
API_KEY_ENV = "GEMINI_API_KEY"
CONFIG_FILENAME = "config.json"
DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent / CONFIG_FILENAME

MISSING_KEY_MESSAGE = (
    "Gemini API key is not set. Pass --api-key, add \"ApiKey\" to the config file "
    f"({CONFIG_FILENAME}), or set the {API_KEY_ENV} environment variable."
)


class ConfigError(RuntimeError):
    """Startup configuration problem; the program must not make any API call."""


class FileSettings(BaseModel):
    """Optional values read from the JSON config file."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    api_key: str | None = Field(default=None, alias="ApiKey")
    model: str | None = Field(default=None, alias="Model")


class ChatConfig(BaseModel):
    """Effective configuration, resolved once at startup."""

    model_config = ConfigDict(frozen=True)

    api_key: str = Field(min_length=1, repr=False)
    model: str = DEFAULT_MODEL
    # None keeps the HTTP call unbounded
    timeout: float | None = Field(default=None, gt=0)


def load_config_file(path: str | Path) -> FileSettings:
    """Read ``path`` as JSON. A missing file yields empty settings."""
    p = Path(path)
    if not p.is_file():
        logger.debug("Config file %s not found, skipping", p)
        return FileSettings()
    try:
        raw = json.loads(p.read_text(encoding="utf-8-sig"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot read config file {p}: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError(f"Invalid config file {p}: expected a JSON object")
    try:
        settings = FileSettings.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid config file {p}: {e}") from e
    logger.debug("Loaded config file %s", p)
    return settings


def _first_non_empty(*values: str | None) -> str | None:
    for value in values:
        if value is not None and value.strip():
            return value.strip()
    return None


def resolve_config(
    api_key: str | None = None,
    model: str | None = None,
    config_path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
    timeout: float | None = None,
) -> ChatConfig:
    """
    Merge all sources into one ChatConfig; first non-empty value wins.
    Raises ConfigError if no API key is found.
    """
    env = os.environ if environ is None else environ
    file_settings = load_config_file(config_path or DEFAULT_CONFIG_PATH)

    resolved_key = _first_non_empty(api_key, file_settings.api_key, env.get(API_KEY_ENV))
    if resolved_key is None:
        raise ConfigError(MISSING_KEY_MESSAGE)

    resolved_model = _first_non_empty(model, file_settings.model) or DEFAULT_MODEL
    logger.debug("Resolved model %s", resolved_model)
    return ChatConfig(api_key=resolved_key, model=resolved_model, timeout=timeout)
