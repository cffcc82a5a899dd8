"""
Settings loader for llmgate.

Loads a YAML settings file, validates it against the Pydantic schema
and returns an LLMSettings instance. A .env file next to the working
directory is loaded first so api_key_env references resolve.

Resolution order for the settings file:
    1. Explicit path argument
    2. LLMGATE_CONFIG environment variable
    3. No file: settings are built from well-known environment variables
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional, Union

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from llmgate.config.schema import LLMSettings, ProviderSettings
from llmgate.exceptions import SettingsError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "LLMGATE_CONFIG"


def load_settings(path: Optional[Union[str, Path]] = None) -> LLMSettings:
    """
    Load and validate llmgate settings.

    Args:
        path: Optional explicit path to a YAML settings file.

    Returns:
        Validated LLMSettings instance.

    Raises:
        SettingsError: If the file is missing, empty, unparsable or invalid.
    """
    load_dotenv()

    if path is None:
        path = os.environ.get(CONFIG_ENV_VAR) or None
    if path is None:
        logger.debug("settings_from_env")
        return settings_from_env()

    config_path = Path(path)
    if not config_path.exists():
        raise SettingsError(
            f"Settings file not found: {config_path}",
            config_path=str(config_path),
        )

    try:
        with open(config_path, "r") as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise SettingsError(
            f"Settings file is not valid YAML: {config_path}\n{e}",
            config_path=str(config_path),
        ) from e

    if raw is None:
        raise SettingsError(
            f"Settings file is empty: {config_path}",
            config_path=str(config_path),
        )
    if not isinstance(raw, dict):
        raise SettingsError(
            f"Settings file must contain a mapping: {config_path}",
            config_path=str(config_path),
        )

    try:
        settings = LLMSettings(**raw)
    except ValidationError as e:
        raise SettingsError(
            f"Invalid settings in {config_path}:\n{e}",
            config_path=str(config_path),
        ) from e

    logger.info(
        "settings_loaded",
        extra={
            "config_path": str(config_path),
            "providers": sorted(settings.providers),
            "default_provider": settings.default_provider,
        },
    )
    return settings


def settings_from_env() -> LLMSettings:
    """
    Build settings from well-known environment variables.

    OPENAI_API_KEY and ANTHROPIC_API_KEY declare those providers;
    OLLAMA_BASE_URL declares ollama; LLMGATE_DEFAULT_PROVIDER picks
    the default.
    """
    providers: dict[str, ProviderSettings] = {}
    if os.environ.get("OPENAI_API_KEY"):
        providers["openai"] = ProviderSettings(api_key_env="OPENAI_API_KEY")
    if os.environ.get("ANTHROPIC_API_KEY"):
        providers["anthropic"] = ProviderSettings(api_key_env="ANTHROPIC_API_KEY")
    if os.environ.get("OLLAMA_BASE_URL"):
        providers["ollama"] = ProviderSettings(base_url=os.environ["OLLAMA_BASE_URL"])

    return LLMSettings(
        default_provider=os.environ.get("LLMGATE_DEFAULT_PROVIDER") or None,
        providers=providers,
    )
