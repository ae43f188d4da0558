"""Web application package for pagetranslate."""

from typing import Any, Dict, Optional

from flask import Flask

from pagetranslate.ai.providers import TranslationClient, build_translation_client
from pagetranslate.config import load_config, validate_config
from pagetranslate.logger import set_log_mode


def create_app(
    config: Optional[Dict[str, Any]] = None,
    translator: Optional[TranslationClient] = None,
) -> Flask:
    """
    Application factory for the HTTP service.

    Raises:
        ConfigurationError: If the configuration is incomplete (e.g. no upstream API key).
    """
    config = config if config is not None else load_config()
    validate_config(config)
    set_log_mode(config["LOG_MODE"])

    from .app import build_app  # Import here to avoid circular imports

    return build_app(config, translator or build_translation_client(config))


__all__ = ["create_app"]
