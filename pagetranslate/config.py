import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from dotenv import dotenv_values

from pagetranslate.ai.exceptions import ConfigurationError
from pagetranslate.logger import get_logger

logger = get_logger(__name__)

# Get base directory (project root)
BASE_DIR = Path(__file__).parent.parent
ENV_FILE = BASE_DIR / ".env"

# Sentinel value of API_MASTER_KEY meaning "auth disabled"
MASTER_KEY_DISABLED = "1"

# Default configuration; every key can be overridden from .env or the environment
DEFAULT_CONFIG = {
    "APP_NAME": "pagetranslate",
    "APP_VERSION": "1.0.0",
    "DESCRIPTION": "A proxy that converts Google Translate API to OpenAI-compatible format.",
    "API_MASTER_KEY": None,
    "HOST": "0.0.0.0",
    "PORT": 8088,
    "GOOGLE_API_KEY": None,
    "API_REQUEST_TIMEOUT": 60,  # seconds
    "DEFAULT_MODEL": "google-translate",
    "DEFAULT_CONCURRENCY": 500,
    "MAX_CONCURRENCY": 1000,
    "LOG_MODE": "info",
}

INTEGER_KEYS = ("PORT", "API_REQUEST_TIMEOUT", "DEFAULT_CONCURRENCY", "MAX_CONCURRENCY")


def _coerce_int(key: str, value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(
            f"{key} must be an integer, got {value!r}",
            code="config_invalid",
            details={"key": key},
        ) from exc


def load_config(
    env: Optional[Mapping[str, str]] = None,
    env_file: Optional[Path] = ENV_FILE,
) -> Dict[str, Any]:
    """
    Load configuration from defaults, the .env file and the environment.

    Later layers win: defaults < .env < process environment. Passing ``env``
    replaces the process environment (used by tests).

    Raises:
        ConfigurationError: If an integer setting does not parse.
    """
    config = DEFAULT_CONFIG.copy()

    layers = []
    if env_file is not None and Path(env_file).exists():
        layers.append(dotenv_values(env_file))
        logger.debug(f"Loaded .env file: {env_file}")
    layers.append(os.environ if env is None else env)

    for layer in layers:
        for key, value in layer.items():
            if value is None or value == "":
                continue
            if key == "NGINX_PORT" and "PORT" not in layer:
                config["PORT"] = value
            elif key in config:
                config[key] = value

    for key in INTEGER_KEYS:
        config[key] = _coerce_int(key, config[key])

    config["LOG_MODE"] = str(config["LOG_MODE"]).strip().lower()
    return config


def validate_config(config: Dict[str, Any]) -> None:
    """
    Check that the configuration is usable before the server starts.

    Raises:
        ConfigurationError: If the upstream API key is missing or limits are inconsistent.
    """
    if not config.get("GOOGLE_API_KEY"):
        raise ConfigurationError(
            "GOOGLE_API_KEY is not configured. Please set it in .env file.",
            code="config_missing",
            details={"key": "GOOGLE_API_KEY"},
        )

    if config["API_REQUEST_TIMEOUT"] <= 0:
        raise ConfigurationError("API_REQUEST_TIMEOUT must be positive", code="config_invalid")

    if not 1 <= config["DEFAULT_CONCURRENCY"] <= config["MAX_CONCURRENCY"]:
        raise ConfigurationError(
            "DEFAULT_CONCURRENCY must be between 1 and MAX_CONCURRENCY",
            code="config_invalid",
            details={
                "DEFAULT_CONCURRENCY": config["DEFAULT_CONCURRENCY"],
                "MAX_CONCURRENCY": config["MAX_CONCURRENCY"],
            },
        )


def auth_enabled(config: Dict[str, Any]) -> bool:
    """Return True when requests must carry the master key."""
    master_key = config.get("API_MASTER_KEY")
    return bool(master_key) and master_key != MASTER_KEY_DISABLED
