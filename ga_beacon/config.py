import json
import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict

from dotenv import load_dotenv

from ga_beacon.errors import ConfigError


logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "config.json"
DEFAULT_COLLECT_URL = "https://www.google-analytics.com/mp/collect"
DEFAULT_HOMEPAGE_URL = "https://github.com/igrigorik/ga-beacon"
DEFAULT_TIMEOUT_SECONDS = 5.0

_ENV_KEYS = {
    "measurement_id": "GA_MEASUREMENT_ID",
    "api_secret": "GA_API_SECRET",
    "collect_url": "GA_COLLECT_URL",
    "homepage_url": "GA_HOMEPAGE_URL",
    "timeout": "GA_TIMEOUT",
}


@dataclass(frozen=True)
class Settings:
    """Measurement Protocol credentials and endpoints, read once per process."""

    measurement_id: str
    api_secret: str
    collect_url: str = DEFAULT_COLLECT_URL
    homepage_url: str = DEFAULT_HOMEPAGE_URL
    timeout: float = DEFAULT_TIMEOUT_SECONDS


def _read_config_file() -> Dict[str, Any]:
    explicit = os.getenv("CONFIG_FILE", "")
    path = explicit or DEFAULT_CONFIG_FILE
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        if explicit:
            raise ConfigError(f"failed to read config file {path}")
        return {}
    except OSError as e:
        raise ConfigError(f"failed to read config file {path}: {e}")
    except json.JSONDecodeError as e:
        raise ConfigError(f"failed to parse config file {path}: {e}")
    if not isinstance(data, dict):
        raise ConfigError(f"config file {path} must contain a JSON object")
    return data


def load_settings() -> Settings:
    """Build settings from the JSON config file, overridden by the environment.

    Raises ``ConfigError`` when the credentials are missing or the config
    source cannot be read.
    """

    load_dotenv()
    values = _read_config_file()
    for field, env_key in _ENV_KEYS.items():
        env_value = os.getenv(env_key, "")
        if env_value:
            values[field] = env_value

    measurement_id = str(values.get("measurement_id") or "").strip()
    api_secret = str(values.get("api_secret") or "").strip()
    if not measurement_id or not api_secret:
        raise ConfigError("measurement_id and api_secret are required")

    try:
        timeout = float(values.get("timeout", DEFAULT_TIMEOUT_SECONDS))
    except (TypeError, ValueError):
        raise ConfigError(f"timeout must be a number, got {values.get('timeout')!r}")

    settings = Settings(
        measurement_id=measurement_id,
        api_secret=api_secret,
        collect_url=values.get("collect_url") or DEFAULT_COLLECT_URL,
        homepage_url=values.get("homepage_url") or DEFAULT_HOMEPAGE_URL,
        timeout=timeout,
    )
    logger.info("Loaded config: measurement id = %s", settings.measurement_id)
    return settings


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
