"""Configuration and logging setup."""
import logging
import os
import sys
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from weather_provider import ConfigurationError

RAPID_API_KEY_ENV = "RAPID_API_KEY"
WEATHER_API_KEY_ENVS = ("API_KEY", "OPENWEATHER_API_KEY")


@dataclass
class Settings:
    units: str = "metric"
    lang: str = "en"
    timeout: int = 10
    cache_ttl: int = 3600
    cache_max_entries: int = 100
    host: str = "127.0.0.1"
    port: int = 5000


def setup_logging(log_file: Optional[str] = None, verbose: bool = False) -> None:
    log_level = logging.DEBUG if verbose else logging.INFO
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=handlers
    )


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise SystemExit(f"Invalid {name}: {exc}") from exc


def load_settings() -> Settings:
    """Build Settings from the environment (and a .env file, if present)."""
    load_dotenv()
    settings = Settings(
        units=os.getenv("WEATHER_UNITS", "metric"),
        lang=os.getenv("WEATHER_LANG", "en"),
        timeout=_int_env("HTTP_TIMEOUT", 10),
        cache_ttl=_int_env("CITY_CACHE_TTL", 3600),
        cache_max_entries=_int_env("CITY_CACHE_MAX_ENTRIES", 100),
        host=os.getenv("HOST", "127.0.0.1"),
        port=_int_env("PORT", 5000),
    )
    logging.info(
        "Configuration loaded: units=%s lang=%s cache_ttl=%s cache_max_entries=%s",
        settings.units,
        settings.lang,
        settings.cache_ttl,
        settings.cache_max_entries,
    )
    return settings


def require_api_key(*names: str) -> str:
    """
    Return the first non-empty API key among the given environment variables.

    Raises:
        ConfigurationError: If none is set
    """
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    logging.error("Missing %s in environment", "/".join(names))
    raise ConfigurationError(f"Missing {'/'.join(names)} in environment")


def rapid_api_key() -> str:
    return require_api_key(RAPID_API_KEY_ENV)


def weather_api_key() -> str:
    return require_api_key(*WEATHER_API_KEY_ENVS)
