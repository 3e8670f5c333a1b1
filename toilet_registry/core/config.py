"""Application configuration helpers.

The Seoul Open API key is embedded in every request path, so it is kept out of
``Settings.__repr__`` and must never be logged.
"""

import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_UPSTREAM_HOST = "http://openapi.seoul.go.kr:8088"
DEFAULT_UPSTREAM_SERVICE = "mgisToiletPoi"


class ConfigError(RuntimeError):
    """Raised when a configuration value cannot be used."""


@dataclass(frozen=True)
class Settings:
    seoul_api_key: str = field(default="", repr=False)
    upstream_host: str = DEFAULT_UPSTREAM_HOST
    upstream_service: str = DEFAULT_UPSTREAM_SERVICE
    page_size: int = 1000
    proxy_page_size: int = 60
    cache_ttl_seconds: float = 3600.0
    page_delay_seconds: float = 0.12
    max_pages: int = 20
    request_timeout: float = 10.0
    port: int = 3000

    @property
    def upstream_base_url(self) -> str:
        return f"{self.upstream_host.rstrip('/')}/{self.seoul_api_key}/xml/{self.upstream_service}"


def _get_int_env(name: str, default: int, minimum: int = 1) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc
    if value < minimum:
        raise ConfigError(f"{name} must be >= {minimum}, got {value}")
    return value


def _get_float_env(name: str, default: float, minimum: float = 0.0) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from exc
    if value < minimum:
        raise ConfigError(f"{name} must be >= {minimum}, got {value}")
    return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""
    load_dotenv()

    seoul_api_key = os.getenv("SEOUL_KEY", "").strip()
    upstream_host = os.getenv("SEOUL_API_HOST") or DEFAULT_UPSTREAM_HOST
    upstream_service = os.getenv("SEOUL_SERVICE") or DEFAULT_UPSTREAM_SERVICE

    if not seoul_api_key:
        logger.warning("SEOUL_KEY is not configured; upstream requests will fail.")

    return Settings(
        seoul_api_key=seoul_api_key,
        upstream_host=upstream_host,
        upstream_service=upstream_service,
        page_size=_get_int_env("PAGE_SIZE", 1000),
        proxy_page_size=_get_int_env("PROXY_PAGE_SIZE", 60),
        cache_ttl_seconds=_get_float_env("CACHE_TTL_SECONDS", 3600.0),
        page_delay_seconds=_get_float_env("PAGE_DELAY_SECONDS", 0.12),
        max_pages=_get_int_env("MAX_PAGES", 20),
        request_timeout=_get_float_env("REQUEST_TIMEOUT_SECONDS", 10.0, minimum=0.1),
        port=_get_int_env("PORT", 3000),
    )
