"""Application configuration helpers."""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

from listing_search.core.errors import ConfigError

logger = logging.getLogger(__name__)

BACKENDS = {"memory", "postgres"}


@dataclass(frozen=True)
class Settings:
    backend: str = "memory"
    database_url: str = ""
    server_port: int = 8080
    search_timeout_ms: int = 5000
    default_page_size: int = 10
    seed_sample_data: bool = False


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""
    load_dotenv()

    backend = os.getenv("LISTINGS_BACKEND", "memory").strip().lower()
    if backend not in BACKENDS:
        raise ConfigError(f"LISTINGS_BACKEND must be one of {sorted(BACKENDS)}, got {backend!r}")

    database_url = os.getenv("DATABASE_URL", "")
    server_port = _int_env("SERVER_PORT", _int_env("PORT", 8080))
    search_timeout_ms = _int_env("SEARCH_TIMEOUT_MS", 5000)
    default_page_size = _int_env("DEFAULT_PAGE_SIZE", 10)
    seed_sample_data = os.getenv("SEED_SAMPLE_DATA", "false").lower() in {"1", "true", "yes"}

    if default_page_size < 1:
        raise ConfigError("DEFAULT_PAGE_SIZE must be at least 1")
    if backend == "postgres" and not database_url:
        logger.warning("DATABASE_URL is not set; postgres listing store will fail.")
    if backend == "memory":
        logger.warning("Using in-memory listing store; data is lost on restart.")

    return Settings(
        backend=backend,
        database_url=database_url,
        server_port=server_port,
        search_timeout_ms=search_timeout_ms,
        default_page_size=default_page_size,
        seed_sample_data=seed_sample_data,
    )
