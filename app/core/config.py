"""Application configuration management."""

import os

from app.core import bootstrap  # noqa: F401  (loads .env before reading settings)


def _int_env(name: str, default: int) -> int:
    """Get integer environment variable with fallback."""
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    """Get float environment variable with fallback."""
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


def _api_host() -> str:
    """Backend base URL; taken as-is from the environment."""
    val = os.getenv("API_HOST") or os.getenv("NEXT_PUBLIC_API_HOST") or ""
    return val.rstrip("/")


class Config:
    """Application configuration."""

    # Backend
    API_HOST = _api_host()
    PORTAL_HTTP_TIMEOUT = max(1.0, _float_env("PORTAL_HTTP_TIMEOUT", 15.0))

    # Session storage
    TOKEN_STORE_PATH = os.getenv("TOKEN_STORE_PATH", ".portal_session.json")

    # Selector behaviour
    SELECTOR_BLUR_CLOSE_MS = max(0, _int_env("SELECTOR_BLUR_CLOSE_MS", 200))
    SELECTOR_MAX_OPTIONS = max(1, _int_env("SELECTOR_MAX_OPTIONS", 20))
    SEARCH_PLACEHOLDER = os.getenv("SEARCH_PLACEHOLDER", "Buscar clientes...")
    SELECT_PLACEHOLDER = os.getenv("SELECT_PLACEHOLDER", "Buscar cliente...")

    # Catalog cache
    CATALOG_CACHE_TTL = _int_env("CATALOG_CACHE_TTL", 60)
    CATALOG_CACHE_MAXSIZE = max(1, _int_env("CATALOG_CACHE_MAXSIZE", 8))


# Global configuration instance
config = Config()
