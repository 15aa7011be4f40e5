"""FastAPI dependency injection setup."""

from functools import lru_cache

from fastapi import Depends, Header, HTTPException

from app.core.config import config
from app.services.auth import AuthService
from app.services.catalog import CatalogCache, ClientCatalog
from app.services.error_handler import ErrorHandler
from app.services.session import SessionChecker, is_token_valid
from app.services.token_store import JsonFileTokenStore, KeyValueStore
from portal_client import PortalClient


@lru_cache()
def get_catalog_cache() -> CatalogCache:
    """Get client catalog cache instance."""
    return CatalogCache(
        ttl_seconds=config.CATALOG_CACHE_TTL,
        maxsize=config.CATALOG_CACHE_MAXSIZE,
    )


@lru_cache()
def get_token_store() -> KeyValueStore:
    """Process-wide persistent token store."""
    return JsonFileTokenStore(config.TOKEN_STORE_PATH)


def get_portal_client() -> PortalClient:
    """Get backend client instance."""
    if not config.API_HOST:
        raise HTTPException(status_code=500, detail="Server missing API_HOST")
    return PortalClient(base_url=config.API_HOST, timeout=config.PORTAL_HTTP_TIMEOUT)


def get_auth_service(
    client: PortalClient = Depends(get_portal_client),
    store: KeyValueStore = Depends(get_token_store),
) -> AuthService:
    return AuthService(client=client, store=store)


def get_session_checker(store: KeyValueStore = Depends(get_token_store)) -> SessionChecker:
    checker = SessionChecker(store)
    checker.mount()
    return checker


def get_client_catalog(
    client: PortalClient = Depends(get_portal_client),
    cache: CatalogCache = Depends(get_catalog_cache),
) -> ClientCatalog:
    return ClientCatalog(client=client, cache=cache)


def _bearer(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() != "bearer" or not credentials.strip():
        return None
    return credentials.strip()


def require_session(authorization: str | None = Header(default=None)) -> str:
    """Validate the caller's bearer token on every protected request."""
    token = _bearer(authorization)
    if not is_token_valid(token):
        raise ErrorHandler.unauthorized()
    return token
