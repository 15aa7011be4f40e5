"""Login/logout flow around the backend auth endpoint and the token store."""

import json
from datetime import datetime, timezone
from typing import Any, Callable

from app.services.token_store import TOKEN_KEY, USER_KEY, KeyValueStore
from portal_client import AuthenticationRejected, LoginFailed, LoginResult, PortalClient


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class AuthService:
    """Persists the session returned by a successful login."""

    def __init__(
        self,
        client: PortalClient,
        store: KeyValueStore,
        now_iso: Callable[[], str] = _utc_now_iso,
    ):
        self.client = client
        self.store = store
        self._now_iso = now_iso

    def login(self, username: str, password: str) -> LoginResult:
        """Authenticate and store ``token`` and ``user``.

        Raises AuthenticationRejected or LoginFailed; the store is only
        written after a successful response.
        """
        try:
            result = self.client.login(username, password)
        except AuthenticationRejected as exc:
            print(f"[session] Login rejected for '{username}': {exc.message}", flush=True)
            raise
        except LoginFailed:
            print(f"[session] Login for '{username}' failed before a usable response", flush=True)
            raise

        user: dict[str, Any] = {**result.user, "loginTime": self._now_iso()}
        self.store.set(TOKEN_KEY, result.token)
        self.store.set(USER_KEY, json.dumps(user))
        print(f"[session] '{username}' logged in; redirect to {result.dashboard_route}", flush=True)
        return LoginResult(token=result.token, user=user, dashboard_route=result.dashboard_route)

    def logout(self):
        self.store.remove(TOKEN_KEY)
        self.store.remove(USER_KEY)

    def current_user(self) -> dict[str, Any] | None:
        raw = self.store.get(USER_KEY)
        if not raw:
            return None
        try:
            user = json.loads(raw)
        except ValueError:
            return None
        return user if isinstance(user, dict) else None
