"""Client-side session validity.

The bearer token is never verified here (the signature belongs to the backend);
only its payload is decoded to learn when it expires.
"""

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable

import jwt

from app.services.token_store import TOKEN_KEY, KeyValueStore

# Claim checks are skipped; expiry is compared by is_token_valid itself.
_UNVERIFIED = {
    "verify_signature": False,
    "verify_exp": False,
    "verify_nbf": False,
    "verify_iat": False,
    "verify_aud": False,
    "verify_iss": False,
    "verify_sub": False,
    "verify_jti": False,
}


class MalformedToken(ValueError):
    """Raised when a token cannot be decoded into a JSON payload."""


@dataclass(frozen=True)
class SessionState:
    is_authenticated: bool = False
    loading: bool = True


def decode_token_payload(token: str) -> dict[str, Any]:
    """Decode the middle segment of a three-part token into a dict."""
    if not isinstance(token, str):
        raise MalformedToken("Token is not a string")
    parts = token.split(".")
    if len(parts) != 3 or not parts[1]:
        raise MalformedToken("Token does not have three segments")
    try:
        payload = jwt.decode(token, options=_UNVERIFIED)
    except jwt.InvalidTokenError as exc:
        raise MalformedToken(f"Token payload is not base64 JSON: {exc}") from exc
    except (ValueError, RecursionError) as exc:
        raise MalformedToken(f"Token payload could not be decoded: {type(exc).__name__}") from exc
    if not isinstance(payload, dict):
        raise MalformedToken("Token payload is not a JSON object")
    return payload


def _numeric_exp(payload: dict[str, Any]) -> float | None:
    exp = payload.get("exp")
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        return None
    return exp


def is_token_valid(token: str | None, now: float | None = None) -> bool:
    """Return True when the token carries a numeric ``exp`` strictly in the future."""
    if not token:
        return False
    try:
        payload = decode_token_payload(token)
    except MalformedToken:
        return False
    exp = _numeric_exp(payload)
    if exp is None:
        return False
    current = time.time() if now is None else now
    return exp > current


def seconds_remaining(token: str | None, now: float | None = None) -> int:
    """Whole seconds until expiry, 0 for invalid or expired tokens."""
    if not is_token_valid(token, now):
        return 0
    exp = _numeric_exp(decode_token_payload(token))
    current = time.time() if now is None else now
    return max(0, int(exp - current))


Listener = Callable[[SessionState], None]


class SessionChecker:
    """Reactive wrapper around :func:`is_token_valid`.

    ``mount()`` reads the stored token once and publishes the result; until
    then the state is ``loading``. Later checks only happen through an explicit
    ``revalidate()``.
    """

    def __init__(self, store: KeyValueStore, clock: Callable[[], float] = time.time):
        self._store = store
        self._clock = clock
        self._state = SessionState()
        self._listeners: list[Listener] = []
        self._lock = threading.Lock()
        self._mounted = False

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_authenticated(self) -> bool:
        return self._state.is_authenticated

    @property
    def loading(self) -> bool:
        return self._state.loading

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _evaluate(self) -> bool:
        token = self._store.get(TOKEN_KEY)
        return is_token_valid(token, self._clock())

    def _publish(self, new_state: SessionState):
        with self._lock:
            if new_state == self._state:
                return
            self._state = new_state
            listeners = list(self._listeners)
        for listener in listeners:
            listener(new_state)

    def mount(self) -> SessionState:
        with self._lock:
            if self._mounted:
                return self._state
            self._mounted = True
        self._publish(SessionState(is_authenticated=self._evaluate(), loading=False))
        return self._state

    def revalidate(self) -> SessionState:
        """Re-read the stored token; mounts first when needed."""
        with self._lock:
            mounted = self._mounted
        if not mounted:
            return self.mount()
        authenticated = self._evaluate()
        if self._state.is_authenticated and not authenticated:
            print("[session] Stored session is no longer valid", flush=True)
        self._publish(SessionState(is_authenticated=authenticated, loading=False))
        return self._state

    def seconds_remaining(self) -> int:
        return seconds_remaining(self._store.get(TOKEN_KEY), self._clock())
