import contextlib
import contextvars
import os
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import requests


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except (TypeError, ValueError):
        return default


DEFAULT_HTTP_TIMEOUT = _env_float("PORTAL_HTTP_TIMEOUT", 15.0)
LOGIN_FALLBACK_MESSAGE = "Error al iniciar sesión"


# --- Telemetry helpers ---
_telemetry_ctx: contextvars.ContextVar[dict | None] = contextvars.ContextVar(
    "portal_client_telemetry", default=None
)


@contextlib.contextmanager
def capture_telemetry():
    """Capture backend call telemetry for the current context."""
    data = {"api_calls": []}
    token = _telemetry_ctx.set(data)
    try:
        yield data
    finally:
        _telemetry_ctx.reset(token)


def record_api_call(
    kind: str, endpoint: str, elapsed_ms: float, status: str, error: str | None = None
):
    telemetry = _telemetry_ctx.get()
    if not telemetry:
        return
    telemetry.setdefault("api_calls", []).append(
        {
            "kind": kind,
            "endpoint": endpoint,
            "elapsed_ms": round(elapsed_ms, 2),
            "status": status,
            "error": error,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
    )


class AuthenticationRejected(Exception):
    """Raised when the backend answers the login call with a non-2xx status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class LoginFailed(Exception):
    """Raised when the login call fails at the network or parsing level."""

    def __init__(self, message: str = LOGIN_FALLBACK_MESSAGE):
        super().__init__(message)
        self.message = message


class BackendUnavailable(Exception):
    """Raised when a catalog read cannot be completed."""


@dataclass(slots=True)
class LoginResult:
    token: str
    user: dict[str, Any]
    dashboard_route: str


def api_get(
    session: requests.Session,
    base_url: str,
    endpoint: str,
    *,
    timeout: float | None = None,
):
    """GET a backend resource. Single attempt, no retries."""
    url = f"{base_url}/api/{endpoint}"
    start = time.perf_counter()
    try:
        r = session.get(url, timeout=timeout or DEFAULT_HTTP_TIMEOUT)
        r.raise_for_status()
        data = r.json()
    except (requests.exceptions.RequestException, ValueError) as exc:
        record_api_call(
            "GET",
            endpoint,
            (time.perf_counter() - start) * 1000.0,
            "error",
            str(exc),
        )
        raise BackendUnavailable(f"GET '{endpoint}' failed: {exc}") from exc
    record_api_call("GET", endpoint, (time.perf_counter() - start) * 1000.0, "ok")
    return data


def post_login(
    session: requests.Session,
    base_url: str,
    username: str,
    password: str,
    *,
    timeout: float | None = None,
) -> LoginResult:
    """POST credentials to the auth endpoint and parse the session payload."""
    endpoint = "auth/login"
    url = f"{base_url}/api/{endpoint}"
    start = time.perf_counter()
    try:
        r = session.post(
            url,
            json={"username": username, "password": password},
            timeout=timeout or DEFAULT_HTTP_TIMEOUT,
        )
        data = r.json()
    except (requests.exceptions.RequestException, ValueError) as exc:
        record_api_call(
            "POST",
            endpoint,
            (time.perf_counter() - start) * 1000.0,
            "error",
            str(exc),
        )
        raise LoginFailed() from exc

    if not r.ok:
        message = None
        if isinstance(data, dict):
            message = data.get("message")
        record_api_call(
            "POST",
            endpoint,
            (time.perf_counter() - start) * 1000.0,
            "rejected",
            f"HTTP {r.status_code}",
        )
        raise AuthenticationRejected(message or LOGIN_FALLBACK_MESSAGE, r.status_code)

    if not isinstance(data, dict) or not isinstance(data.get("token"), str):
        record_api_call(
            "POST",
            endpoint,
            (time.perf_counter() - start) * 1000.0,
            "error",
            "malformed login response",
        )
        raise LoginFailed()

    record_api_call("POST", endpoint, (time.perf_counter() - start) * 1000.0, "ok")
    user = data.get("user")
    return LoginResult(
        token=data["token"],
        user=user if isinstance(user, dict) else {},
        dashboard_route=str(data.get("dashboardRoute") or "/"),
    )


def _as_options(rows: Any, endpoint: str) -> list[dict[str, Any]]:
    if not isinstance(rows, list):
        raise BackendUnavailable(f"Unexpected payload for '{endpoint}': {type(rows).__name__}")
    options: list[dict[str, Any]] = []
    for row in rows:
        if not isinstance(row, dict):
            continue
        try:
            client_id = int(row["id"])
        except (KeyError, TypeError, ValueError):
            continue
        options.append({"id": client_id, "nombre": str(row.get("nombre") or "")})
    return options


def get_clients(session, base_url, *, timeout: float | None = None):
    return _as_options(api_get(session, base_url, "clientes", timeout=timeout), "clientes")


def get_tv_clients(session, base_url, *, timeout: float | None = None):
    return _as_options(api_get(session, base_url, "tv/clientes", timeout=timeout), "tv/clientes")


@dataclass(slots=True)
class PortalClient:
    """Backend client sharing one base URL and timeout."""

    base_url: str
    timeout: float = DEFAULT_HTTP_TIMEOUT

    def make_session(self) -> requests.Session:
        sess = requests.Session()
        sess.headers["Content-Type"] = "application/json"
        return sess

    def login(self, username: str, password: str) -> LoginResult:
        with self.make_session() as session:
            return post_login(
                session,
                self.base_url,
                username,
                password,
                timeout=self.timeout,
            )

    def get_clients(self):
        with self.make_session() as session:
            return get_clients(session, self.base_url, timeout=self.timeout)

    def get_tv_clients(self):
        with self.make_session() as session:
            return get_tv_clients(session, self.base_url, timeout=self.timeout)
