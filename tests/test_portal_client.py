import pytest
import requests

from portal_client import (
    AuthenticationRejected,
    BackendUnavailable,
    LoginFailed,
    PortalClient,
    api_get,
    capture_telemetry,
    get_clients,
    post_login,
)


class FakeResponse:
    def __init__(self, status_code, payload=None, raise_on_json=False):
        self.status_code = status_code
        self._payload = payload
        self._raise_on_json = raise_on_json

    @property
    def ok(self):
        return self.status_code < 400

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(response=self)

    def json(self):
        if self._raise_on_json:
            raise ValueError("Expecting value")
        return self._payload


class FakeSession:
    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc
        self.calls = []

    def _answer(self):
        if self.exc is not None:
            raise self.exc
        return self.response

    def get(self, url, timeout=None):
        self.calls.append(("GET", url, None, timeout))
        return self._answer()

    def post(self, url, json=None, timeout=None):
        self.calls.append(("POST", url, json, timeout))
        return self._answer()


def test_post_login_returns_session_payload():
    session = FakeSession(
        FakeResponse(200, {"token": "t.k.n", "user": {"username": "ana"}, "dashboardRoute": "/pages/admin"})
    )

    with capture_telemetry() as telemetry:
        result = post_login(session, "http://api", "ana", "secret", timeout=3)

    assert result.token == "t.k.n"
    assert result.user == {"username": "ana"}
    assert result.dashboard_route == "/pages/admin"
    assert session.calls == [
        ("POST", "http://api/api/auth/login", {"username": "ana", "password": "secret"}, 3)
    ]
    assert [c["status"] for c in telemetry["api_calls"]] == ["ok"]


def test_post_login_surfaces_backend_message_verbatim():
    session = FakeSession(FakeResponse(401, {"message": "Usuario o contraseña incorrectos"}))

    with pytest.raises(AuthenticationRejected) as info:
        post_login(session, "http://api", "ana", "bad")

    assert info.value.message == "Usuario o contraseña incorrectos"
    assert info.value.status_code == 401


def test_post_login_rejection_without_message_uses_fallback():
    session = FakeSession(FakeResponse(403, {}))
    with pytest.raises(AuthenticationRejected) as info:
        post_login(session, "http://api", "ana", "bad")
    assert info.value.message == "Error al iniciar sesión"


def test_post_login_network_error_is_login_failed():
    session = FakeSession(exc=requests.exceptions.ConnectionError("refused"))
    with capture_telemetry() as telemetry:
        with pytest.raises(LoginFailed) as info:
            post_login(session, "http://api", "ana", "secret")
    assert info.value.message == "Error al iniciar sesión"
    assert len(session.calls) == 1
    assert telemetry["api_calls"][0]["status"] == "error"


def test_post_login_unparseable_body_is_login_failed():
    session = FakeSession(FakeResponse(502, raise_on_json=True))
    with pytest.raises(LoginFailed):
        post_login(session, "http://api", "ana", "secret")


def test_post_login_success_without_token_is_login_failed():
    session = FakeSession(FakeResponse(200, {"user": {}}))
    with pytest.raises(LoginFailed):
        post_login(session, "http://api", "ana", "secret")


def test_api_get_does_not_retry():
    session = FakeSession(FakeResponse(503, {"message": "down"}))
    with pytest.raises(BackendUnavailable):
        api_get(session, "http://api", "clientes")
    assert len(session.calls) == 1


def test_get_clients_maps_to_options():
    rows = [
        {"id": 1, "nombre": "Ana Lopez", "direccion": "x"},
        {"id": "2", "nombre": "Beto Cruz"},
        {"nombre": "sin id"},
        "garbage",
    ]
    session = FakeSession(FakeResponse(200, rows))
    assert get_clients(session, "http://api") == [
        {"id": 1, "nombre": "Ana Lopez"},
        {"id": 2, "nombre": "Beto Cruz"},
    ]
    assert session.calls[0][1] == "http://api/api/clientes"


def test_get_clients_rejects_non_list_payload():
    session = FakeSession(FakeResponse(200, {"error": "nope"}))
    with pytest.raises(BackendUnavailable):
        get_clients(session, "http://api")


def test_portal_client_uses_fresh_session(monkeypatch):
    fake = FakeSession(FakeResponse(200, [{"id": 7, "nombre": "Carla"}]))

    class ContextSession(FakeSession):
        def __enter__(self):
            return fake

        def __exit__(self, *exc):
            return False

    client = PortalClient("http://api", timeout=4)
    monkeypatch.setattr(PortalClient, "make_session", lambda self: ContextSession())

    assert client.get_tv_clients() == [{"id": 7, "nombre": "Carla"}]
    assert fake.calls == [("GET", "http://api/api/tv/clientes", None, 4)]


def test_telemetry_is_scoped_to_context():
    session = FakeSession(FakeResponse(200, []))
    with capture_telemetry() as telemetry:
        api_get(session, "http://api", "clientes")
    api_get(session, "http://api", "clientes")
    assert len(telemetry["api_calls"]) == 1
