"""
Tests for error handling, middleware and the health endpoint.
"""

from unittest.mock import Mock, patch

import pytest
from fastapi import HTTPException
from pydantic import BaseModel, ValidationError

from app.services.error_handler import ErrorHandler
from portal_client import AuthenticationRejected, BackendUnavailable, LoginFailed
from tests.test_base import BaseTestCase, fresh_token


def _request(correlation_id="corr-1"):
    request = Mock()
    request.state.correlation_id = correlation_id
    request.method = "POST"
    request.url = "http://testserver/api/session/login"
    request.client.host = "127.0.0.1"
    return request


class _Model(BaseModel):
    count: int


@pytest.mark.parametrize(
    "exc,status,code",
    [
        (AuthenticationRejected("Clave incorrecta", 401), 401, "AUTHENTICATION_REJECTED"),
        (LoginFailed(), 502, "LOGIN_FAILED"),
        (BackendUnavailable("down"), 502, "BACKEND_UNAVAILABLE"),
        (HTTPException(status_code=404, detail="missing"), 404, "HTTP_404"),
        (RuntimeError("boom"), 500, "INTERNAL_SERVER_ERROR"),
    ],
)
def test_handle_exception_maps_status_and_code(exc, status, code):
    response = ErrorHandler.handle_exception(exc, _request())
    assert response.status_code == status
    assert response.headers["X-Correlation-ID"] == "corr-1"
    assert code.encode() in response.body


def test_handle_exception_does_not_leak_internal_message():
    response = ErrorHandler.handle_exception(RuntimeError("db password=hunter2"), _request())
    assert b"hunter2" not in response.body


def test_validation_error_lists_field_errors():
    with pytest.raises(ValidationError) as info:
        _Model(count="many")
    body = ErrorHandler.format_validation_error(info.value, "corr-2", "2026-10-19T00:00:00Z")
    assert body["error_code"] == "VALIDATION_ERROR"
    assert "count" in body["field_errors"]


def test_log_error_generates_correlation_id(capsys):
    correlation_id = ErrorHandler.log_error(ValueError("bad"), {})
    out = capsys.readouterr().out
    assert correlation_id in out
    assert "[ERROR]" in out


def test_unauthorized_exception():
    exc = ErrorHandler.unauthorized()
    assert exc.status_code == 401
    assert exc.headers["WWW-Authenticate"] == "Bearer"


class TestMiddlewareAndHealth(BaseTestCase):
    def test_health(self):
        resp = self.client.get("/healthz")
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertTrue(body["ok"])
        self.assertEqual(body["cache"]["catalogs"]["maxsize"], 8)
        self.assertIn("timeout_seconds", body["http"])

    def test_correlation_id_header_is_added(self):
        resp = self.client.get("/healthz")
        self.assertTrue(resp.headers.get("X-Correlation-ID"))

    def test_incoming_correlation_id_is_echoed(self):
        resp = self.client.get("/healthz", headers={"X-Correlation-ID": "abc-123"})
        self.assertEqual(resp.headers["X-Correlation-ID"], "abc-123")

    def test_unsafe_correlation_id_is_replaced(self):
        resp = self.client.get("/healthz", headers={"X-Correlation-ID": "bad id; forged=1"})
        self.assertNotIn("forged", resp.headers["X-Correlation-ID"])
        self.assertEqual(len(resp.headers["X-Correlation-ID"]), 36)

    def test_request_log_omits_query_and_token(self):
        token = fresh_token()
        with patch("builtins.print") as printed:
            self.client.get(
                "/api/clients/suggest",
                params={"q": "secret-term"},
                headers={"Authorization": f"Bearer {token}"},
            )
        lines = [" ".join(str(arg) for arg in call.args) for call in printed.call_args_list]
        request_lines = [line for line in lines if line.startswith("[REQUEST]")]
        self.assertEqual(len(request_lines), 1)
        self.assertIn("/api/clients/suggest (bearer)", request_lines[0])
        self.assertNotIn("secret-term", request_lines[0])
        self.assertNotIn(token, "".join(lines))
