"""
Tests for the session API: login, logout and status.
"""

import json

from portal_client import AuthenticationRejected, LoginFailed, LoginResult
from tests.test_base import BaseAPITestCase, BaseTestCase, expired_token, fresh_token


class TestLoginEndpoint(BaseTestCase):
    def test_login_success_stores_session(self):
        token = fresh_token()
        self.mock_client.login.return_value = LoginResult(
            token=token, user={"username": "ana"}, dashboard_route="/pages/cajero"
        )

        resp = self.client.post("/api/session/login", json={"username": " ana ", "password": "secret"})

        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["dashboard_route"], "/pages/cajero")
        self.assertEqual(body["user"]["username"], "ana")
        self.assertIn("loginTime", body["user"])
        self.assertEqual(body["token"], token)
        self.mock_client.login.assert_called_once_with("ana", "secret")
        self.assertIsNotNone(self.store.get("token"))
        self.assertIn("loginTime", json.loads(self.store.get("user")))

    def test_login_rejected_returns_backend_message(self):
        self.mock_client.login.side_effect = AuthenticationRejected("Usuario no encontrado", 401)

        resp = self.client.post("/api/session/login", json={"username": "ana", "password": "x"})

        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json()["detail"], "Usuario no encontrado")
        self.assertEqual(resp.json()["error_code"], "AUTHENTICATION_REJECTED")
        self.assertIn("X-Correlation-ID", resp.headers)
        self.assertIsNone(self.store.get("token"))

    def test_login_network_failure_returns_generic_message(self):
        self.mock_client.login.side_effect = LoginFailed()

        resp = self.client.post("/api/session/login", json={"username": "ana", "password": "x"})

        self.assertEqual(resp.status_code, 502)
        self.assertEqual(resp.json()["detail"], "Error al iniciar sesión")
        self.assertEqual(self.mock_client.login.call_count, 1)

    def test_login_validates_payload(self):
        resp = self.client.post("/api/session/login", json={"username": "   ", "password": ""})
        self.assertEqual(resp.status_code, 422)
        self.mock_client.login.assert_not_called()


class TestStatusAndLogout(BaseTestCase):
    def test_status_without_token(self):
        resp = self.client.get("/api/session/status")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"is_authenticated": False, "loading": False, "seconds_remaining": 0})

    def test_status_with_valid_token(self):
        self.store.set("token", fresh_token(600))
        body = self.client.get("/api/session/status").json()
        self.assertTrue(body["is_authenticated"])
        self.assertFalse(body["loading"])
        self.assertGreater(body["seconds_remaining"], 500)

    def test_status_with_expired_token(self):
        self.store.set("token", expired_token())
        body = self.client.get("/api/session/status").json()
        self.assertFalse(body["is_authenticated"])

    def test_status_with_malformed_token(self):
        self.store.set("token", "not-a-token")
        resp = self.client.get("/api/session/status")
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(resp.json()["is_authenticated"])


class TestLogout(BaseAPITestCase):
    def test_logout_clears_own_session(self):
        self.store.set("user", "{}")
        resp = self.client.post("/api/session/logout", headers=self.auth_headers())
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.json()["success"])
        self.assertIsNone(self.store.get("token"))
        self.assertIsNone(self.store.get("user"))

    def test_logout_requires_bearer_token(self):
        resp = self.client.post("/api/session/logout")
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(self.store.get("token"), self.token)

    def test_logout_with_other_token_keeps_stored_session(self):
        other = fresh_token(7200)
        resp = self.client.post("/api/session/logout", headers=self.auth_headers(other))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(self.store.get("token"), self.token)
