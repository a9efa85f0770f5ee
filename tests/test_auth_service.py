"""
tests/test_auth_service.py

Unit tests for app/services/auth_service.py with a mocked requests.Session.

Coverage
--------
- sign-in request shape (grant_type, apikey header) and session parsing
- sign-up with and without email confirmation
- user lookup sends the bearer token; display-name fallback
- backend error messages surfaced; network failures mapped to AuthError
"""

from __future__ import annotations

import json
import unittest
from unittest.mock import MagicMock

import requests

from app.services.auth_service import AuthError, AuthService, AuthUser

USER_PAYLOAD = {
    "id": "3f1c",
    "email": "dinas@jabarprov.go.id",
    "user_metadata": {"name": "Dinas Pariwisata"},
}


def _response(status: int, payload: object | None = None) -> requests.Response:
    response = requests.Response()
    response.status_code = status
    response._content = b"" if payload is None else json.dumps(payload).encode("utf-8")
    return response


class TestAuthService(unittest.TestCase):
    def setUp(self):
        self.http = MagicMock(spec=requests.Session)
        self.service = AuthService(
            base_url="https://example.supabase.co/auth/v1/",
            anon_key="anon-key",
            timeout_seconds=5.0,
            session=self.http,
        )

    def _last_call(self) -> dict:
        return self.http.request.call_args.kwargs

    def test_sign_in(self):
        self.http.request.return_value = _response(
            200,
            {"access_token": "tok", "refresh_token": "ref", "expires_in": 3600, "user": USER_PAYLOAD},
        )
        session = self.service.sign_in("dinas@jabarprov.go.id", "rahasia")

        call = self._last_call()
        self.assertEqual(call["method"], "POST")
        self.assertEqual(call["url"], "https://example.supabase.co/auth/v1/token")
        self.assertEqual(call["params"], {"grant_type": "password"})
        self.assertEqual(call["headers"]["apikey"], "anon-key")
        self.assertEqual(call["timeout"], 5.0)
        self.assertEqual(session.access_token, "tok")
        self.assertEqual(session.user.name, "Dinas Pariwisata")

    def test_sign_in_rejected(self):
        self.http.request.return_value = _response(
            400, {"error": "invalid_grant", "error_description": "Invalid login credentials"}
        )
        with self.assertRaises(AuthError) as ctx:
            self.service.sign_in("dinas@jabarprov.go.id", "salah")
        self.assertEqual(str(ctx.exception), "Invalid login credentials")
        self.assertEqual(ctx.exception.status_code, 400)

    def test_sign_up_pending_confirmation(self):
        self.http.request.return_value = _response(200, {"id": "3f1c", "email": "baru@example.com"})
        self.assertIsNone(self.service.sign_up("baru@example.com", "rahasia123"))
        self.assertEqual(self._last_call()["json"]["data"], {"name": "baru"})

    def test_sign_up_with_session(self):
        self.http.request.return_value = _response(200, {"access_token": "tok", "user": USER_PAYLOAD})
        session = self.service.sign_up("dinas@jabarprov.go.id", "rahasia123", name="Dinas")
        self.assertEqual(session.user.id, "3f1c")

    def test_get_user_sends_bearer_token(self):
        self.http.request.return_value = _response(200, {"id": "9", "email": "analis@example.com"})
        user = self.service.get_user("user-token")
        self.assertEqual(self._last_call()["headers"]["Authorization"], "Bearer user-token")
        self.assertEqual(user, AuthUser(id="9", email="analis@example.com", name="analis"))

    def test_sign_out_empty_body(self):
        self.http.request.return_value = _response(204)
        self.service.sign_out("user-token")
        self.assertEqual(self._last_call()["url"], "https://example.supabase.co/auth/v1/logout")

    def test_update_profile_requires_changes(self):
        with self.assertRaises(ValueError):
            self.service.update_profile("user-token")
        self.http.request.assert_not_called()

    def test_unreachable(self):
        self.http.request.side_effect = requests.ConnectionError("refused")
        with self.assertRaises(AuthError) as ctx:
            self.service.get_user("user-token")
        self.assertIsNone(ctx.exception.status_code)

    def test_non_json_error_body(self):
        response = _response(502)
        response._content = b"Bad Gateway"
        self.http.request.return_value = response
        with self.assertRaises(AuthError) as ctx:
            self.service.get_user("user-token")
        self.assertEqual(str(ctx.exception), "Bad Gateway")


if __name__ == "__main__":
    unittest.main()
