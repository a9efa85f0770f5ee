"""
app/services/auth_service.py

Email/password authentication against the hosted backend's auth REST API
(`{SUPABASE_URL}/auth/v1`).

The client keeps no credentials of its own beyond the anonymous API key;
callers hold the `AuthSession` tokens and pass the access token back for
user-scoped calls.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

import requests

from app.config import get_backend_settings

logger = logging.getLogger(__name__)


class AuthError(RuntimeError):
    """
    Raised when the auth backend rejects a request or cannot be reached.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class AuthUser:
    id: str
    email: str
    name: str | None = None
    avatar_url: str | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> AuthUser:
        """
        Build a user from the backend user object. The display name falls
        back to the local part of the email address.
        """

        email = str(payload.get("email") or "")
        metadata = payload.get("user_metadata") or {}
        return cls(
            id=str(payload.get("id") or ""),
            email=email,
            name=metadata.get("name") or (email.split("@")[0] if email else None),
            avatar_url=metadata.get("avatar_url"),
        )


@dataclass(frozen=True)
class AuthSession:
    access_token: str
    refresh_token: str | None
    user: AuthUser
    expires_in: int | None = None


class AuthService:
    """
    Thin client for sign-in, sign-up, sign-out and profile calls.
    """

    def __init__(
        self,
        *,
        base_url: str,
        anon_key: str,
        timeout_seconds: float = 15.0,
        session: requests.Session | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._anon_key = anon_key
        self._timeout_seconds = timeout_seconds
        self._session = session or requests.Session()

    def sign_in(self, email: str, password: str) -> AuthSession:
        payload = self._request(
            "POST",
            "/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        session = self._session_from_payload(payload)
        logger.info("Signed in user_id=%s", session.user.id)
        return session

    def sign_up(self, email: str, password: str, name: str | None = None) -> AuthSession | None:
        """
        Register a new account. Returns None when the backend requires email
        confirmation before issuing a session.
        """

        payload = self._request(
            "POST",
            "/signup",
            json={
                "email": email,
                "password": password,
                "data": {"name": name or email.split("@")[0]},
            },
        )
        if not payload.get("access_token"):
            logger.info("Sign-up pending confirmation email=%s", email)
            return None
        return self._session_from_payload(payload)

    def sign_out(self, access_token: str) -> None:
        self._request("POST", "/logout", access_token=access_token)
        logger.info("Signed out")

    def get_user(self, access_token: str) -> AuthUser:
        return AuthUser.from_payload(self._request("GET", "/user", access_token=access_token))

    def update_profile(
        self,
        access_token: str,
        *,
        name: str | None = None,
        avatar_url: str | None = None,
    ) -> AuthUser:
        updates = {key: value for key, value in {"name": name, "avatar_url": avatar_url}.items() if value is not None}
        if not updates:
            raise ValueError("Nothing to update.")
        payload = self._request("PUT", "/user", access_token=access_token, json={"data": updates})
        return AuthUser.from_payload(payload)

    def reset_password(self, email: str, *, redirect_to: str | None = None) -> None:
        params = {"redirect_to": redirect_to} if redirect_to else None
        self._request("POST", "/recover", params=params, json={"email": email})

    @staticmethod
    def _session_from_payload(payload: dict[str, Any]) -> AuthSession:
        access_token = payload.get("access_token")
        user = payload.get("user")
        if not access_token or not isinstance(user, dict):
            raise AuthError("Auth response did not contain a session.")
        return AuthSession(
            access_token=str(access_token),
            refresh_token=payload.get("refresh_token"),
            user=AuthUser.from_payload(user),
            expires_in=payload.get("expires_in"),
        )

    def _request(
        self,
        method: str,
        path: str,
        *,
        access_token: str | None = None,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        headers = {
            "apikey": self._anon_key,
            "Authorization": f"Bearer {access_token or self._anon_key}",
            "Content-Type": "application/json",
        }
        url = f"{self._base_url}{path}"
        try:
            response = self._session.request(
                method=method,
                url=url,
                params=params,
                json=json,
                headers=headers,
                timeout=self._timeout_seconds,
            )
        except (requests.Timeout, requests.ConnectionError) as exc:
            logger.error("Auth request failed method=%s path=%s error=%s", method, path, exc)
            raise AuthError("Authentication service is unreachable.") from exc

        if response.status_code >= 400:
            message = _error_message(response)
            logger.warning(
                "Auth request rejected method=%s path=%s status=%s message=%s",
                method,
                path,
                response.status_code,
                message,
            )
            raise AuthError(message, status_code=response.status_code)

        if not response.content:
            return {}
        try:
            payload = response.json()
        except ValueError as exc:
            raise AuthError("Auth response was not valid JSON.") from exc
        return payload if isinstance(payload, dict) else {}


def _error_message(response: requests.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(payload, dict):
        for key in ("error_description", "msg", "message", "error"):
            if payload.get(key):
                return str(payload[key])
    return f"HTTP {response.status_code}"


@lru_cache(maxsize=1)
def get_auth_service() -> AuthService:
    """
    Build the auth client from SUPABASE_URL / SUPABASE_ANON_KEY.

    Raises RuntimeError when either is missing.
    """

    settings = get_backend_settings()
    if not settings.supabase_anon_key:
        raise RuntimeError("SUPABASE_ANON_KEY is not configured.")
    return AuthService(
        base_url=settings.auth_base_url,
        anon_key=settings.supabase_anon_key,
        timeout_seconds=settings.auth_timeout_seconds,
    )
