"""GoTrue (hosted auth) REST client.

Password sign-in, sign-up and sign-out are delegated to the hosted auth service;
this service never stores or hashes passwords itself.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from app.settings import SUPABASE_ANON_KEY, SUPABASE_URL
from .base import HttpClient, response_json

logger = logging.getLogger(__name__)


class AuthServiceError(Exception):
    """Hosted auth rejected the call. `message` is the service's own text."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _error_message(data: Any, fallback: str) -> str:
    if isinstance(data, dict):
        for key in ("error_description", "msg", "message", "error"):
            value = data.get(key)
            if isinstance(value, str) and value:
                return value
    return fallback


class SupabaseAuthClient(HttpClient):
    def __init__(self, base_url: str = SUPABASE_URL, anon_key: str = SUPABASE_ANON_KEY, **kwargs):
        super().__init__(f"{base_url.rstrip('/')}/auth/v1" if base_url else "", **kwargs)
        self.anon_key = anon_key

    def _headers(self, access_token: Optional[str] = None) -> Dict[str, str]:
        headers = {"apikey": self.anon_key, "Content-Type": "application/json"}
        headers["Authorization"] = f"Bearer {access_token or self.anon_key}"
        return headers

    def _post(self, path: str, body: Optional[Dict[str, Any]] = None, access_token: Optional[str] = None, params=None) -> Dict[str, Any]:
        if not self.base_url:
            raise AuthServiceError("Authentication service is not configured")
        try:
            response = self.request_json("POST", path, headers=self._headers(access_token), json=body, params=params)
        except httpx.HTTPError as e:
            logger.error(f"Auth service unreachable: {e}")
            raise AuthServiceError("Unable to reach the authentication service") from e

        data = response_json(response)
        if response.status_code >= 400:
            raise AuthServiceError(_error_message(data, response.reason_phrase), status_code=response.status_code)
        return data if isinstance(data, dict) else {}

    def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        """Returns the session: access_token, refresh_token, expires_in, user."""
        return self._post("/token", {"email": email, "password": password}, params={"grant_type": "password"})

    def sign_up(self, email: str, password: str, metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self._post("/signup", {"email": email, "password": password, "data": metadata or {}})

    def sign_out(self, access_token: str) -> None:
        self._post("/logout", access_token=access_token)
