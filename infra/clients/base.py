"""Shared plumbing for the outbound HTTP clients."""

import logging
from typing import Any, Dict, Optional

import httpx

from app.settings import HTTP_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


class IntegrationError(Exception):
    """A third-party call failed; the message is safe to show to the user."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class HttpClient:
    """Thin httpx wrapper; `transport` lets tests plug in `httpx.MockTransport`."""

    def __init__(self, base_url: str = "", timeout: float = HTTP_TIMEOUT_SECONDS, transport: Optional[httpx.BaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def _client(self, headers: Optional[Dict[str, str]] = None) -> httpx.Client:
        return httpx.Client(timeout=self.timeout, transport=self.transport, headers=headers)

    def _url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        if not path:
            return self.base_url
        return f"{self.base_url}/{path.lstrip('/')}"

    def request_json(self, method: str, path: str, headers: Optional[Dict[str, str]] = None, **kwargs) -> httpx.Response:
        with self._client(headers) as client:
            return client.request(method, self._url(path), **kwargs)


def response_json(response: httpx.Response) -> Any:
    """Decoded body, or `{}` when the body is not JSON."""
    try:
        return response.json()
    except ValueError:
        return {}
