"""GeeksforGeeks problem-of-the-day and CodeChef contest list proxies.

Both are read-only GETs whose payloads are passed through as-is; the routers
turn failures into an empty placeholder instead of an error page.
"""

import logging
from typing import Any, Dict

import httpx

from app.settings import CODECHEF_CONTESTS_URL, GFG_POTD_URL, SUPABASE_ANON_KEY
from .base import HttpClient, IntegrationError

logger = logging.getLogger(__name__)


class _ProxyClient(HttpClient):
    source = "proxy"

    def _proxy_headers(self) -> Dict[str, str]:
        # Edge functions on the hosted backend want the anon key.
        if SUPABASE_ANON_KEY:
            return {"Authorization": f"Bearer {SUPABASE_ANON_KEY}", "apikey": SUPABASE_ANON_KEY}
        return {}

    def fetch(self) -> Dict[str, Any]:
        if not self.base_url:
            raise IntegrationError(f"{self.source} endpoint is not configured")
        try:
            response = self.request_json("GET", "", headers=self._proxy_headers())
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"{self.source} fetch failed: {e}")
            raise IntegrationError(f"Failed to fetch {self.source} data") from e
        if not isinstance(data, dict):
            raise IntegrationError(f"Unexpected {self.source} response")
        return data


class GfgClient(_ProxyClient):
    source = "GeeksforGeeks problem of the day"

    def __init__(self, base_url: str = GFG_POTD_URL, **kwargs):
        super().__init__(base_url, **kwargs)

    def problem_of_the_day(self) -> Dict[str, Any]:
        return self.fetch()


class CodeChefClient(_ProxyClient):
    source = "CodeChef contests"

    def __init__(self, base_url: str = CODECHEF_CONTESTS_URL, **kwargs):
        super().__init__(base_url, **kwargs)

    def contests(self) -> Dict[str, Any]:
        data = self.fetch()
        return {
            "future_contests": list(data.get("future_contests") or []),
            "past_contests": list(data.get("past_contests") or []),
        }
