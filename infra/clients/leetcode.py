"""LeetCode statistics API client (profile, recent submissions, solved counts)."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List

import httpx

from app.settings import LEETCODE_API_BASE_URL
from .base import HttpClient, IntegrationError

logger = logging.getLogger(__name__)

STATUS_COLORS = {
    "Accepted": "text-green-500",
    "Wrong Answer": "text-red-500",
    "Time Limit Exceeded": "text-yellow-500",
    "Runtime Error": "text-orange-500",
    "Compile Error": "text-purple-500",
}

LANGUAGE_COLORS = {
    "java": "text-orange-400",
    "python": "text-blue-400",
    "javascript": "text-yellow-400",
    "typescript": "text-yellow-400",
    "cpp": "text-purple-400",
    "c++": "text-purple-400",
    "c#": "text-green-400",
    "csharp": "text-green-400",
    "go": "text-blue-300",
    "ruby": "text-red-400",
    "swift": "text-orange-500",
    "kotlin": "text-purple-500",
    "rust": "text-orange-600",
    "scala": "text-red-500",
    "mysql": "text-blue-500",
    "sql": "text-blue-500",
}


class LeetCodeClient(HttpClient):
    def __init__(self, base_url: str = LEETCODE_API_BASE_URL, **kwargs):
        super().__init__(base_url, **kwargs)

    def _get(self, path: str, username: str, what: str) -> Any:
        try:
            response = self.request_json("GET", path)
        except httpx.HTTPError as e:
            logger.error(f"LeetCode API unreachable: {e}")
            raise IntegrationError(
                "Network error: Unable to connect to LeetCode API. Please check your internet connection and try again."
            ) from e

        if response.status_code >= 400:
            detail = f"HTTP {response.status_code} {response.reason_phrase}".strip()
            logger.error(f"LeetCode API Error: {detail}")
            raise IntegrationError(
                f"Failed to fetch LeetCode {what}: {detail}. Please verify the username \"{username}\" exists on LeetCode.",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise IntegrationError(
                "Invalid response from LeetCode API. The service may be temporarily unavailable."
            ) from e

    def profile(self, username: str) -> Dict[str, Any]:
        return self._get(f"/{username}", username, "profile")

    def submissions(self, username: str, limit: int = 20) -> List[Dict[str, Any]]:
        data = self._get(f"/{username}/submission", username, "submissions")
        items = data.get("submission") if isinstance(data, dict) else None
        items = items or []
        return items[: max(int(limit), 0)]

    def solved(self, username: str) -> Dict[str, Any]:
        return self._get(f"/{username}/solved", username, "solved stats")


def format_leetcode_timestamp(timestamp: str) -> str:
    """Unix seconds -> 'Jan 5, 2024'."""
    moment = datetime.fromtimestamp(int(timestamp), tz=timezone.utc)
    return f"{moment.strftime('%b')} {moment.day}, {moment.year}"


def get_leetcode_status_color(status: str) -> str:
    return STATUS_COLORS.get(status, "text-gray-500")


def get_language_color(language: str) -> str:
    return LANGUAGE_COLORS.get((language or "").lower(), "text-gray-400")
