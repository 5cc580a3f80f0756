"""Tavus live video-chat API: short AI assistant sessions embedded by iframe."""

import logging
import time
from typing import Any, Dict, Optional

import httpx

from app.settings import LIVE_CHAT_MAX_SECONDS, TAVUS_API_KEY, TAVUS_API_URL, TAVUS_REPLICA_ID
from .base import HttpClient, IntegrationError, response_json

logger = logging.getLogger(__name__)

ASSISTANT_CONTEXT = (
    "You are Taurus, an expert AI coding assistant. Help users with programming questions, code reviews, "
    "debugging, and technical advice. Keep responses conversational and engaging since this is a live video "
    "chat. Always respond to user questions and provide helpful coding assistance."
)


class TavusClient(HttpClient):
    def __init__(
        self,
        base_url: str = TAVUS_API_URL,
        api_key: str = TAVUS_API_KEY,
        replica_id: str = TAVUS_REPLICA_ID,
        max_call_seconds: int = LIVE_CHAT_MAX_SECONDS,
        **kwargs,
    ):
        super().__init__(base_url, **kwargs)
        self.api_key = api_key
        self.replica_id = replica_id
        self.max_call_seconds = max_call_seconds

    def _headers(self) -> Dict[str, str]:
        if not self.api_key:
            raise IntegrationError("Tavus API key not configured")
        return {"Content-Type": "application/json", "x-api-key": self.api_key}

    def _call(self, method: str, path: str, json: Optional[Dict[str, Any]] = None) -> httpx.Response:
        headers = self._headers()
        try:
            return self.request_json(method, path, headers=headers, json=json)
        except httpx.HTTPError as e:
            logger.error(f"Tavus API unreachable: {e}")
            raise IntegrationError("Unable to reach the live chat service") from e

    def create_conversation(self) -> Dict[str, Any]:
        payload = {
            "replica_id": self.replica_id,
            "conversation_name": f"Taurus AI Chat - {int(time.time() * 1000)}",
            "conversational_context": ASSISTANT_CONTEXT,
            "properties": {
                "max_call_duration": self.max_call_seconds,
                "participant_left_timeout": 30,
                "participant_absent_timeout": 60,
                "enable_recording": False,
                "enable_closed_captions": True,
                "apply_greenscreen": False,
                "language": "english",
            },
        }
        response = self._call("POST", "/conversations", json=payload)
        data = response_json(response)
        if response.status_code >= 400:
            message = data.get("message") if isinstance(data, dict) else None
            raise IntegrationError(
                f"Failed to create conversation: {message or response.reason_phrase}",
                status_code=response.status_code,
            )
        return data

    def get_conversation(self, conversation_id: str) -> Dict[str, Any]:
        response = self._call("GET", f"/conversations/{conversation_id}")
        if response.status_code >= 400:
            raise IntegrationError("Conversation not found", status_code=response.status_code)
        return response_json(response)

    def end_conversation(self, conversation_id: str) -> None:
        response = self._call("POST", f"/conversations/{conversation_id}/end")
        if response.status_code >= 400:
            raise IntegrationError("Failed to end conversation", status_code=response.status_code)
