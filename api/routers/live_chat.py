"""Live AI video chat sessions (Tavus), capped at LIVE_CHAT_MAX_SECONDS."""

import logging
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException

from app.auth import get_current_user_id
from app.settings import LIVE_CHAT_MAX_SECONDS
from infra.clients import IntegrationError, TavusClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/live-chat", tags=["live-chat"])


def get_tavus_client() -> TavusClient:
	return TavusClient()


@router.post("/sessions")
def create_session(user_id: str = Depends(get_current_user_id), client: TavusClient = Depends(get_tavus_client)):
	try:
		data = client.create_conversation()
	except IntegrationError as e:
		logger.error(f"Live chat session for {user_id} failed: {e.message}")
		raise HTTPException(status_code=502, detail=e.message)

	created_at = datetime.now(timezone.utc)
	return {
		"conversation_id": data.get("conversation_id"),
		"conversation_url": data.get("conversation_url"),
		"status": data.get("status", "active"),
		"created_at": created_at.isoformat(),
		"expires_at": (created_at + timedelta(seconds=LIVE_CHAT_MAX_SECONDS)).isoformat(),
		"max_duration_seconds": LIVE_CHAT_MAX_SECONDS,
	}


@router.get("/sessions/{conversation_id}")
def get_session(conversation_id: str, user_id: str = Depends(get_current_user_id), client: TavusClient = Depends(get_tavus_client)):
	try:
		return client.get_conversation(conversation_id)
	except IntegrationError as e:
		logger.warning(f"Live chat session {conversation_id} lookup failed: {e.message}")
		if e.status_code == 404:
			raise HTTPException(status_code=404, detail=e.message)
		raise HTTPException(status_code=502, detail=e.message)


@router.post("/sessions/{conversation_id}/end")
def end_session(conversation_id: str, user_id: str = Depends(get_current_user_id), client: TavusClient = Depends(get_tavus_client)):
	try:
		client.end_conversation(conversation_id)
	except IntegrationError as e:
		logger.error(f"Ending live chat session {conversation_id} failed: {e.message}")
		raise HTTPException(status_code=502, detail=e.message)
	return {"success": True, "conversation_id": conversation_id}


__all__ = ["router", "get_tavus_client"]
