"""System/utility endpoints
"""

from __future__ import annotations

import logging

from fastapi import APIRouter
from pydantic import BaseModel

from app.settings import (
	APP_TITLE,
	APP_VERSION,
	FEED_PAGE_SIZE,
	LEADERBOARD_DEFAULT_LIMIT,
	LIVE_CHAT_MAX_SECONDS,
	NOTIFICATIONS_LIMIT,
	POSTS_PER_PAGE,
	PROBLEMS_PAGE_SIZE,
	PROTECTED_ROUTES,
	PUBLIC_ROUTES,
	SUPPORTED_LANGUAGES,
	UPLOAD_MAX_MB,
)
from domain.derivations import CHALLENGE_TABS, PROBLEM_SORTS, TIME_FRAMES

logger = logging.getLogger(__name__)

router = APIRouter(tags=["system"])


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str


@router.get("/health", response_model=HealthResponse)
async def health_check():
    return {"status": "healthy", "service": APP_TITLE, "version": APP_VERSION}

@router.get("/api/config")
async def get_config():
	return {
		"problems_page_size": PROBLEMS_PAGE_SIZE,
		"posts_per_page": POSTS_PER_PAGE,
		"feed_page_size": FEED_PAGE_SIZE,
		"notifications_limit": NOTIFICATIONS_LIMIT,
		"leaderboard_default_limit": LEADERBOARD_DEFAULT_LIMIT,
		"upload_max_mb": UPLOAD_MAX_MB,
		"live_chat_max_seconds": LIVE_CHAT_MAX_SECONDS,
		"supported_languages": SUPPORTED_LANGUAGES,
		"time_frames": list(TIME_FRAMES),
		"challenge_tabs": list(CHALLENGE_TABS),
		"problem_sorts": list(PROBLEM_SORTS),
		"routes": {"public": PUBLIC_ROUTES, "protected": PROTECTED_ROUTES},
	}


__all__ = ["router"]
