"""Global leaderboard endpoint."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session

from app.auth import get_user_id_from_authorization_header
from app.db import get_db
from app.settings import LEADERBOARD_DEFAULT_LIMIT
from domain.derivations import TIME_FRAMES
from domain.leaderboard import find_user_rank, select_leaderboard_strategy

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/leaderboard", tags=["leaderboard"])


@router.get("/global")
def global_leaderboard(
	time_frame: str = "all_time",
	limit: int = LEADERBOARD_DEFAULT_LIMIT,
	search: Optional[str] = None,
	db: Session = Depends(get_db),
	authorization: Optional[str] = Header(None),
):
	if time_frame not in TIME_FRAMES:
		raise HTTPException(status_code=400, detail=f"time_frame must be one of: {', '.join(TIME_FRAMES)}")
	limit = max(min(limit, 500), 1)

	strategy = None
	try:
		strategy = select_leaderboard_strategy(db)
		entries = strategy.fetch(db, time_frame=time_frame, limit=limit)
	except Exception as e:
		logger.error(f"Error fetching global leaderboard ({strategy.name if strategy else 'strategy selection'}): {e}")
		raise HTTPException(status_code=500, detail="Failed to load leaderboard. Please try again later.")

	# user_rank tính trên toàn bảng xếp hạng, trước khi lọc theo search
	user_rank = find_user_rank(entries, get_user_id_from_authorization_header(authorization))

	needle = (search or "").strip().lower()
	if needle:
		entries = [
			e for e in entries
			if needle in (e.profile.get("username") or "").lower()
			or needle in (e.profile.get("display_name") or "").lower()
		]

	return {
		"entries": [e.to_dict() for e in entries],
		"strategy": strategy.name,
		"time_frame": time_frame,
		"user_rank": user_rank,
	}


__all__ = ["router"]
