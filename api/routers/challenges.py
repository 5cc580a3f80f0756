"""Coding challenges: listing with status badges, details, creation and per-challenge leaderboard."""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status
from pydantic import BaseModel
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.auth import get_current_user_id, get_user_id_from_authorization_header
from app.db import get_db
from domain.derivations import (
	CHALLENGE_BADGE_COLORS,
	CHALLENGE_TABS,
	apply_filters,
	as_utc,
	by_category,
	by_search,
	challenge_status,
	challenge_tab_matches,
	get_difficulty_color,
)
from domain.models import CodingChallenge, CodingChallengeLeaderboard, CodingChallengeProblem, Problem
from .problems import problem_to_dict

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/challenges", tags=["challenges"])


class ChallengeCreateRequest(BaseModel):
	title: str
	description: str = ""
	difficulty: str = "medium"
	category: Optional[str] = None
	tags: List[str] = []
	start_date: Optional[datetime] = None
	end_date: Optional[datetime] = None
	is_active: bool = True
	problem_ids: List[str] = []


def _iso(value) -> Optional[str]:
	value = as_utc(value)
	return value.isoformat() if value is not None else None


def challenge_to_dict(challenge: CodingChallenge, problems_count: int = 0, participants_count: int = 0) -> Dict[str, Any]:
	badge = challenge_status(challenge.is_active, challenge.start_date, challenge.end_date)
	return {
		"id": challenge.id,
		"title": challenge.title,
		"description": challenge.description,
		"difficulty": challenge.difficulty,
		"difficulty_color": get_difficulty_color(challenge.difficulty),
		"category": challenge.category,
		"tags": list(challenge.tags or []),
		"start_date": _iso(challenge.start_date),
		"end_date": _iso(challenge.end_date),
		"is_active": bool(challenge.is_active),
		"created_by": challenge.created_by,
		"creator": challenge.creator.snapshot() if challenge.creator else None,
		"created_at": _iso(challenge.created_at),
		"status": badge,
		"status_color": CHALLENGE_BADGE_COLORS[badge],
		"problems_count": problems_count,
		"participants_count": participants_count,
	}


def _counts(db: Session, column, key_column, ids: List[str]) -> Dict[str, int]:
	if not ids:
		return {}
	rows = db.query(key_column, func.count(column)).filter(key_column.in_(ids)).group_by(key_column).all()
	return {key: int(count) for key, count in rows}


@router.get("")
def list_challenges(
	category: Optional[str] = None,
	is_active: Optional[bool] = None,
	search: Optional[str] = None,
	tab: str = "all",
	db: Session = Depends(get_db),
):
	if tab not in CHALLENGE_TABS:
		raise HTTPException(status_code=400, detail=f"tab must be one of: {', '.join(CHALLENGE_TABS)}")

	q = db.query(CodingChallenge)
	if is_active is not None:
		q = q.filter(CodingChallenge.is_active.is_(is_active))

	try:
		challenges = q.order_by(CodingChallenge.created_at.desc()).all()
	except Exception as e:
		logger.error(f"Error fetching challenges: {e}")
		raise HTTPException(status_code=500, detail="Failed to fetch challenges")

	challenges = apply_filters(challenges, [
		by_category(category),
		by_search(search),
		lambda c: challenge_tab_matches(c.is_active, c.start_date, c.end_date, tab),
	])

	ids = [c.id for c in challenges]
	problems = _counts(db, CodingChallengeProblem.id, CodingChallengeProblem.challenge_id, ids)
	participants = _counts(db, CodingChallengeLeaderboard.id, CodingChallengeLeaderboard.challenge_id, ids)

	return {
		"items": [challenge_to_dict(c, problems.get(c.id, 0), participants.get(c.id, 0)) for c in challenges],
		"total": len(challenges),
	}


@router.get("/{challenge_id}")
def get_challenge(challenge_id: str, db: Session = Depends(get_db)):
	challenge = db.query(CodingChallenge).filter(CodingChallenge.id == challenge_id).first()
	if not challenge:
		raise HTTPException(status_code=404, detail="Challenge not found")

	participants = (
		db.query(func.count(CodingChallengeLeaderboard.id))
		.filter(CodingChallengeLeaderboard.challenge_id == challenge_id)
		.scalar()
	)

	problems = []
	for link in challenge.problem_links:
		if link.problem is None:
			continue
		item = problem_to_dict(link.problem)
		item["order_index"] = link.order_index
		item["points_multiplier"] = link.points_multiplier
		problems.append(item)

	data = challenge_to_dict(challenge, len(problems), int(participants or 0))
	data["problems"] = problems
	return data


@router.post("", status_code=status.HTTP_201_CREATED)
def create_challenge(
	req: ChallengeCreateRequest,
	db: Session = Depends(get_db),
	user_id: str = Depends(get_current_user_id),
):
	if not req.title.strip():
		raise HTTPException(status_code=400, detail="Title is required")
	if req.start_date and req.end_date and as_utc(req.end_date) <= as_utc(req.start_date):
		raise HTTPException(status_code=400, detail="End date must be after start date")

	if req.problem_ids:
		found = {pid for (pid,) in db.query(Problem.id).filter(Problem.id.in_(req.problem_ids)).all()}
		missing = [pid for pid in req.problem_ids if pid not in found]
		if missing:
			raise HTTPException(status_code=400, detail=f"Unknown problem ids: {', '.join(missing)}")

	challenge = CodingChallenge(
		title=req.title.strip(),
		description=req.description,
		difficulty=req.difficulty.lower(),
		category=req.category,
		tags=req.tags,
		start_date=req.start_date,
		end_date=req.end_date,
		is_active=req.is_active,
		created_by=user_id,
	)
	try:
		db.add(challenge)
		db.flush()
		for index, problem_id in enumerate(req.problem_ids):
			db.add(CodingChallengeProblem(
				challenge_id=challenge.id,
				problem_id=problem_id,
				order_index=index,
				points_multiplier=1.0,
			))
		db.commit()
	except Exception as e:
		db.rollback()
		logger.error(f"Error creating challenge: {e}")
		raise HTTPException(status_code=500, detail="Failed to create challenge")

	db.refresh(challenge)
	return challenge_to_dict(challenge, len(req.problem_ids), 0)


@router.get("/{challenge_id}/leaderboard")
def get_challenge_leaderboard(
	challenge_id: str,
	db: Session = Depends(get_db),
	authorization: Optional[str] = Header(None),
):
	if db.query(CodingChallenge.id).filter(CodingChallenge.id == challenge_id).first() is None:
		raise HTTPException(status_code=404, detail="Challenge not found")

	rows = (
		db.query(CodingChallengeLeaderboard)
		.filter(CodingChallengeLeaderboard.challenge_id == challenge_id)
		.order_by(
			CodingChallengeLeaderboard.rank.is_(None),
			CodingChallengeLeaderboard.rank.asc(),
			CodingChallengeLeaderboard.total_points.desc(),
		)
		.all()
	)

	entries = []
	for position, row in enumerate(rows, start=1):
		entries.append({
			"user_id": row.user_id,
			"profile": row.user.snapshot() if row.user else None,
			"total_points": row.total_points,
			"problems_solved": row.problems_solved,
			"total_time_ms": row.total_time_ms,
			"rank": row.rank or position,
			"last_submission_at": _iso(row.last_submission_at),
		})

	user_id = get_user_id_from_authorization_header(authorization)
	user_rank = next((e["rank"] for e in entries if user_id and e["user_id"] == user_id), None)
	return {"entries": entries, "user_rank": user_rank}


__all__ = ["router"]
