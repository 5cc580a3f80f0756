"""Forums Router - Community forums, membership and topics.

Endpoints:
- GET /forums, POST/DELETE /forums/{id}/join
- GET /forums/topics, GET/POST /forums/{id}/topics
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.auth import get_current_user_id, get_user_id_from_authorization_header
from app.db import get_db
from domain.models import Forum, ForumMember, ForumTopic

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/forums", tags=["forums"])


class TopicCreateRequest(BaseModel):
	title: str
	content: str
	tags: List[str] = []


def topic_to_dict(topic: ForumTopic) -> Dict[str, Any]:
	return {
		"id": topic.id,
		"forum_id": topic.forum_id,
		"user_id": topic.user_id,
		"author": topic.author.snapshot() if topic.author else None,
		"title": topic.title,
		"content": topic.content,
		"tags": list(topic.tags or []),
		"is_pinned": bool(topic.is_pinned),
		"replies_count": topic.replies_count or 0,
		"views_count": topic.views_count or 0,
		"last_activity": topic.last_activity.isoformat() if topic.last_activity else None,
		"created_at": topic.created_at.isoformat() if topic.created_at else None,
	}


def _get_forum(db: Session, forum_id: str) -> Forum:
	forum = db.query(Forum).filter(Forum.id == forum_id).first()
	if not forum:
		raise HTTPException(status_code=404, detail="Forum not found")
	return forum


def _list_topics(db: Session, forum_id: Optional[str] = None) -> List[Dict[str, Any]]:
	q = db.query(ForumTopic)
	if forum_id:
		q = q.filter(ForumTopic.forum_id == forum_id)
	rows = q.order_by(ForumTopic.is_pinned.desc(), ForumTopic.last_activity.desc()).all()
	return [topic_to_dict(t) for t in rows]


@router.get("")
def list_forums(db: Session = Depends(get_db), authorization: Optional[str] = Header(None)):
	forums = db.query(Forum).order_by(Forum.members_count.desc()).all()
	items = [f.to_dict() for f in forums]

	user_id = get_user_id_from_authorization_header(authorization)
	if user_id:
		rows = db.query(ForumMember.forum_id).filter(ForumMember.user_id == user_id).all()
		member_of = {r[0] for r in rows}
		for item in items:
			item["is_member"] = item["id"] in member_of
	return {"items": items}


@router.post("/{forum_id}/join")
def join_forum(forum_id: str, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
	forum = _get_forum(db, forum_id)
	existing = db.query(ForumMember).filter(ForumMember.forum_id == forum_id, ForumMember.user_id == user_id).first()
	if existing is None:
		db.add(ForumMember(forum_id=forum_id, user_id=user_id))
		forum.members_count = (forum.members_count or 0) + 1
		db.commit()
		logger.info(f"User {user_id} joined forum {forum_id}")
	return {"is_member": True, "members_count": forum.members_count}


@router.delete("/{forum_id}/join")
def leave_forum(forum_id: str, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
	forum = _get_forum(db, forum_id)
	existing = db.query(ForumMember).filter(ForumMember.forum_id == forum_id, ForumMember.user_id == user_id).first()
	if existing is not None:
		db.delete(existing)
		forum.members_count = max((forum.members_count or 0) - 1, 0)
		db.commit()
	return {"is_member": False, "members_count": forum.members_count}


@router.get("/topics")
def list_all_topics(db: Session = Depends(get_db)):
	return {"items": _list_topics(db)}


@router.get("/{forum_id}/topics")
def list_forum_topics(forum_id: str, db: Session = Depends(get_db)):
	_get_forum(db, forum_id)
	return {"items": _list_topics(db, forum_id)}


@router.post("/{forum_id}/topics", status_code=status.HTTP_201_CREATED)
def create_topic(forum_id: str, req: TopicCreateRequest, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
	forum = _get_forum(db, forum_id)
	title = (req.title or "").strip()
	content = (req.content or "").strip()
	if not title or not content:
		raise HTTPException(status_code=400, detail="Title and content are required")

	now = datetime.now(timezone.utc)
	topic = ForumTopic(
		forum_id=forum_id,
		user_id=user_id,
		title=title,
		content=content,
		tags=req.tags,
		last_activity=now,
		created_at=now,
	)
	db.add(topic)
	forum.topics_count = (forum.topics_count or 0) + 1
	db.commit()
	db.refresh(topic)
	logger.info(f"Created topic {topic.id} in forum {forum_id}")
	return topic_to_dict(topic)


__all__ = ["router", "topic_to_dict"]
