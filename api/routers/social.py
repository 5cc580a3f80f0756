"""Social Router - Feed posts, likes, notifications and direct messages.

Endpoints:
- GET /posts, POST /posts, POST/DELETE /posts/{id}/like
- GET /notifications, GET /notifications/unread-count
- POST /notifications/{id}/read, POST /notifications/read-all
- GET /conversations, POST /conversations
- GET/POST /conversations/{id}/messages, POST /conversations/{id}/read
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status
from pydantic import BaseModel
from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session

from app.auth import get_current_user_id, get_user_id_from_authorization_header
from app.db import get_db
from app.settings import FEED_PAGE_SIZE, NOTIFICATIONS_LIMIT
from domain.models import Conversation, Like, Message, Notification, Post, Profile

logger = logging.getLogger(__name__)

router = APIRouter(tags=["social"])

POST_TYPES = ("code", "image", "video", "project")


class PostCreateRequest(BaseModel):
	type: str = "code"
	content: str = ""
	tags: List[str] = []
	code_language: Optional[str] = None
	code_content: Optional[str] = None
	project_title: Optional[str] = None
	project_description: Optional[str] = None
	project_live_url: Optional[str] = None
	project_github_url: Optional[str] = None
	project_tech_stack: List[str] = []
	media_url: Optional[str] = None


def _iso(value) -> Optional[str]:
	return value.isoformat() if value is not None else None


def post_to_dict(post: Post, is_liked: bool = False) -> Dict[str, Any]:
	return {
		"id": post.id,
		"user_id": post.user_id,
		"author": post.author.snapshot() if post.author else None,
		"type": post.type,
		"content": post.content,
		"tags": list(post.tags or []),
		"code_language": post.code_language,
		"code_content": post.code_content,
		"project_title": post.project_title,
		"project_description": post.project_description,
		"project_live_url": post.project_live_url,
		"project_github_url": post.project_github_url,
		"project_tech_stack": list(post.project_tech_stack or []),
		"media_url": post.media_url,
		"likes_count": post.likes_count,
		"comments_count": post.comments_count,
		"shares_count": post.shares_count,
		"is_liked": is_liked,
		"created_at": _iso(post.created_at),
	}


def liked_post_ids(db: Session, user_id: Optional[str], post_ids: List[str]) -> set:
	if not user_id or not post_ids:
		return set()
	rows = db.query(Like.post_id).filter(Like.user_id == user_id, Like.post_id.in_(post_ids)).all()
	return {r[0] for r in rows}


def notify(db: Session, recipient: Profile, sender_id: str, kind: str, flag: str, post_id: Optional[str] = None, message: Optional[str] = None) -> None:
	"""Thêm notification nếu người nhận bật loại thông báo này (chưa commit)"""
	if recipient is None or recipient.id == sender_id:
		return
	if not getattr(recipient, flag, True):
		return
	db.add(Notification(recipient_id=recipient.id, sender_id=sender_id, type=kind, post_id=post_id, message=message))


# ==================== Posts ====================

@router.get("/posts")
def list_feed(
	page: int = 1,
	page_size: int = FEED_PAGE_SIZE,
	user_id: Optional[str] = None,
	db: Session = Depends(get_db),
	authorization: Optional[str] = Header(None),
):
	page = max(page, 1)
	page_size = max(min(page_size, 100), 1)

	q = db.query(Post)
	if user_id:
		q = q.filter(Post.user_id == user_id)

	posts = q.order_by(Post.created_at.desc()).offset((page - 1) * page_size).limit(page_size + 1).all()
	has_more = len(posts) > page_size
	posts = posts[:page_size]

	caller = get_user_id_from_authorization_header(authorization)
	liked = liked_post_ids(db, caller, [p.id for p in posts])
	return {"items": [post_to_dict(p, p.id in liked) for p in posts], "page": page, "has_more": has_more}


@router.post("/posts", status_code=status.HTTP_201_CREATED)
def create_post(req: PostCreateRequest, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
	if req.type not in POST_TYPES:
		raise HTTPException(status_code=400, detail=f"type must be one of: {', '.join(POST_TYPES)}")
	if req.type == "code" and not (req.code_content or "").strip():
		raise HTTPException(status_code=400, detail="Code posts need code content")
	if req.type == "project" and not (req.project_title or "").strip():
		raise HTTPException(status_code=400, detail="Project posts need a title")

	author = db.query(Profile).filter(Profile.id == user_id).first()
	if author is None:
		raise HTTPException(status_code=404, detail="Profile not found")

	post = Post(user_id=user_id, **req.dict())
	db.add(post)
	author.posts_count = (author.posts_count or 0) + 1
	db.commit()
	db.refresh(post)
	return post_to_dict(post)


@router.post("/posts/{post_id}/like")
def like_post(post_id: str, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
	post = db.query(Post).filter(Post.id == post_id).first()
	if not post:
		raise HTTPException(status_code=404, detail="Post not found")

	existing = db.query(Like).filter(Like.post_id == post_id, Like.user_id == user_id).first()
	if existing is None:
		db.add(Like(post_id=post_id, user_id=user_id))
		post.likes_count = (post.likes_count or 0) + 1
		notify(db, post.author, user_id, "post_like", "receive_post_like_notifications", post_id=post_id)
		db.commit()
	return {"liked": True, "likes_count": post.likes_count}


@router.delete("/posts/{post_id}/like")
def unlike_post(post_id: str, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
	post = db.query(Post).filter(Post.id == post_id).first()
	if not post:
		raise HTTPException(status_code=404, detail="Post not found")

	existing = db.query(Like).filter(Like.post_id == post_id, Like.user_id == user_id).first()
	if existing is not None:
		db.delete(existing)
		post.likes_count = max((post.likes_count or 0) - 1, 0)
		db.commit()
	return {"liked": False, "likes_count": post.likes_count}


# ==================== Notifications ====================

@router.get("/notifications")
def list_notifications(db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
	rows = (
		db.query(Notification)
		.filter(Notification.recipient_id == user_id)
		.order_by(Notification.created_at.desc())
		.limit(NOTIFICATIONS_LIMIT)
		.all()
	)
	return {
		"items": [
			{
				"id": n.id,
				"type": n.type,
				"sender": n.sender.snapshot() if n.sender else None,
				"post_id": n.post_id,
				"message": n.message,
				"is_read": bool(n.is_read),
				"created_at": _iso(n.created_at),
			}
			for n in rows
		]
	}


@router.get("/notifications/unread-count")
def unread_count(db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
	count = (
		db.query(func.count(Notification.id))
		.filter(Notification.recipient_id == user_id, Notification.is_read.is_(False))
		.scalar()
	)
	return {"count": int(count or 0)}


@router.post("/notifications/read-all")
def mark_all_read(db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
	updated = (
		db.query(Notification)
		.filter(Notification.recipient_id == user_id, Notification.is_read.is_(False))
		.update({Notification.is_read: True}, synchronize_session=False)
	)
	db.commit()
	return {"updated": updated}


@router.post("/notifications/{notification_id}/read")
def mark_read(notification_id: str, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
	notification = (
		db.query(Notification)
		.filter(Notification.id == notification_id, Notification.recipient_id == user_id)
		.first()
	)
	if not notification:
		raise HTTPException(status_code=404, detail="Notification not found")
	notification.is_read = True
	db.commit()
	return {"success": True}


# ==================== Conversations ====================

@router.get("/conversations")
def list_conversations(db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
	rows = (
		db.query(Conversation)
		.filter(or_(Conversation.participant_1 == user_id, Conversation.participant_2 == user_id))
		.order_by(func.coalesce(Conversation.last_message_at, Conversation.created_at).desc())
		.all()
	)

	items = []
	for c in rows:
		other = c.participant_2_profile if c.participant_1 == user_id else c.participant_1_profile
		items.append({
			"id": c.id,
			"other_participant": other.snapshot() if other else None,
			"last_message_id": c.last_message_id,
			"last_message_at": _iso(c.last_message_at),
			"created_at": _iso(c.created_at),
		})
	return {"items": items}


class ConversationStartRequest(BaseModel):
	username: str


class MessageCreateRequest(BaseModel):
	content: str


def message_to_dict(message: Message) -> Dict[str, Any]:
	sender = message.sender
	return {
		"id": message.id,
		"conversation_id": message.conversation_id,
		"sender_id": message.sender_id,
		"content": message.content,
		"message_type": message.message_type,
		"shared_post_id": message.shared_post_id,
		"file_url": message.file_url,
		"is_read": bool(message.is_read),
		"created_at": _iso(message.created_at),
		"sender": {
			"username": sender.username if sender else "Unknown",
			"avatar_url": (sender.avatar_url if sender else None) or "",
		},
	}


def _conversation_for(db: Session, conversation_id: str, user_id: str) -> Conversation:
	"""Conversation mà user là một bên tham gia; 404 nếu không tồn tại, 403 nếu không phải participant"""
	conversation = db.query(Conversation).filter(Conversation.id == conversation_id).first()
	if not conversation:
		raise HTTPException(status_code=404, detail="Conversation not found")
	if user_id not in (conversation.participant_1, conversation.participant_2):
		raise HTTPException(status_code=403, detail="You are not a participant in this conversation")
	return conversation


def _mark_conversation_read(db: Session, conversation_id: str, user_id: str) -> int:
	return (
		db.query(Message)
		.filter(
			Message.conversation_id == conversation_id,
			Message.sender_id != user_id,
			Message.is_read.is_(False),
		)
		.update({Message.is_read: True}, synchronize_session=False)
	)


@router.post("/conversations")
def start_conversation(req: ConversationStartRequest, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
	other = db.query(Profile).filter(Profile.username == req.username).first()
	if not other:
		raise HTTPException(status_code=404, detail="Profile not found")
	if other.id == user_id:
		raise HTTPException(status_code=400, detail="You cannot message yourself")

	conversation = (
		db.query(Conversation)
		.filter(or_(
			and_(Conversation.participant_1 == user_id, Conversation.participant_2 == other.id),
			and_(Conversation.participant_1 == other.id, Conversation.participant_2 == user_id),
		))
		.first()
	)
	if conversation is None:
		conversation = Conversation(participant_1=user_id, participant_2=other.id)
		db.add(conversation)
		db.commit()
		db.refresh(conversation)
		logger.info(f"Started conversation {conversation.id} between {user_id} and {other.id}")

	return {
		"id": conversation.id,
		"other_participant": other.snapshot(),
		"last_message_id": conversation.last_message_id,
		"last_message_at": _iso(conversation.last_message_at),
		"created_at": _iso(conversation.created_at),
	}


@router.get("/conversations/{conversation_id}/messages")
def list_messages(conversation_id: str, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
	_conversation_for(db, conversation_id, user_id)
	rows = (
		db.query(Message)
		.filter(Message.conversation_id == conversation_id)
		.order_by(Message.created_at.asc())
		.all()
	)
	items = [message_to_dict(m) for m in rows]

	# Mở hội thoại = đã đọc tin nhắn của bên kia
	if _mark_conversation_read(db, conversation_id, user_id):
		db.commit()
	return {"items": items}


@router.post("/conversations/{conversation_id}/messages", status_code=status.HTTP_201_CREATED)
def send_message(conversation_id: str, req: MessageCreateRequest, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
	conversation = _conversation_for(db, conversation_id, user_id)
	content = (req.content or "").strip()
	if not content:
		raise HTTPException(status_code=400, detail="Message cannot be empty")

	message = Message(conversation_id=conversation_id, sender_id=user_id, content=content, message_type="text", created_at=datetime.now(timezone.utc))
	db.add(message)
	db.flush()

	conversation.last_message_id = message.id
	conversation.last_message_at = message.created_at

	other = conversation.participant_2_profile if conversation.participant_1 == user_id else conversation.participant_1_profile
	notify(db, other, user_id, "message", "receive_message_notifications", message=content[:200])
	db.commit()
	db.refresh(message)
	return message_to_dict(message)


@router.post("/conversations/{conversation_id}/read")
def mark_conversation_read(conversation_id: str, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
	_conversation_for(db, conversation_id, user_id)
	updated = _mark_conversation_read(db, conversation_id, user_id)
	db.commit()
	return {"updated": updated}


__all__ = ["router", "post_to_dict", "message_to_dict", "liked_post_ids", "notify"]
