"""Profiles Router - Search, public profile page, profile editing and follows."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from pydantic import BaseModel
from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.auth import (
	INVALID_USERNAME_MESSAGE,
	USERNAME_TAKEN_MESSAGE,
	get_current_user,
	get_current_user_id,
	get_user_id_from_authorization_header,
	username_taken,
)
from app.db import get_db
from app.settings import POSTS_PER_PAGE, USER_SEARCH_LIMIT
from domain.derivations import is_valid_username
from domain.models import Follower, Post, Profile
from .social import liked_post_ids, notify, post_to_dict

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/profiles", tags=["profiles"])

POST_SORTS = ("newest", "oldest")


class ProfileUpdateRequest(BaseModel):
	username: Optional[str] = None
	display_name: Optional[str] = None
	avatar_url: Optional[str] = None
	bio: Optional[str] = None
	github_url: Optional[str] = None
	linkedin_url: Optional[str] = None
	twitter_url: Optional[str] = None
	website: Optional[str] = None
	location: Optional[str] = None
	leetcode_username: Optional[str] = None
	receive_follow_notifications: Optional[bool] = None
	receive_message_notifications: Optional[bool] = None
	receive_post_like_notifications: Optional[bool] = None
	receive_post_comment_notifications: Optional[bool] = None
	receive_new_post_from_followed_notifications: Optional[bool] = None


def _get_profile_or_404(db: Session, username: str) -> Profile:
	profile = db.query(Profile).filter(Profile.username == username).first()
	if not profile:
		raise HTTPException(status_code=404, detail="Profile not found")
	return profile


@router.get("/search")
def search_profiles(q: str = "", db: Session = Depends(get_db)):
	needle = q.strip()
	if not needle:
		return {"items": []}

	like = f"%{needle}%"
	rows = (
		db.query(Profile)
		.filter(or_(Profile.username.ilike(like), Profile.display_name.ilike(like)))
		.order_by(Profile.username.asc())
		.limit(USER_SEARCH_LIMIT)
		.all()
	)
	return {"items": [p.snapshot() for p in rows]}


@router.patch("/me")
def update_my_profile(
	req: ProfileUpdateRequest,
	db: Session = Depends(get_db),
	profile: Profile = Depends(get_current_user),
):
	changes = {k: v for k, v in req.dict().items() if v is not None}

	username = changes.get("username")
	if username is not None and username != profile.username:
		if not is_valid_username(username):
			raise HTTPException(status_code=400, detail=INVALID_USERNAME_MESSAGE)
		if username_taken(db, username, exclude_id=profile.id):
			raise HTTPException(status_code=400, detail=USERNAME_TAKEN_MESSAGE)

	for key, value in changes.items():
		setattr(profile, key, value)
	db.commit()
	db.refresh(profile)
	return profile.to_dict()


@router.get("/{username}")
def get_profile(
	username: str,
	page: int = 1,
	sort: str = "newest",
	db: Session = Depends(get_db),
	authorization: Optional[str] = Header(None),
):
	if sort not in POST_SORTS:
		raise HTTPException(status_code=400, detail="sort must be 'newest' or 'oldest'")
	profile = _get_profile_or_404(db, username)
	caller = get_user_id_from_authorization_header(authorization)

	page = max(page, 1)
	order = Post.created_at.desc() if sort == "newest" else Post.created_at.asc()
	posts = (
		db.query(Post)
		.filter(Post.user_id == profile.id)
		.order_by(order)
		.offset((page - 1) * POSTS_PER_PAGE)
		.limit(POSTS_PER_PAGE + 1)
		.all()
	)
	has_more = len(posts) > POSTS_PER_PAGE
	posts = posts[:POSTS_PER_PAGE]
	liked = liked_post_ids(db, caller, [p.id for p in posts])

	is_following = False
	if caller and caller != profile.id:
		is_following = (
			db.query(Follower.id)
			.filter(Follower.follower_id == caller, Follower.followed_id == profile.id)
			.first()
			is not None
		)

	return {
		"profile": profile.public_dict(),
		"posts": [post_to_dict(p, p.id in liked) for p in posts],
		"page": page,
		"has_more": has_more,
		"is_current_user": caller == profile.id,
		"is_following": is_following,
	}


@router.post("/{username}/follow")
def follow(username: str, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
	target = _get_profile_or_404(db, username)
	if target.id == user_id:
		raise HTTPException(status_code=400, detail="You cannot follow yourself")

	existing = (
		db.query(Follower)
		.filter(Follower.follower_id == user_id, Follower.followed_id == target.id)
		.first()
	)
	if existing is None:
		db.add(Follower(follower_id=user_id, followed_id=target.id))
		target.followers_count = (target.followers_count or 0) + 1
		me = db.query(Profile).filter(Profile.id == user_id).first()
		if me is not None:
			me.following_count = (me.following_count or 0) + 1
		notify(db, target, user_id, "follow", "receive_follow_notifications")
		db.commit()
	return {"following": True, "followers_count": target.followers_count}


@router.delete("/{username}/follow")
def unfollow(username: str, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
	target = _get_profile_or_404(db, username)

	existing = (
		db.query(Follower)
		.filter(Follower.follower_id == user_id, Follower.followed_id == target.id)
		.first()
	)
	if existing is not None:
		db.delete(existing)
		target.followers_count = max((target.followers_count or 0) - 1, 0)
		me = db.query(Profile).filter(Profile.id == user_id).first()
		if me is not None:
			me.following_count = max((me.following_count or 0) - 1, 0)
		db.commit()
	return {"following": False, "followers_count": target.followers_count}


__all__ = ["router"]
