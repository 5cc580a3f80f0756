"""
Social tables of the hosted Postgres schema.
Contains: Profile, Post, Like, Follower, Conversation, Notification, Message
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship

from app.db import Base


def new_uuid() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Profile(Base):
    """Public profile, one per auth user (id is the auth user id)"""
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, index=True)
    username = Column(String(20), unique=True, index=True, nullable=False)
    email = Column(String(255), nullable=False)
    display_name = Column(String(255), nullable=True)
    avatar_url = Column(Text, nullable=True)
    bio = Column(Text, nullable=True)
    github_url = Column(Text, nullable=True)
    linkedin_url = Column(Text, nullable=True)
    twitter_url = Column(Text, nullable=True)
    website = Column(Text, nullable=True)
    location = Column(String(255), nullable=True)
    leetcode_username = Column(String(255), nullable=True)

    followers_count = Column(Integer, default=0, nullable=False)
    following_count = Column(Integer, default=0, nullable=False)
    posts_count = Column(Integer, default=0, nullable=False)
    verified = Column(Boolean, default=False)

    receive_follow_notifications = Column(Boolean, default=True, nullable=False)
    receive_message_notifications = Column(Boolean, default=True, nullable=False)
    receive_post_like_notifications = Column(Boolean, default=True, nullable=False)
    receive_post_comment_notifications = Column(Boolean, default=True, nullable=False)
    receive_new_post_from_followed_notifications = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    posts = relationship("Post", back_populates="author", cascade="all, delete-orphan")

    def snapshot(self) -> dict:
        """Small projection embedded in cards, leaderboards and lists."""
        return {
            "id": self.id,
            "username": self.username,
            "display_name": self.display_name,
            "avatar_url": self.avatar_url,
        }

    def to_dict(self) -> dict:
        data = {c.name: getattr(self, c.name) for c in self.__table__.columns}
        for key in ("created_at", "updated_at"):
            if data.get(key) is not None:
                data[key] = data[key].isoformat()
        return data

    def public_dict(self) -> dict:
        """Profile page view: no email, no notification preferences."""
        data = self.to_dict()
        data.pop("email", None)
        for key in [k for k in data if k.startswith("receive_")]:
            data.pop(key)
        return data


class Post(Base):
    """Feed post: code snippet, media or project"""
    __tablename__ = "posts"

    id = Column(String(36), primary_key=True, index=True, default=new_uuid)
    user_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(20), nullable=False, default="code")  # code, image, video, project
    content = Column(Text, nullable=False, default="")
    tags = Column(JSON, nullable=False, default=list)
    code_language = Column(String(50), nullable=True)
    code_content = Column(Text, nullable=True)
    project_title = Column(String(255), nullable=True)
    project_description = Column(Text, nullable=True)
    project_live_url = Column(Text, nullable=True)
    project_github_url = Column(Text, nullable=True)
    project_tech_stack = Column(JSON, nullable=False, default=list)
    media_url = Column(Text, nullable=True)
    likes_count = Column(Integer, default=0, nullable=False)
    comments_count = Column(Integer, default=0, nullable=False)
    shares_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    author = relationship("Profile", back_populates="posts", lazy="joined")


class Like(Base):
    __tablename__ = "likes"

    id = Column(String(36), primary_key=True, default=new_uuid)
    post_id = Column(String(36), ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)


class Follower(Base):
    __tablename__ = "followers"

    id = Column(String(36), primary_key=True, default=new_uuid)
    follower_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    followed_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)


class Conversation(Base):
    """Direct-message thread between two profiles"""
    __tablename__ = "conversations"

    id = Column(String(36), primary_key=True, default=new_uuid)
    participant_1 = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    participant_2 = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    last_message_id = Column(String(36), nullable=True)
    last_message_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    participant_1_profile = relationship("Profile", foreign_keys=[participant_1], lazy="joined")
    participant_2_profile = relationship("Profile", foreign_keys=[participant_2], lazy="joined")


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=new_uuid)
    recipient_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_id = Column(String(36), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True)
    type = Column(String(50), nullable=False)  # follow, message, post_like, post_comment, new_post
    post_id = Column(String(36), nullable=True)
    message = Column(Text, nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)

    sender = relationship("Profile", foreign_keys=[sender_id], lazy="joined")


class Message(Base):
    """Direct message inside a conversation"""
    __tablename__ = "messages"

    id = Column(String(36), primary_key=True, default=new_uuid)
    conversation_id = Column(String(36), ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=False)
    message_type = Column(String(20), default="text", nullable=False)  # text, post_share, image, file
    shared_post_id = Column(String(36), ForeignKey("posts.id", ondelete="SET NULL"), nullable=True)
    file_url = Column(Text, nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)

    sender = relationship("Profile", foreign_keys=[sender_id], lazy="joined")
