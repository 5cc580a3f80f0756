"""
Community forum tables.
Contains: Forum, ForumMember, ForumTopic
"""
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import relationship

from app.db import Base
from .core import new_uuid, utcnow


class Forum(Base):
    __tablename__ = "forums"

    id = Column(String(36), primary_key=True, default=new_uuid)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=True)
    icon = Column(String(50), nullable=True)
    color = Column(String(50), nullable=True)
    members_count = Column(Integer, default=0, nullable=False)
    topics_count = Column(Integer, default=0, nullable=False)
    created_by = Column(String(36), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "icon": self.icon,
            "color": self.color,
            "members_count": self.members_count or 0,
            "topics_count": self.topics_count or 0,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class ForumMember(Base):
    """Membership row; one per (forum, user)"""
    __tablename__ = "forum_members"
    __table_args__ = (UniqueConstraint("forum_id", "user_id", name="uq_forum_member"),)

    id = Column(String(36), primary_key=True, default=new_uuid)
    forum_id = Column(String(36), ForeignKey("forums.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    joined_at = Column(DateTime(timezone=True), default=utcnow)


class ForumTopic(Base):
    __tablename__ = "forum_topics"

    id = Column(String(36), primary_key=True, default=new_uuid)
    forum_id = Column(String(36), ForeignKey("forums.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    tags = Column(JSON, default=list)
    is_pinned = Column(Boolean, default=False, nullable=False)
    replies_count = Column(Integer, default=0, nullable=False)
    views_count = Column(Integer, default=0, nullable=False)
    last_activity = Column(DateTime(timezone=True), default=utcnow, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    author = relationship("Profile", foreign_keys=[user_id], lazy="joined")
