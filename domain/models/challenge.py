"""
Coding challenge tables.
Contains: CodingChallenge, CodingChallengeProblem, CodingChallengeLeaderboard
"""
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, JSON, Float
from sqlalchemy.orm import relationship

from app.db import Base
from .core import new_uuid, utcnow


class CodingChallenge(Base):
    """Time-boxed collection of problems with its own leaderboard"""
    __tablename__ = "coding_challenges"

    id = Column(String(36), primary_key=True, index=True, default=new_uuid)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    difficulty = Column(String(20), nullable=False, default="medium")
    category = Column(String(100), nullable=True, index=True)
    tags = Column(JSON, nullable=False, default=list)
    start_date = Column(DateTime(timezone=True), nullable=True)
    end_date = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_by = Column(String(36), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    creator = relationship("Profile", lazy="joined")
    problem_links = relationship(
        "CodingChallengeProblem",
        back_populates="challenge",
        cascade="all, delete-orphan",
        order_by="CodingChallengeProblem.order_index",
    )


class CodingChallengeProblem(Base):
    __tablename__ = "coding_challenge_problems"

    id = Column(String(36), primary_key=True, default=new_uuid)
    challenge_id = Column(String(36), ForeignKey("coding_challenges.id", ondelete="CASCADE"), nullable=False, index=True)
    problem_id = Column(String(36), ForeignKey("problems.id", ondelete="CASCADE"), nullable=False)
    order_index = Column(Integer, default=0, nullable=False)
    points_multiplier = Column(Float, default=1.0, nullable=False)

    challenge = relationship("CodingChallenge", back_populates="problem_links")
    problem = relationship("Problem", lazy="joined")


class CodingChallengeLeaderboard(Base):
    """Participant row; rank is maintained by the hosted side"""
    __tablename__ = "coding_challenge_leaderboards"

    id = Column(String(36), primary_key=True, default=new_uuid)
    challenge_id = Column(String(36), ForeignKey("coding_challenges.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    total_points = Column(Integer, default=0, nullable=False)
    problems_solved = Column(Integer, default=0, nullable=False)
    total_time_ms = Column(Integer, default=0, nullable=False)
    rank = Column(Integer, nullable=True)
    last_submission_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    user = relationship("Profile", lazy="joined")
