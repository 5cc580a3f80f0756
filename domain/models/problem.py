"""
Coding-practice tables.
Contains: Problem, ProblemTestCase, ProblemSubmission, ProblemImport, DailyProblem, UserProblemStats
"""
from sqlalchemy import Column, Integer, String, Text, Boolean, Date, DateTime, ForeignKey, JSON, Float
from sqlalchemy.orm import relationship

from app.db import Base
from .core import new_uuid, utcnow


class Problem(Base):
    """Problem model - coding exercises"""
    __tablename__ = "problems"

    id = Column(String(36), primary_key=True, index=True, default=new_uuid)
    title = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, index=True, nullable=True)
    description = Column(Text, nullable=False)
    difficulty = Column(String(20), nullable=False, default="easy")  # easy, medium, hard
    category = Column(String(100), nullable=True, index=True)
    tags = Column(JSON, nullable=False, default=list)
    starter_code = Column(Text, nullable=True)
    solution_code = Column(Text, nullable=True)
    time_limit_ms = Column(Integer, default=1000, nullable=False)
    memory_limit_mb = Column(Integer, default=128, nullable=False)
    points = Column(Integer, default=100, nullable=False)
    is_approved = Column(Boolean, default=True, nullable=False)
    created_by = Column(String(36), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    creator = relationship("Profile", lazy="joined")
    test_cases = relationship(
        "ProblemTestCase",
        back_populates="problem",
        cascade="all, delete-orphan",
        order_by="ProblemTestCase.order_index",
    )


class ProblemTestCase(Base):
    """Test case; only `is_sample` rows are ever shown to users"""
    __tablename__ = "problem_test_cases"

    id = Column(String(36), primary_key=True, default=new_uuid)
    problem_id = Column(String(36), ForeignKey("problems.id", ondelete="CASCADE"), nullable=False, index=True)
    input = Column(Text, nullable=False, default="")
    expected_output = Column(Text, nullable=False, default="")
    is_sample = Column(Boolean, default=False, nullable=False)
    order_index = Column(Integer, default=0, nullable=False)

    problem = relationship("Problem", back_populates="test_cases")


class ProblemSubmission(Base):
    """Judged submission (written by the judge function on the hosted side)"""
    __tablename__ = "problem_submissions"

    id = Column(String(36), primary_key=True, default=new_uuid)
    problem_id = Column(String(36), ForeignKey("problems.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    challenge_id = Column(String(36), ForeignKey("coding_challenges.id", ondelete="SET NULL"), nullable=True)
    code = Column(Text, nullable=False)
    language = Column(String(50), nullable=False)
    # pending, running, accepted, wrong_answer, time_limit_exceeded,
    # memory_limit_exceeded, runtime_error, compilation_error
    status = Column(String(50), nullable=False, default="pending")
    execution_time_ms = Column(Integer, nullable=True)
    memory_used_mb = Column(Float, nullable=True)
    test_cases_passed = Column(Integer, default=0, nullable=False)
    test_cases_total = Column(Integer, default=0, nullable=False)
    points_earned = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)

    user = relationship("Profile", lazy="joined")
    problem = relationship("Problem", lazy="joined")


class ProblemImport(Base):
    """Bulk upload bookkeeping row"""
    __tablename__ = "problem_imports"

    id = Column(String(36), primary_key=True, default=new_uuid)
    user_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    file_name = Column(String(255), nullable=False)
    file_size = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default="pending")  # pending, processing, completed, failed
    problems_count = Column(Integer, default=0, nullable=False)
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    user = relationship("Profile", lazy="joined")


class DailyProblem(Base):
    __tablename__ = "daily_problems"

    id = Column(String(36), primary_key=True, default=new_uuid)
    problem_id = Column(String(36), ForeignKey("problems.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False, unique=True, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    problem = relationship("Problem", lazy="joined")


class UserProblemStats(Base):
    """Per user, per problem progress maintained by the judge"""
    __tablename__ = "user_problem_stats"

    id = Column(String(36), primary_key=True, default=new_uuid)
    user_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    problem_id = Column(String(36), ForeignKey("problems.id", ondelete="CASCADE"), nullable=False, index=True)
    attempts = Column(Integer, default=0, nullable=False)
    solved = Column(Boolean, default=False, nullable=False)
    best_time_ms = Column(Integer, nullable=True)
    best_memory_mb = Column(Float, nullable=True)
    points_earned = Column(Integer, default=0, nullable=False)
    solved_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    user = relationship("Profile", lazy="joined")
    problem = relationship("Problem", lazy="joined")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "problem_id": self.problem_id,
            "attempts": self.attempts,
            "solved": bool(self.solved),
            "best_time_ms": self.best_time_ms,
            "best_memory_mb": self.best_memory_mb,
            "points_earned": self.points_earned or 0,
            "solved_at": self.solved_at.isoformat() if self.solved_at else None,
        }
