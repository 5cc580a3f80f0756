"""
Global leaderboard ranking.

Two strategies produce the same `LeaderboardEntry` list:

- `ServerRankedLeaderboard`: the hosted database ranks users itself through the
  `get_global_leaderboard(time_frame, limit_count)` function.
- `ClientAggregatedLeaderboard`: the function is not deployed, so solved rows of
  `user_problem_stats` are fetched and ranked here with `aggregate()`.

`select_leaderboard_strategy()` picks one by checking whether the function exists
in the connected database, instead of trying the RPC and catching the failure.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import text
from sqlalchemy.orm import Session

from domain.derivations import time_frame_start
from domain.models import Profile, UserProblemStats

logger = logging.getLogger(__name__)

SERVER_RANKING_FUNCTION = "get_global_leaderboard"


@dataclass
class SolveRecord:
    """One solved problem: who solved it and how many points it earned"""
    user_id: str
    profile: Dict[str, Any] = field(default_factory=dict)
    points: Optional[int] = 0


@dataclass
class LeaderboardEntry:
    user_id: str
    profile: Dict[str, Any]
    total_points: int
    problems_solved: int
    rank: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def aggregate(records: Iterable[SolveRecord]) -> List[LeaderboardEntry]:
    """Rank users by total points over their solve records.

    Records are grouped by user (the first profile snapshot seen for a user is kept),
    points are summed and records counted. The result is sorted by total points,
    highest first; `sorted` is stable so ties keep first-seen order. Ranks are
    the 1-based positions in that order.
    """
    totals: Dict[str, Dict[str, Any]] = {}
    for record in records:
        row = totals.get(record.user_id)
        if row is None:
            row = {"user_id": record.user_id, "profile": record.profile, "total_points": 0, "problems_solved": 0}
            totals[record.user_id] = row
        row["total_points"] += record.points or 0
        row["problems_solved"] += 1

    ordered = sorted(totals.values(), key=lambda r: r["total_points"], reverse=True)
    return [LeaderboardEntry(rank=i, **row) for i, row in enumerate(ordered, start=1)]


def find_user_rank(entries: Iterable[LeaderboardEntry], user_id: Optional[str]) -> Optional[int]:
    if not user_id:
        return None
    for entry in entries:
        if entry.user_id == user_id:
            return entry.rank
    return None


class LeaderboardStrategy:
    """Common interface of the two ranking strategies"""
    name = "base"

    def fetch(self, db: Session, time_frame: str = "all_time", limit: int = 100) -> List[LeaderboardEntry]:
        raise NotImplementedError


class ServerRankedLeaderboard(LeaderboardStrategy):
    name = "server_ranked"

    def fetch(self, db: Session, time_frame: str = "all_time", limit: int = 100) -> List[LeaderboardEntry]:
        rows = db.execute(
            text(f"SELECT * FROM {SERVER_RANKING_FUNCTION}(:time_frame, :limit_count)"),
            {"time_frame": time_frame, "limit_count": int(limit)},
        ).mappings().all()

        entries: List[LeaderboardEntry] = []
        for position, row in enumerate(rows, start=1):
            entries.append(LeaderboardEntry(
                user_id=str(row["user_id"]),
                profile={
                    "id": str(row["user_id"]),
                    "username": row.get("username"),
                    "display_name": row.get("display_name"),
                    "avatar_url": row.get("avatar_url"),
                },
                total_points=int(row.get("total_points") or 0),
                problems_solved=int(row.get("problems_solved") or 0),
                rank=int(row.get("rank") or position),
            ))
        return entries


class ClientAggregatedLeaderboard(LeaderboardStrategy):
    name = "client_aggregated"

    def fetch(self, db: Session, time_frame: str = "all_time", limit: int = 100) -> List[LeaderboardEntry]:
        q = (
            db.query(UserProblemStats.user_id, UserProblemStats.points_earned, Profile)
            .join(Profile, Profile.id == UserProblemStats.user_id)
            .filter(UserProblemStats.solved.is_(True))
        )

        since = time_frame_start(time_frame)
        if since is not None:
            q = q.filter(UserProblemStats.solved_at >= since)

        rows = q.order_by(UserProblemStats.points_earned.desc()).all()
        records = [SolveRecord(user_id=user_id, profile=profile.snapshot(), points=points) for (user_id, points, profile) in rows]

        # Cắt theo số user sau khi đã gộp, không cắt theo số dòng.
        return aggregate(records)[: max(int(limit), 0)]


def server_ranking_available(db: Session) -> bool:
    """Capability check: is the ranking function deployed in this database?"""
    bind = db.get_bind()
    if bind.dialect.name != "postgresql":
        return False
    found = db.execute(
        text("SELECT 1 FROM pg_proc WHERE proname = :name LIMIT 1"),
        {"name": SERVER_RANKING_FUNCTION},
    ).first()
    return found is not None


def select_leaderboard_strategy(db: Session) -> LeaderboardStrategy:
    if server_ranking_available(db):
        return ServerRankedLeaderboard()
    logger.info(f"{SERVER_RANKING_FUNCTION}() not available - aggregating leaderboard in the service")
    return ClientAggregatedLeaderboard()


__all__ = [
    "SolveRecord",
    "LeaderboardEntry",
    "aggregate",
    "find_user_rank",
    "LeaderboardStrategy",
    "ServerRankedLeaderboard",
    "ClientAggregatedLeaderboard",
    "server_ranking_available",
    "select_leaderboard_strategy",
]
