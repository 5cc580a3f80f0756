from datetime import datetime, timedelta, timezone

import api.routers.leaderboard as leaderboard_router
from domain.leaderboard import (
    ClientAggregatedLeaderboard,
    SolveRecord,
    aggregate,
    find_user_rank,
    select_leaderboard_strategy,
    server_ranking_available,
)
from domain.models import Problem, UserProblemStats

from .conftest import auth_headers


def _records():
    return [
        SolveRecord("u1", {"username": "ann"}, 100),
        SolveRecord("u2", {"username": "ben"}, 300),
        SolveRecord("u1", {"username": "ann-later"}, 50),
        SolveRecord("u3", {"username": "cal"}, None),
        SolveRecord("u2", {"username": "ben"}, 20),
        SolveRecord("u4", {"username": "dee"}, 150),
    ]


def test_aggregate_one_entry_per_user():
    entries = aggregate(_records())
    assert len(entries) == 4
    assert len({e.user_id for e in entries}) == 4


def test_aggregate_preserves_points_and_counts():
    records = _records()
    entries = aggregate(records)

    by_user = {e.user_id: e for e in entries}
    assert by_user["u1"].total_points == 150
    assert by_user["u2"].total_points == 320
    assert by_user["u3"].total_points == 0
    assert sum(e.problems_solved for e in entries) == len(records)
    assert sum(e.total_points for e in entries) == sum(r.points or 0 for r in records)


def test_aggregate_sorted_with_dense_ranks():
    entries = aggregate(_records())
    totals = [e.total_points for e in entries]
    assert totals == sorted(totals, reverse=True)
    assert [e.rank for e in entries] == [1, 2, 3, 4]


def test_aggregate_keeps_first_profile_snapshot():
    entries = aggregate(_records())
    ann = next(e for e in entries if e.user_id == "u1")
    assert ann.profile == {"username": "ann"}


def test_aggregate_ties_keep_first_seen_order():
    records = [
        SolveRecord("late", {}, 50),
        SolveRecord("early", {}, 50),
        SolveRecord("late", {}, 0),
    ]
    entries = aggregate(records)
    assert [e.user_id for e in entries] == ["late", "early"]


def test_aggregate_empty():
    assert aggregate([]) == []


def test_find_user_rank():
    entries = aggregate(_records())
    assert find_user_rank(entries, "u2") == 1
    assert find_user_rank(entries, "nobody") is None
    assert find_user_rank(entries, None) is None


def _seed(db, make_profile):
    alice = make_profile("alice")
    bob = make_profile("bob")
    carol = make_profile("carol")

    problems = [Problem(title=f"P{i}", slug=f"p{i}", description="d") for i in range(3)]
    db.add_all(problems)
    db.flush()

    now = datetime.now(timezone.utc)
    db.add_all([
        UserProblemStats(user_id=alice.id, problem_id=problems[0].id, solved=True, points_earned=100, solved_at=now - timedelta(days=1)),
        UserProblemStats(user_id=alice.id, problem_id=problems[1].id, solved=True, points_earned=50, solved_at=now - timedelta(days=2)),
        UserProblemStats(user_id=bob.id, problem_id=problems[0].id, solved=True, points_earned=200, solved_at=now - timedelta(days=3)),
        UserProblemStats(user_id=carol.id, problem_id=problems[2].id, solved=True, points_earned=10, solved_at=now - timedelta(days=60)),
        # attempted but not solved: ignored
        UserProblemStats(user_id=carol.id, problem_id=problems[0].id, solved=False, points_earned=0),
    ])
    db.commit()
    return alice, bob, carol


def test_sqlite_has_no_server_ranking(db):
    assert server_ranking_available(db) is False
    assert select_leaderboard_strategy(db).name == "client_aggregated"


def test_client_strategy_windows_and_limits(db, make_profile):
    alice, bob, carol = _seed(db, make_profile)
    strategy = ClientAggregatedLeaderboard()

    all_time = strategy.fetch(db, "all_time", 100)
    assert [e.user_id for e in all_time] == [bob.id, alice.id, carol.id]
    assert all_time[1].problems_solved == 2
    assert all_time[0].profile["username"] == "bob"

    weekly = strategy.fetch(db, "weekly", 100)
    assert carol.id not in [e.user_id for e in weekly]

    assert len(strategy.fetch(db, "all_time", 2)) == 2


def test_global_leaderboard_endpoint(client, db, make_profile):
    alice, bob, carol = _seed(db, make_profile)

    resp = client.get("/leaderboard/global", headers=auth_headers(alice.id))
    assert resp.status_code == 200
    body = resp.json()
    assert body["strategy"] == "client_aggregated"
    assert [e["profile"]["username"] for e in body["entries"]] == ["bob", "alice", "carol"]
    assert body["user_rank"] == 2

    resp = client.get("/leaderboard/global", params={"search": "BO"}, headers=auth_headers(alice.id))
    body = resp.json()
    assert [e["profile"]["username"] for e in body["entries"]] == ["bob"]
    assert body["user_rank"] == 2


def test_global_leaderboard_rejects_unknown_time_frame(client):
    resp = client.get("/leaderboard/global", params={"time_frame": "yearly"})
    assert resp.status_code == 400


def test_strategy_selection_failure_is_readable(client, monkeypatch):
    def broken(db):
        raise RuntimeError("catalog unavailable")

    monkeypatch.setattr(leaderboard_router, "select_leaderboard_strategy", broken)
    resp = client.get("/leaderboard/global")
    assert resp.status_code == 500
    assert resp.json()["detail"] == "Failed to load leaderboard. Please try again later."
