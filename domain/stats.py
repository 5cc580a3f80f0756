"""Problem statistics for the profile/problems dashboard, with real day streaks."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple

from domain.derivations import as_utc


def compute_streaks(solve_times: Iterable[datetime], today: date) -> Tuple[int, int]:
    """Return (current_streak, longest_streak) in days.

    Solve times are bucketed into distinct UTC calendar days. The longest streak is the
    longest run of consecutive days. The current streak is the run ending today, or
    ending yesterday when nothing has been solved yet today; anything older breaks it.
    """
    days = sorted({as_utc(t).date() for t in solve_times if t is not None})
    if not days:
        return 0, 0

    longest = 1
    run = 1
    for prev, cur in zip(days, days[1:]):
        if cur - prev == timedelta(days=1):
            run += 1
        else:
            run = 1
        longest = max(longest, run)

    current = 0
    day_set = set(days)
    cursor = today if today in day_set else today - timedelta(days=1)
    while cursor in day_set:
        current += 1
        cursor -= timedelta(days=1)

    return current, longest


def summarize_problem_stats(
    solved_rows: List[Dict[str, Any]],
    accepted_times: List[datetime],
    today: date,
) -> Dict[str, Any]:
    """Aggregate solved `user_problem_stats` rows plus accepted submission times.

    `solved_rows` items carry `difficulty` and `points_earned`.
    """
    current, longest = compute_streaks(accepted_times, today)

    known = [as_utc(t) for t in accepted_times if t is not None]
    last_solved: Optional[datetime] = max(known) if known else None

    return {
        "total_solved": len(solved_rows),
        "easy_solved": sum(1 for r in solved_rows if r.get("difficulty") == "easy"),
        "medium_solved": sum(1 for r in solved_rows if r.get("difficulty") == "medium"),
        "hard_solved": sum(1 for r in solved_rows if r.get("difficulty") == "hard"),
        "total_points": sum(r.get("points_earned") or 0 for r in solved_rows),
        "current_streak": current,
        "longest_streak": longest,
        "last_solved_date": last_solved.isoformat() if last_solved else None,
    }
