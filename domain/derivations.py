"""
Pure derived-state helpers shared by the routers.

Everything here recomputes deterministically from its inputs: style classes for
difficulties and statuses, challenge status badges, input validation, and the
in-memory filter/sort/paginate steps applied to already-fetched rows.
"""

import re
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]{3,20}$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

DIFFICULTY_COLORS = {
    "easy": "text-green-500 bg-green-900 bg-opacity-30",
    "medium": "text-yellow-500 bg-yellow-900 bg-opacity-30",
    "hard": "text-red-500 bg-red-900 bg-opacity-30",
}
DEFAULT_DIFFICULTY_COLOR = "text-gray-500 bg-gray-700"

STATUS_COLORS = {
    "accepted": "text-green-500",
    "wrong_answer": "text-red-500",
    "time_limit_exceeded": "text-yellow-500",
    "memory_limit_exceeded": "text-orange-500",
    "runtime_error": "text-red-400",
    "compilation_error": "text-red-400",
    "pending": "text-blue-500",
    "running": "text-blue-500",
}
DEFAULT_STATUS_COLOR = "text-gray-500"

CHALLENGE_BADGE_COLORS = {
    "Inactive": "bg-gray-600 text-gray-300",
    "Upcoming": "bg-blue-600 text-blue-100",
    "Ended": "bg-red-600 text-red-100",
    "Active": "bg-green-600 text-green-100",
}

TIME_FRAMES = ("all_time", "monthly", "weekly")
CHALLENGE_TABS = ("all", "active", "upcoming", "past")
PROBLEM_SORTS = ("newest", "points", "popularity")

Predicate = Callable[[Any], bool]


def get_difficulty_color(difficulty: Optional[str]) -> str:
    if not isinstance(difficulty, str):
        return DEFAULT_DIFFICULTY_COLOR
    return DIFFICULTY_COLORS.get(difficulty.lower(), DEFAULT_DIFFICULTY_COLOR)


def get_status_color(status: Optional[str]) -> str:
    return STATUS_COLORS.get(status or "", DEFAULT_STATUS_COLOR)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Naive datetimes coming back from the store are UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def challenge_status(
    is_active: bool,
    start_date: Optional[datetime],
    end_date: Optional[datetime],
    now: Optional[datetime] = None,
) -> str:
    """Badge text for a challenge: Inactive, Upcoming, Ended or Active.

    A missing start date counts as already started, a missing end date as never ending.
    """
    now = as_utc(now) or datetime.now(timezone.utc)
    start = as_utc(start_date)
    end = as_utc(end_date)

    if not is_active:
        return "Inactive"
    if start is not None and start > now:
        return "Upcoming"
    if end is not None and end < now:
        return "Ended"
    return "Active"


def challenge_tab_matches(
    is_active: bool,
    start_date: Optional[datetime],
    end_date: Optional[datetime],
    tab: str,
    now: Optional[datetime] = None,
) -> bool:
    """Whether a challenge belongs in one of the list tabs (all/active/upcoming/past)."""
    now = as_utc(now) or datetime.now(timezone.utc)
    start = as_utc(start_date)
    end = as_utc(end_date)

    if tab == "upcoming":
        return start is not None and start > now
    if tab == "past":
        return end is not None and end < now
    if tab == "active":
        has_started = start is None or start <= now
        has_not_ended = end is None or end >= now
        return has_started and has_not_ended and bool(is_active)
    return True


def is_valid_username(username: Optional[str]) -> bool:
    return bool(username) and USERNAME_PATTERN.fullmatch(username) is not None


def is_valid_email(email: Optional[str]) -> bool:
    return bool(email) and EMAIL_PATTERN.fullmatch(email) is not None


# ==================== Filtering ====================

def _field(item: Any, name: str) -> Any:
    if isinstance(item, Mapping):
        return item.get(name)
    return getattr(item, name, None)


def by_category(category: Optional[str]) -> Optional[Predicate]:
    if not category:
        return None
    return lambda item: _field(item, "category") == category


def by_difficulty(difficulty: Optional[str]) -> Optional[Predicate]:
    if not difficulty:
        return None
    return lambda item: _field(item, "difficulty") == difficulty


def by_search(query: Optional[str], fields: Sequence[str] = ("title", "description")) -> Optional[Predicate]:
    """Case-insensitive substring match on any of `fields` (ILIKE %q%)."""
    needle = (query or "").strip().lower()
    if not needle:
        return None

    def _match(item: Any) -> bool:
        for name in fields:
            value = _field(item, name)
            if isinstance(value, str) and needle in value.lower():
                return True
        return False

    return _match


def apply_filters(items: Iterable[Any], predicates: Iterable[Optional[Predicate]]) -> List[Any]:
    """Keep the items every predicate accepts; `None` predicates are ignored.

    Each predicate looks at one item in isolation, so the result is the same for any order.
    """
    active = [p for p in predicates if p is not None]
    return [item for item in items if all(p(item) for p in active)]


def filter_problems(
    items: Iterable[Any],
    category: Optional[str] = None,
    difficulty: Optional[str] = None,
    search: Optional[str] = None,
) -> List[Any]:
    return apply_filters(items, [by_category(category), by_difficulty(difficulty), by_search(search)])


def sort_problems(items: Iterable[Any], sort_by: str = "newest") -> List[Any]:
    rows = list(items)
    if sort_by == "newest":
        epoch = datetime.min.replace(tzinfo=timezone.utc)
        return sorted(rows, key=lambda p: as_utc(_field(p, "created_at")) or epoch, reverse=True)
    # "popularity" has no metric of its own yet, it ranks by points like "points".
    return sorted(rows, key=lambda p: _field(p, "points") or 0, reverse=True)


def paginate(items: Sequence[Any], page: int, page_size: int) -> List[Any]:
    """1-based page of fixed size; out-of-range pages are empty."""
    page = max(int(page), 1)
    page_size = max(int(page_size), 1)
    start = (page - 1) * page_size
    return list(items[start:start + page_size])


def total_pages(total: int, page_size: int) -> int:
    page_size = max(int(page_size), 1)
    return (max(int(total), 0) + page_size - 1) // page_size


def time_frame_start(time_frame: str, now: Optional[datetime] = None) -> Optional[datetime]:
    """Lower bound of a leaderboard window, `None` for all time."""
    now = as_utc(now) or datetime.now(timezone.utc)
    if time_frame == "weekly":
        return now - timedelta(days=7)
    if time_frame == "monthly":
        return _minus_one_month(now)
    return None


def _minus_one_month(moment: datetime) -> datetime:
    year, month = (moment.year, moment.month - 1) if moment.month > 1 else (moment.year - 1, 12)
    # Clamp the day the way calendar arithmetic does (31 Mar -> 28/29 Feb).
    for day in (moment.day, 30, 29, 28):
        try:
            return moment.replace(year=year, month=month, day=day)
        except ValueError:
            continue
    return moment.replace(year=year, month=month, day=28)


def utc_today(now: Optional[datetime] = None) -> date:
    return (as_utc(now) or datetime.now(timezone.utc)).date()


def slugify(title: str) -> str:
    """'Two Sum II!' -> 'two-sum-ii'"""
    slug = re.sub(r"[^a-z0-9]+", "-", (title or "").lower()).strip("-")
    return slug or "problem"


__all__ = [
    "get_difficulty_color",
    "get_status_color",
    "challenge_status",
    "challenge_tab_matches",
    "is_valid_username",
    "is_valid_email",
    "by_category",
    "by_difficulty",
    "by_search",
    "apply_filters",
    "filter_problems",
    "sort_problems",
    "paginate",
    "total_pages",
    "time_frame_start",
    "as_utc",
    "utc_today",
    "slugify",
]
