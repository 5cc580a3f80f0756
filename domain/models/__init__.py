"""Models package - SQLAlchemy mappings of the hosted Postgres tables.

Note: the schema is owned by the hosted backend (constraints, RLS, triggers).
These classes only describe the columns this service reads and writes.
"""

# Social
from .core import (
    Profile,
    Post,
    Like,
    Follower,
    Conversation,
    Notification,
    Message,
)
from .forum import (
    Forum,
    ForumMember,
    ForumTopic,
)
# Coding practice
from .problem import (
    Problem,
    ProblemTestCase,
    ProblemSubmission,
    ProblemImport,
    DailyProblem,
    UserProblemStats,
)
from .challenge import (
    CodingChallenge,
    CodingChallengeProblem,
    CodingChallengeLeaderboard,
)

__all__ = [
    "Profile",
    "Post",
    "Like",
    "Follower",
    "Conversation",
    "Notification",
    "Message",
    "Forum",
    "ForumMember",
    "ForumTopic",
    "Problem",
    "ProblemTestCase",
    "ProblemSubmission",
    "ProblemImport",
    "DailyProblem",
    "UserProblemStats",
    "CodingChallenge",
    "CodingChallengeProblem",
    "CodingChallengeLeaderboard",
]
