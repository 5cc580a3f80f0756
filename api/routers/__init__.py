"""API routers (preferred import path).

Re-exports the router objects so `app.main` can mount them in one place.
"""

from .imports import router as imports_router
from .problems import router as problems_router
from .challenges import router as challenges_router
from .leaderboard import router as leaderboard_router
from .profiles import router as profiles_router
from .social import router as social_router
from .forums import router as forums_router
from .integrations import router as integrations_router
from .code_analyser import router as code_analyser_router
from .live_chat import router as live_chat_router
from .system import router as system_router

__all__ = [
    "imports_router",
    "problems_router",
    "challenges_router",
    "leaderboard_router",
    "profiles_router",
    "social_router",
    "forums_router",
    "integrations_router",
    "code_analyser_router",
    "live_chat_router",
    "system_router",
]
