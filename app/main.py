import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routers import (
    challenges_router,
    code_analyser_router,
    forums_router,
    imports_router,
    integrations_router,
    leaderboard_router,
    live_chat_router,
    problems_router,
    profiles_router,
    social_router,
    system_router,
)
from .settings import (
    APP_DESCRIPTION,
    APP_TITLE,
    APP_VERSION,
    CORS_ALLOW_ORIGINS,
    DATABASE_URL,
    SUPABASE_URL,
    TAVUS_API_KEY,
)
from .auth import router as auth_router

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

app = FastAPI(
    title=APP_TITLE,
    version=APP_VERSION,
    description=APP_DESCRIPTION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup_event():
    logger.info(f"Starting {APP_TITLE} v{APP_VERSION}...")

    # Chỉ log host, không log user/password trong DATABASE_URL
    logger.info(f"Database configured: {DATABASE_URL.rsplit('@', 1)[-1][:50]}")

    if SUPABASE_URL:
        logger.info(f"Hosted auth configured: {SUPABASE_URL[:50]}...")
    else:
        logger.warning("SUPABASE_URL not set - signup/login/logout will fail")

    if not os.environ.get("GROQ_API_KEY"):
        logger.warning("GROQ_API_KEY not set - code analyser uses local analysis only")

    if not TAVUS_API_KEY:
        logger.warning("TAVUS_API_KEY not set - live chat is disabled")

    logger.info("Startup complete")


app.include_router(auth_router)
# imports phải mount trước problems để /problems/imports không bị /problems/{slug} bắt
app.include_router(imports_router)
app.include_router(problems_router)
app.include_router(challenges_router)
app.include_router(leaderboard_router)
app.include_router(profiles_router)
app.include_router(social_router)
app.include_router(forums_router)
app.include_router(integrations_router)
app.include_router(code_analyser_router)
app.include_router(live_chat_router)
app.include_router(system_router)


__all__ = ["app"]
