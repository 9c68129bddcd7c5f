"""
SafeRoute — FastAPI Lifespan Events
Manages startup (DB connect, feedback store wiring) and shutdown.
Uses the modern FastAPI lifespan context manager pattern.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI

from app.core.config import settings
from app.core.database import (
    close_mongodb_connection,
    connect_to_mongodb,
    get_database,
    is_connected,
)
from app.services.feedback_store import CommunityFeedbackStore

logger = logging.getLogger("saferoute.events")

# ── Global references for DI ──
feedback_store: CommunityFeedbackStore | None = None


def build_feedback_store() -> CommunityFeedbackStore:
    return CommunityFeedbackStore(
        get_database(),
        cooldown_hours=settings.feedback_cooldown_hours,
        timeout=settings.store_timeout_seconds,
        max_retries=settings.store_max_retries,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Route scoring is pure and needs nothing at startup. The community store
    is only wired when MongoDB answers; otherwise its endpoints return 503.
    """
    global feedback_store

    logger.info("=" * 60)
    logger.info("  SafeRoute — Starting Up")
    logger.info("=" * 60)

    await connect_to_mongodb()

    if is_connected():
        feedback_store = build_feedback_store()
        logger.info("Community feedback store online.")
    else:
        logger.warning("Community feedback store offline; scoring endpoints only.")

    yield  # ── App is running ──

    logger.info("Shutting down SafeRoute...")
    feedback_store = None
    await close_mongodb_connection()
    logger.info("Shutdown complete.")
