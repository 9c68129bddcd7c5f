"""
SafeRoute — FastAPI Application Entry Point
Relative route safety scoring plus community area feedback.

Run with:
    cd saferoute_backend
    uvicorn app.main:app --reload --host 0.0.0.0 --port 8000
"""

import logging
import sys

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.core.events import lifespan
from app.api.v1.safety import router as safety_router
from app.api.v1.community import router as community_router

# ── Logging ──
logging.basicConfig(
    level=logging.INFO if settings.debug else logging.WARNING,
    format="%(asctime)s │ %(name)-28s │ %(levelname)-7s │ %(message)s",
    datefmt="%H:%M:%S",
    stream=sys.stdout,
)

logger = logging.getLogger("saferoute")

# ═══════════════════════════════════════════════════════════════
# FastAPI App
# ═══════════════════════════════════════════════════════════════

app = FastAPI(
    title="SafeRoute",
    description=(
        "Ranks alternative routes by relative safety and aggregates "
        "community safe/unsafe reports per map grid cell."
    ),
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── CORS (web client) ──
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Register Routers ──
app.include_router(safety_router)
app.include_router(community_router)


# ═══════════════════════════════════════════════════════════════
# Root & Health Endpoints
# ═══════════════════════════════════════════════════════════════

@app.get("/", tags=["Root"])
async def root():
    return {
        "name": "SafeRoute",
        "version": "1.0.0",
        "description": "Relative route safety scoring with community area feedback",
        "docs": "/docs",
        "endpoints": {
            "score_routes": "/api/v1/safety/score-routes",
            "parse_route_attributes": "/api/v1/safety/parse-route-attributes",
            "grid_lookup": "/api/v1/community/grid",
            "area": "/api/v1/community/areas/{grid_id}",
            "area_reports": "/api/v1/community/areas/{grid_id}/reports",
            "eligibility": "/api/v1/community/areas/{grid_id}/eligibility",
            "feedback": "/api/v1/community/feedback",
            "route_score": "/api/v1/community/route-score",
            "app_feedback": "/api/v1/community/app-feedback",
        },
    }


@app.get("/health", tags=["Root"])
async def health():
    from app.core.database import is_connected

    return {
        "status": "ok",
        "service": "saferoute",
        "community_store": "online" if is_connected() else "offline",
    }
