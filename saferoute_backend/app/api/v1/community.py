"""
SafeRoute — Community Feedback API Routes (v1)
Endpoints: /community/grid, /community/areas/{grid_id}[/reports|/eligibility],
/community/feedback, /community/route-score, /community/app-feedback

The caller's identity comes from the `X-User-Id` header set by the auth
gateway in front of this service.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query

from app.core.config import settings
from app.engine.grid import grid_id as make_grid_id, parse_grid_id
from app.models.schemas import (
    AppFeedback,
    AppFeedbackRequest,
    AppFeedbackResult,
    AreaReport,
    AreaScoreResponse,
    EligibilityResult,
    FeedbackRequest,
    FeedbackResult,
    GridLookupResponse,
    RouteCommunityScore,
    RouteCommunityScoreRequest,
)
from app.services.feedback_store import (
    MSG_LOGIN_REQUIRED,
    CommunityFeedbackStore,
    TransientStoreError,
    calculate_area_score,
)

logger = logging.getLogger("saferoute.api.community")

router = APIRouter(prefix="/api/v1/community", tags=["Community"])


# ═══════════════════════════════════════════════════════════════
# Dependencies
# ═══════════════════════════════════════════════════════════════

def get_feedback_store() -> CommunityFeedbackStore:
    from app.core.events import feedback_store

    if feedback_store is None:
        raise HTTPException(status_code=503, detail="Community feedback store unavailable")
    return feedback_store


def get_user_id(x_user_id: Optional[str] = Header(default=None)) -> Optional[str]:
    return x_user_id.strip() if x_user_id and x_user_id.strip() else None


def require_user_id(user_id: Optional[str] = Depends(get_user_id)) -> str:
    if user_id is None:
        raise HTTPException(status_code=401, detail=MSG_LOGIN_REQUIRED)
    return user_id


def _valid_grid_id(grid_id: str) -> str:
    if parse_grid_id(grid_id) is None:
        raise HTTPException(status_code=400, detail=f"Invalid grid id: {grid_id!r}")
    return grid_id


# ═══════════════════════════════════════════════════════════════
# Grid & area reads
# ═══════════════════════════════════════════════════════════════

@router.get("/grid", response_model=GridLookupResponse)
async def lookup_grid(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
):
    """Map a coordinate to its community feedback cell."""
    return GridLookupResponse(grid_id=make_grid_id(lat, lng), lat=lat, lng=lng)


@router.get("/areas/{grid_id}", response_model=AreaScoreResponse)
async def get_area(grid_id: str, store: CommunityFeedbackStore = Depends(get_feedback_store)):
    """Counts and community score for one cell. Unreported cells score a neutral 50."""
    _valid_grid_id(grid_id)
    try:
        data = await store.get_area_data(grid_id)
    except TransientStoreError as e:
        logger.error(f"area read failed for {grid_id}: {e}")
        raise HTTPException(status_code=503, detail="Community data temporarily unavailable")

    if data is None:
        return AreaScoreResponse(grid_id=grid_id, score=calculate_area_score(0, 0))
    return AreaScoreResponse(
        grid_id=grid_id,
        score=calculate_area_score(data.safe_count, data.unsafe_count),
        safe_count=data.safe_count,
        unsafe_count=data.unsafe_count,
        last_updated=data.last_updated,
    )


@router.get("/areas/{grid_id}/reports", response_model=list[AreaReport])
async def get_area_reports(
    grid_id: str,
    limit: int = Query(default=settings.area_reports_limit, ge=1, le=100),
    store: CommunityFeedbackStore = Depends(get_feedback_store),
):
    _valid_grid_id(grid_id)
    try:
        return await store.get_area_reports(grid_id, limit=limit)
    except TransientStoreError as e:
        logger.error(f"report read failed for {grid_id}: {e}")
        raise HTTPException(status_code=503, detail="Community data temporarily unavailable")


@router.get("/areas/{grid_id}/eligibility", response_model=EligibilityResult)
async def get_eligibility(
    grid_id: str,
    user_id: Optional[str] = Depends(get_user_id),
    store: CommunityFeedbackStore = Depends(get_feedback_store),
):
    """Whether the caller may rate this cell now (24h cooldown per user and cell)."""
    _valid_grid_id(grid_id)
    return await store.check_eligibility(user_id or "", grid_id)


# ═══════════════════════════════════════════════════════════════
# POST /feedback — Safe / unsafe report
# ═══════════════════════════════════════════════════════════════

@router.post("/feedback", response_model=FeedbackResult)
async def submit_feedback(
    request: FeedbackRequest,
    user_id: str = Depends(require_user_id),
    store: CommunityFeedbackStore = Depends(get_feedback_store),
):
    """
    Report the cell around (lat, lng) as safe or unsafe.
    Denials (cooldown, store trouble) come back as `success: false`, not as errors.
    """
    return await store.submit_feedback(
        user_id,
        request.lat,
        request.lng,
        request.is_safe,
        experience_text=request.experience_text,
        ratings=request.ratings,
    )


# ═══════════════════════════════════════════════════════════════
# POST /route-score — Community score along a route
# ═══════════════════════════════════════════════════════════════

@router.post("/route-score", response_model=RouteCommunityScore)
async def route_score(
    request: RouteCommunityScoreRequest,
    store: CommunityFeedbackStore = Depends(get_feedback_store),
):
    """
    Average community score over the unique cells a route touches.
    Reported alongside, never merged into, the relative safety score.
    """
    try:
        if request.polyline is not None:
            interval = request.sample_interval or settings.route_sample_interval
            try:
                return await store.route_community_score_from_polyline(request.polyline, interval)
            except (ValueError, IndexError) as e:
                raise HTTPException(status_code=400, detail=f"Invalid polyline: {e}")
        points = [(p.lat, p.lng) for p in request.points]
        return await store.route_community_score(points)
    except TransientStoreError as e:
        logger.error(f"route community score failed: {e}")
        raise HTTPException(status_code=503, detail="Community data temporarily unavailable")


# ═══════════════════════════════════════════════════════════════
# App feedback — one rating per user
# ═══════════════════════════════════════════════════════════════

@router.get("/app-feedback", response_model=Optional[AppFeedback])
async def get_app_feedback(
    user_id: str = Depends(require_user_id),
    store: CommunityFeedbackStore = Depends(get_feedback_store),
):
    try:
        return await store.get_app_feedback(user_id)
    except TransientStoreError as e:
        logger.error(f"app feedback read failed: {e}")
        raise HTTPException(status_code=503, detail="Community data temporarily unavailable")


@router.post("/app-feedback", response_model=AppFeedbackResult)
async def submit_app_feedback(
    request: AppFeedbackRequest,
    user_id: str = Depends(require_user_id),
    store: CommunityFeedbackStore = Depends(get_feedback_store),
):
    return await store.submit_app_feedback(user_id, request.rating, request.feedback_text)
