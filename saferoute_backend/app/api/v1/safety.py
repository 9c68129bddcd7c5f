"""
SafeRoute — Route Safety API Routes (v1)
Endpoints: /safety/score-routes, /safety/parse-route-attributes
"""

import logging

from fastapi import APIRouter
from pydantic import Field

from app.engine.relative_scorer import score_routes
from app.engine.route_attributes import (
    detect_road_type,
    estimate_lighting_level,
    get_crime_level_for_location,
    parse_distance_to_km,
    parse_duration_to_min,
)
from app.models.schemas import (
    CamelModel,
    CrimeLevel,
    LightingLevel,
    RoadType,
    ScoreRoutesRequest,
    ScoreRoutesResponse,
)

logger = logging.getLogger("saferoute.api.safety")

router = APIRouter(prefix="/api/v1/safety", tags=["Safety"])


# ═══════════════════════════════════════════════════════════════
# POST /score-routes — Relative Safety Scoring
# ═══════════════════════════════════════════════════════════════

@router.post("/score-routes", response_model=ScoreRoutesResponse)
async def score_candidate_routes(request: ScoreRoutesRequest):
    """
    Rank alternative routes between one origin and destination.

    Scores are relative: rank 1 lands in 75-92, the last rank in 42-57 and
    everything between in 58-74. A single route gets 55-90. Results follow
    the order of `routes` in the request.
    """
    results = score_routes(request.routes, request.environment)
    logger.info(f"Scored {len(results)} candidate routes")
    return ScoreRoutesResponse(results=results)


# ═══════════════════════════════════════════════════════════════
# POST /parse-route-attributes — Provider text → RouteInput fields
# ═══════════════════════════════════════════════════════════════

class RouteTextRequest(CamelModel):
    distance_text: str = ""
    duration_text: str = ""
    instructions: str = ""
    address: str = ""
    hour_of_day: int = Field(default=12, ge=0, le=23)


class RouteAttributes(CamelModel):
    distance_km: float
    duration_min: int
    road_type: RoadType
    crime_level: CrimeLevel
    lighting_level: LightingLevel


@router.post("/parse-route-attributes", response_model=RouteAttributes)
async def parse_route_attributes(request: RouteTextRequest):
    """Derive scoring attributes from routing-provider strings."""
    road_type = detect_road_type(request.instructions)
    return RouteAttributes(
        distance_km=parse_distance_to_km(request.distance_text),
        duration_min=parse_duration_to_min(request.duration_text),
        road_type=road_type,
        crime_level=get_crime_level_for_location(request.address),
        lighting_level=estimate_lighting_level(road_type, request.hour_of_day),
    )
