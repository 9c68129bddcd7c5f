"""
SafeRoute — Pydantic V2 Schemas
All request/response models for the scoring engine and the community store.
Fields are snake_case in Python and camelCase on the wire.
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel
from typing import Optional
from datetime import datetime
from enum import Enum


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ═══════════════════════════════════════════════════════════════
# Enums
# ═══════════════════════════════════════════════════════════════

class RoadType(str, Enum):
    HIGHWAY = "highway"
    MAIN_ROAD = "main_road"
    RESIDENTIAL = "residential"
    ALLEY = "alley"


class CrimeLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class LightingLevel(str, Enum):
    WELL_LIT = "well_lit"
    PARTIALLY_LIT = "partially_lit"
    DARK = "dark"


class WeatherCondition(str, Enum):
    CLEAR = "clear"
    CLOUDY = "cloudy"
    RAIN = "rain"
    STORM = "storm"
    FOG = "fog"


class SafetyCategory(str, Enum):
    SAFEST = "Safest Option"
    MODERATE = "Moderate Option"
    RISKIEST = "Least Safe Option"


# ═══════════════════════════════════════════════════════════════
# Route Scoring Models
# ═══════════════════════════════════════════════════════════════

class RouteInput(CamelModel):
    """One candidate route. Missing classifications fall back to the scoring config defaults."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    route_id: str = Field(..., min_length=1)
    distance_km: float = Field(..., ge=0, allow_inf_nan=False)
    duration_min: float = Field(..., ge=0, allow_inf_nan=False)
    turn_count: int = Field(..., ge=0)
    road_type: Optional[RoadType] = None
    crime_level: Optional[CrimeLevel] = None
    lighting_level: Optional[LightingLevel] = None


class EnvironmentSnapshot(CamelModel):
    """Traveller's chosen departure time and weather, shared by every route in a batch."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    hour_of_day: int = Field(..., ge=0, le=23)
    weather: WeatherCondition = WeatherCondition.CLEAR


class RiskFactors(CamelModel):
    distance_risk: float = Field(..., ge=0, le=1)
    duration_risk: float = Field(..., ge=0, le=1)
    turn_risk: float = Field(..., ge=0, le=1)
    time_risk: float = Field(..., ge=0, le=1)
    weather_risk: float = Field(..., ge=0, le=1)
    crime_risk: float = Field(..., ge=0, le=1)
    lighting_risk: float = Field(..., ge=0, le=1)
    road_type_risk: float = Field(..., ge=0, le=1)
    total_raw_risk: float = Field(..., ge=0, le=1, description="Weighted sum of the eight factors")


class SafetyResult(CamelModel):
    """Relative safety verdict for one route. Only meaningful next to its batch siblings."""
    route_id: str
    safety_score: int = Field(..., ge=0, le=100, description="Relative score, not an absolute hazard rating")
    raw_risk_score: int = Field(..., ge=0, le=100)
    category: SafetyCategory
    rank: int = Field(..., ge=1, description="1 = lowest raw risk in the batch")
    risk_factors: RiskFactors
    explanation: str = ""
    highlights: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    is_relative: bool = True


class ScoreRoutesRequest(CamelModel):
    routes: list[RouteInput] = Field(default_factory=list)
    environment: EnvironmentSnapshot

    @model_validator(mode="after")
    def _unique_route_ids(self) -> "ScoreRoutesRequest":
        ids = [r.route_id for r in self.routes]
        if len(ids) != len(set(ids)):
            raise ValueError("routeId must be unique within a batch")
        return self


class ScoreRoutesResponse(CamelModel):
    results: list[SafetyResult]
    is_relative: bool = True
    note: str = (
        "Scores are relative to the routes in this request. "
        "The same route compared against different alternatives can score differently."
    )


# ═══════════════════════════════════════════════════════════════
# Community Feedback Models
# ═══════════════════════════════════════════════════════════════

class SafetyRatings(CamelModel):
    """Detailed per-area ratings attached to a report. 0 means 'not rated' for optional items."""
    lighting: int = Field(..., ge=1, le=5)
    crowdedness: int = Field(..., ge=1, le=5)
    road_condition: int = Field(..., ge=1, le=5)
    visibility: int = Field(default=0, ge=0, le=5)
    public_transport: int = Field(default=0, ge=0, le=5)
    emergency_access: int = Field(default=0, ge=0, le=5)
    overall_safety_score: int = Field(default=0, ge=0, le=10)


class AreaSafetyData(CamelModel):
    safe_count: int = Field(default=0, ge=0)
    unsafe_count: int = Field(default=0, ge=0)
    last_updated: Optional[datetime] = None


class AreaScoreResponse(CamelModel):
    grid_id: str
    score: int = Field(..., ge=0, le=100)
    safe_count: int = 0
    unsafe_count: int = 0
    last_updated: Optional[datetime] = None


class AreaReport(CamelModel):
    id: Optional[str] = None
    grid_id: str
    user_id: str
    is_safe: bool
    experience_text: str = ""
    ratings: Optional[SafetyRatings] = None
    timestamp: datetime


class EligibilityResult(CamelModel):
    can_submit: bool
    hours_remaining: Optional[int] = None
    message: Optional[str] = None


class FeedbackRequest(CamelModel):
    lat: float = Field(..., ge=-90, le=90, allow_inf_nan=False)
    lng: float = Field(..., ge=-180, le=180, allow_inf_nan=False)
    is_safe: bool
    experience_text: Optional[str] = Field(default=None, max_length=2000)
    ratings: Optional[SafetyRatings] = None


class FeedbackResult(CamelModel):
    success: bool
    message: str
    grid_id: Optional[str] = None
    new_score: Optional[int] = None


class GridLookupResponse(CamelModel):
    grid_id: str
    lat: float
    lng: float


class RoutePoint(CamelModel):
    lat: float = Field(..., ge=-90, le=90, allow_inf_nan=False)
    lng: float = Field(..., ge=-180, le=180, allow_inf_nan=False)


class RouteCommunityScoreRequest(CamelModel):
    """Either pre-sampled points or an encoded polyline to sample server-side."""
    points: Optional[list[RoutePoint]] = None
    polyline: Optional[str] = None
    sample_interval: Optional[int] = Field(default=None, ge=1)

    @model_validator(mode="after")
    def _one_source(self) -> "RouteCommunityScoreRequest":
        if (self.points is None) == (self.polyline is None):
            raise ValueError("provide exactly one of 'points' or 'polyline'")
        return self


class RouteCommunityScore(CamelModel):
    score: int = Field(..., ge=0, le=100)
    covered_grids: int = Field(..., ge=0, description="Cells with at least one community report")
    total_grids: int = Field(..., ge=0, description="Unique cells the route passes through")


class AppFeedbackRequest(CamelModel):
    rating: int = Field(..., ge=1, le=5)
    feedback_text: str = Field(default="", max_length=2000)


class AppFeedback(CamelModel):
    user_id: str
    rating: int
    feedback_text: str = ""
    timestamp: datetime


class AppFeedbackResult(CamelModel):
    success: bool
    message: str
