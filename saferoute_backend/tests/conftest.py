from datetime import datetime, timedelta

import pytest
from mongomock_motor import AsyncMongoMockClient

from app.models.schemas import EnvironmentSnapshot, RiskFactors, RouteInput, WeatherCondition
from app.services.feedback_store import CommunityFeedbackStore


class FakeClock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, hours: float) -> None:
        self.now += timedelta(hours=hours)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 3, 1, 9, 0, 0))


@pytest.fixture
def db():
    return AsyncMongoMockClient()["saferoute_test"]


@pytest.fixture
def store(db, clock) -> CommunityFeedbackStore:
    return CommunityFeedbackStore(db, clock=clock)


@pytest.fixture
def midday_clear() -> EnvironmentSnapshot:
    return EnvironmentSnapshot(hour_of_day=12, weather=WeatherCondition.CLEAR)


@pytest.fixture
def safe_route() -> RouteInput:
    # raw risk ≈ 0.18 at midday in clear weather
    return RouteInput(
        route_id="safe",
        distance_km=1,
        duration_min=5,
        turn_count=2,
        road_type="highway",
        crime_level="low",
        lighting_level="well_lit",
    )


@pytest.fixture
def default_route() -> RouteInput:
    # raw risk ≈ 0.425, all classifications defaulted
    return RouteInput(route_id="default", distance_km=5, duration_min=15, turn_count=10)


@pytest.fixture
def risky_route() -> RouteInput:
    # raw risk ≈ 0.73
    return RouteInput(
        route_id="risky",
        distance_km=12,
        duration_min=40,
        turn_count=25,
        road_type="alley",
        crime_level="high",
        lighting_level="dark",
    )


def make_factors(value: float = 0.5, **overrides) -> RiskFactors:
    fields = {
        "distance_risk": value,
        "duration_risk": value,
        "turn_risk": value,
        "time_risk": value,
        "weather_risk": value,
        "crime_risk": value,
        "lighting_risk": value,
        "road_type_risk": value,
    }
    fields.update(overrides)
    return RiskFactors(**fields, total_raw_risk=value)


@pytest.fixture
def factors():
    return make_factors
