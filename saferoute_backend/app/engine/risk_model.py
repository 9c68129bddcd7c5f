"""
SafeRoute — Weighted Risk Aggregator
Combines the eight risk sub-scores of a route into one absolute raw risk.

    totalRawRisk = Σ factor_i × weight_i      (weights sum to 1.0)

Raw risk is batch-independent; the relative engine turns it into a score.
"""

import logging
import math

from app.engine import risk_factors as rf
from app.engine.scoring_config import DEFAULT_SCORING_CONFIG, ScoringConfig
from app.models.schemas import EnvironmentSnapshot, RiskFactors, RouteInput

logger = logging.getLogger("saferoute.risk_model")


class RiskAggregator:
    """Turns a RouteInput + EnvironmentSnapshot into a full RiskFactors record."""

    def __init__(self, config: ScoringConfig = DEFAULT_SCORING_CONFIG) -> None:
        self.config = config

    def compute(self, route: RouteInput, environment: EnvironmentSnapshot) -> RiskFactors:
        """
        Args:
            route: validated route attributes (non-negative, finite)
            environment: shared time-of-day and weather for the batch

        Raises:
            ValueError: if a numeric attribute is NaN or infinite.
        """
        for name in ("distance_km", "duration_min"):
            if not math.isfinite(getattr(route, name)):
                raise ValueError(f"{name} must be finite for route {route.route_id!r}")

        cfg = self.config
        road_type = route.road_type or cfg.default_road_type
        crime_level = route.crime_level or cfg.default_crime_level
        lighting_level = route.lighting_level or cfg.default_lighting_level

        factors = {
            "distance_risk": rf.distance_risk(route.distance_km),
            "duration_risk": rf.duration_risk(route.duration_min),
            "turn_risk": rf.turn_risk(route.turn_count),
            "time_risk": rf.time_risk(environment.hour_of_day),
            "weather_risk": rf.weather_risk(environment.weather),
            "crime_risk": rf.crime_risk(crime_level),
            "lighting_risk": rf.lighting_risk(lighting_level),
            "road_type_risk": rf.road_type_risk(road_type),
        }
        total = self.weighted_sum(factors)

        logger.debug(f"route={route.route_id} raw_risk={total:.4f}")
        return RiskFactors(**factors, total_raw_risk=total)

    def weighted_sum(self, factors: dict[str, float]) -> float:
        w = self.config.weights
        total = (
            factors["crime_risk"] * w.crime
            + factors["lighting_risk"] * w.lighting
            + factors["time_risk"] * w.time
            + factors["distance_risk"] * w.distance
            + factors["duration_risk"] * w.duration
            + factors["road_type_risk"] * w.road_type
            + factors["weather_risk"] * w.weather
            + factors["turn_risk"] * w.turn
        )
        # Float accumulation can drift a hair past the unit interval
        return min(max(total, 0.0), 1.0)


def compute_risk_factors(
    route: RouteInput,
    environment: EnvironmentSnapshot,
    config: ScoringConfig = DEFAULT_SCORING_CONFIG,
) -> RiskFactors:
    return RiskAggregator(config).compute(route, environment)
