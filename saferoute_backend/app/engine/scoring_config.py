"""
SafeRoute — Scoring Configuration
Immutable weight table and score bands consumed by the risk aggregator and
the relative scoring engine. Build a new ScoringConfig to experiment with
alternative weights; never mutate the default.
"""

import math
from dataclasses import dataclass, field, fields

from app.models.schemas import CrimeLevel, LightingLevel, RoadType


@dataclass(frozen=True)
class RiskWeights:
    """Category weights for the raw risk sum. Must add up to 1.0."""
    crime: float = 0.25
    lighting: float = 0.15
    time: float = 0.15
    distance: float = 0.10
    duration: float = 0.10
    road_type: float = 0.10
    weather: float = 0.10
    turn: float = 0.05

    def __post_init__(self) -> None:
        values = [getattr(self, f.name) for f in fields(self)]
        if any(v < 0 for v in values):
            raise ValueError("risk weights must be non-negative")
        total = math.fsum(values)
        if not math.isclose(total, 1.0, abs_tol=1e-9):
            raise ValueError(f"risk weights must sum to 1.0, got {total}")


@dataclass(frozen=True)
class ScoreBand:
    low: int
    high: int

    def __post_init__(self) -> None:
        if self.low > self.high:
            raise ValueError(f"score band low ({self.low}) exceeds high ({self.high})")

    @property
    def width(self) -> int:
        return self.high - self.low

    def at(self, position: float) -> float:
        """Linear position inside the band: 0.0 → low, 1.0 → high."""
        return self.low + self.width * position


@dataclass(frozen=True)
class ScoringConfig:
    weights: RiskWeights = field(default_factory=RiskWeights)

    # ── Relative bands by rank ──
    safest_band: ScoreBand = ScoreBand(75, 92)
    moderate_band: ScoreBand = ScoreBand(58, 74)
    riskiest_band: ScoreBand = ScoreBand(42, 57)

    # ── Single route fallback: clamp((1 - risk) * 100 + offset) ──
    single_route_band: ScoreBand = ScoreBand(55, 90)
    single_route_offset: float = 15.0

    # ── Near-identical batches sit high in their band ──
    min_risk_spread: float = 0.01
    indistinguishable_position: float = 0.7

    # ── Defaults for unclassified routes ──
    default_road_type: RoadType = RoadType.RESIDENTIAL
    default_crime_level: CrimeLevel = CrimeLevel.MEDIUM
    default_lighting_level: LightingLevel = LightingLevel.PARTIALLY_LIT

    def __post_init__(self) -> None:
        if not 0.0 <= self.indistinguishable_position <= 1.0:
            raise ValueError("indistinguishable_position must be within [0, 1]")
        if self.min_risk_spread < 0:
            raise ValueError("min_risk_spread must be non-negative")


DEFAULT_SCORING_CONFIG = ScoringConfig()
