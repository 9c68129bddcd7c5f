"""
SafeRoute — Relative Scoring Engine
Competition-style grading of alternative routes.

Routes are ranked by raw risk within the batch and each rank maps to a
score band:

    rank 1        → 75-92   "Safest Option"
    middle ranks  → 58-74   "Moderate Option"
    rank N        → 42-57   "Least Safe Option"

Inside a band the position follows the route's normalized risk
(lower risk → higher score). A lone route gets a lenient absolute mapping
clamped to 55-90.

Scores are NOT absolute hazard ratings: the same route scored against a
different set of alternatives can move band and score. That is expected.
"""

import logging
from typing import Sequence

import numpy as np

from app.engine.narrative import (
    generate_explanation,
    generate_highlights,
    generate_recommendations,
)
from app.engine.risk_model import RiskAggregator
from app.engine.scoring_config import DEFAULT_SCORING_CONFIG, ScoreBand, ScoringConfig
from app.models.schemas import (
    EnvironmentSnapshot,
    RouteInput,
    SafetyCategory,
    SafetyResult,
)
from app.utils.numeric import clamp, round_half_up

logger = logging.getLogger("saferoute.relative_scorer")


def rank_by_risk(risks: Sequence[float]) -> list[int]:
    """1-based ranks, ascending risk. Ties keep input order (stable sort)."""
    order = np.argsort(np.asarray(risks, dtype=np.float64), kind="stable")
    ranks = [0] * len(risks)
    for position, index in enumerate(order):
        ranks[int(index)] = position + 1
    return ranks


def category_for_rank(rank: int, total_routes: int) -> SafetyCategory:
    if total_routes == 1 or rank == 1:
        return SafetyCategory.SAFEST
    if rank == total_routes:
        return SafetyCategory.RISKIEST
    return SafetyCategory.MODERATE


class RelativeScoringEngine:
    """Scores a whole batch of candidate routes at once."""

    def __init__(self, config: ScoringConfig = DEFAULT_SCORING_CONFIG) -> None:
        self.config = config
        self.aggregator = RiskAggregator(config)

    def band_for_rank(self, rank: int, total_routes: int) -> ScoreBand:
        if rank == 1:
            return self.config.safest_band
        if rank == total_routes:
            return self.config.riskiest_band
        return self.config.moderate_band

    def relative_score(self, rank: int, risk: float, all_risks: Sequence[float]) -> int:
        cfg = self.config
        total_routes = len(all_risks)

        if total_routes == 1:
            # No alternatives to compare against
            band = cfg.single_route_band
            absolute = (1 - risk) * 100 + cfg.single_route_offset
            return round_half_up(clamp(absolute, band.low, band.high))

        band = self.band_for_rank(rank, total_routes)
        min_risk = min(all_risks)
        spread = max(all_risks) - min_risk

        if spread < cfg.min_risk_spread:
            # Near-identical alternatives should not look alarmingly different
            position = cfg.indistinguishable_position
        else:
            position = 1 - (risk - min_risk) / spread

        return round_half_up(band.at(position))

    def score(
        self,
        routes: Sequence[RouteInput],
        environment: EnvironmentSnapshot,
    ) -> list[SafetyResult]:
        """
        Score every route relative to its siblings.

        Results come back in input order. An empty batch yields an empty list.
        """
        if not routes:
            return []

        # Barrier: every raw risk must be known before any route can be ranked
        factors = [self.aggregator.compute(route, environment) for route in routes]
        all_risks = [f.total_raw_risk for f in factors]
        ranks = rank_by_risk(all_risks)
        total_routes = len(routes)

        results = []
        for route, risk_factors, rank in zip(routes, factors, ranks):
            risk = risk_factors.total_raw_risk
            results.append(
                SafetyResult(
                    route_id=route.route_id,
                    safety_score=self.relative_score(rank, risk, all_risks),
                    raw_risk_score=round_half_up(risk * 100),
                    category=category_for_rank(rank, total_routes),
                    rank=rank,
                    risk_factors=risk_factors,
                    explanation=generate_explanation(risk_factors, rank, total_routes),
                    highlights=generate_highlights(risk_factors, rank, total_routes, environment),
                    recommendations=generate_recommendations(risk_factors, rank, total_routes),
                    is_relative=True,
                )
            )

        summary = ", ".join(f"{r.route_id}=#{r.rank}/{r.safety_score}" for r in results)
        logger.debug(f"Scored {total_routes} routes: {summary}")
        return results


def score_routes(
    routes: Sequence[RouteInput],
    environment: EnvironmentSnapshot,
    config: ScoringConfig = DEFAULT_SCORING_CONFIG,
) -> list[SafetyResult]:
    """Batch entry point: rank and relatively score alternative routes."""
    return RelativeScoringEngine(config).score(routes, environment)
