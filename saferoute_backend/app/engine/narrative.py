"""
SafeRoute — Narrative Generator
Threshold-driven highlights, recommendations and a short explanation for a
scored route. Purely presentational; wording may change, thresholds may not.
"""

from app.models.schemas import EnvironmentSnapshot, RiskFactors

MIN_HIGHLIGHTS = 3
MAX_HIGHLIGHTS = 5
MAX_RECOMMENDATIONS = 4

# ── Thresholds ──
HIGH_RISK = 0.7
LOW_RISK = 0.3
LATE_NIGHT = 0.8
MAIN_ROADS = 0.4
CLEAR_WEATHER = 0.2

FILLER_HIGHLIGHTS = (
    ("traffic", "Moderate traffic expected"),
    ("conditions", "Standard route conditions"),
    ("navigation", "Follow turn-by-turn navigation"),
)


def _is_safest(rank: int) -> bool:
    return rank == 1


def _is_riskiest(rank: int, total_routes: int) -> bool:
    return total_routes > 1 and rank == total_routes


def generate_highlights(
    factors: RiskFactors,
    rank: int,
    total_routes: int,
    environment: EnvironmentSnapshot,
) -> list[str]:
    """3-5 short highlights: rank first, then positives, then warnings."""
    highlights: list[str] = []

    if _is_safest(rank):
        highlights.append("✓ Safest among all alternatives")
    elif _is_riskiest(rank, total_routes):
        highlights.append("⚠ Highest risk among alternatives")

    # Positives
    if factors.crime_risk <= LOW_RISK:
        highlights.append("Lower crime area")
    if factors.lighting_risk <= LOW_RISK:
        highlights.append("Well-lit streets")
    if factors.time_risk <= LOW_RISK:
        highlights.append("Safe travel time")
    if factors.road_type_risk <= MAIN_ROADS:
        highlights.append("Main roads preferred")
    if factors.weather_risk <= CLEAR_WEATHER:
        highlights.append("Clear weather conditions")
    if factors.turn_risk <= LOW_RISK:
        highlights.append("Straightforward route")
    if factors.distance_risk <= LOW_RISK:
        highlights.append("Short distance")

    # Warnings
    if factors.crime_risk >= HIGH_RISK:
        highlights.append("Higher crime area - stay alert")
    if factors.lighting_risk >= HIGH_RISK:
        highlights.append("Limited street lighting")
    if factors.time_risk >= LATE_NIGHT:
        highlights.append("Late night travel")
    if factors.road_type_risk >= HIGH_RISK:
        highlights.append("Includes narrow streets/alleys")
    if factors.weather_risk >= HIGH_RISK:
        highlights.append(f"{environment.weather.value} weather advisory")

    for keyword, filler in FILLER_HIGHLIGHTS:
        if len(highlights) >= MIN_HIGHLIGHTS:
            break
        if not any(keyword in h for h in highlights):
            highlights.append(filler)

    return highlights[:MAX_HIGHLIGHTS]


def generate_recommendations(factors: RiskFactors, rank: int, total_routes: int) -> list[str]:
    recommendations = ["Share your live location with trusted contacts"]

    if _is_safest(rank):
        recommendations.append("This is your safest option - recommended")
    elif _is_riskiest(rank, total_routes):
        recommendations.append("Consider the safest alternative if possible")

    if factors.time_risk >= LATE_NIGHT:
        recommendations.append("Consider traveling with a companion at night")
        recommendations.append("Keep your phone charged and accessible")
    if factors.crime_risk >= HIGH_RISK:
        recommendations.append("Stay on well-populated streets")
    if factors.lighting_risk >= HIGH_RISK:
        recommendations.append("Stay aware of your surroundings")

    return recommendations[:MAX_RECOMMENDATIONS]


def generate_explanation(factors: RiskFactors, rank: int, total_routes: int) -> str:
    if _is_safest(rank):
        parts = ["This is the SAFEST option among available routes"]
    elif _is_riskiest(rank, total_routes):
        parts = ["This route has the highest relative risk among alternatives"]
    else:
        parts = ["This route offers a balanced option between safety and convenience"]

    key_factors = []
    if factors.crime_risk >= HIGH_RISK:
        key_factors.append("higher crime area")
    elif factors.crime_risk <= LOW_RISK:
        key_factors.append("lower crime area")

    if factors.lighting_risk >= HIGH_RISK:
        key_factors.append("limited lighting")
    elif factors.lighting_risk <= LOW_RISK:
        key_factors.append("well-lit streets")

    if factors.time_risk >= LATE_NIGHT:
        key_factors.append("late night travel")
    elif factors.time_risk <= LOW_RISK:
        key_factors.append("daytime travel")

    if factors.distance_risk >= HIGH_RISK:
        key_factors.append("longer distance")
    elif factors.distance_risk <= LOW_RISK:
        key_factors.append("shorter distance")

    if key_factors:
        parts.append(f"Key factors: {', '.join(key_factors)}")

    return ". ".join(parts) + "."
