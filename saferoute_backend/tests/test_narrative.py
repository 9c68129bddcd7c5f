from app.engine.narrative import (
    generate_explanation,
    generate_highlights,
    generate_recommendations,
)
from app.models.schemas import EnvironmentSnapshot

STORM_NIGHT = EnvironmentSnapshot(hour_of_day=23, weather="storm")
CLEAR_DAY = EnvironmentSnapshot(hour_of_day=12, weather="clear")


def test_unremarkable_route_is_padded_to_three(factors) -> None:
    highlights = generate_highlights(factors(0.5), rank=2, total_routes=3, environment=CLEAR_DAY)

    assert highlights == [
        "Moderate traffic expected",
        "Standard route conditions",
        "Follow turn-by-turn navigation",
    ]


def test_highlights_are_capped_at_five(factors) -> None:
    worst = factors(0.9, time_risk=1.0, road_type_risk=0.8)
    highlights = generate_highlights(worst, rank=3, total_routes=3, environment=STORM_NIGHT)

    assert len(highlights) == 5
    assert highlights[0] == "⚠ Highest risk among alternatives"
    assert "Higher crime area - stay alert" in highlights


def test_weather_advisory_names_condition(factors) -> None:
    f = factors(0.5, weather_risk=0.9)
    highlights = generate_highlights(f, rank=2, total_routes=3, environment=STORM_NIGHT)
    assert "storm weather advisory" in highlights


def test_safest_route_highlights_positives(factors) -> None:
    best = factors(0.2, road_type_risk=0.3, weather_risk=0.1)
    highlights = generate_highlights(best, rank=1, total_routes=2, environment=CLEAR_DAY)

    assert highlights[0] == "✓ Safest among all alternatives"
    assert "Lower crime area" in highlights
    assert len(highlights) == 5


def test_filler_skips_existing_conditions_line(factors) -> None:
    f = factors(0.5, weather_risk=0.1)
    highlights = generate_highlights(f, rank=2, total_routes=3, environment=CLEAR_DAY)

    assert highlights == [
        "Clear weather conditions",
        "Moderate traffic expected",
        "Follow turn-by-turn navigation",
    ]


def test_recommendations_bounds(factors) -> None:
    calm = generate_recommendations(factors(0.5), rank=2, total_routes=3)
    assert calm == ["Share your live location with trusted contacts"]

    worst = generate_recommendations(factors(0.9, time_risk=1.0), rank=3, total_routes=3)
    assert len(worst) == 4
    assert worst[1] == "Consider the safest alternative if possible"


def test_single_route_is_not_called_riskiest(factors) -> None:
    recs = generate_recommendations(factors(0.9), rank=1, total_routes=1)
    assert "This is your safest option - recommended" in recs
    assert "Consider the safest alternative if possible" not in recs


def test_explanation_lists_key_factors(factors) -> None:
    text = generate_explanation(factors(0.2, time_risk=1.0, distance_risk=0.8), rank=1, total_routes=3)

    assert text.startswith("This is the SAFEST option among available routes")
    assert "Key factors: lower crime area, well-lit streets, late night travel, longer distance." in text


def test_explanation_without_key_factors(factors) -> None:
    text = generate_explanation(factors(0.5), rank=2, total_routes=3)
    assert text == "This route offers a balanced option between safety and convenience."
