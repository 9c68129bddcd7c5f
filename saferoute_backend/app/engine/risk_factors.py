"""
SafeRoute — Risk Factor Calculator
Eight independent, pure sub-scores in [0, 1]. Higher means riskier.
"""

from typing import Union

from app.models.schemas import CrimeLevel, LightingLevel, RoadType, WeatherCondition

# ── Lookup tables ──
WEATHER_RISK = {
    WeatherCondition.CLEAR.value: 0.1,
    WeatherCondition.CLOUDY.value: 0.3,
    WeatherCondition.RAIN.value: 0.6,
    WeatherCondition.STORM.value: 0.9,
    WeatherCondition.FOG.value: 0.9,
}
CRIME_RISK = {
    CrimeLevel.LOW.value: 0.2,
    CrimeLevel.MEDIUM.value: 0.5,
    CrimeLevel.HIGH.value: 0.9,
}
LIGHTING_RISK = {
    LightingLevel.WELL_LIT.value: 0.2,
    LightingLevel.PARTIALLY_LIT.value: 0.5,
    LightingLevel.DARK.value: 0.9,
}
ROAD_TYPE_RISK = {
    RoadType.HIGHWAY.value: 0.3,
    RoadType.MAIN_ROAD.value: 0.4,
    RoadType.RESIDENTIAL.value: 0.6,
    RoadType.ALLEY.value: 0.8,
}

DEFAULT_WEATHER_RISK = 0.3
DEFAULT_CRIME_RISK = 0.5
DEFAULT_LIGHTING_RISK = 0.5
DEFAULT_ROAD_TYPE_RISK = 0.5


def _lookup(table: dict, key, default: float) -> float:
    # Tables are keyed by the enum's wire value so plain strings work too
    value = getattr(key, "value", key)
    if not isinstance(value, str):
        return default
    return table.get(value, default)


def distance_risk(distance_km: float) -> float:
    """Longer trips mean more exposure. Saturates at 10 km."""
    return min(max(distance_km, 0.0) / 10, 1.0)


def duration_risk(duration_min: float) -> float:
    """Slow routes hint at congestion or isolation. Saturates at 30 minutes."""
    return min(max(duration_min, 0.0) / 30, 1.0)


def turn_risk(turn_count: int) -> float:
    """Many turns reduce predictability. Saturates at 20 turns."""
    return min(max(turn_count, 0) / 20, 1.0)


def time_risk(hour: int) -> float:
    """
    Night (22-05) → 1.0, shoulder hours → 0.6, day → 0.2.

    Known quirk kept for score compatibility: the shoulder branch tests
    ``hour >= 19 or hour <= 7`` independently of the night branch, so 06:00
    and 07:00 both land on 0.6 while 19:00-21:00 do too. Product owners have
    been told; do not "fix" without re-baselining historical scores.
    """
    if hour >= 22 or hour <= 5:
        return 1.0
    if hour >= 19 or hour <= 7:
        return 0.6
    return 0.2


def weather_risk(weather: Union[WeatherCondition, str]) -> float:
    return _lookup(WEATHER_RISK, weather, DEFAULT_WEATHER_RISK)


def crime_risk(crime_level: Union[CrimeLevel, str]) -> float:
    return _lookup(CRIME_RISK, crime_level, DEFAULT_CRIME_RISK)


def lighting_risk(lighting_level: Union[LightingLevel, str]) -> float:
    return _lookup(LIGHTING_RISK, lighting_level, DEFAULT_LIGHTING_RISK)


def road_type_risk(road_type: Union[RoadType, str]) -> float:
    return _lookup(ROAD_TYPE_RISK, road_type, DEFAULT_ROAD_TYPE_RISK)
