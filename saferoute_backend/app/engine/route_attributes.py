"""
SafeRoute — Route attribute helpers
Turn routing-provider text (distance/duration strings, step instructions,
addresses) into the classifications RouteInput expects.
"""

import re

from app.models.schemas import CrimeLevel, LightingLevel, RoadType

# Placeholder area classification until a crime data feed is wired in
CRIME_DATA_BY_AREA = {
    "connaught place": CrimeLevel.MEDIUM,
    "karol bagh": CrimeLevel.MEDIUM,
    "chandni chowk": CrimeLevel.HIGH,
    "saket": CrimeLevel.LOW,
    "vasant kunj": CrimeLevel.LOW,
    "dwarka": CrimeLevel.LOW,
    "rohini": CrimeLevel.MEDIUM,
    "nehru place": CrimeLevel.MEDIUM,
    "lajpat nagar": CrimeLevel.MEDIUM,
    "greater kailash": CrimeLevel.LOW,
}

DEFAULT_DISTANCE_KM = 1.0
DEFAULT_DURATION_MIN = 10

_NUMBER = re.compile(r"\d+(?:\.\d+)?")
_HOURS = re.compile(r"(\d+)\s*(?:hour|hr|h)")
_MINUTES = re.compile(r"(\d+)\s*(?:min|m(?!ile))")

_ROAD_KEYWORDS = (
    (RoadType.HIGHWAY, ("highway", "expressway", "motorway")),
    (RoadType.MAIN_ROAD, ("main", "national", "state road", "avenue")),
    (RoadType.ALLEY, ("alley", "gali", "lane", "path")),
)


def parse_distance_to_km(text: str) -> float:
    """'2.5 km' → 2.5, '500 m' → 0.5. Unparseable input → 1 km."""
    match = _NUMBER.search(text.replace(",", ""))
    if not match:
        return DEFAULT_DISTANCE_KM
    value = float(match.group())
    lower = text.lower()
    if "km" in lower:
        return value
    if "m" in lower:
        return value / 1000
    return value


def parse_duration_to_min(text: str) -> int:
    """'1 hour 30 mins' → 90. Unparseable or zero → 10 minutes."""
    lower = text.lower()
    total = 0
    hours = _HOURS.search(lower)
    if hours:
        total += int(hours.group(1)) * 60
    minutes = _MINUTES.search(lower)
    if minutes:
        total += int(minutes.group(1))
    return total or DEFAULT_DURATION_MIN


def detect_road_type(instructions: str) -> RoadType:
    lower = instructions.lower()
    for road_type, keywords in _ROAD_KEYWORDS:
        if any(k in lower for k in keywords):
            return road_type
    return RoadType.RESIDENTIAL


def estimate_lighting_level(road_type: RoadType, hour: int) -> LightingLevel:
    """Daylight is assumed well lit; at night lighting follows road class."""
    is_night = hour >= 19 or hour <= 6
    if not is_night:
        return LightingLevel.WELL_LIT
    if road_type in (RoadType.HIGHWAY, RoadType.MAIN_ROAD):
        return LightingLevel.WELL_LIT
    if road_type == RoadType.ALLEY:
        return LightingLevel.DARK
    return LightingLevel.PARTIALLY_LIT


def get_crime_level_for_location(address: str) -> CrimeLevel:
    lower = address.lower()
    for area, level in CRIME_DATA_BY_AREA.items():
        if area in lower:
            return level
    return CrimeLevel.MEDIUM
