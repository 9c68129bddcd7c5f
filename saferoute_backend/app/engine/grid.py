"""
SafeRoute — Grid Indexer
Quantizes coordinates into coarse community-feedback areas.

A grid id is "{lat}_{lng}" with both parts rounded half-up to two decimals
and always printed with two decimals ("12.30_77.60"). A cell spans 0.01°,
roughly 1.1 km north-south and less east-west away from the equator.
"""

import math
from typing import Iterable, Optional

import polyline


def _round2(value: float) -> float:
    return math.floor(value * 100 + 0.5) / 100


def grid_id(lat: float, lng: float) -> str:
    """Stable area key for a coordinate. Nearby points in one cell share it."""
    if not (math.isfinite(lat) and math.isfinite(lng)):
        raise ValueError("coordinates must be finite")
    r_lat = _round2(lat)
    r_lng = _round2(lng)
    return f"{r_lat:.2f}_{r_lng:.2f}"


def parse_grid_id(value: str) -> Optional[tuple[float, float]]:
    """Inverse of grid_id for display; None when the key is malformed."""
    if not isinstance(value, str):
        return None
    parts = value.split("_")
    if len(parts) != 2:
        return None
    try:
        lat, lng = float(parts[0]), float(parts[1])
    except ValueError:
        return None
    if not (math.isfinite(lat) and math.isfinite(lng)):
        return None
    if not (-90 <= lat <= 90 and -180 <= lng <= 180):
        return None
    return lat, lng


def unique_grid_ids(points: Iterable[tuple[float, float]]) -> list[str]:
    """Grid ids along a path, de-duplicated, first-seen order."""
    return list(dict.fromkeys(grid_id(lat, lng) for lat, lng in points))


def decode_route_points(encoded: str, sample_interval: int = 5) -> list[tuple[float, float]]:
    """Decode an encoded polyline (precision 5) and keep every Nth vertex."""
    if sample_interval < 1:
        raise ValueError("sample_interval must be >= 1")
    vertices = polyline.decode(encoded)
    return [(lat, lng) for i, (lat, lng) in enumerate(vertices) if i % sample_interval == 0]
